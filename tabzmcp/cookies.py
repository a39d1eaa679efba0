"""
Cookie audit helpers: tracker detection and display formatting

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import time
from datetime import datetime
from typing import Any, Dict, List, Optional

# Known tracking domains (partial list)
KNOWN_TRACKERS = frozenset([
    "doubleclick.net",
    "googlesyndication.com",
    "googleadservices.com",
    "facebook.com",
    "fbcdn.net",
    "analytics.google.com",
    "googletagmanager.com",
    "hotjar.com",
    "mixpanel.com",
    "segment.io",
    "amplitude.com",
    "newrelic.com",
    "nr-data.net",
    "adsrvr.org",
    "criteo.com",
    "rubiconproject.com",
    "pubmatic.com",
    "amazon-adsystem.com",
    "taboola.com",
    "outbrain.com",
    "quantserve.com",
    "scorecardresearch.com",
])


def is_known_tracker(domain: str) -> bool:
    clean = domain[1:] if domain.startswith(".") else domain
    clean = clean.lower()
    return any(clean == tracker or clean.endswith("." + tracker) for tracker in KNOWN_TRACKERS)


def truncate_value(value: str, max_len: int = 20) -> str:
    """Shorten cookie values so auth tokens are never shown in full"""
    if len(value) <= max_len:
        return value
    return f"{value[:8]}...{value[-8:]}"


def format_expiration(expiration_date: Optional[float], now: Optional[float] = None) -> str:
    if not expiration_date:
        return "Session"

    now = time.time() if now is None else now
    remaining = expiration_date - now
    if remaining < 0:
        return "Expired"
    if remaining < 3600:
        return f"{round(remaining / 60)} minutes"
    if remaining < 86400:
        return f"{round(remaining / 3600)} hours"
    if remaining < 30 * 86400:
        return f"{round(remaining / 86400)} days"
    return datetime.fromtimestamp(expiration_date).strftime("%Y-%m-%d")


def summarize_audit(result: Dict[str, Any]) -> Dict[str, Any]:
    """Counts and groupings for a backend cookie audit response"""
    cookies = result.get("cookies") or []
    first_party = result.get("firstParty") or []
    third_party = result.get("thirdParty") or []

    by_domain: Dict[str, List[Dict[str, Any]]] = {}
    for cookie in third_party:
        by_domain.setdefault(cookie.get("domain", ""), []).append(cookie)

    return {
        "url": result.get("url"),
        "domain": result.get("domain"),
        "total": len(cookies),
        "firstParty": len(first_party),
        "thirdParty": len(third_party),
        "session": len(result.get("sessionCookies") or []),
        "persistent": len(result.get("persistentCookies") or []),
        "trackers": [c for c in third_party if is_known_tracker(c.get("domain", ""))],
        "firstPartyCookies": first_party,
        "thirdPartyByDomain": by_domain,
        "cookies": cookies,
    }
