"""
URL allow-list for the open-URL tool

Built-in destinations are a declarative table of (category, host, pattern)
entries. Users can extend it with custom domains from the dashboard, or turn
checking off entirely with the "allow all URLs" setting.

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import re
from collections import OrderedDict
from typing import List, NamedTuple, Optional, Pattern, Tuple

from .settings import NavigationSettings

CODE_HOSTING = "Code hosting"
LOCAL = "Local"
DEPLOYMENTS = "Deployments"
DEV_DOCS = "Dev docs"
PACKAGES = "Packages"
PLAYGROUNDS = "Playgrounds"
AI_IMAGE = "AI Image"
AI_CHAT = "AI Chat"
AI_ML = "AI/ML"
DESIGN = "Design"
CUSTOM = "Custom"

SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


class AllowListEntry(NamedTuple):
    category: str
    host: str
    pattern: Pattern[str]


class UrlCheck(NamedTuple):
    allowed: bool
    normalized_url: Optional[str] = None


def _entry(category: str, host: str, regex: str) -> AllowListEntry:
    return AllowListEntry(category, host, re.compile(regex, re.IGNORECASE))


# Every pattern is anchored on the scheme and accepts an optional path.
ALLOWED_URL_PATTERNS: Tuple[AllowListEntry, ...] = (
    _entry(CODE_HOSTING, "github.com", r"^https?://(www\.)?github\.com(/.*)?$"),
    _entry(CODE_HOSTING, "gitlab.com", r"^https?://(www\.)?gitlab\.com(/.*)?$"),
    _entry(CODE_HOSTING, "bitbucket.org", r"^https?://(www\.)?bitbucket\.org(/.*)?$"),
    _entry(LOCAL, "localhost", r"^https?://localhost(:\d+)?(/.*)?$"),
    _entry(LOCAL, "127.0.0.1", r"^https?://127\.0\.0\.1(:\d+)?(/.*)?$"),
    _entry(DEPLOYMENTS, "*.vercel.app", r"^https?://[\w-]+\.vercel\.app(/.*)?$"),
    _entry(DEPLOYMENTS, "*.vercel.com", r"^https?://[\w.-]+\.vercel\.com(/.*)?$"),
    _entry(DEPLOYMENTS, "*.netlify.app", r"^https?://[\w-]+\.netlify\.app(/.*)?$"),
    _entry(DEPLOYMENTS, "*.railway.app", r"^https?://[\w-]+\.railway\.app(/.*)?$"),
    _entry(DEPLOYMENTS, "*.onrender.com", r"^https?://[\w-]+\.onrender\.com(/.*)?$"),
    _entry(DEPLOYMENTS, "*.pages.dev", r"^https?://[\w-]+\.pages\.dev(/.*)?$"),
    _entry(DEPLOYMENTS, "*.fly.dev", r"^https?://[\w-]+\.fly\.dev(/.*)?$"),
    _entry(DEV_DOCS, "developer.mozilla.org", r"^https?://developer\.mozilla\.org(/.*)?$"),
    _entry(DEV_DOCS, "devdocs.io", r"^https?://(www\.)?devdocs\.io(/.*)?$"),
    _entry(DEV_DOCS, "docs.github.com", r"^https?://docs\.github\.com(/.*)?$"),
    _entry(DEV_DOCS, "stackoverflow.com", r"^https?://(www\.)?stackoverflow\.com(/.*)?$"),
    _entry(DEV_DOCS, "*.stackexchange.com", r"^https?://[\w-]+\.stackexchange\.com(/.*)?$"),
    _entry(PACKAGES, "npmjs.com", r"^https?://(www\.)?npmjs\.com(/.*)?$"),
    _entry(PACKAGES, "pypi.org", r"^https?://(www\.)?pypi\.org(/.*)?$"),
    _entry(PACKAGES, "crates.io", r"^https?://(www\.)?crates\.io(/.*)?$"),
    _entry(PACKAGES, "pkg.go.dev", r"^https?://pkg\.go\.dev(/.*)?$"),
    _entry(PLAYGROUNDS, "codepen.io", r"^https?://(www\.)?codepen\.io(/.*)?$"),
    _entry(PLAYGROUNDS, "jsfiddle.net", r"^https?://(www\.)?jsfiddle\.net(/.*)?$"),
    _entry(AI_IMAGE, "bing.com/images/create", r"^https?://(www\.)?bing\.com/images/create(/.*)?$"),
    _entry(AI_IMAGE, "chatgpt.com", r"^https?://(sora\.)?chatgpt\.com(/.*)?$"),
    _entry(AI_IMAGE, "ideogram.ai", r"^https?://(www\.)?ideogram\.ai(/.*)?$"),
    _entry(AI_IMAGE, "leonardo.ai", r"^https?://(app\.)?leonardo\.ai(/.*)?$"),
    _entry(AI_IMAGE, "tensor.art", r"^https?://(www\.)?tensor\.art(/.*)?$"),
    _entry(AI_IMAGE, "playground.com", r"^https?://(www\.)?playground\.com(/.*)?$"),
    _entry(AI_IMAGE, "lexica.art", r"^https?://(www\.)?lexica\.art(/.*)?$"),
    _entry(AI_CHAT, "claude.ai", r"^https?://(www\.)?claude\.ai(/.*)?$"),
    _entry(AI_CHAT, "perplexity.ai", r"^https?://(www\.)?perplexity\.ai(/.*)?$"),
    _entry(AI_CHAT, "deepseek.com", r"^https?://(chat\.)?deepseek\.com(/.*)?$"),
    _entry(AI_CHAT, "phind.com", r"^https?://(www\.)?phind\.com(/.*)?$"),
    _entry(AI_CHAT, "you.com", r"^https?://(www\.)?you\.com(/.*)?$"),
    _entry(AI_CHAT, "gemini.google.com", r"^https?://(www\.)?gemini\.google\.com(/.*)?$"),
    _entry(AI_CHAT, "copilot.microsoft.com", r"^https?://(www\.)?copilot\.microsoft\.com(/.*)?$"),
    _entry(AI_ML, "huggingface.co", r"^https?://(www\.)?huggingface\.co(/.*)?$"),
    _entry(AI_ML, "replicate.com", r"^https?://(www\.)?replicate\.com(/.*)?$"),
    _entry(AI_ML, "openrouter.ai", r"^https?://(www\.)?openrouter\.ai(/.*)?$"),
    _entry(AI_ML, "skillsmp.com", r"^https?://(www\.)?skillsmp\.com(/.*)?$"),
    _entry(DESIGN, "figma.com", r"^https?://(www\.)?figma\.com(/.*)?$"),
    _entry(DESIGN, "dribbble.com", r"^https?://(www\.)?dribbble\.com(/.*)?$"),
    _entry(DESIGN, "unsplash.com", r"^https?://(www\.)?unsplash\.com(/.*)?$"),
    _entry(DESIGN, "iconify.design", r"^https?://(www\.)?iconify\.design(/.*)?$"),
)

# Scheme-less inputs starting with one of these get https:// prepended.
KNOWN_DOMAIN_PREFIXES: Tuple[Pattern[str], ...] = tuple(
    re.compile(regex, re.IGNORECASE) for regex in (
        r"^(www\.)?(github\.com|gitlab\.com|bitbucket\.org)",
        r"^(localhost|127\.0\.0\.1)",
        r"^[\w-]+\.(vercel\.app|vercel\.com|netlify\.app|railway\.app|onrender\.com|pages\.dev|fly\.dev)",
        r"^(developer\.mozilla\.org|devdocs\.io|docs\.github\.com|stackoverflow\.com)",
        r"^[\w-]+\.stackexchange\.com",
        r"^(www\.)?(npmjs\.com|pypi\.org|crates\.io|pkg\.go\.dev)",
        r"^(www\.)?(codepen\.io|jsfiddle\.net)",
        r"^(www\.)?(bing\.com|chatgpt\.com|sora\.chatgpt\.com|ideogram\.ai|leonardo\.ai|tensor\.art|playground\.com|lexica\.art)",
        r"^(www\.)?(claude\.ai|perplexity\.ai|deepseek\.com|chat\.deepseek\.com|phind\.com|you\.com|gemini\.google\.com|copilot\.microsoft\.com)",
        r"^(www\.)?(huggingface\.co|replicate\.com|openrouter\.ai|skillsmp\.com)",
        r"^(www\.)?(figma\.com|dribbble\.com|unsplash\.com|iconify\.design)",
    )
)


def domain_to_pattern(domain: str) -> Optional[Pattern[str]]:
    """Compile a dashboard custom domain into a URL pattern.

    ``example.com`` (optionally with a port) allows the bare host and its
    www. form. ``*.example.com`` allows any subdomain but not the base host.
    """
    trimmed = domain.strip().lower()
    if not trimmed:
        return None

    if trimmed.startswith("*."):
        base = re.escape(trimmed[2:])
        return re.compile(rf"^https?://[\w.-]+\.{base}(/.*)?$", re.IGNORECASE)

    escaped = re.escape(trimmed)
    return re.compile(rf"^https?://(www\.)?{escaped}(/.*)?$", re.IGNORECASE)


def custom_patterns(custom_domains: str) -> List[Pattern[str]]:
    patterns = (domain_to_pattern(d) for d in (custom_domains or "").split("\n"))
    return [p for p in patterns if p is not None]


def check_url(url: str, settings: Optional[NavigationSettings] = None) -> UrlCheck:
    """Decide whether `url` may be opened and return its normalized form"""
    settings = settings or NavigationSettings()
    normalized = url.strip()
    if not normalized:
        return UrlCheck(allowed=False)

    custom = custom_patterns(settings.custom_domains)

    if not SCHEME_RE.match(normalized):
        if settings.allow_all_urls:
            normalized = f"https://{normalized}"
        elif any(p.match(normalized) for p in KNOWN_DOMAIN_PREFIXES):
            normalized = f"https://{normalized}"
        else:
            candidate = f"https://{normalized}"
            if not any(p.match(candidate) for p in custom):
                return UrlCheck(allowed=False)
            normalized = candidate

    # Explicit user opt-in to trust every destination
    if settings.allow_all_urls:
        return UrlCheck(allowed=True, normalized_url=normalized)

    for entry in ALLOWED_URL_PATTERNS:
        if entry.pattern.match(normalized):
            return UrlCheck(allowed=True, normalized_url=normalized)

    for pattern in custom:
        if pattern.match(normalized):
            return UrlCheck(allowed=True, normalized_url=normalized)

    return UrlCheck(allowed=False)


def allowed_categories(settings: Optional[NavigationSettings] = None) -> List[Tuple[str, List[str]]]:
    """Allowed destinations grouped by category, for rejection messages"""
    grouped = OrderedDict()
    for entry in ALLOWED_URL_PATTERNS:
        grouped.setdefault(entry.category, []).append(entry.host)

    if settings is not None and settings.custom_domain_list():
        grouped[CUSTOM] = settings.custom_domain_list()

    return list(grouped.items())
