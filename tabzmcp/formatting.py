"""
Markdown and JSON rendering of tool results

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .cookies import format_expiration, is_known_tracker, summarize_audit, truncate_value
from .navigation import COLLABORATOR, POLICY, VALIDATION, NavigationResult
from .network import NetworkRequest, group_by_status
from .tabs import TabInfo


class ResponseFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"


# (group key, heading, how many to show)
STATUS_SECTIONS = [
    ("errors", "❌ Errors", 10),
    ("success", "✅ Successful", 15),
    ("redirects", "➡️ Redirects", 5),
    ("pending", "... Pending", 5),
]


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def truncate_url(url: str, max_len: int = 60) -> str:
    if len(url) <= max_len:
        return url
    return url[:max_len - 3] + "..."


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def status_emoji(status: Optional[int]) -> str:
    if status is None:
        return "..."
    if 200 <= status < 300:
        return "✅"
    if 300 <= status < 400:
        return "➡️"
    if 400 <= status < 500:
        return "⚠️"
    if status >= 500:
        return "❌"
    return "❓"


# Navigation

def render_navigation(result: NavigationResult, response_format: ResponseFormat = ResponseFormat.MARKDOWN) -> str:
    """Render a tabz_open_url outcome"""
    if response_format == ResponseFormat.JSON:
        return to_json(result.to_payload())

    if result.success and result.reused:
        return (
            "## Switched to Existing Tab\n\n"
            "**URL already open!** Switched to existing tab instead of opening a new one.\n\n"
            f"**URL:** {result.url}\n"
            f"**Tab ID:** {result.tab_id} (now the current target)\n\n"
            "Use `tabz_list_tabs` to see all tabs, or `reuseExisting=false` to force a new tab."
        )

    if result.success:
        where = "in new tab" if result.new_tab else "in current tab"
        background = " (background)" if result.background else ""
        current = "" if result.background else " (now the current target)"
        return (
            "## URL Opened\n\n"
            f"**Success!** Opened {where}{background}.\n\n"
            f"**URL:** {result.url}\n"
            f"**Tab ID:** {result.tab_id}{current}\n\n"
            'Use `tabz_list_tabs` to see all tabs with the "← CURRENT" marker.'
        )

    if result.rejection == POLICY:
        lines = [
            "## URL Not Allowed",
            "",
            f"**Error:** {result.error}",
            "",
            f"**Provided URL:** {result.requested_url}",
            "",
            "**Allowed domains:**",
        ]
        lines.extend(f"- {category}: {', '.join(hosts)}" for category, hosts in result.allowed)
        lines.append("")
        lines.append("Please provide a URL from one of the allowed domains, "
                     "or add custom domains in Settings > MCP Tools > Open URL.")
        return "\n".join(lines)

    if result.rejection == VALIDATION:
        return f"## Invalid Request\n\n**Error:** {result.error}"

    heading = "## Failed to Open URL" if result.rejection == COLLABORATOR else "## Error"
    text = f"{heading}\n\n**Error:** {result.error}"
    if result.requested_url:
        text += f"\n\n**URL:** {result.requested_url}"
    return text


# Tabs

def render_tabs(tabs: Sequence[TabInfo], current_tab_id: int,
                response_format: ResponseFormat = ResponseFormat.MARKDOWN) -> str:
    if response_format == ResponseFormat.JSON:
        return to_json({"total": len(tabs), "currentTabId": current_tab_id, "tabs": list(tabs)})

    if not tabs:
        return "No tabs found"

    lines = [f"# Browser Tabs ({len(tabs)} open)", ""]
    for tab in tabs:
        if tab["tabId"] == current_tab_id:
            marker = " ← CURRENT"
        elif tab["active"]:
            marker = " ← ACTIVE"
        else:
            marker = ""
        lines.append(f"## Tab {tab['tabId']}{marker}")
        lines.append(f"**Title:** {tab['title'] or '(no title)'}")
        lines.append(f"**URL:** {tab['url']}")
        lines.append("")

    lines.append("---")
    lines.append("- Use `tabz_switch_tab` with tabId to switch tabs.")
    return "\n".join(lines)


def render_switch(tab_id: int, url: str = "") -> str:
    text = f"## Tab Switched\n\nSuccessfully switched to tab {tab_id}. This tab is now the current target."
    if url:
        text += f"\n\n**URL:** {url}"
    return text


# Network

def _request_lines(request: NetworkRequest, index: int) -> List[str]:
    status = request.status if request.status is not None else "pending"
    time_text = datetime.fromtimestamp(request.timestamp).strftime("%H:%M:%S")

    lines = [
        f"### {index + 1}. {status_emoji(request.status)} `{request.method}` {truncate_url(request.url)}",
        f"- **Status:** {status} {request.status_text or ''}".rstrip(),
        f"- **Type:** {request.resource_type}",
        f"- **Time:** {time_text}",
    ]
    if request.response_time is not None:
        lines.append(f"- **Duration:** {request.response_time}ms")
    if request.mime_type:
        lines.append(f"- **MIME:** {request.mime_type}")
    if request.encoded_data_length is not None:
        lines.append(f"- **Size:** {format_bytes(request.encoded_data_length)}")
    lines.append(f"- **Request ID:** `{request.request_id}`")
    lines.append("")
    return lines


def render_network_requests(response: Dict[str, Any], filters: Optional[Dict[str, Any]] = None,
                            response_format: ResponseFormat = ResponseFormat.MARKDOWN) -> str:
    """Render the result of NetworkCapture.query()"""
    requests: List[NetworkRequest] = response["requests"]

    if response_format == ResponseFormat.JSON:
        return to_json({
            "total": response["total"],
            "captureActive": response["captureActive"],
            "hasMore": response["hasMore"],
            "nextOffset": response["nextOffset"],
            "requests": [r.to_payload() for r in requests],
        })

    lines = ["# Network Requests", ""]
    active_filters = [f"{name}={value}" for name, value in (filters or {}).items()
                      if value is not None and value != "all"]
    if active_filters:
        lines.append(f"**Filters:** {', '.join(active_filters)}")
    shown = f" (showing {len(requests)})" if response["hasMore"] else ""
    lines.append(f"**Found:** {response['total']} requests{shown}")
    lines.append("")

    if not requests:
        lines.extend([
            "No matching requests found.",
            "",
            "**Tips:**",
            "- Make sure network capture is enabled (`tabz_enable_network_capture`)",
            "- Interact with the page to generate requests",
            "- Try removing or adjusting filters",
        ])
        return "\n".join(lines)

    groups = group_by_status(requests)
    for key, heading, shown_max in STATUS_SECTIONS:
        group = groups[key]
        if not group:
            continue
        lines.append(f"## {heading} ({len(group)})")
        lines.append("")
        for index, request in enumerate(group[:shown_max]):
            lines.extend(_request_lines(request, index))
        if len(group) > shown_max:
            lines.append(f"_...and {len(group) - shown_max} more_")
            lines.append("")

    if response["hasMore"]:
        lines.append("---")
        lines.append(f"**More results available.** Use `offset: {response['nextOffset']}` to see next page.")

    return "\n".join(lines)


def render_network_response(request: NetworkRequest) -> str:
    lines = [
        "## Network Response",
        "",
        f"**URL:** {request.url}",
        f"**Method:** {request.method}",
        f"**Status:** {request.status if request.status is not None else 'pending'} {request.status_text or ''}".rstrip(),
    ]
    if request.mime_type:
        lines.append(f"**MIME:** {request.mime_type}")
    if request.response_headers:
        lines.append("")
        lines.append("### Response Headers")
        lines.extend(f"- **{name}:** {value}" for name, value in request.response_headers.items())
    lines.append("")
    lines.append("### Body")
    lines.append("```")
    lines.append(request.response_body or "")
    lines.append("```")
    if request.response_body_truncated:
        lines.append("")
        lines.append("_Body truncated._")
    return "\n".join(lines)


# Cookies

def render_cookie_audit(result: Dict[str, Any], response_format: ResponseFormat = ResponseFormat.MARKDOWN) -> str:
    summary = summarize_audit(result)

    if response_format == ResponseFormat.JSON:
        return to_json({key: summary[key] for key in
                        ("url", "domain", "total", "firstParty", "thirdParty", "session", "persistent", "cookies")})

    lines = [
        "# Cookie Audit",
        "",
        f"**Page:** {summary['url']}",
        f"**Domain:** {summary['domain']}",
        "",
        "## Summary",
        "",
        "| Category | Count |",
        "|----------|-------|",
        f"| Total Cookies | {summary['total']} |",
        f"| First-Party | {summary['firstParty']} |",
        f"| Third-Party | {summary['thirdParty']} |",
        f"| Session | {summary['session']} |",
        f"| Persistent | {summary['persistent']} |",
        "",
    ]

    trackers = summary["trackers"]
    if trackers:
        lines.append(f"## ⚠️ Known Trackers ({len(trackers)})")
        lines.append("")
        lines.extend(f"- **{c.get('name')}** ({c.get('domain')})" for c in trackers)
        lines.append("")

    first_party = summary["firstPartyCookies"]
    if first_party:
        lines.append(f"## First-Party Cookies ({len(first_party)})")
        lines.append("")
        for cookie in first_party:
            flags = []
            if cookie.get("secure"):
                flags.append("\U0001f512")
            if cookie.get("httpOnly"):
                flags.append("\U0001f6abJS")
            if cookie.get("session"):
                flags.append("⏱️")
            lines.append(f"- **{cookie.get('name')}** {' '.join(flags)}".rstrip())
            lines.append(f"  Value: `{truncate_value(cookie.get('value', ''))}`")
        lines.append("")

    if summary["thirdParty"]:
        lines.append(f"## Third-Party Cookies ({summary['thirdParty']})")
        lines.append("")
        for domain, cookies in summary["thirdPartyByDomain"].items():
            label = " ⚠️ TRACKER" if is_known_tracker(domain) else ""
            lines.append(f"### {domain}{label}")
            lines.extend(f"- **{c.get('name')}**: `{truncate_value(c.get('value', ''))}`" for c in cookies)
            lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def render_cookie_list(cookies: Sequence[Dict[str, Any]], response_format: ResponseFormat = ResponseFormat.MARKDOWN,
                       now: Optional[float] = None) -> str:
    if response_format == ResponseFormat.JSON:
        return to_json({"cookies": list(cookies), "total": len(cookies)})

    if not cookies:
        return "No cookies found matching the criteria."

    by_domain: Dict[str, List[Dict[str, Any]]] = {}
    for cookie in cookies:
        by_domain.setdefault(cookie.get("domain", ""), []).append(cookie)

    lines = [f"# Cookies ({len(cookies)} total)", ""]
    for domain, domain_cookies in by_domain.items():
        lines.append(f"## {domain} ({len(domain_cookies)})")
        lines.append("")
        for cookie in domain_cookies:
            flags = []
            if cookie.get("secure"):
                flags.append("\U0001f512 Secure")
            if cookie.get("httpOnly"):
                flags.append("\U0001f6ab HttpOnly")
            if cookie.get("session"):
                flags.append("⏱️ Session")
            lines.append(f"- **{cookie.get('name')}**: `{truncate_value(cookie.get('value', ''))}`")
            if flags:
                lines.append(f"  {' | '.join(flags)}")
            if not cookie.get("session") and cookie.get("expirationDate"):
                lines.append(f"  Expires: {format_expiration(cookie['expirationDate'], now)}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def _yes_no(value: Any) -> str:
    return "Yes" if value else "No"


def render_cookie(cookie: Dict[str, Any], now: Optional[float] = None) -> str:
    """One cookie in detail, as returned by the get tool"""
    return "\n".join([
        f"## Cookie: {cookie.get('name')}",
        "",
        f"**Value:** `{truncate_value(cookie.get('value', ''), 50)}`",
        f"**Domain:** {cookie.get('domain')}",
        f"**Path:** {cookie.get('path')}",
        f"**Secure:** {_yes_no(cookie.get('secure'))}",
        f"**HttpOnly:** {_yes_no(cookie.get('httpOnly'))}",
        f"**SameSite:** {cookie.get('sameSite')}",
        f"**Expires:** {format_expiration(cookie.get('expirationDate'), now)}",
        f"**Session:** {_yes_no(cookie.get('session'))}",
    ])


def render_cookie_set(cookie: Dict[str, Any], now: Optional[float] = None) -> str:
    return "\n".join([
        "## Cookie Set Successfully",
        "",
        f"**Name:** {cookie.get('name')}",
        f"**Domain:** {cookie.get('domain')}",
        f"**Path:** {cookie.get('path')}",
        f"**Value:** `{truncate_value(cookie.get('value', ''), 30)}`",
        f"**Secure:** {_yes_no(cookie.get('secure'))}",
        f"**HttpOnly:** {_yes_no(cookie.get('httpOnly'))}",
        f"**SameSite:** {cookie.get('sameSite')}",
        f"**Expires:** {format_expiration(cookie.get('expirationDate'), now)}",
    ])


def render_cookie_deleted(removed: Dict[str, Any]) -> str:
    return (
        "## Cookie Deleted\n\n"
        f"**Name:** {removed.get('name')}\n"
        f"**URL:** {removed.get('url')}\n\n"
        "The cookie has been successfully removed."
    )
