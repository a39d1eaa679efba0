"""
Unit tests for result rendering
"""

import json

import pytest

from tabzmcp.formatting import (
    ResponseFormat,
    format_bytes,
    render_cookie,
    render_cookie_audit,
    render_cookie_deleted,
    render_cookie_list,
    render_cookie_set,
    render_navigation,
    render_network_requests,
    render_network_response,
    render_switch,
    render_tabs,
    status_emoji,
    truncate_url,
)
from tabzmcp.navigation import COLLABORATOR, POLICY, VALIDATION, NavigationResult
from tabzmcp.network import NetworkRequest
from tabzmcp.tabs import TabInfo


def make_request(request_id, status, url="https://api.github.com/user"):
    return NetworkRequest(request_id=request_id, url=url, timestamp=1_700_000_000, status=status,
                          response_time=12, encoded_data_length=2048, mime_type="application/json")


def query_result(requests, total=None, has_more=False, next_offset=None):
    return {"requests": requests, "total": total if total is not None else len(requests),
            "hasMore": has_more, "nextOffset": next_offset, "captureActive": True}


class TestHelpers:

    def test_truncate_url(self):
        assert truncate_url("https://a.dev") == "https://a.dev"
        long_url = "https://example.com/" + "a" * 80
        assert len(truncate_url(long_url)) == 60
        assert truncate_url(long_url).endswith("...")

    @pytest.mark.parametrize("size,expected", [(512, "512 B"), (2048, "2.0 KB"), (3 * 1024 * 1024, "3.00 MB")])
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected

    def test_status_emoji(self):
        assert status_emoji(None) == "..."
        assert status_emoji(200) == "✅"
        assert status_emoji(500) == "❌"


class TestNavigationRendering:

    def test_opened(self):
        text = render_navigation(NavigationResult(success=True, url="https://github.com", tab_id=3))
        assert text.startswith("## URL Opened")
        assert "in new tab" in text
        assert "**Tab ID:** 3 (now the current target)" in text

    def test_opened_in_background(self):
        text = render_navigation(NavigationResult(success=True, url="https://github.com", tab_id=3, background=True))
        assert "(background)" in text
        assert "current target" not in text.split("**Tab ID:**")[1].splitlines()[0]

    def test_reused(self):
        text = render_navigation(NavigationResult(success=True, url="https://github.com", tab_id=1, reused=True))
        assert text.startswith("## Switched to Existing Tab")

    def test_not_allowed(self):
        result = NavigationResult(success=False, rejection=POLICY, error="The URL domain is not whitelisted.",
                                  requested_url="https://example.com",
                                  allowed=[("Local", ["localhost", "127.0.0.1"]), ("Custom", ["corp.dev"])])
        text = render_navigation(result)
        assert text.startswith("## URL Not Allowed")
        assert "**Provided URL:** https://example.com" in text
        assert "- Local: localhost, 127.0.0.1" in text
        assert "- Custom: corp.dev" in text

    def test_failed(self):
        result = NavigationResult(success=False, rejection=COLLABORATOR, error="CDP not available",
                                  requested_url="https://github.com")
        assert render_navigation(result).startswith("## Failed to Open URL")

    def test_invalid(self):
        result = NavigationResult(success=False, rejection=VALIDATION, error="url: URL must not be empty")
        assert render_navigation(result).startswith("## Invalid Request")

    def test_json(self):
        result = NavigationResult(success=True, url="https://github.com", tab_id=2)
        assert json.loads(render_navigation(result, ResponseFormat.JSON)) == {
            "success": True, "url": "https://github.com", "tabId": 2, "reused": False}


class TestTabRendering:

    @pytest.fixture
    def tabs(self):
        return [
            TabInfo(tabId=1, url="https://github.com", title="GitHub", active=True),
            TabInfo(tabId=2, url="https://pypi.org", title="", active=False),
        ]

    def test_markers(self, tabs):
        text = render_tabs(tabs, current_tab_id=2)
        assert text.startswith("# Browser Tabs (2 open)")
        assert "## Tab 1 ← ACTIVE" in text
        assert "## Tab 2 ← CURRENT" in text
        assert "**Title:** (no title)" in text

    def test_empty(self):
        assert render_tabs([], 1) == "No tabs found"

    def test_json(self, tabs):
        data = json.loads(render_tabs(tabs, 1, "json"))
        assert data["total"] == 2
        assert data["currentTabId"] == 1

    def test_switch(self):
        assert "switched to tab 4" in render_switch(4)


class TestNetworkRendering:

    def test_grouped_sections(self):
        text = render_network_requests(query_result([make_request("1", 200), make_request("2", 404)]))
        assert "**Found:** 2 requests" in text
        assert "## ❌ Errors (1)" in text
        assert "## ✅ Successful (1)" in text
        assert text.index("Errors") < text.index("Successful")
        assert "- **Size:** 2.0 KB" in text
        assert "- **Request ID:** `2`" in text

    def test_section_limits(self):
        requests = [make_request(str(i), 200) for i in range(20)]
        text = render_network_requests(query_result(requests))
        assert "### 15." in text
        assert "### 16." not in text
        assert "_...and 5 more_" in text

    def test_filters_and_pagination(self):
        text = render_network_requests(query_result([make_request("1", 200)], total=80, has_more=True, next_offset=50),
                                       {"urlPattern": "api/", "method": "all", "statusMin": None})
        assert "**Filters:** urlPattern=api/" in text
        assert "(showing 1)" in text
        assert "`offset: 50`" in text

    def test_empty(self):
        assert "No matching requests found." in render_network_requests(query_result([]))

    def test_json(self):
        data = json.loads(render_network_requests(query_result([make_request("1", 200)]),
                                                  response_format=ResponseFormat.JSON))
        assert data["requests"][0]["requestId"] == "1"
        assert data["requests"][0]["encodedDataLength"] == 2048
        assert data["captureActive"] is True

    def test_single_response(self):
        request = make_request("1", 200)
        request.response_body = '{"login": "octocat"}'
        request.response_headers = {"content-type": "application/json"}
        text = render_network_response(request)
        assert "**Status:** 200" in text
        assert '{"login": "octocat"}' in text
        assert "- **content-type:** application/json" in text


class TestCookieRendering:

    def test_audit_markdown(self, sample_audit):
        text = render_cookie_audit(sample_audit)
        assert "| Total Cookies | 3 |" in text
        assert "## ⚠️ Known Trackers (1)" in text
        assert "### .doubleclick.net ⚠️ TRACKER" in text
        assert "### cdn.example.com\n" in text
        assert "`abcdefgh...stuvwxyz`" in text

    def test_audit_json(self, sample_audit):
        data = json.loads(render_cookie_audit(sample_audit, ResponseFormat.JSON))
        assert data["thirdParty"] == 2
        assert len(data["cookies"]) == 3

    def test_list_markdown(self, sample_audit):
        text = render_cookie_list(sample_audit["cookies"], now=1_700_000_000)
        assert text.startswith("# Cookies (3 total)")
        assert "## github.com (1)" in text
        assert "Secure | " in text
        assert "Expires: " in text

    def test_list_empty(self):
        assert render_cookie_list([]) == "No cookies found matching the criteria."

    def test_list_json(self, sample_audit):
        data = json.loads(render_cookie_list(sample_audit["cookies"], "json"))
        assert data["total"] == 3

    def test_single_cookie(self):
        cookie = {"name": "sid", "value": "x" * 60, "domain": ".github.com", "path": "/",
                  "secure": True, "httpOnly": True, "sameSite": "lax",
                  "expirationDate": 1_700_000_000 + 2 * 3600}
        text = render_cookie(cookie, now=1_700_000_000)
        assert text.startswith("## Cookie: sid")
        assert "**Value:** `xxxxxxxx...xxxxxxxx`" in text
        assert "**Secure:** Yes" in text
        assert "**Expires:** 2 hours" in text
        assert "**Session:** No" in text

    def test_single_cookie_keeps_medium_value(self):
        text = render_cookie({"name": "pref", "value": "a" * 40, "session": True})
        assert f"`{'a' * 40}`" in text
        assert "**Expires:** Session" in text

    def test_cookie_set(self):
        text = render_cookie_set({"name": "theme", "value": "light", "domain": "github.com", "path": "/",
                                  "secure": False, "sameSite": "strict"})
        assert text.startswith("## Cookie Set Successfully")
        assert "**Name:** theme" in text
        assert "**Secure:** No" in text
        assert "**Expires:** Session" in text

    def test_cookie_deleted(self):
        text = render_cookie_deleted({"name": "theme", "url": "https://github.com"})
        assert text.startswith("## Cookie Deleted")
        assert "**Name:** theme" in text
        assert text.endswith("The cookie has been successfully removed.")
