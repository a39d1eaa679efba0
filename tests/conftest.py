"""
Pytest configuration and fixtures
"""

from typing import List, Optional
from unittest.mock import AsyncMock

import pytest

from tabzmcp.cdp import CDPPage
from tabzmcp.errors import CDPError
from tabzmcp.settings import NavigationSettings


class MockBrowser:
    """Stands in for CDPBrowser and records every call"""

    def __init__(self, urls: Optional[List[str]] = None):
        self.open_pages = [
            CDPPage(target_id=f"T{i}", url=url, title=f"Page {i}", ws_url=f"ws://localhost:9222/devtools/page/T{i}")
            for i, url in enumerate(urls or [], start=1)
        ]
        self.calls = []
        self.fail_with: Optional[str] = None
        self.connection = None

    def _check(self):
        if self.fail_with:
            raise CDPError(self.fail_with)

    async def pages(self, include_internal=False):
        self.calls.append(("pages",))
        self._check()
        return list(self.open_pages)

    async def new_page(self, url, background=False):
        self.calls.append(("new_page", url, background))
        self._check()
        page = CDPPage(target_id=f"T{len(self.open_pages) + 1}", url=url)
        self.open_pages.append(page)
        return page

    async def navigate(self, page, url):
        self.calls.append(("navigate", page.target_id, url))
        self._check()

    async def bring_to_front(self, page):
        self.calls.append(("bring_to_front", page.target_id))
        self._check()

    async def connect(self, page):
        self.calls.append(("connect", page.target_id))
        self._check()
        return self.connection

    def call_names(self):
        return [call[0] for call in self.calls]


class MockBackend:
    """Stands in for BackendClient with canned responses"""

    def __init__(self):
        self.settings = NavigationSettings()
        self.tabs = []
        self.audit = {}
        self.cookies = []
        self.cookie = None
        self.removed = None
        self.fail_with = None
        self.calls = []

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def get_mcp_config(self):
        self.calls.append(("get_mcp_config",))
        self._check()
        return self.settings

    async def list_tabs(self):
        self.calls.append(("list_tabs",))
        self._check()
        return self.tabs

    async def switch_tab(self, tab_id):
        self.calls.append(("switch_tab", tab_id))
        self._check()
        return {"success": True}

    async def audit_cookies(self, tab_id=None):
        self.calls.append(("audit_cookies", tab_id))
        self._check()
        return self.audit

    async def list_cookies(self, filters):
        self.calls.append(("list_cookies", filters))
        self._check()
        return self.cookies

    async def get_cookie(self, url, name):
        self.calls.append(("get_cookie", url, name))
        self._check()
        return self.cookie

    async def set_cookie(self, cookie):
        self.calls.append(("set_cookie", cookie))
        self._check()
        return self.cookie

    async def delete_cookie(self, url, name):
        self.calls.append(("delete_cookie", url, name))
        self._check()
        return self.removed


class FakeClock:
    """Monotonic clock driven by the test"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def mock_browser():
    return MockBrowser(["https://github.com/", "https://example.com/docs"])


@pytest.fixture
def mock_backend():
    return MockBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_websocket():
    """Mock WebSocket connection"""
    mock_ws = AsyncMock()
    mock_ws.send = AsyncMock()
    mock_ws.close = AsyncMock()
    return mock_ws


@pytest.fixture
def sample_audit():
    """Cookie audit response as returned by the backend"""
    first = {"name": "session_id", "value": "abcdefghijklmnopqrstuvwxyz", "domain": "github.com",
             "secure": True, "httpOnly": True, "session": True}
    tracker = {"name": "IDE", "value": "tracker-value", "domain": ".doubleclick.net",
               "secure": True, "httpOnly": False, "session": False, "expirationDate": 4102444800}
    other = {"name": "prefs", "value": "dark", "domain": "cdn.example.com",
             "secure": False, "httpOnly": False, "session": False, "expirationDate": 4102444800}
    return {
        "success": True,
        "url": "https://github.com/",
        "domain": "github.com",
        "cookies": [first, tracker, other],
        "firstParty": [first],
        "thirdParty": [tracker, other],
        "sessionCookies": [first],
        "persistentCookies": [tracker, other],
    }
