"""
Unit tests for tab listing, switching and the current target
"""

import pytest

from conftest import MockBrowser
from tabzmcp.cdp import CDPPage
from tabzmcp.errors import BackendError, TabzError
from tabzmcp.session import TabTarget, TabzSession, resolve_page
from tabzmcp.tabs import list_tabs, switch_tab


class TestResolvePage:

    @pytest.fixture
    def pages(self):
        return [CDPPage(target_id="A", url="https://github.com/"), CDPPage(target_id="B", url="https://pypi.org/")]

    def test_url_match_wins(self, pages):
        assert resolve_page(pages, TabTarget(tab_id=1, url="https://pypi.org/")).target_id == "B"

    def test_index_when_url_gone(self, pages):
        assert resolve_page(pages, TabTarget(tab_id=2, url="https://gone.dev")).target_id == "B"

    def test_explicit_tab_id_beats_url(self, pages):
        assert resolve_page(pages, TabTarget(tab_id=2, url="https://pypi.org/"), tab_id=1).target_id == "A"

    def test_out_of_range_falls_back_to_first(self, pages):
        assert resolve_page(pages, TabTarget(tab_id=9)).target_id == "A"

    def test_no_pages(self):
        assert resolve_page([], TabTarget()) is None


class TestSession:

    def test_retarget_keeps_url_when_not_given(self):
        target = TabTarget(tab_id=1, url="https://github.com")
        assert target.retarget(3) == TabTarget(tab_id=3, url="https://github.com")

    def test_update(self):
        session = TabzSession()
        session.update(TabTarget(tab_id=4))
        assert session.target.tab_id == 4


class TestListTabs:

    @pytest.mark.asyncio
    async def test_backend_tabs_follow_focused_tab(self, mock_backend, mock_browser):
        mock_backend.tabs = [
            {"tabId": 101, "url": "https://github.com", "title": "GitHub", "active": False},
            {"tabId": 102, "url": "https://pypi.org", "title": "PyPI", "active": True},
        ]
        tabs, target = await list_tabs(mock_backend, mock_browser, TabTarget())
        assert [t["tabId"] for t in tabs] == [101, 102]
        assert target == TabTarget(tab_id=102, url="https://pypi.org")
        assert mock_browser.calls == []

    @pytest.mark.asyncio
    async def test_backend_tabs_without_id_skipped(self, mock_backend, mock_browser):
        mock_backend.tabs = [
            {"url": "chrome://newtab", "title": "New Tab", "active": True},
            {"tabId": 101, "url": "https://github.com", "title": "GitHub", "active": False},
        ]
        tabs, target = await list_tabs(mock_backend, mock_browser, TabTarget())
        assert [t["tabId"] for t in tabs] == [101]
        assert target == TabTarget()

    @pytest.mark.asyncio
    async def test_falls_back_to_devtools(self, mock_backend, mock_browser):
        mock_backend.fail_with = BackendError("Cannot connect to backend")
        tabs, target = await list_tabs(mock_backend, mock_browser, TabTarget(tab_id=2))
        assert [t["tabId"] for t in tabs] == [1, 2]
        assert [t["active"] for t in tabs] == [False, True]
        assert target.tab_id == 2

    @pytest.mark.asyncio
    async def test_neither_available(self, mock_backend, mock_browser):
        mock_backend.fail_with = BackendError("down")
        mock_browser.fail_with = "CDP not available"
        with pytest.raises(TabzError, match="Neither extension nor CDP"):
            await list_tabs(mock_backend, mock_browser, TabTarget())


class TestSwitchTab:

    @pytest.mark.asyncio
    async def test_switch_via_backend(self, mock_backend, mock_browser):
        mock_backend.tabs = [{"tabId": 102, "url": "https://pypi.org"}]
        target = await switch_tab(mock_backend, mock_browser, TabTarget(), 102)
        assert ("switch_tab", 102) in mock_backend.calls
        assert target == TabTarget(tab_id=102, url="https://pypi.org")

    @pytest.mark.asyncio
    async def test_switch_via_devtools(self, mock_backend, mock_browser):
        mock_backend.fail_with = BackendError("down")
        target = await switch_tab(mock_backend, mock_browser, TabTarget(), 2)
        assert ("bring_to_front", "T2") in mock_browser.calls
        assert target == TabTarget(tab_id=2, url="https://example.com/docs")

    @pytest.mark.asyncio
    async def test_invalid_devtools_tab(self, mock_backend, mock_browser):
        mock_backend.fail_with = BackendError("down")
        with pytest.raises(TabzError, match="Available tabs: 1-2"):
            await switch_tab(mock_backend, mock_browser, TabTarget(), 5)

    @pytest.mark.asyncio
    async def test_no_pages(self, mock_backend):
        mock_backend.fail_with = BackendError("down")
        with pytest.raises(TabzError):
            await switch_tab(mock_backend, MockBrowser([]), TabTarget(), 1)
