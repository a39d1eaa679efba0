"""
Tab listing and switching: the extension (via the backend) knows the real
focused tab, DevTools is the fallback when the backend is down

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import logging
from typing import List, Tuple, TypedDict

from .backend import BackendClient
from .cdp import CDPBrowser
from .errors import BackendError, CDPError, TabzError
from .session import TabTarget

logger = logging.getLogger(__name__)


class TabInfo(TypedDict):
    """Type definition for one open tab"""
    tabId: int
    url: str
    title: str
    active: bool


async def list_tabs(backend: BackendClient, browser: CDPBrowser,
                    target: TabTarget) -> Tuple[List[TabInfo], TabTarget]:
    """List open tabs and follow the user's focused tab when it is known"""
    try:
        raw_tabs = await backend.list_tabs()
    except BackendError as e:
        logger.warning(f"Extension tab list unavailable, falling back to DevTools: {e}")
    else:
        tabs = [
            TabInfo(tabId=t.get("tabId"), url=t.get("url", ""), title=t.get("title", ""), active=bool(t.get("active")))
            for t in raw_tabs
            if t.get("tabId") is not None
        ]
        active = next((t for t in tabs if t["active"]), None)
        if active is not None:
            target = target.retarget(active["tabId"], active["url"])
        return tabs, target

    try:
        pages = await browser.pages()
    except CDPError as e:
        raise TabzError(
            "Neither extension nor CDP available. Make sure the Chrome extension is installed "
            f"or Chrome is running with --remote-debugging-port ({e})"
        ) from e

    # DevTools cannot see focus, so the last switched-to tab counts as active
    tabs = [
        TabInfo(tabId=index, url=page.url, title=page.title, active=index == target.tab_id)
        for index, page in enumerate(pages, start=1)
    ]
    return tabs, target


async def switch_tab(backend: BackendClient, browser: CDPBrowser, target: TabTarget, tab_id: int) -> TabTarget:
    """Focus a tab and make it the current target"""
    try:
        await backend.switch_tab(tab_id)
    except BackendError as e:
        logger.warning(f"Extension tab switch failed, falling back to DevTools: {e}")
    else:
        url = target.url
        try:
            for tab in await backend.list_tabs():
                if tab.get("tabId") == tab_id:
                    url = tab.get("url", url)
                    break
        except BackendError as e:
            logger.warning(f"Could not read URL of tab {tab_id}: {e}")
        return target.retarget(tab_id, url)

    pages = await browser.pages()
    if not 1 <= tab_id <= len(pages):
        raise TabzError(f"Invalid tab ID: {tab_id}. Available tabs: 1-{len(pages)}")

    page = pages[tab_id - 1]
    await browser.bring_to_front(page)
    return target.retarget(tab_id, page.url)
