"""
Tracking of the tab that single-target tools act on by default

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import logging
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from .cdp import CDPPage

logger = logging.getLogger(__name__)


class TabTarget(BaseModel):
    """The current target: a tab number plus the URL it showed when chosen.

    Tab numbers from DevTools are 1-based positions among non-internal
    pages; tab numbers from the backend are real Chrome tab IDs.
    """

    model_config = ConfigDict(frozen=True)

    tab_id: int = 1
    url: str = ""

    def retarget(self, tab_id: int, url: Optional[str] = None) -> "TabTarget":
        return TabTarget(tab_id=tab_id, url=url if url is not None else self.url)


class TabzSession:
    """Holds the latest TabTarget for one MCP server process"""

    def __init__(self, target: Optional[TabTarget] = None):
        self.target = target or TabTarget()

    def update(self, target: TabTarget) -> TabTarget:
        if target != self.target:
            logger.info(f"Current target is now tab {target.tab_id} ({target.url or 'unknown URL'})")
        self.target = target
        return target


def resolve_page(pages: Sequence[CDPPage], target: TabTarget, tab_id: Optional[int] = None) -> Optional[CDPPage]:
    """Pick the page a single-target operation should use.

    A page still showing the target's URL wins; otherwise the tab number is
    read as a 1-based position, falling back to the first page.
    """
    if not pages:
        return None

    if tab_id is None and target.url:
        for page in pages:
            if page.url == target.url:
                return page

    effective = tab_id if tab_id is not None else target.tab_id
    if 1 <= effective <= len(pages):
        return pages[effective - 1]
    return pages[0]
