"""
Open-URL pipeline: validate the request, check it against the allow-list,
then reuse an open tab or open/navigate one

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .allowlist import allowed_categories, check_url
from .cdp import CDPBrowser, CDPPage
from .errors import TabzError
from .session import TabTarget
from .settings import SettingsCache

logger = logging.getLogger(__name__)

# Rejection kinds
VALIDATION = "validation"
POLICY = "policy"
COLLABORATOR = "collaborator"


class NavigationRequest(BaseModel):
    """Arguments of tabz_open_url"""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    url: str = Field(min_length=1, description="URL to open (https:// may be omitted for allowed domains)")
    new_tab: bool = Field(default=True, alias="newTab", description="Open in new tab or current tab")
    background: bool = Field(default=False, description="Open in background tab")
    reuse_existing: bool = Field(default=True, alias="reuseExisting",
                                 description="Switch to an already open tab showing this URL")

    @field_validator("url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("URL must not be empty")
        return value


class NavigationResult(BaseModel):
    """Outcome of one open-URL invocation"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    url: Optional[str] = None
    tab_id: Optional[int] = Field(default=None, alias="tabId")
    reused: bool = False
    new_tab: bool = Field(default=True, alias="newTab")
    background: bool = False
    error: Optional[str] = None
    rejection: Optional[str] = None
    requested_url: Optional[str] = Field(default=None, alias="requestedUrl")
    allowed: List[Tuple[str, List[str]]] = Field(default_factory=list, alias="allowedCategories")

    def to_payload(self) -> Dict[str, Any]:
        """The tool's JSON result"""
        if self.success:
            return {"success": True, "url": self.url, "tabId": self.tab_id, "reused": self.reused}

        payload = {"success": False, "error": self.error, "rejection": self.rejection}
        if self.requested_url is not None:
            payload["url"] = self.requested_url
        if self.allowed:
            payload["allowedCategories"] = {category: hosts for category, hosts in self.allowed}
        return payload


def _same_page_url(page_url: str, url: str) -> bool:
    # A single trailing slash difference counts as the same page
    return page_url == url or page_url == url + "/" or page_url + "/" == url


def find_existing_page(pages: Sequence[CDPPage], url: str) -> Optional[Tuple[int, CDPPage]]:
    for index, page in enumerate(pages):
        if _same_page_url(page.url, url):
            return index, page
    return None


async def execute_navigation(url: str, browser: CDPBrowser, target: TabTarget, new_tab: bool = True,
                             background: bool = False,
                             reuse_existing: bool = True) -> Tuple[NavigationResult, TabTarget]:
    """Open `url` (already allowed and normalized) and return the new current target.

    Browser failures are reported in the result; the target is then left
    unchanged.
    """
    try:
        pages = await browser.pages()

        if reuse_existing:
            match = find_existing_page(pages, url)
            if match is not None:
                index, page = match
                # Already open: focus it even for background requests
                await browser.bring_to_front(page)
                tab_id = index + 1
                logger.info(f"Reusing tab {tab_id} for {url}")
                result = NavigationResult(success=True, url=url, tab_id=tab_id, reused=True,
                                          new_tab=new_tab, background=background)
                return result, target.retarget(tab_id, page.url)

        if new_tab:
            page = await browser.new_page(url, background=background)
            if not background:
                await browser.bring_to_front(page)
            tab_id = len(pages) + 1
        elif pages:
            await browser.navigate(pages[0], url)
            tab_id = 1
        else:
            await browser.new_page(url, background=background)
            tab_id = 1

    except TabzError as e:
        logger.error(f"Failed to open {url}: {e}")
        result = NavigationResult(success=False, error=str(e), rejection=COLLABORATOR, requested_url=url,
                                  new_tab=new_tab, background=background)
        return result, target

    result = NavigationResult(success=True, url=url, tab_id=tab_id, new_tab=new_tab, background=background)
    if background:
        return result, target
    return result, target.retarget(tab_id, url)


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}" for err in error.errors()
    )


async def open_url(params: Dict[str, Any], settings_cache: SettingsCache, browser: CDPBrowser,
                   target: TabTarget) -> Tuple[NavigationResult, TabTarget]:
    """Run the whole tabz_open_url pipeline for raw tool arguments"""
    try:
        request = NavigationRequest.model_validate(params)
    except ValidationError as e:
        requested = params.get("url")
        return NavigationResult(success=False, rejection=VALIDATION, error=_validation_message(e),
                                requested_url=requested if isinstance(requested, str) else None), target

    settings = await settings_cache.get()
    check = check_url(request.url, settings)
    if not check.allowed:
        logger.warning(f"URL not allowed: {request.url}")
        return NavigationResult(
            success=False,
            rejection=POLICY,
            error="The URL domain is not whitelisted.",
            requested_url=request.url,
            allowed=allowed_categories(settings),
            new_tab=request.new_tab,
            background=request.background,
        ), target

    return await execute_navigation(
        check.normalized_url,
        browser,
        target,
        new_tab=request.new_tab,
        background=request.background,
        reuse_existing=request.reuse_existing,
    )
