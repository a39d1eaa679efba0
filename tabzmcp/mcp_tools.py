"""
MCP tool definitions for the Tabz server
These tools bridge browser functions to the Tabz backend and Chrome DevTools

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import logging
from typing import Literal, Optional

from fastmcp import FastMCP

from .config import TOOL_GROUPS
from .errors import TabzError
from .formatting import (
    ResponseFormat,
    render_cookie_audit,
    render_cookie,
    render_cookie_deleted,
    render_cookie_list,
    render_cookie_set,
    render_navigation,
    render_network_requests,
    render_network_response,
    render_switch,
    render_tabs,
)
from .navigation import open_url
from .tabs import list_tabs, switch_tab

logger = logging.getLogger(__name__)


class TabzMCPTools:
    """MCP tools backed by the collaborators owned by a TabzMCPServer"""

    def __init__(self, server):
        """Initialize with reference to the server holding backend, browser and session"""
        self.server = server
        self.mcp = FastMCP("Tabz")
        self.registered_groups = []
        self._setup_tools(server.config.enabled_groups)

    def _setup_tools(self, enabled_groups):
        """Set up the core tools plus every enabled tool group"""
        setup = {
            "core": self._setup_core_tools,
            "navigation": self._setup_navigation_tools,
            "network": self._setup_network_tools,
            "cookies": self._setup_cookie_tools,
        }

        groups = ["core"] + [g for g in enabled_groups if g != "core"]
        for group in groups:
            if group not in setup:
                logger.warning(f"Unknown tool group '{group}' skipped (known: {', '.join(TOOL_GROUPS)})")
                continue
            if group in self.registered_groups:
                continue
            setup[group]()
            self.registered_groups.append(group)

        logger.info(f"Registered tool groups: {', '.join(self.registered_groups)}")

    def _setup_core_tools(self):
        """Setup tab listing and switching tools"""

        @self.mcp.tool()
        async def tabz_list_tabs(response_format: ResponseFormat = ResponseFormat.MARKDOWN) -> str:
            """
            List all open browser tabs

            The user's focused tab becomes the current target when the extension
            reports it. Without the extension, tabs are numbered 1, 2, 3... in
            DevTools order.

            Args:
                response_format: 'markdown' (default) or 'json'

            Returns:
                String listing tabs with a "← CURRENT" marker on the current target
            """
            session = self.server.session
            try:
                tabs, target = await list_tabs(self.server.backend, self.server.browser, session.target)
            except TabzError as e:
                return f"Error: {e}"

            session.update(target)
            return render_tabs(tabs, target.tab_id, response_format)

        @self.mcp.tool()
        async def tabz_switch_tab(tabId: int) -> str:
            """
            Switch to a specific tab and make it the current target

            Args:
                tabId: Tab ID from tabz_list_tabs

            Returns:
                Confirmation message
            """
            session = self.server.session
            try:
                target = await switch_tab(self.server.backend, self.server.browser, session.target, tabId)
            except TabzError as e:
                return f"Error: {e}"

            session.update(target)
            return render_switch(target.tab_id, target.url)

    def _setup_navigation_tools(self):
        """Setup the allow-listed open-URL tool"""

        @self.mcp.tool()
        async def tabz_open_url(
            url: str,
            newTab: bool = True,
            background: bool = False,
            reuseExisting: bool = True,
            response_format: ResponseFormat = ResponseFormat.MARKDOWN
        ) -> str:
            """
            Open a URL in the browser, restricted to allowed domains

            Allowed: GitHub, GitLab, Bitbucket, localhost, Vercel/Netlify style
            deployments, developer docs, package registries, playgrounds, AI
            tools, design sites, plus custom domains from the dashboard.
            https:// may be omitted for known domains.

            Args:
                url: URL to open
                newTab: Open in a new tab (default) or navigate the current one
                background: Open without focusing the new tab
                reuseExisting: Switch to an already open tab showing this URL
                response_format: 'markdown' (default) or 'json'

            Returns:
                Outcome of the navigation
            """
            params = {
                "url": url,
                "newTab": newTab,
                "background": background,
                "reuseExisting": reuseExisting,
            }
            session = self.server.session
            result, target = await open_url(params, self.server.settings_cache, self.server.browser, session.target)
            session.update(target)
            return render_navigation(result, response_format)

    def _setup_network_tools(self):
        """Setup network capture tools"""

        @self.mcp.tool()
        async def tabz_enable_network_capture(tabId: Optional[int] = None) -> str:
            """
            Start capturing network requests on the current tab (or tabId)

            Captured requests are kept for 5 minutes, at most 500 at a time.

            Args:
                tabId: Optional 1-based tab number, defaults to the current target

            Returns:
                Confirmation message
            """
            try:
                page_url = await self.server.network.enable(self.server.session.target, tabId)
            except TabzError as e:
                return f"## Network Capture Failed\n\n**Error:** {e}"

            return (
                "## Network Capture Enabled\n\n"
                f"Network monitoring is now active for: {page_url}\n\n"
                "**Next steps:**\n"
                "1. Navigate or interact with the page to generate network requests\n"
                "2. Use `tabz_get_network_requests` to see captured requests"
            )

        @self.mcp.tool()
        async def tabz_get_network_requests(
            urlPattern: Optional[str] = None,
            method: str = "all",
            statusMin: Optional[int] = None,
            statusMax: Optional[int] = None,
            resourceType: str = "all",
            limit: int = 50,
            offset: int = 0,
            tabId: Optional[int] = None,
            response_format: ResponseFormat = ResponseFormat.MARKDOWN
        ) -> str:
            """
            List captured network requests, newest first

            Args:
                urlPattern: Regex or substring to match against request URLs
                method: HTTP method or 'all'
                statusMin: Minimum status code, e.g. 400 for errors only
                statusMax: Maximum status code, e.g. 299 for successful only
                resourceType: 'all', 'XHR', 'Fetch', 'Document', 'Script'...
                limit: Max requests to return (1-200)
                offset: Skip N requests for pagination
                tabId: Only requests captured on this tab
                response_format: 'markdown' (default) or 'json'

            Returns:
                Requests grouped by status class
            """
            capture = self.server.network.capture
            if not capture.capture_active:
                return (
                    "## Network Capture Not Active\n\n"
                    "No network requests have been captured yet.\n\n"
                    "Call `tabz_enable_network_capture` first, then interact with the page."
                )

            limit = max(1, min(limit, 200))
            offset = max(0, offset)
            response = capture.query(
                url_pattern=urlPattern,
                method=method,
                status_min=statusMin,
                status_max=statusMax,
                resource_type=resourceType,
                tab_id=tabId,
                limit=limit,
                offset=offset,
            )
            filters = {
                "urlPattern": urlPattern,
                "method": method,
                "statusMin": statusMin,
                "statusMax": statusMax,
                "resourceType": resourceType,
                "tabId": tabId,
            }
            return render_network_requests(response, filters, response_format)

        @self.mcp.tool()
        async def tabz_get_network_response(requestId: str) -> str:
            """
            Get the response body of a captured request

            Bodies larger than 100KB are truncated.

            Args:
                requestId: Request ID from tabz_get_network_requests
            """
            try:
                request = await self.server.network.response_body(requestId)
            except TabzError as e:
                return f"Error: {e}"
            return render_network_response(request)

        @self.mcp.tool()
        async def tabz_clear_network_requests() -> str:
            """Clear all captured network requests; capture stays active"""
            self.server.network.capture.clear()
            return (
                "## Network Requests Cleared\n\n"
                "All captured network requests have been removed."
            )

    def _setup_cookie_tools(self):
        """Setup cookie audit tools"""

        @self.mcp.tool()
        async def tabz_cookies_audit(
            tabId: Optional[int] = None,
            response_format: ResponseFormat = ResponseFormat.MARKDOWN
        ) -> str:
            """
            Audit cookies of the current page: first vs third party, session vs
            persistent, and known trackers

            Args:
                tabId: Chrome tab ID, defaults to the active tab
                response_format: 'markdown' (default) or 'json'
            """
            try:
                result = await self.server.backend.audit_cookies(tabId)
            except TabzError as e:
                return f"Error: {e}"
            return render_cookie_audit(result, response_format)

        @self.mcp.tool()
        async def tabz_cookies_list(
            domain: Optional[str] = None,
            url: Optional[str] = None,
            name: Optional[str] = None,
            secure: Optional[bool] = None,
            session: Optional[bool] = None,
            response_format: ResponseFormat = ResponseFormat.MARKDOWN
        ) -> str:
            """
            List cookies matching the given filters, grouped by domain

            Values are truncated so tokens are never shown in full.

            Args:
                domain: Cookie domain, e.g. 'github.com'
                url: URL the cookies would be sent to
                name: Cookie name
                secure: Only secure (or only insecure) cookies
                session: Only session (or only persistent) cookies
                response_format: 'markdown' (default) or 'json'
            """
            filters = {"domain": domain, "url": url, "name": name, "secure": secure, "session": session}
            filters = {key: value for key, value in filters.items() if value is not None}
            try:
                cookies = await self.server.backend.list_cookies(filters)
            except TabzError as e:
                return f"Error: {e}"
            return render_cookie_list(cookies, response_format)

        @self.mcp.tool()
        async def tabz_cookies_get(url: str, name: str) -> str:
            """
            Get one cookie by name for a URL

            Args:
                url: URL the cookie is sent to (decides domain/path matching)
                name: Cookie name
            """
            try:
                cookie = await self.server.backend.get_cookie(url, name)
            except TabzError as e:
                return f"Error: {e}"

            if not cookie:
                return f'Cookie "{name}" not found for URL: {url}'
            return render_cookie(cookie)

        @self.mcp.tool()
        async def tabz_cookies_set(
            url: str,
            name: str,
            value: str,
            domain: Optional[str] = None,
            path: Optional[str] = None,
            secure: Optional[bool] = None,
            httpOnly: Optional[bool] = None,
            sameSite: Optional[Literal["no_restriction", "lax", "strict"]] = None,
            expirationDate: Optional[float] = None
        ) -> str:
            """
            Create or update a browser cookie

            Changing auth cookies can log the user out or break sites.

            Args:
                url: URL to associate the cookie with
                name: Cookie name
                value: Cookie value
                domain: Cookie domain, defaults to the URL host
                path: Cookie path, defaults to '/'
                secure: Send over HTTPS only
                httpOnly: Hide from page JavaScript
                sameSite: 'no_restriction', 'lax' or 'strict'
                expirationDate: Seconds since epoch; omit for a session cookie
            """
            cookie = {
                "url": url,
                "name": name,
                "value": value,
                "domain": domain,
                "path": path,
                "secure": secure,
                "httpOnly": httpOnly,
                "sameSite": sameSite,
                "expirationDate": expirationDate,
            }
            cookie = {key: value for key, value in cookie.items() if value is not None}
            try:
                result = await self.server.backend.set_cookie(cookie)
            except TabzError as e:
                return f"Error setting cookie: {e}"

            if not result:
                return "Error: Cookie set operation returned no cookie (may have failed silently)."
            return render_cookie_set(result)

        @self.mcp.tool()
        async def tabz_cookies_delete(url: str, name: str) -> str:
            """
            Delete one cookie by URL and name

            Args:
                url: URL the cookie is associated with
                name: Cookie name
            """
            try:
                removed = await self.server.backend.delete_cookie(url, name)
            except TabzError as e:
                return f"Error deleting cookie: {e}"

            if not removed:
                return f'Cookie "{name}" not found for URL: {url}'
            return render_cookie_deleted(removed)

    def get_mcp_app(self):
        """Get the FastMCP application instance"""
        return self.mcp
