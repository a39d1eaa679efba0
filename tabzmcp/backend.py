"""
REST client for the Tabz backend

The backend relays Chrome extension APIs (tabs, cookies) and serves the
dashboard's MCP settings. Every call opens its own httpx client so the
BackendClient can be shared across event loops.

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .config import DEFAULT_BACKEND_URL
from .errors import BackendError
from .settings import NavigationSettings

logger = logging.getLogger(__name__)


class BackendClient:
    """Thin JSON-over-HTTP wrapper around the backend API"""

    def __init__(self, base_url: str = DEFAULT_BACKEND_URL, timeout: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                       timeout: Optional[float] = None) -> Any:
        try:
            async with self._client(timeout) as client:
                response = await client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            raise BackendError(f"Cannot connect to backend at {self.base_url}: {e}") from e

        if response.is_error:
            raise BackendError(
                f"Backend returned HTTP {response.status_code} for {method} {path}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from backend for {method} {path}") from e

    async def get_json(self, path: str, timeout: Optional[float] = None) -> Any:
        return await self._request("GET", path, timeout=timeout)

    async def post_json(self, path: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> Any:
        return await self._request("POST", path, payload, timeout=timeout)

    @staticmethod
    def _check_success(data: Any, action: str) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise BackendError(f"Unexpected response to {action}")
        if data.get("success") is False or data.get("error"):
            raise BackendError(data.get("error") or f"{action} failed")
        return data

    async def get_mcp_config(self) -> NavigationSettings:
        """Fetch the dashboard's MCP settings (URL allow-list, enabled groups)"""
        data = await self.get_json("/api/mcp-config")
        if not isinstance(data, dict):
            raise BackendError("Unexpected response to mcp-config")
        try:
            return NavigationSettings.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"Invalid mcp-config: {e}") from e

    async def list_tabs(self) -> List[Dict[str, Any]]:
        data = self._check_success(await self.get_json("/api/browser/tabs"), "list tabs")
        return data.get("tabs") or []

    async def switch_tab(self, tab_id: int) -> Dict[str, Any]:
        logger.info(f"Switching to tab {tab_id} via backend")
        return self._check_success(
            await self.post_json("/api/browser/switch-tab", {"tabId": tab_id}), "switch tab")

    async def audit_cookies(self, tab_id: Optional[int] = None) -> Dict[str, Any]:
        payload = {"tabId": tab_id} if tab_id is not None else {}
        return self._check_success(
            await self.post_json("/api/browser/cookies/audit", payload, timeout=10.0), "cookie audit")

    async def list_cookies(self, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        data = self._check_success(
            await self.post_json("/api/browser/cookies/list", filters), "list cookies")
        return data.get("cookies") or []

    async def get_cookie(self, url: str, name: str) -> Optional[Dict[str, Any]]:
        """The named cookie sent to `url`, or None when there is none"""
        data = self._check_success(
            await self.post_json("/api/browser/cookies/get", {"url": url, "name": name}), "get cookie")
        return data.get("cookie")

    async def set_cookie(self, cookie: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        logger.info(f"Setting cookie {cookie.get('name')} for {cookie.get('url')}")
        data = self._check_success(
            await self.post_json("/api/browser/cookies/set", cookie), "set cookie")
        return data.get("cookie")

    async def delete_cookie(self, url: str, name: str) -> Optional[Dict[str, Any]]:
        logger.info(f"Deleting cookie {name} for {url}")
        data = self._check_success(
            await self.post_json("/api/browser/cookies/delete", {"url": url, "name": name}), "delete cookie")
        return data.get("removed")
