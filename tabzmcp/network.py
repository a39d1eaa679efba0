"""
Network request capture over the DevTools Network domain, plus the
status-class bucketing used when listing captured requests

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import base64
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .cdp import CDPBrowser, CDPConnection
from .errors import CDPError
from .session import TabTarget, resolve_page

logger = logging.getLogger(__name__)

MAX_STORED_REQUESTS = 500
REQUEST_MAX_AGE = 5 * 60.0  # seconds
MAX_BODY_SIZE = 100 * 1024  # characters

SUCCESS = "success"
REDIRECT = "redirect"
CLIENT_ERROR = "client_error"
SERVER_ERROR = "server_error"
PENDING = "pending"
UNKNOWN = "unknown"


class NetworkRequest(BaseModel):
    """One captured request, filled in as DevTools events arrive"""

    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(alias="requestId")
    url: str
    method: str = "GET"
    resource_type: str = Field(default="Other", alias="resourceType")
    timestamp: float
    tab_id: int = Field(default=1, alias="tabId")
    request_headers: Optional[Dict[str, Any]] = Field(default=None, alias="requestHeaders")
    post_data: Optional[str] = Field(default=None, alias="postData")
    status: Optional[int] = None
    status_text: Optional[str] = Field(default=None, alias="statusText")
    response_headers: Optional[Dict[str, Any]] = Field(default=None, alias="responseHeaders")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    response_time: Optional[int] = Field(default=None, alias="responseTime")
    encoded_data_length: Optional[int] = Field(default=None, alias="encodedDataLength")
    response_body: Optional[str] = Field(default=None, alias="responseBody")
    response_body_truncated: Optional[bool] = Field(default=None, alias="responseBodyTruncated")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def status_class(status: Optional[int]) -> str:
    if status is None:
        return PENDING
    if 200 <= status < 300:
        return SUCCESS
    if 300 <= status < 400:
        return REDIRECT
    if 400 <= status < 500:
        return CLIENT_ERROR
    if status >= 500:
        return SERVER_ERROR
    return UNKNOWN


def group_by_status(requests: Sequence[NetworkRequest]) -> Dict[str, List[NetworkRequest]]:
    """Bucket requests into errors, success, redirects and pending, keeping order"""
    groups = {"errors": [], "success": [], "redirects": [], "pending": []}
    for request in requests:
        kind = status_class(request.status)
        if kind in (CLIENT_ERROR, SERVER_ERROR):
            groups["errors"].append(request)
        elif kind == SUCCESS:
            groups["success"].append(request)
        elif kind == REDIRECT:
            groups["redirects"].append(request)
        elif kind == PENDING:
            groups["pending"].append(request)
    return groups


def _url_matcher(url_pattern: str) -> Callable[[str], bool]:
    try:
        regex = re.compile(url_pattern, re.IGNORECASE)
    except re.error:
        # Not a valid regex, match it literally
        return lambda url: url_pattern in url
    return lambda url: regex.search(url) is not None


class NetworkCapture:
    """In-memory store of captured requests, bounded by age and count"""

    def __init__(self, max_age: float = REQUEST_MAX_AGE, max_stored: int = MAX_STORED_REQUESTS,
                 clock: Callable[[], float] = time.time):
        self.max_age = max_age
        self.max_stored = max_stored
        self._clock = clock
        self.requests: Dict[str, NetworkRequest] = {}
        self.active_pages = set()

    @property
    def capture_active(self) -> bool:
        return bool(self.active_pages)

    def cleanup(self):
        now = self._clock()
        for request_id in [rid for rid, req in self.requests.items() if now - req.timestamp > self.max_age]:
            del self.requests[request_id]

        overflow = len(self.requests) - self.max_stored
        if overflow > 0:
            oldest = sorted(self.requests.values(), key=lambda req: req.timestamp)[:overflow]
            for request in oldest:
                del self.requests[request.request_id]

    def on_request_will_be_sent(self, params: Dict[str, Any], tab_id: int = 1):
        self.cleanup()
        request = params.get("request", {})
        self.requests[params["requestId"]] = NetworkRequest(
            request_id=params["requestId"],
            url=request.get("url", ""),
            method=request.get("method", "GET"),
            resource_type=params.get("type") or "Other",
            timestamp=self._clock(),
            tab_id=tab_id,
            request_headers=request.get("headers"),
            post_data=request.get("postData"),
        )

    def on_response_received(self, params: Dict[str, Any]):
        request = self.requests.get(params.get("requestId"))
        if request is None:
            return
        response = params.get("response", {})
        request.status = response.get("status")
        request.status_text = response.get("statusText")
        request.response_headers = response.get("headers")
        request.mime_type = response.get("mimeType")

    def on_loading_finished(self, params: Dict[str, Any]):
        request = self.requests.get(params.get("requestId"))
        if request is None:
            return
        request.response_time = int((self._clock() - request.timestamp) * 1000)
        length = params.get("encodedDataLength")
        request.encoded_data_length = int(length) if length is not None else None

    def query(self, url_pattern: Optional[str] = None, method: str = "all", status_min: Optional[int] = None,
              status_max: Optional[int] = None, resource_type: str = "all", tab_id: Optional[int] = None,
              limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        """Filter, sort newest first and paginate the captured requests"""
        self.cleanup()
        requests = list(self.requests.values())

        if url_pattern:
            matches = _url_matcher(url_pattern)
            requests = [r for r in requests if matches(r.url)]
        if method and method.lower() != "all":
            requests = [r for r in requests if r.method.upper() == method.upper()]
        if status_min is not None:
            requests = [r for r in requests if r.status is not None and r.status >= status_min]
        if status_max is not None:
            requests = [r for r in requests if r.status is not None and r.status <= status_max]
        if resource_type and resource_type.lower() != "all":
            requests = [r for r in requests if r.resource_type.lower() == resource_type.lower()]
        if tab_id is not None:
            requests = [r for r in requests if r.tab_id == tab_id]

        requests.sort(key=lambda r: r.timestamp, reverse=True)
        total = len(requests)
        has_more = offset + limit < total

        return {
            "requests": requests[offset:offset + limit],
            "total": total,
            "hasMore": has_more,
            "nextOffset": offset + limit if has_more else None,
            "captureActive": self.capture_active,
        }

    def clear(self):
        self.requests.clear()
        logger.info("Cleared all captured network requests")


class NetworkMonitor:
    """Keeps DevTools sessions open on captured pages and feeds the store"""

    def __init__(self, browser: CDPBrowser, capture: Optional[NetworkCapture] = None):
        self.browser = browser
        self.capture = capture or NetworkCapture()
        self.connections: Dict[str, CDPConnection] = {}

    async def enable(self, target: TabTarget, tab_id: Optional[int] = None) -> str:
        """Start capturing on the chosen page and return its URL"""
        pages = await self.browser.pages()
        page = resolve_page(pages, target, tab_id)
        if page is None:
            raise CDPError("No active page found")

        existing = self.connections.get(page.url)
        if existing is not None and existing.connected:
            return page.url

        effective_tab_id = pages.index(page) + 1
        connection = await self.browser.connect(page)
        connection.on("Network.requestWillBeSent",
                      lambda params: self.capture.on_request_will_be_sent(params, effective_tab_id))
        connection.on("Network.responseReceived", self.capture.on_response_received)
        connection.on("Network.loadingFinished", self.capture.on_loading_finished)

        result = await connection.send_command("Network.enable")
        if "error" in result:
            await connection.close()
            raise CDPError(f"Could not enable network capture: {result['error']}")

        self.connections[page.url] = connection
        self.capture.active_pages.add(page.url)
        logger.info(f"Network monitoring enabled for: {page.url}")
        return page.url

    async def response_body(self, request_id: str) -> NetworkRequest:
        request = self.capture.requests.get(request_id)
        if request is None:
            raise CDPError(f"Request not found: {request_id}. Requests expire after 5 minutes.")
        if request.response_body is not None:
            return request

        connections = [c for c in self.connections.values() if c.connected]
        if not connections:
            raise CDPError("Network session not available. Enable network capture first.")

        error = None
        for connection in connections:
            result = await connection.send_command("Network.getResponseBody", {"requestId": request_id})
            if "error" not in result:
                break
            error = result["error"]
        else:
            if error and "No resource with given identifier" in error:
                raise CDPError("Response body no longer available. The page may have navigated away.")
            raise CDPError(f"Failed to get response body: {error}")

        body = result.get("body", "")
        if result.get("base64Encoded"):
            try:
                body = base64.b64decode(body).decode("utf-8")
            except (ValueError, UnicodeDecodeError):
                body = f"[Base64 encoded, {len(body)} chars]"

        truncated = len(body) > MAX_BODY_SIZE
        if truncated:
            body = body[:MAX_BODY_SIZE] + f"\n\n[Truncated: {len(body) - MAX_BODY_SIZE} more characters]"

        request.response_body = body
        request.response_body_truncated = truncated
        return request

    async def close(self):
        for connection in self.connections.values():
            await connection.close()
        self.connections.clear()
        self.capture.active_pages.clear()
