"""
Chrome DevTools Protocol access for the Tabz MCP tools

Page discovery and activation use Chrome's HTTP endpoints
(/json/list, /json/activate). Opening tabs and commands that need a session,
such as Page.navigate or the Network domain, go over a DevTools WebSocket.

Requires Chrome started with --remote-debugging-port=9222.

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException
from pydantic import BaseModel

from .config import DEFAULT_CDP_PORT
from .errors import CDPError, CDPUnavailableError

logger = logging.getLogger(__name__)

INTERNAL_URL_PREFIXES = ("chrome://", "chrome-extension://", "chrome-error://", "devtools://")


def is_internal_url(url: str) -> bool:
    """True for browser-internal pages that tools never target"""
    return url.startswith(INTERNAL_URL_PREFIXES)


class CDPPage(BaseModel):
    """A page target as listed by /json/list"""

    target_id: str
    url: str = ""
    title: str = ""
    ws_url: str = ""

    @classmethod
    def from_target(cls, target: Dict[str, Any]) -> "CDPPage":
        return cls(
            target_id=target.get("id", ""),
            url=target.get("url", ""),
            title=target.get("title", ""),
            ws_url=target.get("webSocketDebuggerUrl", ""),
        )


class CDPConnection:
    """WebSocket session with a single page target.

    Commands are matched to responses by id; messages without an id are
    protocol events and go to the callbacks registered with on().
    """

    def __init__(self, ws_url: str, timeout: float = 15.0):
        self.ws_url = ws_url
        self.timeout = timeout
        self.websocket = None
        self.pending_requests: Dict[int, asyncio.Future] = {}
        self._listeners: Dict[str, List[Callable[[Dict[str, Any]], None]]] = {}
        self._next_id = 0
        self._receive_task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self.websocket is not None

    async def connect(self):
        try:
            self.websocket = await websockets.connect(self.ws_url, max_size=None, open_timeout=self.timeout)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise CDPError(f"Cannot open DevTools session {self.ws_url}: {e}") from e

        logger.info(f"CDP session opened: {self.ws_url}")
        self._receive_task = asyncio.create_task(self._receive_loop())

    async def close(self):
        if self._receive_task:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        if self.websocket is not None:
            try:
                await self.websocket.close()
            except Exception as e:
                logger.warning(f"Error closing CDP session: {e}")
            self.websocket = None

        self._fail_pending("CDP session closed")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def on(self, event: str, callback: Callable[[Dict[str, Any]], None]):
        """Register a callback for a protocol event such as Network.responseReceived"""
        self._listeners.setdefault(event, []).append(callback)

    async def _receive_loop(self):
        try:
            async for message in self.websocket:
                self.handle_message(message)
        except ConnectionClosed:
            logger.info(f"CDP session closed by browser: {self.ws_url}")
        except Exception as e:
            logger.error(f"Error reading CDP session: {e}")
        finally:
            self.websocket = None
            self._fail_pending("CDP session closed")

    def handle_message(self, message: str):
        """Route one incoming protocol message"""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            logger.error(f"Invalid JSON from DevTools: {message[:200]}")
            return

        message_id = data.get("id")
        if message_id is not None:
            future = self.pending_requests.pop(message_id, None)
            if future is None:
                logger.warning(f"Received response for unknown command: {message_id}")
            elif not future.done():
                future.set_result(data)
            return

        method = data.get("method")
        for callback in self._listeners.get(method, []):
            try:
                callback(data.get("params", {}))
            except Exception as e:
                logger.error(f"Error handling {method} event: {e}")

    def _fail_pending(self, reason: str):
        for future in self.pending_requests.values():
            if not future.done():
                future.set_result({"error": reason})
        self.pending_requests.clear()

    async def send_command(self, method: str, params: Optional[Dict[str, Any]] = None,
                           timeout: Optional[float] = None) -> Dict[str, Any]:
        """Send a command and wait for its result.

        Returns the command's result dict, or {"error": message} when the
        session is gone, the command times out, or Chrome reports an error.
        """
        if self.websocket is None:
            return {"error": "No DevTools session available"}

        timeout = timeout or self.timeout
        self._next_id += 1
        message_id = self._next_id
        future = asyncio.get_running_loop().create_future()
        self.pending_requests[message_id] = future

        try:
            await self.websocket.send(json.dumps({"id": message_id, "method": method, "params": params or {}}))
            response = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            self.pending_requests.pop(message_id, None)
            return {"error": f"{method} timed out after {timeout} seconds"}
        except Exception as e:
            self.pending_requests.pop(message_id, None)
            return {"error": f"{method} failed: {e}"}

        if "error" in response:
            error = response["error"]
            return {"error": error.get("message", str(error)) if isinstance(error, dict) else str(error)}
        return response.get("result", {})


class CDPBrowser:
    """Browser-level DevTools access, discovered over HTTP"""

    def __init__(self, hosts: Sequence[str] = ("localhost", "127.0.0.1"), port: int = DEFAULT_CDP_PORT,
                 timeout: float = 5.0, navigation_timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.hosts = list(hosts)
        self.port = port
        self.timeout = timeout
        self.navigation_timeout = navigation_timeout
        self.base_url: Optional[str] = None
        self.browser_ws_url: Optional[str] = None
        self._transport = transport

    def _client(self, base_url: str, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=base_url, timeout=timeout or self.timeout, transport=self._transport)

    async def discover(self) -> str:
        """Find the first host answering /json/version and remember it"""
        if self.base_url:
            return self.base_url

        for host in self.hosts:
            base_url = f"http://{host}:{self.port}"
            try:
                async with self._client(base_url, timeout=3.0) as client:
                    response = await client.get("/json/version")
                    response.raise_for_status()
                    info = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.info(f"No DevTools endpoint at {host}:{self.port}: {e}")
                continue

            logger.info(f"Found Chrome at {host}:{self.port} ({info.get('Browser', 'unknown version')})")
            self.base_url = base_url
            self.browser_ws_url = info.get("webSocketDebuggerUrl")
            return base_url

        raise CDPUnavailableError(
            f"CDP not available. Make sure Chrome is running with --remote-debugging-port={self.port}"
        )

    async def _http(self, method: str, path: str, timeout: Optional[float] = None) -> httpx.Response:
        base_url = await self.discover()
        try:
            async with self._client(base_url, timeout) as client:
                response = await client.request(method, path)
        except httpx.HTTPError as e:
            # Chrome may have restarted on another host; look again next time
            self.base_url = None
            raise CDPError(f"DevTools request {path} failed: {e}") from e

        if response.is_error:
            raise CDPError(f"DevTools returned HTTP {response.status_code} for {path}: {response.text.strip()}")
        return response

    def _session_url(self, ws_url: str) -> str:
        """Point a page's WebSocket URL at the host discovery succeeded on"""
        if not ws_url or not self.base_url:
            return ws_url
        ws_parts = urlsplit(ws_url)
        return urlunsplit(ws_parts._replace(netloc=urlsplit(self.base_url).netloc))

    async def pages(self, include_internal: bool = False) -> List[CDPPage]:
        """Open page targets in Chrome's order"""
        response = await self._http("GET", "/json/list")
        try:
            targets = response.json()
        except ValueError as e:
            raise CDPError("Invalid page list from DevTools") from e

        pages = [CDPPage.from_target(t) for t in targets if t.get("type") == "page"]
        if not include_internal:
            pages = [p for p in pages if not is_internal_url(p.url)]
        return pages

    async def new_page(self, url: str, background: bool = False) -> CDPPage:
        """Open a tab showing `url`, optionally without focusing it"""
        await self.discover()
        if not self.browser_ws_url:
            raise CDPError("DevTools did not report a browser WebSocket endpoint")

        logger.info(f"Opening new tab{' in background' if background else ''}: {url}")
        async with CDPConnection(self._session_url(self.browser_ws_url),
                                 timeout=self.navigation_timeout) as connection:
            result = await connection.send_command("Target.createTarget", {"url": url, "background": background})

        if "error" in result:
            raise CDPError(f"Could not open {url}: {result['error']}")
        return CDPPage(target_id=result.get("targetId", ""), url=url)

    async def navigate(self, page: CDPPage, url: str):
        if not page.ws_url:
            raise CDPError(f"Tab {page.target_id} is attached to another debugger")

        logger.info(f"Navigating tab {page.target_id} to {url}")
        async with CDPConnection(self._session_url(page.ws_url), timeout=self.navigation_timeout) as connection:
            result = await connection.send_command("Page.navigate", {"url": url})

        if "error" in result:
            raise CDPError(f"Navigation to {url} failed: {result['error']}")
        if result.get("errorText"):
            raise CDPError(f"Navigation to {url} failed: {result['errorText']}")

    async def bring_to_front(self, page: CDPPage):
        await self._http("GET", f"/json/activate/{page.target_id}")

    async def connect(self, page: CDPPage) -> CDPConnection:
        """Open a long-lived session with a page; the caller closes it"""
        if not page.ws_url:
            raise CDPError(f"Tab {page.target_id} is attached to another debugger")
        connection = CDPConnection(self._session_url(page.ws_url), timeout=self.timeout)
        await connection.connect()
        return connection
