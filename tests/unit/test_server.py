"""
Unit tests for server wiring and the command line entry point
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from tabzmcp.backend import BackendClient
from tabzmcp.config import TOOL_GROUPS, ServerConfig
from tabzmcp.errors import BackendError
from tabzmcp.server import TabzMCPServer, build_config, load_enabled_groups, main, parse_args
from tabzmcp.settings import NavigationSettings


class TestServerConfig:

    def test_defaults(self, monkeypatch):
        for name in ("BACKEND_URL", "CDP_HOSTS", "CDP_PORT", "TABZ_REQUEST_TIMEOUT", "TABZ_NAVIGATION_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        config = ServerConfig()
        assert config.backend_url == "http://localhost:8129"
        assert config.cdp_hosts == ["localhost", "127.0.0.1"]
        assert config.cdp_port == 9222
        assert config.enabled_groups == TOOL_GROUPS

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("BACKEND_URL", "http://tabz.local:9000")
        monkeypatch.setenv("CDP_HOSTS", "host.docker.internal, localhost")
        monkeypatch.setenv("CDP_PORT", "9333")
        config = ServerConfig()
        assert config.backend_url == "http://tabz.local:9000"
        assert config.cdp_hosts == ["host.docker.internal", "localhost"]
        assert config.cdp_port == 9333


class TestTabzMCPServer:

    @pytest.fixture
    def server(self):
        return TabzMCPServer(ServerConfig(backend_url="http://localhost:8129", cdp_port=9333))

    def test_server_initialization(self, server):
        assert server.backend.base_url == "http://localhost:8129"
        assert server.browser.port == 9333
        assert server.session.target.tab_id == 1
        assert server.network.browser is server.browser
        assert server.mcp_app is server.mcp_tools.mcp

    def test_settings_cache_reads_backend(self, server):
        assert server.settings_cache._fetch == server.backend.get_mcp_config

    def test_stdio_run(self, server):
        with patch.object(server.mcp_app, "run") as run:
            server.run()
        run.assert_called_once_with()

    def test_http_run(self):
        server = TabzMCPServer(ServerConfig(transport="http", port=3111))
        with patch("tabzmcp.server.uvicorn.run") as run:
            server.run()
        assert run.call_args.kwargs["port"] == 3111
        assert run.call_args.kwargs["host"] == "localhost"


class TestEntryPoint:

    @pytest.mark.asyncio
    async def test_enabled_groups_from_dashboard(self):
        backend = AsyncMock()
        backend.get_mcp_config.return_value = NavigationSettings(enabledGroups=["core", "cookies"])
        assert await load_enabled_groups(backend) == ["core", "cookies"]

    @pytest.mark.asyncio
    async def test_enabled_groups_default_when_backend_down(self):
        backend = AsyncMock()
        backend.get_mcp_config.side_effect = BackendError("down")
        assert await load_enabled_groups(backend) == TOOL_GROUPS

    @pytest.mark.asyncio
    async def test_enabled_groups_default_when_unset(self):
        backend = AsyncMock()
        backend.get_mcp_config.return_value = NavigationSettings()
        assert await load_enabled_groups(backend) == TOOL_GROUPS

    @pytest.mark.asyncio
    async def test_enabled_groups_default_when_config_malformed(self):
        def handler(request):
            return httpx.Response(200, json={"enabledGroups": "core"})

        backend = BackendClient(transport=httpx.MockTransport(handler))
        assert await load_enabled_groups(backend) == TOOL_GROUPS

    def test_parse_args(self):
        args = parse_args(["--backend-url", "http://x:1", "--cdp-port", "9333", "--transport", "http"])
        config = build_config(args)
        assert config.backend_url == "http://x:1"
        assert config.cdp_port == 9333
        assert config.transport == "http"

    def test_non_local_host_forced_to_localhost(self):
        config = build_config(parse_args(["--transport", "http", "--host", "0.0.0.0"]))
        assert config.host == "localhost"

    def test_main_runs_server(self):
        with patch("tabzmcp.server.load_enabled_groups", AsyncMock(return_value=["core"])), \
                patch.object(TabzMCPServer, "run") as run:
            main(["--log-level", "WARNING"])
        run.assert_called_once_with()
