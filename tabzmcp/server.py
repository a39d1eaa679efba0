#!/usr/bin/env python3
"""
Tabz MCP Server - exposes browser tools over the Model Context Protocol

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import uvicorn

from .backend import BackendClient
from .cdp import CDPBrowser
from .config import TOOL_GROUPS, ServerConfig
from .errors import TabzError
from .mcp_tools import TabzMCPTools
from .network import NetworkMonitor
from .session import TabzSession
from .settings import SettingsCache

logger = logging.getLogger(__name__)


class TabzMCPServer:
    """Owns the collaborators shared by every tool call"""

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.backend = BackendClient(self.config.backend_url, timeout=self.config.request_timeout)
        self.browser = CDPBrowser(
            hosts=self.config.cdp_hosts,
            port=self.config.cdp_port,
            timeout=self.config.request_timeout,
            navigation_timeout=self.config.navigation_timeout,
        )
        self.settings_cache = SettingsCache(self.backend.get_mcp_config)
        self.session = TabzSession()
        self.network = NetworkMonitor(self.browser)

        self.mcp_tools = TabzMCPTools(self)
        self.mcp_app = self.mcp_tools.get_mcp_app()

    def run(self):
        if self.config.transport == "stdio":
            logger.info("Starting Tabz MCP server on stdio")
            self.mcp_app.run()
            return

        logger.info(f"Starting Tabz MCP server on http://{self.config.host}:{self.config.port}")
        uvicorn.run(
            self.mcp_app.http_app(),
            host=self.config.host,
            port=self.config.port,
            log_level="warning",
        )


async def load_enabled_groups(backend: BackendClient) -> List[str]:
    """Tool groups chosen in the dashboard, or all of them when it is unreachable"""
    try:
        settings = await backend.get_mcp_config()
    except TabzError as e:
        logger.warning(f"Could not load MCP config, enabling all tool groups: {e}")
        return list(TOOL_GROUPS)

    if not settings.enabled_groups:
        return list(TOOL_GROUPS)
    return settings.enabled_groups


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Tabz MCP Server - browser tools for MCP clients')
    parser.add_argument('--backend-url', default=None,
                        help='Tabz backend URL (default: $BACKEND_URL or http://localhost:8129)')
    parser.add_argument('--cdp-port', type=int, default=None,
                        help='Chrome remote debugging port (default: $CDP_PORT or 9222)')
    parser.add_argument('--transport', choices=['stdio', 'http'], default='stdio',
                        help='MCP transport (default: stdio)')
    parser.add_argument('--host', default='localhost',
                        help='Host to bind to in http mode (default: localhost)')
    parser.add_argument('--port', type=int, default=3000,
                        help='MCP port in http mode (default: 3000)')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    return parser.parse_args(argv)


def build_config(args) -> ServerConfig:
    config = ServerConfig(transport=args.transport, host=args.host, port=args.port)
    if args.backend_url:
        config.backend_url = args.backend_url
    if args.cdp_port:
        config.cdp_port = args.cdp_port

    # Ensure localhost-only binding for security
    if config.host != 'localhost' and config.host != '127.0.0.1':
        logger.warning(f"Host '{config.host}' changed to 'localhost' for security")
        config.host = 'localhost'
    return config


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        stream=sys.stderr,
        format='%(asctime)s %(name)s %(levelname)s %(message)s',
    )

    config = build_config(args)
    config_backend = BackendClient(config.backend_url, timeout=config.request_timeout)
    config.enabled_groups = asyncio.run(load_enabled_groups(config_backend))

    server = TabzMCPServer(config)
    server.run()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
