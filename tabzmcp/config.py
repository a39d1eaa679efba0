"""
Runtime configuration for the Tabz MCP server

Values come from environment variables and may be overridden by command
line flags in server.main().

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import os
from typing import List

from pydantic import BaseModel, Field

DEFAULT_BACKEND_URL = "http://localhost:8129"
DEFAULT_CDP_PORT = 9222

TOOL_GROUPS = ["core", "navigation", "network", "cookies"]


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


class ServerConfig(BaseModel):
    """Settings shared by the backend client, the CDP browser and the MCP app"""

    backend_url: str = Field(default_factory=lambda: os.environ.get("BACKEND_URL", DEFAULT_BACKEND_URL))
    cdp_hosts: List[str] = Field(default_factory=lambda: _env_list("CDP_HOSTS", "localhost,127.0.0.1"))
    cdp_port: int = Field(default_factory=lambda: int(os.environ.get("CDP_PORT", DEFAULT_CDP_PORT)))
    request_timeout: float = Field(default_factory=lambda: float(os.environ.get("TABZ_REQUEST_TIMEOUT", 5.0)))
    navigation_timeout: float = Field(default_factory=lambda: float(os.environ.get("TABZ_NAVIGATION_TIMEOUT", 30.0)))

    transport: str = "stdio"
    host: str = "localhost"
    port: int = 3000

    enabled_groups: List[str] = Field(default_factory=lambda: list(TOOL_GROUPS))
