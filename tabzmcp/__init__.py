"""
Tabz MCP - browser tools for MCP clients backed by the Tabz backend and Chrome DevTools

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

__version__ = "1.0.0"
