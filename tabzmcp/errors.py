"""
Exception types raised by the Tabz collaborator clients

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

from typing import Optional


class TabzError(Exception):
    """Base class for failures talking to the backend or the browser"""


class BackendError(TabzError):
    """The Tabz backend was unreachable or reported a failure"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CDPError(TabzError):
    """A Chrome DevTools Protocol call failed"""


class CDPUnavailableError(CDPError):
    """No Chrome instance is listening for DevTools connections"""
