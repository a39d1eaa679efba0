"""
Navigation settings served by the backend's /api/mcp-config endpoint,
and the short-lived cache the open-URL tool reads them through

Copyright (c) 2024 Tabz MCP Project
Licensed under the MIT License - see LICENSE file for details
"""

import logging
import time
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import TabzError

logger = logging.getLogger(__name__)

SETTINGS_CACHE_TTL = 5.0  # seconds


class NavigationSettings(BaseModel):
    """URL settings as stored by the Tabz dashboard"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    allow_all_urls: bool = Field(default=False, alias="allowAllUrls")
    custom_domains: str = Field(default="", alias="customDomains")
    enabled_groups: Optional[List[str]] = Field(default=None, alias="enabledGroups")

    @field_validator("allow_all_urls", mode="before")
    @classmethod
    def _falsy_to_false(cls, value):
        return value or False

    @field_validator("custom_domains", mode="before")
    @classmethod
    def _falsy_to_empty(cls, value):
        return value or ""

    def custom_domain_list(self) -> List[str]:
        """Non-empty custom domains, one per line in the dashboard"""
        return [d.strip() for d in self.custom_domains.split("\n") if d.strip()]


class SettingsCache:
    """Holds the last fetched NavigationSettings for `ttl` seconds.

    The clock is injected so expiry can be driven from tests. A failed
    fetch returns defaults and leaves the cache empty, so the next call
    tries the backend again.
    """

    def __init__(self, fetch: Callable[[], Awaitable[NavigationSettings]],
                 ttl: float = SETTINGS_CACHE_TTL,
                 clock: Callable[[], float] = time.monotonic):
        self._fetch = fetch
        self._clock = clock
        self.ttl = ttl
        self.value: Optional[NavigationSettings] = None
        self.fetched_at = 0.0

    def is_fresh(self, now: float) -> bool:
        return self.value is not None and (now - self.fetched_at) < self.ttl

    async def get(self) -> NavigationSettings:
        now = self._clock()
        if self.is_fresh(now):
            return self.value

        try:
            settings = await self._fetch()
        except TabzError as e:
            logger.warning(f"Could not load URL settings, using defaults: {e}")
            return NavigationSettings()

        self.value = settings
        self.fetched_at = now
        return settings
