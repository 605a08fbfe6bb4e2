"""Token registry document and token allow/deny policy."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import httpx

from swapgate.services.cache_store import CacheStore

logger = logging.getLogger(__name__)

_EMPTY_REGISTRY: dict[str, Any] = {"tokens": []}
_REGISTRY_KEY = "token-registry"


class TokenPolicy:
    """Allow/deny filtering for token addresses (case-insensitive).

    A denied address is always rejected. When the allow-list is non-empty,
    anything outside it is rejected too. Empty addresses pass.
    """

    def __init__(self, allow: Iterable[str] = (), deny: Iterable[str] = ()):
        self.allow = frozenset(a.strip().lower() for a in allow if a.strip())
        self.deny = frozenset(a.strip().lower() for a in deny if a.strip())

    def is_allowed(self, address: str | None) -> bool:
        if not address:
            return True
        normalized = str(address).lower()
        if normalized in self.deny:
            return False
        if self.allow and normalized not in self.allow:
            return False
        return True


class TokenRegistry:
    """Fetches the token list document, cached for ``ttl`` seconds.

    If a refresh fails the last good document is served; with none,
    an empty registry.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str,
        cache: CacheStore,
        ttl: float = 3600.0,
        timeout: float = 10.0,
    ):
        self.http_client = http_client
        self.url = url
        self.cache = cache
        self.ttl = ttl
        self.timeout = timeout
        self._last_good: Any | None = None

    async def get(self) -> Any:
        cached = self.cache.get(_REGISTRY_KEY)
        if cached is not None:
            return cached
        if not self.url:
            return _EMPTY_REGISTRY
        try:
            response = await self.http_client.get(self.url, timeout=self.timeout)
            if response.is_success:
                data = response.json()
                self.cache.set(_REGISTRY_KEY, data, ttl=self.ttl)
                self._last_good = data
                return data
            logger.warning("Token registry returned %s", response.status_code)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Token registry fetch failed: %s", exc)
        return self._last_good if self._last_good is not None else _EMPTY_REGISTRY
