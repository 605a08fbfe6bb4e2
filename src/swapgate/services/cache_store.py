"""In-process key/value cache with per-entry expiry."""

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


class CacheStore:
    """TTL cache shielding rate-limited upstream APIs.

    Expired entries are evicted on read, so ``sweep`` only reclaims memory
    for keys nobody reads again. The store is process-scoped and starts
    empty; a cold cache simply falls through to upstream.
    """

    def __init__(self, default_ttl: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def sweep(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cache sweep removed %d entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


def make_cache_key(
    base_url: str,
    path_suffix: str,
    params: Mapping[str, Any] | Sequence[tuple[str, Any]] | None = None,
) -> str:
    """Deterministic key from upstream base, path and key-sorted query parameters.

    Repeated keys keep their original relative order; ``None`` values are dropped.
    """
    items = list(params.items()) if isinstance(params, Mapping) else list(params or [])
    pairs: list[tuple[str, str]] = []
    for key, value in sorted(items, key=lambda kv: kv[0]):
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(v)) for v in value)
        else:
            pairs.append((key, str(value)))
    return f"{base_url}{path_suffix}?{urlencode(pairs)}"
