"""In-memory cache provider using cachetools.

Backed by ``cachetools.TLRUCache`` so that each entry can carry its own
time-to-live: the retrieval service caches query embeddings with the
configured TTL, and callers may pass a shorter one per key.  Suitable for
single-process deployments; swap for Redis via :class:`ICacheProvider`.
"""

from __future__ import annotations

from typing import Any, NamedTuple

import structlog
from cachetools import TLRUCache

from klay.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class _Entry(NamedTuple):
    value: Any
    ttl: float


class MemoryCacheProvider(ICacheProvider):
    """In-memory LRU cache with per-entry expiry.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Default time-to-live in seconds for cache entries.
    """

    def __init__(self, max_size: int = 1000, ttl: int = 3600) -> None:
        self._default_ttl = ttl
        self._cache: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=max_size,
            ttu=lambda _key, entry, now: now + entry.ttl,
        )

    async def get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        if entry is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._cache[key] = _Entry(value, float(ttl if ttl is not None else self._default_ttl))

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)
