"""In-memory TTL cache adapter backed by ``cachetools.TLRUCache``."""

from __future__ import annotations

import asyncio
import sys
import time
from typing import Any, Callable, NamedTuple, Optional

import structlog
from cachetools import TLRUCache

log = structlog.get_logger(__name__)


class _Stored(NamedTuple):
    value: Any
    ttl_seconds: float


def _expires_at(key: str, stored: _Stored, now: float) -> float:
    return now + stored.ttl_seconds


class MemoryTTLCache:
    """Process-local implementation of ``CachePort``.

    - Entries are replaced whole on every ``set()``.
    - Stale entries are bypassed on read but stay stored until
      :meth:`purge_expired` or a later write sweeps them.
    - No size bound.

    Args:
        ttl_seconds: Default TTL for `set()` without explicit value.
        clock: Timer handed to cachetools, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = ttl_seconds
        self._cache: TLRUCache[str, _Stored] = TLRUCache(
            maxsize=sys.maxsize, ttu=_expires_at, timer=clock
        )
        self._lock = asyncio.Lock()

        log.info("memory_cache_init", default_ttl=ttl_seconds)

    # --- Context Manager ---
    async def __aenter__(self) -> MemoryTTLCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.clear()

    # --- CachePort implementation ---
    async def get(self, key: str) -> Optional[Any]:
        """Return the value, or None when missing or stale."""
        stored = self._cache.get(key)
        log.debug("cache_get", key=key, hit=stored is not None)
        return None if stored is None else stored.value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        """Store *value* under *key* (whole-entry replacement)."""
        expire_time = ttl if ttl is not None else self.default_ttl
        async with self._lock:
            self._cache[key] = _Stored(value=value, ttl_seconds=expire_time)
        log.debug("cache_set", key=key, ttl=expire_time)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            deleted = self._cache.pop(key, None) is not None
        log.debug("cache_delete", key=key, deleted=deleted)
        return deleted

    async def exists(self, key: str) -> bool:
        return key in self._cache

    async def clear(self) -> None:
        async with self._lock:
            count = self._cache.currsize
            self._cache.clear()
        if count:
            log.info("cache_cleared", entries=count)

    # --- Maintenance ---
    @property
    def stored_count(self) -> int:
        """Entries physically stored, stale ones included."""
        return int(self._cache.currsize)

    async def purge_expired(self) -> int:
        """Drop stale entries. Returns the number removed."""
        async with self._lock:
            removed = len(self._cache.expire())
        if removed:
            log.debug("cache_purged", removed=removed)
        return removed
