"""Cache factory - builds the cache adapter from config."""

from __future__ import annotations

from typing import Literal

import structlog

from hellarr.domain.ports.cache import CachePort
from hellarr.infrastructure.cache.memory_adapter import MemoryTTLCache

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory"]


def create_cache(
    backend: CacheBackend = "memory",
    *,
    ttl_seconds: int = 3600,
) -> CachePort:
    """Create a cache adapter for *backend*.

    Args:
        backend: Only ``"memory"`` is supported.
        ttl_seconds: Default TTL for entries.

    Raises:
        ValueError: If `backend` is unknown.
    """
    if backend == "memory":
        log.info("cache_factory_create", backend=backend, ttl=ttl_seconds)
        return MemoryTTLCache(ttl_seconds=ttl_seconds)
    raise ValueError(f"Unknown cache backend: {backend!r}. Must be 'memory'.")
