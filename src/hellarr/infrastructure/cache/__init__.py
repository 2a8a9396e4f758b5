"""Cache Infrastructure - Backend-Implementations."""

from .cache_factory import CacheBackend, create_cache
from .memory_adapter import MemoryTTLCache

__all__ = [
    "CacheBackend",
    "MemoryTTLCache",
    "create_cache",
]
