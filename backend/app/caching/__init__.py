"""In-process caching primitives and invalidation hooks."""

from .invalidation import CacheInvalidator
from .keys import CacheKeys, CacheTTL
from .store import Cache, CacheStats, TTLCache

__all__ = [
    "Cache",
    "CacheInvalidator",
    "CacheKeys",
    "CacheStats",
    "CacheTTL",
    "TTLCache",
]
