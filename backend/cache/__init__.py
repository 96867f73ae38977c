"""
Memory Cache Module

Provides the in-process TTL cache used by the catalog and image
endpoints, its key builders, and the cache administration routes.
"""

from .memory_store import CacheEntry, CacheSweeper, TTLCache
from . import keys as cache_keys
from .routes import router as cache_router, get_cache

__all__ = [
    "TTLCache",
    "CacheEntry",
    "CacheSweeper",
    "cache_keys",
    "cache_router",
    "get_cache",
]
