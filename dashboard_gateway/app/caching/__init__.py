"""
Gateway caching package.

Provides the in-memory TTL cache used to avoid redundant calls to
quota-limited upstreams (stock symbols, search, news, quotes, metrics).
"""

from .ttl_cache import CacheEntry, TTLCache
from .cache_manager import CacheManager

__all__ = ["CacheEntry", "TTLCache", "CacheManager"]
