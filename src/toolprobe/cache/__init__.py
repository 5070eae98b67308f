"""Discovery result caching."""

from .cache import CacheEntry, DiscoveryCache, MemoryCache

__all__ = ["CacheEntry", "DiscoveryCache", "MemoryCache"]
