"""In-memory caches, one instance per payload domain."""

from colorvars.cache.manager import CacheEntry, CacheManager, CacheStats

__all__ = ["CacheEntry", "CacheManager", "CacheStats"]
