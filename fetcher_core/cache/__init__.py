from .store import CacheStore, CacheEntry, CacheStats

__all__ = ["CacheStore", "CacheEntry", "CacheStats"]
