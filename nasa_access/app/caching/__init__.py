"""
Response caching for the NASA access layer.
"""

from .cache_store import CacheEntry, CacheStore, make_cache_key

__all__ = ["CacheEntry", "CacheStore", "make_cache_key"]
