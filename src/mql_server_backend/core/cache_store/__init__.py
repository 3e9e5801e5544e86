"""
Result cache package.

Modules:
    types: Cache entry, payload and statistics structures
    backends: CacheBackend port and the in-memory LRU/TTL backend
    barrier: Write barrier between puts and bulk clears
    store: CacheStore, the single owner of cached results
"""

from .types import CachedResult, CacheEntry, CacheStats
from .backends import CacheBackend, InMemoryCacheBackend
from .barrier import WriteBarrier
from .store import CacheStore

__all__ = [
    "CachedResult",
    "CacheEntry",
    "CacheStats",
    "CacheBackend",
    "InMemoryCacheBackend",
    "WriteBarrier",
    "CacheStore",
]
