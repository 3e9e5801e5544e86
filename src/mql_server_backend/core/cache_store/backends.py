"""
Cache storage backends.

CacheStore delegates raw storage to a CacheBackend so that the store could
sit in front of a remote key/value service. Backends may raise any
exception on failure; CacheStore wraps it in CacheError.
"""

import threading
import time
from collections import OrderedDict
from typing import Optional, Protocol, runtime_checkable

from .types import CacheEntry


@runtime_checkable
class CacheBackend(Protocol):
    """Port for raw cache storage."""

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for key, or None on a miss."""
        ...

    def set(self, key: str, entry: CacheEntry) -> None:
        """Store an entry, replacing any previous one as a whole."""
        ...

    def clear(self) -> int:
        """Remove every entry and return how many were removed."""
        ...

    def size(self) -> int:
        """Current number of entries."""
        ...

    def ping(self) -> None:
        """Raise if the backend is unreachable."""
        ...


class InMemoryCacheBackend:
    """
    Process-local LRU cache with optional TTL.

    Entries are replaced by a single dict assignment under a lock, so a
    concurrent reader sees either the old entry or the new one.
    """

    def __init__(self, max_size: int = 1000, ttl_seconds: Optional[float] = None):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.lock = threading.Lock()

    def _expired(self, entry: CacheEntry) -> bool:
        return self.ttl_seconds is not None and time.time() - entry.created_at >= self.ttl_seconds

    def get(self, key: str) -> Optional[CacheEntry]:
        with self.lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        with self.lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def clear(self) -> int:
        with self.lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def size(self) -> int:
        with self.lock:
            return len(self._entries)

    def ping(self) -> None:
        return None
