"""
Types and data structures for the result cache.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict

import pandas as pd


@dataclass(frozen=True)
class CachedResult:
    """Cached payload: the result frame plus execution metadata."""
    frame: pd.DataFrame
    metadata: Dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "CachedResult":
        return CachedResult(frame=self.frame.copy(deep=True), metadata=dict(self.metadata))


@dataclass(frozen=True)
class CacheEntry:
    """A stored cache entry, owned by the cache backend."""
    fingerprint: str
    payload: CachedResult
    created_at: float = field(default_factory=time.time)


@dataclass
class CacheStats:
    """Counters for cache activity."""
    hits: int = 0
    misses: int = 0
    puts: int = 0
    stale_puts_rejected: int = 0
    drops: int = 0
    drops_rejected: int = 0
    errors: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        return self.hits / self.total_requests if self.total_requests > 0 else 0.0
