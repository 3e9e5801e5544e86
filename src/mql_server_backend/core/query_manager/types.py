"""
Types and data structures for query lifecycle management.

MqlQuery is the mutable record of one submitted query. Only the
QueryManager mutates it, always under the record's own lock.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ...models.query_schema import ModelKey, MqlQueryStatus, QuerySpecification
from ..cache_store.types import CachedResult


def _timestamp(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat(timespec="milliseconds")


class QueryLog:
    """Append-only list of timestamped log lines."""

    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._lines: List[str] = []

    def append(self, message: str, at: Optional[float] = None) -> None:
        stamp = _timestamp(at if at is not None else time.time())
        with self._lock:
            for line in str(message).splitlines() or [""]:
                self._lines.append(f"[{stamp}] {line}")

    def read(self, from_line: int = 0, max_lines: Optional[int] = None) -> List[str]:
        with self._lock:
            if max_lines is None:
                return self._lines[from_line:]
            return self._lines[from_line:from_line + max_lines]

    def clear(self) -> None:
        with self._lock:
            self._lines = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


@dataclass
class MqlQuery:
    """
    Lifecycle record of a submitted query.

    Attributes:
        query_id: Opaque unique id
        specification: The submitted query
        fingerprint: Cache key of the specification
        dimensions: Effective group-by (time dimension included)
        status: Current lifecycle status
        result: Result frame and metadata once SUCCESSFUL
        error: Failure detail for FAILED / UNHANDLED_EXCEPTION
        from_cache: Whether the result was served from the cache
    """
    query_id: str
    specification: QuerySpecification
    fingerprint: str
    dimensions: Tuple[str, ...]
    time_dimension: str
    status: MqlQueryStatus = MqlQueryStatus.PENDING
    result: Optional[CachedResult] = None
    error: Optional[str] = None
    from_cache: bool = False
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    unknown_since: Optional[float] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)
    log: QueryLog = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.log = QueryLog(self.lock)

    @property
    def model_key(self) -> ModelKey:
        return self.specification.model_key

    @property
    def metrics(self) -> Tuple[str, ...]:
        return self.specification.metrics

    def release(self) -> None:
        """Drop the result and logs of an evicted record."""
        with self.lock:
            self.result = None
            self.log.clear()

    def summary(self) -> "QuerySummary":
        with self.lock:
            return QuerySummary(
                query_id=self.query_id,
                status=self.status,
                model_key=self.model_key,
                metrics=self.metrics,
                dimensions=self.dimensions,
                created_at=self.created_at,
                completed_at=self.completed_at,
                from_cache=self.from_cache,
                error=self.error,
            )


@dataclass(frozen=True)
class QuerySummary:
    """Read-only snapshot of a query record for listings."""
    query_id: str
    status: MqlQueryStatus
    model_key: ModelKey
    metrics: Tuple[str, ...]
    dimensions: Tuple[str, ...]
    created_at: float
    completed_at: Optional[float] = None
    from_cache: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query_id": self.query_id,
            "status": self.status.value,
            "model_key": self.model_key.to_dict(),
            "metrics": list(self.metrics),
            "dimensions": list(self.dimensions),
            "created_at": _timestamp(self.created_at),
            "completed_at": _timestamp(self.completed_at) if self.completed_at is not None else None,
            "from_cache": self.from_cache,
            "error": self.error,
        }
