"""
Main query manager for asynchronous metric query execution.

This module provides the QueryManager class that owns every query record:
it validates and admits specifications, runs them on a bounded worker pool,
drives the status state machine, consults and fills the result cache per
cache mode, and evicts records after their retention window.
"""

import logging
import threading
import time
import traceback
import uuid
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

import pandas as pd

from ...backends.protocols import ExecutionBackend, ExecutionRequest
from ...exceptions.backend_exceptions import BackendUnavailableError, QueryExecutionError
from ...exceptions.base import MqlServerError
from ...exceptions.cache_exceptions import CacheError
from ...exceptions.query_exceptions import (
    InvalidStateTransitionError,
    QueryExpiredError,
    QueryFailedError,
    QueryNotFoundError,
    QueryNotReadyError,
    QueryValidationError,
)
from ...models.query_schema import MqlQueryResultSeries, MqlQueryStatus, QuerySpecification
from ...utils.config import ConfigManager
from ..cache_store import CachedResult, CacheStore
from ..constraints import normalize
from ..fingerprint import compute_fingerprint
from ..result_materializer.series import to_series
from .executor import QueryExecutor
from .lifecycle import check_transition
from .post_processors import PostProcessContext, apply_post_processors, validate_post_processors
from .types import MqlQuery, QuerySummary

logger = logging.getLogger(__name__)

# Evicted ids remembered so that late polls get QueryExpiredError.
MAX_TRACKED_EXPIRED_IDS = 10000


def _align_to_request(payload: CachedResult, request: ExecutionRequest) -> CachedResult:
    """
    Present a cached payload in the dimension order of ``request``.

    The fingerprint ignores group-by order, so a hit may have been computed
    for the same dimensions in another order.
    """
    group_by = [d for d in request.group_by if d in payload.frame.columns]
    rest = [c for c in payload.frame.columns if c not in group_by]
    metadata = dict(payload.metadata)
    metadata["group_by"] = list(request.group_by)
    return CachedResult(frame=payload.frame[group_by + rest], metadata=metadata)


class QueryManager:
    """
    Owner of the query lifecycle.

    ``submit`` never blocks on execution. Results, logs and status are read
    by polling with the returned query id. Every public call first evicts
    records whose retention window has passed; a background sweeper does the
    same and reconciles queries left UNKNOWN by a backend outage.
    """

    def __init__(
        self,
        backend: ExecutionBackend,
        cache_store: Optional[CacheStore] = None,
        config_manager: Optional[ConfigManager] = None,
        retention_seconds: Optional[float] = None,
        max_workers: Optional[int] = None,
        sweep_interval_seconds: Optional[float] = None,
        unknown_timeout_seconds: Optional[float] = None,
        time_dimension: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.config_manager = config_manager or ConfigManager()
        self.cache_store = cache_store if cache_store is not None else CacheStore.from_config(self.config_manager)
        self.logger = logger
        self._clock = clock

        def setting(value, key, default):
            return value if value is not None else self.config_manager.get(key, default)

        self.retention_seconds = float(setting(retention_seconds, "query.retention_seconds", 3600))
        self.max_workers = int(setting(max_workers, "query.max_workers", 4))
        self.sweep_interval_seconds = float(setting(sweep_interval_seconds, "query.sweep_interval_seconds", 30))
        self.unknown_timeout_seconds = float(
            setting(unknown_timeout_seconds, "query.unknown_timeout_seconds", 300)
        )
        self.time_dimension = str(setting(time_dimension, "query.time_dimension", "metric_time"))

        self._queries: Dict[str, MqlQuery] = {}
        self._expired: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.RLock()
        self._condition = threading.Condition(self._lock)
        self._executor = QueryExecutor(max_workers=self.max_workers)

        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    # Lifecycle

    def start(self) -> None:
        """Start the background sweeper. Calling it twice is harmless."""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            if self.sweep_interval_seconds <= 0:
                return
            self._stop_event.clear()
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name="mql-query-sweeper", daemon=True
            )
            self._sweeper.start()
        self.logger.info(
            f"Query manager started (workers={self.max_workers}, "
            f"retention={self.retention_seconds}s, sweep every {self.sweep_interval_seconds}s)"
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the sweeper and the worker pool; queued queries end FAILED."""
        self._stop_event.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout=max(self.sweep_interval_seconds, 1.0) + 1.0)
        self._executor.shutdown(wait=wait)

        with self._lock:
            pending = [q for q in self._queries.values() if q.status == MqlQueryStatus.PENDING]
        for query in pending:
            self._fail_safely(query, MqlQueryStatus.FAILED, "Query manager shut down before execution started")
        self.logger.info("Query manager shut down")

    @property
    def is_running(self) -> bool:
        return not self._executor.closed

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval_seconds):
            try:
                self.sweep()
            except Exception as e:
                self.logger.exception(f"Query sweep failed: {e}")

    def sweep(self) -> None:
        """Evict expired records and reconcile UNKNOWN queries."""
        self._evict_expired()
        self.reconcile_unknown()

    # Public operations

    def submit(self, spec: QuerySpecification) -> str:
        """
        Validate and admit a query.

        Returns:
            The new query id

        Raises:
            QueryValidationError: If the specification is malformed
            ConstraintValidationError: If the constraint tree is malformed
        """
        self._evict_expired()
        if self._executor.closed:
            raise MqlServerError("Query manager is shut down", suggestions=["Restart the service"])

        where = self._validate(spec)
        fingerprint = compute_fingerprint(spec)

        group_by = tuple(spec.group_by)
        if spec.add_time_series and self.time_dimension not in group_by:
            group_by = group_by + (self.time_dimension,)

        query = MqlQuery(
            query_id=uuid.uuid4().hex,
            specification=spec,
            fingerprint=fingerprint.checksum,
            dimensions=group_by,
            time_dimension=self.time_dimension,
            created_at=self._clock(),
        )
        request = ExecutionRequest(
            query_id=query.query_id,
            model_key=spec.model_key,
            metrics=spec.metrics,
            group_by=group_by,
            where=where,
            order=spec.order,
            limit=spec.limit,
            time_dimension=self.time_dimension,
        )

        with self._lock:
            self._queries[query.query_id] = query
        query.log.append(
            f"Query submitted: metrics={list(spec.metrics)} group_by={list(group_by)} "
            f"cache_mode={spec.cache_mode.value} fingerprint={fingerprint.checksum[:12]}",
            at=query.created_at,
        )
        self.logger.info(f"Submitted query {query.query_id} ({fingerprint.checksum[:12]})")

        try:
            self._executor.submit(self._execute, query, request)
        except RuntimeError as e:
            # Shut down between the closed check and the hand-off.
            self._fail_safely(query, MqlQueryStatus.FAILED, "Query manager shut down before execution started")
            raise MqlServerError(
                "Query manager is shut down",
                {"query_id": query.query_id},
                ["Restart the service"]
            ) from e
        return query.query_id

    def status(self, query_id: str) -> MqlQueryStatus:
        return self._get(query_id).status

    def get_query(self, query_id: str) -> MqlQuery:
        """Return the live record. Callers must not mutate it."""
        return self._get(query_id)

    def result(self, query_id: str, metric: Optional[str] = None) -> List[MqlQueryResultSeries]:
        """
        Raises:
            QueryNotReadyError: PENDING, RUNNING or UNKNOWN
            QueryFailedError: FAILED or UNHANDLED_EXCEPTION
        """
        return to_series(self.raw_result(query_id), metric=metric)

    def raw_result(self, query_id: str) -> CachedResult:
        """Result frame and metadata of a SUCCESSFUL query, as a private copy."""
        query = self._get(query_id)
        with query.lock:
            status = query.status
            if status == MqlQueryStatus.SUCCESSFUL and query.result is not None:
                return query.result.copy()
            error = query.error
        if status in (MqlQueryStatus.FAILED, MqlQueryStatus.UNHANDLED_EXCEPTION):
            raise QueryFailedError(query_id, status, error)
        raise QueryNotReadyError(query_id, status)

    def result_frame(self, query_id: str) -> pd.DataFrame:
        return self.raw_result(query_id).frame

    def logs(self, query_id: str, from_line: int = 0, max_lines: Optional[int] = None) -> str:
        if from_line < 0:
            raise QueryValidationError(f"from_line must be non-negative, got {from_line}")
        if max_lines is not None and max_lines < 0:
            raise QueryValidationError(f"max_lines must be non-negative, got {max_lines}")
        query = self._get(query_id)
        return "\n".join(query.log.read(from_line, max_lines))

    def list(self, active_only: bool = False, limit: Optional[int] = None) -> List[QuerySummary]:
        """Summaries of retained queries, newest first."""
        self._evict_expired()
        with self._lock:
            queries = list(self._queries.values())
        # dict order is submission order, so reversing breaks created_at ties
        summaries = [q.summary() for q in reversed(queries)]
        summaries.sort(key=lambda s: s.created_at, reverse=True)
        if active_only:
            summaries = [s for s in summaries if s.status.is_active]
        if limit is not None:
            summaries = summaries[:max(limit, 0)]
        return summaries

    def wait(self, query_id: str, timeout: Optional[float] = None) -> MqlQueryStatus:
        """Block until the query is terminal or ``timeout`` seconds pass."""
        query = self._get(query_id)
        with self._condition:
            self._condition.wait_for(lambda: query.status.is_terminal, timeout=timeout)
        return query.status

    def counts(self) -> Dict[str, int]:
        with self._lock:
            queries = list(self._queries.values())
        counts = {status.value: 0 for status in MqlQueryStatus}
        for query in queries:
            counts[query.status.value] += 1
        counts["expired_tracked"] = len(self._expired)
        return counts

    def health_check(self) -> None:
        """
        Raises:
            MqlServerError: If the worker pool is closed or the sweeper died
        """
        if self._executor.closed:
            raise MqlServerError("Query worker pool is shut down")
        sweeper = self._sweeper
        if sweeper is not None and not sweeper.is_alive() and not self._stop_event.is_set():
            raise MqlServerError("Query sweeper thread is not running")

    # Validation

    def _validate(self, spec: QuerySpecification):
        if not spec.metrics:
            raise QueryValidationError(
                "A query needs at least one metric",
                {"field": "metrics"},
                ["List the metric names to compute in 'metrics'"]
            )
        for field_name in ("metrics", "group_by", "order"):
            if any(not name.strip() or name.strip() == "-" for name in getattr(spec, field_name)):
                raise QueryValidationError(
                    f"Field '{field_name}' contains an empty name",
                    {"field": field_name}
                )
        if spec.limit is not None and spec.limit < 0:
            raise QueryValidationError(
                f"limit must be non-negative, got {spec.limit}",
                {"field": "limit"}
            )
        validate_post_processors(spec.post_processors)
        return normalize(spec.where) if spec.where is not None else None

    # Execution

    def _execute(self, query: MqlQuery, request: ExecutionRequest) -> None:
        spec = query.specification
        generation = self.cache_store.generation

        try:
            self._transition(query, MqlQueryStatus.RUNNING)
        except InvalidStateTransitionError:
            self.logger.debug(f"Query {query.query_id} left PENDING before it started")
            return

        try:
            payload = self._read_cache(query) if spec.cache_mode.reads_cache else None
            if payload is not None:
                payload = _align_to_request(payload, request)
                with query.lock:
                    query.from_cache = True
                query.log.append("Served from cache")
            else:
                query.log.append("Executing against backend")
                frame = self.backend.execute(request, query.log.append)
                frame = apply_post_processors(
                    frame,
                    spec.post_processors,
                    PostProcessContext(spec.metrics, request.group_by, self.time_dimension),
                )
                payload = CachedResult(
                    frame=frame,
                    metadata={
                        "metrics": list(spec.metrics),
                        "group_by": list(request.group_by),
                        "time_dimension": self.time_dimension,
                        "fingerprint": query.fingerprint,
                        "computed_by": query.query_id,
                        "computed_at": self._clock(),
                    },
                )
                if spec.cache_mode.writes_cache:
                    self._write_cache(query, payload, generation)

            with query.lock:
                query.result = payload
                query.log.append(f"Result has {len(payload.frame)} rows")
                self._transition(query, MqlQueryStatus.SUCCESSFUL)

        except QueryExecutionError as e:
            query.log.append(f"Execution failed: {e.message}")
            self.logger.warning(f"Query {query.query_id} failed: {e.message}")
            self._fail_safely(query, MqlQueryStatus.FAILED, e.message)

        except BackendUnavailableError as e:
            query.log.append(f"Execution backend unreachable: {e.message}")
            self.logger.warning(f"Query {query.query_id} lost the execution backend: {e.message}")
            self._fail_safely(query, MqlQueryStatus.UNKNOWN, e.message)

        except Exception as e:
            query.log.append(f"Unhandled exception during execution:\n{traceback.format_exc()}")
            self.logger.exception(f"Unhandled exception in query {query.query_id}")
            self._fail_safely(query, MqlQueryStatus.UNHANDLED_EXCEPTION, f"{type(e).__name__}: {e}")

    def _read_cache(self, query: MqlQuery) -> Optional[CachedResult]:
        try:
            return self.cache_store.get(query.fingerprint)
        except CacheError as e:
            query.log.append(f"Cache read failed, executing instead: {e.message}")
            self.logger.warning(f"Cache read failed for query {query.query_id}: {e.message}")
            return None

    def _write_cache(self, query: MqlQuery, payload: CachedResult, generation: int) -> None:
        try:
            stored = self.cache_store.put(query.fingerprint, payload, generation=generation)
        except CacheError as e:
            query.log.append(f"Cache write failed, result not cached: {e.message}")
            self.logger.warning(f"Cache write failed for query {query.query_id}: {e.message}")
            return
        if stored:
            query.log.append("Result stored in cache")
        else:
            query.log.append("Result not cached (cache disabled or cleared during execution)")

    # State transitions

    def _transition(self, query: MqlQuery, target: MqlQueryStatus, error: Optional[str] = None) -> None:
        with query.lock:
            check_transition(query.query_id, query.status, target)
            previous = query.status
            now = self._clock()
            query.status = target
            if error is not None:
                query.error = error
            if target == MqlQueryStatus.RUNNING:
                query.started_at = now
            elif target == MqlQueryStatus.UNKNOWN:
                query.unknown_since = now
            if target.is_terminal:
                query.completed_at = now
            query.log.append(f"Status {previous.value} -> {target.value}", at=now)
        with self._condition:
            self._condition.notify_all()

    def _fail_safely(self, query: MqlQuery, target: MqlQueryStatus, error: str) -> None:
        try:
            self._transition(query, target, error)
        except InvalidStateTransitionError as e:
            self.logger.error(f"Dropped illegal transition for query {query.query_id}: {e.message}")

    def reconcile_unknown(self) -> None:
        """
        Resolve UNKNOWN queries to FAILED once the backend answers again or
        the UNKNOWN timeout passes. Queries are never re-executed.
        """
        with self._lock:
            unknown = [q for q in self._queries.values() if q.status == MqlQueryStatus.UNKNOWN]
        if not unknown:
            return

        now = self._clock()
        backend_reachable: Optional[bool] = None
        for query in unknown:
            since = query.unknown_since if query.unknown_since is not None else now
            if now - since >= self.unknown_timeout_seconds:
                query.log.append(
                    f"Execution backend unreachable for {self.unknown_timeout_seconds:g}s; giving up"
                )
                self._fail_safely(query, MqlQueryStatus.FAILED, "Execution backend unreachable; resubmit the query")
                continue

            if backend_reachable is None:
                backend_reachable = self._probe_backend()
            if backend_reachable:
                query.log.append("Execution backend reachable again; outcome of the interrupted run is unknown")
                self._fail_safely(query, MqlQueryStatus.FAILED, "Execution interrupted by backend outage; resubmit the query")

    def _probe_backend(self) -> bool:
        try:
            self.backend.health_check()
        except BackendUnavailableError:
            return False
        except Exception as e:
            self.logger.warning(f"Backend health probe raised {type(e).__name__}: {e}")
            return False
        return True

    # Retention

    def _get(self, query_id: str) -> MqlQuery:
        self._evict_expired()
        with self._lock:
            query = self._queries.get(query_id)
            if query is not None:
                return query
            if query_id in self._expired:
                raise QueryExpiredError(query_id)
        raise QueryNotFoundError(query_id)

    def _evict_expired(self) -> None:
        now = self._clock()
        evicted: List[MqlQuery] = []
        with self._lock:
            for query_id, query in list(self._queries.items()):
                completed_at = query.completed_at
                if completed_at is None or not query.status.is_terminal:
                    continue
                if now - completed_at >= self.retention_seconds:
                    evicted.append(self._queries.pop(query_id))
                    self._expired[query_id] = now
            while len(self._expired) > MAX_TRACKED_EXPIRED_IDS:
                self._expired.popitem(last=False)

        for query in evicted:
            query.release()
            self.logger.debug(f"Evicted query {query.query_id} after retention window")
