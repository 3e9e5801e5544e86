"""
Concurrent health probing of engine components.

Each probe is a callable that returns normally when its component is
healthy and raises otherwise. Probes run on a worker pool and are bounded by
a shared deadline, so one hanging dependency cannot stall the report.

A probe that is still running from an earlier report is not started again;
it is reported DEGRADED until it returns. Every probe therefore occupies at
most one worker, and the pool always has a worker for each probe.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Dict, List, Optional, Tuple

from ...exceptions.base import MqlServerError
from .types import HealthReportItem, HealthStatus

logger = logging.getLogger(__name__)

Probe = Callable[[], object]

STILL_RUNNING_MESSAGE = "Previous probe still running"


def _describe(error: BaseException) -> str:
    if isinstance(error, MqlServerError):
        return error.message
    return f"{type(error).__name__}: {error}"


def _timed(probe: Probe) -> Tuple[object, float]:
    started = time.monotonic()
    outcome = probe()
    return outcome, time.monotonic() - started


class HealthAggregator:
    """Runs named probes concurrently and reports HEALTHY or DEGRADED for each."""

    def __init__(
        self,
        probes: Optional[Dict[str, Probe]] = None,
        probe_timeout_seconds: float = 5.0,
        max_workers: Optional[int] = None,
    ):
        self._probes: Dict[str, Probe] = dict(probes or {})
        self.probe_timeout_seconds = probe_timeout_seconds
        self._in_flight: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._closed = False
        self._pool_size = max(max_workers or 4, len(self._probes))
        self._pool = self._new_pool(self._pool_size)
        self.logger = logger

    @staticmethod
    def _new_pool(size: int) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=size, thread_name_prefix="mql-health")

    def register(self, name: str, probe: Probe) -> None:
        with self._lock:
            self._probes[name] = probe
            if len(self._probes) > self._pool_size and not self._closed:
                # Running probes keep their threads in the old pool.
                old_pool = self._pool
                self._pool_size = len(self._probes)
                self._pool = self._new_pool(self._pool_size)
                old_pool.shutdown(wait=False)

    @property
    def probe_names(self) -> List[str]:
        return list(self._probes)

    def report(self) -> List[HealthReportItem]:
        """Probe every component. Never raises."""
        deadline = time.monotonic() + self.probe_timeout_seconds
        pending: List[Tuple[str, Optional[Future], Optional[str]]] = []

        with self._lock:
            for name, probe in self._probes.items():
                previous = self._in_flight.get(name)
                if previous is not None and not previous.done():
                    pending.append((name, None, STILL_RUNNING_MESSAGE))
                    continue
                try:
                    future = self._pool.submit(_timed, probe)
                except RuntimeError as e:
                    self._in_flight.pop(name, None)
                    pending.append((name, None, _describe(e)))
                    continue
                self._in_flight[name] = future
                pending.append((name, future, None))

        items = []
        for name, future, message in pending:
            if future is None:
                items.append(HealthReportItem(name, HealthStatus.DEGRADED, message))
                continue
            items.append(self._collect(name, future, deadline))
        return items

    def _collect(self, name: str, future: Future, deadline: float) -> HealthReportItem:
        remaining = max(deadline - time.monotonic(), 0.0)
        try:
            outcome, duration = future.result(timeout=remaining)
        except FutureTimeoutError:
            self.logger.warning(f"Health probe '{name}' timed out after {self.probe_timeout_seconds:g}s")
            return HealthReportItem(
                name,
                HealthStatus.DEGRADED,
                f"Probe timed out after {self.probe_timeout_seconds:g}s",
                self.probe_timeout_seconds,
            )
        except Exception as e:
            self.logger.warning(f"Health probe '{name}' failed: {_describe(e)}")
            return HealthReportItem(name, HealthStatus.DEGRADED, _describe(e))

        if outcome is False:
            return HealthReportItem(name, HealthStatus.DEGRADED, "Probe reported unhealthy", duration)
        return HealthReportItem(name, HealthStatus.HEALTHY, None, duration)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            self._pool.shutdown(wait=False, cancel_futures=True)


def default_probes(cache_store, backend, query_manager) -> Dict[str, Probe]:
    """The standard probe set: cache, execution backend and query manager."""
    return {
        "cache": cache_store.ping,
        "execution_backend": backend.health_check,
        "query_manager": query_manager.health_check,
    }
