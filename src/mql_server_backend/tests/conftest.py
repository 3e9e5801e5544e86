"""Shared test fixtures for MQL server backend tests."""

import logging
import threading
import time
from typing import Any, Callable, Dict, List

import pytest

from mql_server_backend.backends import (
    InMemoryDataset,
    InMemoryExecutionBackend,
    MetricDefinition,
)
from mql_server_backend.core.cache_store import CacheStore
from mql_server_backend.core.query_manager import QueryManager
from mql_server_backend.models.query_schema import ModelKey, MqlQueryStatus, QuerySpecification
from mql_server_backend.utils.config import ConfigManager

DROP_TOKEN = "drop-everything-please"


SALES_ROWS: List[Dict[str, Any]] = [
    {"metric_time": "2024-01-01", "country": "US", "channel": "web", "amount": 100.0, "orders": 2},
    {"metric_time": "2024-01-01", "country": "CA", "channel": "web", "amount": 50.0, "orders": 1},
    {"metric_time": "2024-01-02", "country": "US", "channel": "store", "amount": 70.0, "orders": 1},
    {"metric_time": "2024-01-02", "country": "US", "channel": "web", "amount": 30.0, "orders": 1},
    {"metric_time": "2024-01-03", "country": "CA", "channel": "store", "amount": 20.0, "orders": 3},
    {"metric_time": "2024-01-03", "country": "MX", "channel": "web", "amount": 10.0, "orders": 1},
]


class FakeClock:
    """Manually advanced clock for retention and timeout tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds


class GatedBackend:
    """Blocks every execution until ``release`` is set."""

    def __init__(self, inner: InMemoryExecutionBackend):
        self.inner = inner
        self.started = threading.Event()
        self.release = threading.Event()

    def execute(self, request, log):
        log("Waiting at test gate")
        self.started.set()
        if not self.release.wait(timeout=10):
            raise TimeoutError("test gate never released")
        return self.inner.execute(request, log)

    def health_check(self) -> None:
        self.inner.health_check()


@pytest.fixture
def sales_rows() -> List[Dict[str, Any]]:
    return [dict(row) for row in SALES_ROWS]


@pytest.fixture
def model_key() -> ModelKey:
    return ModelKey(organization="acme", repo="metrics", branch="main", commit="abc123")


@pytest.fixture
def sales_dataset() -> InMemoryDataset:
    return InMemoryDataset(
        rows=[dict(row) for row in SALES_ROWS],
        dimensions=["country", "channel"],
        metrics={
            "revenue": MetricDefinition("revenue", "amount", "sum"),
            "order_count": MetricDefinition("order_count", "orders", "sum"),
            "avg_order": MetricDefinition("avg_order", "amount", "avg"),
        },
    )


@pytest.fixture
def backend(sales_dataset) -> InMemoryExecutionBackend:
    return InMemoryExecutionBackend(sales_dataset)


@pytest.fixture
def gated_backend(backend) -> GatedBackend:
    gated = GatedBackend(backend)
    yield gated
    gated.release.set()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def drop_token() -> str:
    return DROP_TOKEN


@pytest.fixture
def config_overrides() -> Dict[str, Any]:
    return {
        "query": {
            "retention_seconds": 60,
            "max_workers": 2,
            "sweep_interval_seconds": 0,
            "unknown_timeout_seconds": 120,
        },
        "cache": {"drop_confirmation_token": DROP_TOKEN},
        "materializer": {"page_size": 2, "wait_timeout_seconds": 10},
        "health": {"probe_timeout_seconds": 0.5},
    }


@pytest.fixture
def config_manager(tmp_path, config_overrides) -> ConfigManager:
    """Configuration isolated from the process environment and working directory."""
    return ConfigManager(project_root=tmp_path, load_env=False, overrides=config_overrides)


@pytest.fixture
def cache_store() -> CacheStore:
    return CacheStore(confirmation_token=DROP_TOKEN)


@pytest.fixture
def make_query_manager(cache_store, config_manager, clock):
    """Factory building query managers that are shut down after the test."""
    managers = []

    def factory(execution_backend, **kwargs) -> QueryManager:
        kwargs.setdefault("cache_store", cache_store)
        kwargs.setdefault("config_manager", config_manager)
        kwargs.setdefault("clock", clock)
        manager = QueryManager(execution_backend, **kwargs)
        managers.append(manager)
        return manager

    yield factory

    for manager in managers:
        manager.shutdown(wait=True)


@pytest.fixture
def query_manager(make_query_manager, backend) -> QueryManager:
    return make_query_manager(backend)


@pytest.fixture
def make_spec(model_key) -> Callable[..., QuerySpecification]:
    def factory(**kwargs) -> QuerySpecification:
        kwargs.setdefault("model_key", model_key)
        kwargs.setdefault("metrics", ("revenue",))
        return QuerySpecification(**kwargs)
    return factory


@pytest.fixture
def wait_for_status():
    """Poll until a query reaches ``status`` or fail after ``timeout`` seconds."""
    def wait(manager: QueryManager, query_id: str, status: MqlQueryStatus, timeout: float = 5.0) -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if manager.status(query_id) == status:
                return
            time.sleep(0.01)
        raise AssertionError(
            f"Query {query_id} stuck in {manager.status(query_id).value}, expected {status.value}"
        )
    return wait


def _is_pytest_handler(handler: logging.Handler) -> bool:
    return type(handler).__module__.startswith("_pytest")


@pytest.fixture
def restore_root_logger():
    """Undo root logger changes made by logging setup under test."""
    root = logging.getLogger()
    original = [h for h in root.handlers if not _is_pytest_handler(h)]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in original and not _is_pytest_handler(handler):
            handler.close()
    root.handlers[:] = original + [h for h in root.handlers if _is_pytest_handler(h)]
    root.setLevel(level)
