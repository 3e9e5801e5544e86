"""
Unit tests for health aggregation.
"""

import threading
import time

import pytest

from mql_server_backend.core.health import (
    HealthAggregator,
    HealthReportItem,
    HealthStatus,
    default_probes,
)
from mql_server_backend.exceptions import BackendUnavailableError


@pytest.fixture
def make_aggregator():
    aggregators = []

    def factory(probes, **kwargs):
        aggregator = HealthAggregator(probes, **kwargs)
        aggregators.append(aggregator)
        return aggregator

    yield factory

    for aggregator in aggregators:
        aggregator.shutdown()


def _by_name(items):
    return {item.name: item for item in items}


class TestHealthAggregator:
    """Test probe outcomes and timeouts."""

    def test_all_healthy(self, make_aggregator):
        report = make_aggregator({"a": lambda: None, "b": lambda: True}).report()

        assert [item.name for item in report] == ["a", "b"]
        assert all(item.healthy for item in report)
        assert all(item.error_message is None for item in report)

    def test_raising_probe_is_degraded(self, make_aggregator):
        def broken():
            raise BackendUnavailableError("warehouse unreachable")

        report = _by_name(make_aggregator({"ok": lambda: None, "warehouse": broken}).report())

        assert report["ok"].healthy
        assert report["warehouse"].status == HealthStatus.DEGRADED
        assert report["warehouse"].error_message == "warehouse unreachable"

    def test_plain_exception_message(self, make_aggregator):
        def broken():
            raise OSError("connection refused")

        (item,) = make_aggregator({"cache": broken}).report()
        assert item.error_message == "OSError: connection refused"

    def test_false_return_is_degraded(self, make_aggregator):
        (item,) = make_aggregator({"flag": lambda: False}).report()
        assert item.status == HealthStatus.DEGRADED
        assert item.error_message == "Probe reported unhealthy"

    def test_hung_probe_times_out_without_blocking_others(self, make_aggregator):
        release = threading.Event()

        def hung():
            release.wait(timeout=5)

        aggregator = make_aggregator({"hung": hung, "ok": lambda: None}, probe_timeout_seconds=0.1)
        try:
            report = _by_name(aggregator.report())
        finally:
            release.set()

        assert report["hung"].status == HealthStatus.DEGRADED
        assert "timed out" in report["hung"].error_message
        assert report["ok"].healthy

    def test_repeated_reports_with_hung_probe_keep_others_healthy(self, make_aggregator):
        release = threading.Event()
        calls = []

        def hung():
            calls.append(1)
            release.wait(timeout=10)

        aggregator = make_aggregator(
            {"cache": lambda: None, "execution_backend": hung, "query_manager": lambda: None},
            probe_timeout_seconds=0.1,
        )
        try:
            reports = [_by_name(aggregator.report()) for _ in range(8)]
        finally:
            release.set()

        for report in reports:
            assert report["cache"].healthy
            assert report["query_manager"].healthy
            assert report["execution_backend"].status == HealthStatus.DEGRADED
        assert "timed out" in reports[0]["execution_backend"].error_message
        assert reports[-1]["execution_backend"].error_message == "Previous probe still running"
        assert len(calls) == 1

    def test_probe_is_retried_once_it_returns(self, make_aggregator):
        release = threading.Event()

        def slow():
            release.wait(timeout=10)

        aggregator = make_aggregator({"slow": slow}, probe_timeout_seconds=0.1)
        (first,) = aggregator.report()
        release.set()

        deadline = time.monotonic() + 5
        (later,) = aggregator.report()
        while not later.healthy and time.monotonic() < deadline:
            time.sleep(0.01)
            (later,) = aggregator.report()

        assert first.status == HealthStatus.DEGRADED
        assert later.healthy

    def test_register_beyond_pool_size(self, make_aggregator):
        aggregator = make_aggregator({}, max_workers=1)
        for name in ("a", "b", "c"):
            aggregator.register(name, lambda: None)
        assert all(item.healthy for item in aggregator.report())

    def test_register(self, make_aggregator):
        aggregator = make_aggregator({})
        aggregator.register("late", lambda: None)
        assert aggregator.probe_names == ["late"]
        assert aggregator.report()[0].healthy

    def test_report_after_shutdown_degrades_instead_of_raising(self, make_aggregator):
        aggregator = make_aggregator({"a": lambda: None})
        aggregator.shutdown()
        (item,) = aggregator.report()
        assert item.status == HealthStatus.DEGRADED


class TestDefaultProbes:
    """Test the standard probe wiring."""

    def test_backend_outage_degrades_only_the_backend(
        self, make_aggregator, cache_store, backend, query_manager
    ):
        backend.available = False
        aggregator = make_aggregator(default_probes(cache_store, backend, query_manager))

        report = _by_name(aggregator.report())

        assert set(report) == {"cache", "execution_backend", "query_manager"}
        assert report["cache"].healthy
        assert report["query_manager"].healthy
        assert not report["execution_backend"].healthy


class TestHealthReportItem:
    def test_to_dict(self):
        item = HealthReportItem("cache", HealthStatus.HEALTHY, duration_seconds=0.0012345678)
        assert item.to_dict() == {
            "name": "cache",
            "status": "HEALTHY",
            "error_message": None,
            "duration_seconds": 0.001235,
        }
