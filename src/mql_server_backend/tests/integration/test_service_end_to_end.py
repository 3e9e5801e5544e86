"""
Integration tests for the service facade.

These wire the real query manager, cache store, materializer and health
aggregator around the in-memory backends and drive them through MqlService
the way an API layer would.
"""

import json

import pytest

from mql_server_backend.backends import InMemoryModelRepository, InMemoryTableStore, TableLocation
from mql_server_backend.core.result_materializer import decode_page_data
from mql_server_backend.exceptions import (
    ModelRepositoryUnavailableError,
    QueryFailedError,
    QueryNotFoundError,
    QueryValidationError,
    TableLocationError,
)
from mql_server_backend.models.query_schema import MqlQueryStatus
from mql_server_backend.services import create_service, error_payload

pytestmark = pytest.mark.integration


@pytest.fixture
def table_store():
    return InMemoryTableStore()


@pytest.fixture
def service(config_manager, backend, table_store):
    service = create_service(
        config_manager,
        backend=backend,
        table_store=table_store,
        model_repository=InMemoryModelRepository(backend),
        start=True,
    )
    yield service
    service.shutdown()


@pytest.fixture
def spec_dict(model_key):
    def factory(**fields):
        spec = {"model_key": model_key.to_dict(), "metrics": ["revenue"]}
        spec.update(fields)
        return spec
    return factory


def run_to_completion(service, spec):
    query_id = service.submit_query(spec)
    assert service.wait_for_query(query_id, timeout=5) == MqlQueryStatus.SUCCESSFUL
    return query_id


class TestQueryFlow:
    """Submit, poll and fetch through the service."""

    def test_series_from_dict_spec(self, service, spec_dict):
        query_id = run_to_completion(service, spec_dict(
            group_by=["country"],
            where={"constraint_type": "SET", "dimension_name": "channel", "values": ["web"]},
        ))

        series = service.get_query_result(query_id)

        assert {s.series_value: s.data[0].y for s in series} == {"US": 130.0, "CA": 50.0, "MX": 10.0}
        assert "Status RUNNING -> SUCCESSFUL" in service.get_query_logs(query_id)
        assert service.list_queries()[0].query_id == query_id

    def test_tabular_paging(self, service, spec_dict):
        query_id = run_to_completion(service, spec_dict(group_by=["country"], order=["country"]))

        rows = []
        cursor = None
        pages = 0
        while True:
            page = service.get_query_result_tabular(query_id, cursor=cursor)
            rows.extend(json.loads(decode_page_data(page.data)))
            pages += 1
            cursor = page.next_cursor
            if cursor is None:
                break

        assert pages == 2
        assert [row["country"] for row in rows] == ["CA", "MX", "US"]

    def test_repeat_query_served_from_cache(self, service, spec_dict, backend):
        spec = spec_dict(group_by=["country"])
        run_to_completion(service, spec)
        second = run_to_completion(service, spec)

        assert backend.executions == 1
        assert "Served from cache" in service.get_query_logs(second)
        assert service.cache_stats()["hits"] == 1

    def test_failed_query_surfaces_error(self, service, spec_dict):
        query_id = service.submit_query(spec_dict(metrics=["profit"]))
        assert service.wait_for_query(query_id, timeout=5) == MqlQueryStatus.FAILED

        with pytest.raises(QueryFailedError) as exc_info:
            service.get_query_result(query_id)
        assert error_payload(exc_info.value)["error_code"] == "query_failed"

    def test_invalid_spec_rejected_synchronously(self, service, spec_dict):
        with pytest.raises(QueryValidationError):
            service.submit_query(spec_dict(metrics=[]))
        assert service.list_queries() == []

    def test_unknown_query(self, service):
        with pytest.raises(QueryNotFoundError):
            service.get_query_status("does-not-exist")


class TestMaterialize:
    def test_writes_table(self, service, spec_dict, table_store):
        result = service.materialize(spec_dict(group_by=["country"]), "analytics.revenue_by_country")

        assert result.to_dict()["row_count"] == 3
        frame = table_store.read_table(TableLocation("analytics", "revenue_by_country"))
        assert sorted(frame["country"]) == ["CA", "MX", "US"]

    def test_default_schema(self, service, spec_dict, table_store):
        result = service.materialize(spec_dict(), "totals")
        assert (result.schema, result.table) == ("mql", "totals")

    def test_invalid_table_name(self, service, spec_dict):
        with pytest.raises(TableLocationError):
            service.materialize(spec_dict(), "a.b.c")


class TestCacheAdministration:
    """Test drop_cache and cache_stats."""

    def test_drop_requires_token(self, service, spec_dict, drop_token):
        run_to_completion(service, spec_dict())
        assert service.cache_stats()["size"] == 1

        assert service.drop_cache("wrong") is False
        assert service.drop_cache(None) is False
        assert service.cache_stats()["size"] == 1

        assert service.drop_cache(drop_token) is True
        stats = service.cache_stats()
        assert stats["size"] == 0
        assert stats["drops"] == 1
        assert stats["drops_rejected"] == 2

    def test_drop_forces_reexecution(self, service, spec_dict, backend, drop_token):
        spec = spec_dict()
        run_to_completion(service, spec)
        service.drop_cache(drop_token)
        run_to_completion(service, spec)
        assert backend.executions == 2


class TestMetadataAndHealth:
    def test_metadata_pass_throughs(self, service, model_key):
        assert service.list_metrics(model_key) == ["avg_order", "order_count", "revenue"]
        assert service.list_measures(model_key) == ["amount", "orders"]
        assert "country" in service.list_dimension_names(model_key)
        assert service.list_dimension_values(model_key, "channel") == ["store", "web"]

    def test_missing_repository(self, config_manager, backend, model_key):
        service = create_service(config_manager, backend=backend)
        try:
            with pytest.raises(ModelRepositoryUnavailableError):
                service.list_metrics(model_key)
        finally:
            service.shutdown()

    def test_health_report(self, service, backend):
        assert all(item.healthy for item in service.health_report())

        backend.available = False
        report = {item.name: item for item in service.health_report()}
        assert not report["execution_backend"].healthy
        assert report["cache"].healthy

    def test_create_service_requires_backend(self, config_manager):
        with pytest.raises(ValueError):
            create_service(config_manager)


class TestErrorPayload:
    def test_domain_error(self):
        payload = error_payload(QueryNotFoundError("abc"))
        assert payload["error_code"] == "query_not_found"
        assert "abc" in payload["message"]

    def test_unexpected_error(self):
        payload = error_payload(KeyError("boom"))
        assert payload == {
            "error_code": "internal_error",
            "message": "KeyError: 'boom'",
            "severity": "critical",
        }
