"""
Essential MQL server smoke tests.

A handful of end-to-end checks that the installed package imports, loads
its configuration and answers a query through the public service API.
"""

import json
import shutil
import tempfile
from pathlib import Path

import pytest

import mql_server_backend
from mql_server_backend.backends import InMemoryDataset, InMemoryExecutionBackend, MetricDefinition
from mql_server_backend.exceptions import MqlServerError
from mql_server_backend.models.query_schema import MqlQueryStatus
from mql_server_backend.services import create_service
from mql_server_backend.utils.config import ConfigManager


class TestMqlServerSmoke:
    """Smoke tests for the packaged engine"""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        config_path = Path(self.temp_dir) / "mqlserver.config.json"
        config_path.write_text(json.dumps({
            "query": {"sweep_interval_seconds": 0},
            "cache": {"drop_confirmation_token": "smoke"},
        }), encoding="utf-8")

        self.config_manager = ConfigManager(project_root=self.temp_dir, load_env=False)
        self.backend = InMemoryExecutionBackend(InMemoryDataset(
            rows=[
                {"metric_time": "2024-05-01", "region": "north", "amount": 3.0},
                {"metric_time": "2024-05-02", "region": "south", "amount": 4.5},
            ],
            dimensions=["region"],
            metrics={"sales": MetricDefinition("sales", "amount", "sum")},
        ))

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_package_version(self):
        assert mql_server_backend.__version__ == "0.1.0"

    def test_config_file_is_picked_up(self):
        assert self.config_manager.get("cache.drop_confirmation_token") == "smoke"
        assert self.config_manager.get_config_summary()["config_file_loaded"] is True

    def test_query_round_trip(self):
        with create_service(self.config_manager, backend=self.backend) as service:
            query_id = service.submit_query({
                "model_key": {"organization": "o", "repo": "r", "branch": "main", "commit": "c1"},
                "metrics": ["sales"],
                "add_time_series": True,
            })
            assert service.wait_for_query(query_id, timeout=5) == MqlQueryStatus.SUCCESSFUL

            (series,) = service.get_query_result(query_id)
            assert [datum.y for datum in series.data] == [3.0, 4.5]
            assert service.drop_cache("smoke") is True

    def test_unknown_query_is_rejected(self):
        service = create_service(self.config_manager, backend=self.backend)
        try:
            with pytest.raises(MqlServerError):
                service.get_query_status("missing")
        finally:
            service.shutdown()
