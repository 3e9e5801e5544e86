"""
Transport-agnostic service facade over the query engine.

MqlService wires the query manager, cache store, result materializer and
health aggregator together and exposes the operations an API layer maps to
its endpoints. Errors surface as MqlServerError subclasses; ``error_payload``
turns any exception into the payload such a layer returns.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from ..backends.protocols import ExecutionBackend, ModelRepository, TableStore
from ..core.cache_store import CacheBackend, CacheStore
from ..core.health import HealthAggregator, HealthReportItem, default_probes
from ..core.query_manager import QueryManager, QuerySummary
from ..core.result_materializer import MaterializationResult, TabularOrient, TabularPage
from ..core.result_materializer.materializer import ResultMaterializer
from ..exceptions.backend_exceptions import ModelRepositoryUnavailableError
from ..exceptions.base import ErrorSeverity, MqlServerError
from ..models.query_schema import (
    CacheMode,
    ModelKey,
    MqlQueryResultSeries,
    MqlQueryStatus,
    QuerySpecification,
)
from ..utils.config import ConfigManager

logger = logging.getLogger(__name__)


class MqlService:
    """
    Facade exposing submit, poll, fetch, materialize, cache and health
    operations.

    Use ``create_service`` to build one from configuration. The service
    starts its background sweeper on ``start()`` (or on entering a ``with``
    block) and stops it on ``shutdown()``.
    """

    def __init__(
        self,
        query_manager: QueryManager,
        cache_store: CacheStore,
        materializer: ResultMaterializer,
        health: HealthAggregator,
        model_repository: Optional[ModelRepository] = None,
    ):
        self.query_manager = query_manager
        self.cache_store = cache_store
        self.materializer = materializer
        self.health = health
        self.model_repository = model_repository
        self.logger = logger

    # Lifecycle

    def start(self) -> "MqlService":
        self.query_manager.start()
        return self

    def shutdown(self, wait: bool = True) -> None:
        self.query_manager.shutdown(wait=wait)
        self.health.shutdown()

    def __enter__(self) -> "MqlService":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # Queries

    def submit_query(self, spec: Union[QuerySpecification, Dict[str, Any]]) -> str:
        if not isinstance(spec, QuerySpecification):
            spec = QuerySpecification.from_dict(spec)
        return self.query_manager.submit(spec)

    def get_query_status(self, query_id: str) -> MqlQueryStatus:
        return self.query_manager.status(query_id)

    def get_query_result(self, query_id: str, metric: Optional[str] = None) -> List[MqlQueryResultSeries]:
        return self.query_manager.result(query_id, metric=metric)

    def get_query_result_tabular(
        self,
        query_id: str,
        cursor: Optional[str] = None,
        orient: Union[TabularOrient, str] = TabularOrient.RECORDS,
    ) -> TabularPage:
        return self.materializer.to_tabular(query_id, cursor=cursor, orient=orient)

    def get_query_logs(self, query_id: str, from_line: int = 0, max_lines: Optional[int] = None) -> str:
        return self.query_manager.logs(query_id, from_line=from_line, max_lines=max_lines)

    def list_queries(self, active_only: bool = False, limit: Optional[int] = None) -> List[QuerySummary]:
        return self.query_manager.list(active_only=active_only, limit=limit)

    def wait_for_query(self, query_id: str, timeout: Optional[float] = None) -> MqlQueryStatus:
        return self.query_manager.wait(query_id, timeout=timeout)

    def materialize(
        self,
        spec: Union[QuerySpecification, Dict[str, Any]],
        as_table: str,
        cache_mode: Union[CacheMode, str] = CacheMode.READWRITE,
    ) -> MaterializationResult:
        if not isinstance(spec, QuerySpecification):
            spec = QuerySpecification.from_dict(spec)
        return self.materializer.materialize(spec, as_table, cache_mode)

    # Cache and health

    def drop_cache(self, confirmation_token: Optional[str]) -> bool:
        return self.cache_store.drop_all(confirmation_token)

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache_store.stats()

    def health_report(self) -> List[HealthReportItem]:
        return self.health.report()

    # Model metadata

    def _repository(self) -> ModelRepository:
        if self.model_repository is None:
            raise ModelRepositoryUnavailableError(
                "No semantic model repository is configured",
                suggestions=["Pass a ModelRepository to create_service"]
            )
        return self.model_repository

    def list_metrics(self, model_key: ModelKey) -> List[str]:
        return self._repository().list_metrics(model_key)

    def list_measures(self, model_key: ModelKey) -> List[str]:
        return self._repository().list_measures(model_key)

    def list_dimension_names(self, model_key: ModelKey) -> List[str]:
        return self._repository().list_dimension_names(model_key)

    def list_dimension_values(self, model_key: ModelKey, dimension_name: str) -> List[str]:
        return self._repository().list_dimension_values(model_key, dimension_name)


def create_service(
    config_manager: Optional[ConfigManager] = None,
    backend: Optional[ExecutionBackend] = None,
    table_store: Optional[TableStore] = None,
    model_repository: Optional[ModelRepository] = None,
    cache_backend: Optional[CacheBackend] = None,
    start: bool = False,
) -> MqlService:
    """
    Build a fully wired service from configuration.

    Args:
        config_manager: Configuration source (defaults to ConfigManager())
        backend: Execution backend; required
        table_store: Destination for materialized tables
        model_repository: Source for model metadata pass-throughs
        cache_backend: Storage behind the cache store (in-memory LRU by default)
        start: Start the background sweeper immediately
    """
    if backend is None:
        raise ValueError("create_service requires an execution backend")

    config_manager = config_manager or ConfigManager()
    cache_store = CacheStore.from_config(config_manager, backend=cache_backend)
    query_manager = QueryManager(backend, cache_store=cache_store, config_manager=config_manager)
    materializer = ResultMaterializer(query_manager, table_store=table_store, config_manager=config_manager)
    health = HealthAggregator(
        default_probes(cache_store, backend, query_manager),
        probe_timeout_seconds=float(config_manager.get("health.probe_timeout_seconds", 5.0)),
    )

    service = MqlService(
        query_manager=query_manager,
        cache_store=cache_store,
        materializer=materializer,
        health=health,
        model_repository=model_repository,
    )
    if start:
        service.start()
    logger.info("MQL service created")
    return service


def error_payload(exc: BaseException) -> Dict[str, Any]:
    """Render any exception as a distinguishable error payload."""
    if isinstance(exc, MqlServerError):
        return exc.to_dict()
    return {
        "error_code": "internal_error",
        "message": f"{type(exc).__name__}: {exc}",
        "severity": ErrorSeverity.CRITICAL.value,
    }
