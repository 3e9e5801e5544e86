"""
Port interfaces for the engine's external collaborators.

These protocols define the contracts the engine relies on. The engine
depends only on these interfaces, not on concrete implementations:

- ExecutionBackend: compiles and runs metric queries against a warehouse
- TableStore: persists materialized result tables
- ModelRepository: serves semantic model metadata for a model key
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple, runtime_checkable

import pandas as pd

from ..models.query_schema import ConstraintNode, ModelKey

LogCallback = Callable[[str], None]


@dataclass(frozen=True)
class ExecutionRequest:
    """
    What the engine hands to an execution backend.

    ``group_by`` already includes the time dimension when the query asked
    for a time series, and ``where`` is normalized.
    """
    query_id: str
    model_key: ModelKey
    metrics: Tuple[str, ...]
    group_by: Tuple[str, ...]
    where: Optional[ConstraintNode]
    order: Tuple[str, ...]
    limit: Optional[int]
    time_dimension: str


@runtime_checkable
class ExecutionBackend(Protocol):
    """Port for query execution."""

    def execute(self, request: ExecutionRequest, log: LogCallback) -> pd.DataFrame:
        """
        Run a query and return one row per cut with one column per metric.

        Raises:
            QueryExecutionError: Expected compile/run failure
            BackendUnavailableError: Backend unreachable
        """
        ...

    def health_check(self) -> None:
        """
        Raises:
            BackendUnavailableError: Backend unreachable
        """
        ...


@dataclass(frozen=True)
class TableLocation:
    """Location of a materialized table."""
    schema: str
    table: str

    def __str__(self) -> str:
        return f"{self.schema}.{self.table}"


@runtime_checkable
class TableStore(Protocol):
    """Port for materialized table persistence."""

    def write_table(self, location: TableLocation, frame: pd.DataFrame) -> None:
        """
        Raises:
            TableStoreError: If the write is rejected
        """
        ...


@runtime_checkable
class ModelRepository(Protocol):
    """Port for semantic model metadata."""

    def list_metrics(self, model_key: ModelKey) -> List[str]:
        ...

    def list_measures(self, model_key: ModelKey) -> List[str]:
        ...

    def list_dimension_names(self, model_key: ModelKey) -> List[str]:
        ...

    def list_dimension_values(self, model_key: ModelKey, dimension_name: str) -> List[str]:
        ...
