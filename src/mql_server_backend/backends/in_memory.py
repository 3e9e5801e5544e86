"""
In-memory reference implementations of the collaborator ports.

InMemoryExecutionBackend runs metric queries over a list of row mappings
with pandas. It is deterministic and is what the CLI and the test suite run
against. Production deployments plug in a warehouse-backed ExecutionBackend.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from ..core.constraints import as_text, evaluate, referenced_dimensions
from ..exceptions.backend_exceptions import (
    BackendUnavailableError,
    ModelRepositoryUnavailableError,
    QueryExecutionError,
    TableStoreError,
)
from ..models.query_schema import ModelKey
from .protocols import ExecutionRequest, LogCallback, TableLocation

logger = logging.getLogger(__name__)

_AGGREGATIONS = {
    "sum": "sum",
    "count": "count",
    "avg": "mean",
    "mean": "mean",
    "min": "min",
    "max": "max",
}


@dataclass(frozen=True)
class MetricDefinition:
    """A metric computed by aggregating one measure column."""
    name: str
    measure: str
    agg: str = "sum"

    def __post_init__(self) -> None:
        if self.agg not in _AGGREGATIONS:
            raise ValueError(
                f"Unsupported aggregation '{self.agg}' for metric '{self.name}'. "
                f"Expected one of: {', '.join(sorted(_AGGREGATIONS))}"
            )


@dataclass
class InMemoryDataset:
    """
    Rows plus the semantic model describing them.

    Attributes:
        rows: Row mappings holding dimension and measure columns
        dimensions: Dimension column names
        metrics: Metric definitions by name
        time_dimension: Name of the time dimension column
    """
    rows: List[Dict[str, Any]]
    dimensions: List[str]
    metrics: Dict[str, MetricDefinition]
    time_dimension: str = "metric_time"

    @property
    def measures(self) -> List[str]:
        return sorted({metric.measure for metric in self.metrics.values()})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InMemoryDataset":
        """
        Build a dataset from a JSON-like mapping::

            {"dimensions": [...], "time_dimension": "metric_time",
             "metrics": {"revenue": {"measure": "amount", "agg": "sum"}},
             "rows": [{...}, ...]}
        """
        metrics = {
            name: MetricDefinition(name=name, measure=spec["measure"], agg=spec.get("agg", "sum"))
            for name, spec in data.get("metrics", {}).items()
        }
        return cls(
            rows=[dict(row) for row in data.get("rows", [])],
            dimensions=list(data.get("dimensions", [])),
            metrics=metrics,
            time_dimension=data.get("time_dimension", "metric_time"),
        )

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryDataset":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


class InMemoryExecutionBackend:
    """
    Executes metric queries over in-memory datasets.

    Datasets are registered per model key. A dataset registered without a
    key serves every model key that has no dedicated dataset.
    """

    def __init__(
        self,
        dataset: Optional[InMemoryDataset] = None,
        latency_seconds: float = 0.0,
    ):
        self._datasets: Dict[ModelKey, InMemoryDataset] = {}
        self._default_dataset = dataset
        self.latency_seconds = latency_seconds
        self.available = True
        self.executions = 0
        self._lock = threading.Lock()
        self.logger = logger

    def register(self, model_key: ModelKey, dataset: InMemoryDataset) -> None:
        with self._lock:
            self._datasets[model_key] = dataset

    def dataset_for(self, model_key: ModelKey) -> InMemoryDataset:
        with self._lock:
            dataset = self._datasets.get(model_key, self._default_dataset)
        if dataset is None:
            raise QueryExecutionError(
                f"No semantic model found for {model_key}",
                {"model_key": model_key.to_dict()}
            )
        return dataset

    def health_check(self) -> None:
        if not self.available:
            raise BackendUnavailableError("In-memory execution backend is marked offline")

    def _validate(self, request: ExecutionRequest, dataset: InMemoryDataset) -> None:
        unknown_metrics = [m for m in request.metrics if m not in dataset.metrics]
        if unknown_metrics:
            raise QueryExecutionError(
                f"Unknown metric(s): {', '.join(unknown_metrics)}",
                {"unknown_metrics": unknown_metrics}
            )

        known_dimensions = set(dataset.dimensions) | {dataset.time_dimension}
        used_dimensions = set(request.group_by)
        if request.where is not None:
            used_dimensions |= referenced_dimensions(request.where)
        unknown_dimensions = sorted(used_dimensions - known_dimensions)
        if unknown_dimensions:
            raise QueryExecutionError(
                f"Unknown dimension(s): {', '.join(unknown_dimensions)}",
                {"unknown_dimensions": unknown_dimensions}
            )

        sortable = set(request.metrics) | set(request.group_by)
        unknown_order = [o for o in request.order if o.lstrip("-") not in sortable]
        if unknown_order:
            raise QueryExecutionError(
                f"Cannot order by column(s) not in the result: {', '.join(unknown_order)}",
                {"unknown_order": unknown_order}
            )

    def execute(self, request: ExecutionRequest, log: LogCallback) -> pd.DataFrame:
        self.health_check()
        dataset = self.dataset_for(request.model_key)
        self._validate(request, dataset)

        with self._lock:
            self.executions += 1

        log(f"Compiled query for metrics {list(request.metrics)} by {list(request.group_by)}")
        if self.latency_seconds:
            time.sleep(self.latency_seconds)

        if request.where is not None:
            rows = [row for row in dataset.rows if evaluate(request.where, row)]
        else:
            rows = list(dataset.rows)
        log(f"Scanned {len(dataset.rows)} rows, {len(rows)} matched the filter")

        measure_columns = sorted({dataset.metrics[m].measure for m in request.metrics})
        columns = list(dict.fromkeys(list(request.group_by) + measure_columns))
        frame = pd.DataFrame(rows, columns=columns)

        if request.time_dimension in frame.columns:
            frame[request.time_dimension] = pd.to_datetime(frame[request.time_dimension])

        aggregations = {
            name: (dataset.metrics[name].measure, _AGGREGATIONS[dataset.metrics[name].agg])
            for name in request.metrics
        }

        if request.group_by:
            result = (
                frame.groupby(list(request.group_by), sort=True, dropna=False)
                .agg(**aggregations)
                .reset_index()
            )
        else:
            result = pd.DataFrame({
                name: [frame[measure].agg(func)]
                for name, (measure, func) in aggregations.items()
            })

        if request.order:
            result = result.sort_values(
                by=[o.lstrip("-") for o in request.order],
                ascending=[not o.startswith("-") for o in request.order],
                kind="mergesort",
            ).reset_index(drop=True)

        if request.limit is not None:
            result = result.head(request.limit).reset_index(drop=True)

        log(f"Produced {len(result)} result rows")
        return result


class InMemoryTableStore:
    """Keeps materialized tables in a dict keyed by location."""

    def __init__(self):
        self._tables: Dict[TableLocation, pd.DataFrame] = {}
        self._lock = threading.Lock()
        self.available = True

    def write_table(self, location: TableLocation, frame: pd.DataFrame) -> None:
        if not self.available:
            raise TableStoreError(f"Table store unavailable; cannot write {location}")
        with self._lock:
            self._tables[location] = frame.copy(deep=True)
        logger.info(f"Materialized {len(frame)} rows into {location}")

    def read_table(self, location: TableLocation) -> pd.DataFrame:
        with self._lock:
            if location not in self._tables:
                raise TableStoreError(f"Table {location} does not exist")
            return self._tables[location].copy(deep=True)

    def list_tables(self) -> List[TableLocation]:
        with self._lock:
            return sorted(self._tables, key=str)


class InMemoryModelRepository:
    """Serves model metadata from the datasets of an InMemoryExecutionBackend."""

    def __init__(self, backend: InMemoryExecutionBackend):
        self.backend = backend

    def _dataset(self, model_key: ModelKey) -> InMemoryDataset:
        try:
            return self.backend.dataset_for(model_key)
        except QueryExecutionError as e:
            raise ModelRepositoryUnavailableError(e.message, e.details) from e

    def list_metrics(self, model_key: ModelKey) -> List[str]:
        return sorted(self._dataset(model_key).metrics)

    def list_measures(self, model_key: ModelKey) -> List[str]:
        return self._dataset(model_key).measures

    def list_dimension_names(self, model_key: ModelKey) -> List[str]:
        dataset = self._dataset(model_key)
        return sorted(set(dataset.dimensions) | {dataset.time_dimension})

    def list_dimension_values(self, model_key: ModelKey, dimension_name: str) -> List[str]:
        dataset = self._dataset(model_key)
        values = {
            as_text(row[dimension_name])
            for row in dataset.rows
            if row.get(dimension_name) is not None
        }
        return sorted(values)
