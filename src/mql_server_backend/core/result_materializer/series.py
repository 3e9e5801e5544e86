"""
Conversion of raw result frames into series.

A raw result carries its own shape in the metadata (``metrics``,
``group_by``, ``time_dimension``) so a cached payload converts the same way
as a freshly executed one.
"""

from collections import OrderedDict
from typing import List, Optional

import pandas as pd

from ...exceptions.query_exceptions import MaterializationError, QueryValidationError
from ...models.query_schema import (
    ALL_SERIES_VALUE,
    MqlQueryResultSeries,
    ResultDatum,
    ScalarDatum,
    TimeSeriesDatum,
)
from ..cache_store.types import CachedResult
from ..constraints import as_text

SERIES_VALUE_SEPARATOR = ", "


def _as_float(value, metric: str) -> float:
    if value is None or pd.isna(value):
        return float("nan")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise MaterializationError(
            f"Metric '{metric}' produced a non-numeric value {value!r}",
            {"metric": metric}
        ) from e


def to_series(raw_result: CachedResult, metric: Optional[str] = None) -> List[MqlQueryResultSeries]:
    """
    Split a result frame into one series per distinct cut.

    Args:
        raw_result: Executed result with its shape metadata
        metric: Metric to project; defaults to the first requested metric

    Returns:
        Series in order of first appearance. A result without cut
        dimensions yields a single "ALL" series. An empty frame yields none.
    """
    frame = raw_result.frame
    metadata = raw_result.metadata
    group_by = list(metadata.get("group_by", []))
    time_dimension = metadata.get("time_dimension")
    metrics = list(metadata.get("metrics") or [c for c in frame.columns if c not in group_by])

    if metric is None:
        if not metrics:
            raise QueryValidationError("Result has no metric columns to convert into series")
        metric = metrics[0]
    if metric not in frame.columns:
        raise QueryValidationError(
            f"Metric '{metric}' is not part of the result",
            {"metric": metric, "available": metrics}
        )

    has_time_axis = bool(time_dimension) and time_dimension in group_by and time_dimension in frame.columns
    cuts = [d for d in group_by if d != time_dimension and d in frame.columns]

    grouped: "OrderedDict[str, List[ResultDatum]]" = OrderedDict()
    for row in frame.to_dict(orient="records"):
        if cuts:
            series_value = SERIES_VALUE_SEPARATOR.join(as_text(row[d]) for d in cuts)
        else:
            series_value = ALL_SERIES_VALUE
        points = grouped.setdefault(series_value, [])

        y = _as_float(row[metric], metric)
        if has_time_axis:
            x = row[time_dimension]
            if x is None or pd.isna(x):
                continue
            points.append(TimeSeriesDatum(y=y, x_date=pd.Timestamp(x).to_pydatetime()))
        else:
            points.append(ScalarDatum(y=y))

    series = []
    for series_value, points in grouped.items():
        if has_time_axis:
            points = sorted(points, key=lambda p: p.x_date)
        series.append(MqlQueryResultSeries(series_value=series_value, data=points))
    return series
