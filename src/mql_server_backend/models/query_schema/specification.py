"""
QuerySpecification immutable input to the query manager.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from ...exceptions.query_exceptions import QueryValidationError
from .constraints import ConstraintNode
from .enums import CacheMode
from .model_key import ModelKey


def _as_str_tuple(value: Any, field_name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    try:
        return tuple(str(item) for item in value)
    except TypeError as e:
        raise QueryValidationError(
            f"Field '{field_name}' must be a list of strings",
            {"field": field_name}
        ) from e


@dataclass(frozen=True)
class QuerySpecification:
    """
    Structured metric query.

    Attributes:
        model_key: Semantic model snapshot to query
        metrics: Metric names to compute
        group_by: Dimensions to cut by
        where: Optional constraint tree
        order: Ordering columns; a leading '-' sorts descending
        limit: Optional maximum number of rows
        add_time_series: Add the time dimension to the group-by
        cache_mode: Cache interaction policy
        post_processors: Named result transforms applied after execution
    """

    model_key: ModelKey
    metrics: Tuple[str, ...]
    group_by: Tuple[str, ...] = ()
    where: Optional[ConstraintNode] = None
    order: Tuple[str, ...] = ()
    limit: Optional[int] = None
    add_time_series: bool = False
    cache_mode: CacheMode = CacheMode.READWRITE
    post_processors: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metrics", _as_str_tuple(self.metrics, "metrics"))
        object.__setattr__(self, "group_by", _as_str_tuple(self.group_by, "group_by"))
        object.__setattr__(self, "order", _as_str_tuple(self.order, "order"))
        object.__setattr__(self, "post_processors", _as_str_tuple(self.post_processors, "post_processors"))
        try:
            object.__setattr__(self, "cache_mode", CacheMode.parse(self.cache_mode))
        except ValueError as e:
            raise QueryValidationError(str(e), {"field": "cache_mode"}) from e

    def with_cache_mode(self, cache_mode: CacheMode) -> "QuerySpecification":
        """Return a copy using a different cache mode."""
        return replace(self, cache_mode=cache_mode)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QuerySpecification":
        """
        Build a specification from a JSON-like mapping.

        Accepted keys: model_key, metrics, group_by, where, order, limit,
        add_time_series, cache_mode, post_processors.
        """
        from ...core.constraints import parse_constraint

        if "model_key" not in data:
            raise QueryValidationError("Query specification is missing 'model_key'")

        where = data.get("where")
        limit = data.get("limit")
        if limit is not None:
            try:
                limit = int(limit)
            except (TypeError, ValueError) as e:
                raise QueryValidationError(
                    f"Field 'limit' must be an integer, got {limit!r}",
                    {"field": "limit"}
                ) from e

        return cls(
            model_key=ModelKey.from_dict(data["model_key"]),
            metrics=data.get("metrics", ()),
            group_by=data.get("group_by", ()),
            where=parse_constraint(where) if where is not None else None,
            order=data.get("order", ()),
            limit=limit,
            add_time_series=bool(data.get("add_time_series", False)),
            cache_mode=data.get("cache_mode", CacheMode.READWRITE),
            post_processors=data.get("post_processors", ()),
        )

    def to_summary(self) -> Dict[str, Any]:
        return {
            "model_key": self.model_key.to_dict(),
            "metrics": list(self.metrics),
            "group_by": list(self.group_by),
            "order": list(self.order),
            "limit": self.limit,
            "add_time_series": self.add_time_series,
            "cache_mode": self.cache_mode.value,
            "post_processors": list(self.post_processors),
        }
