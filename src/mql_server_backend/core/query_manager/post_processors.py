"""
Named result transforms applied after execution.

A post-processor takes the result frame and returns a new one. It runs
before the result is cached, so the processor names are part of the
query fingerprint.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Sequence

import pandas as pd

from ...exceptions.query_exceptions import QueryValidationError


@dataclass(frozen=True)
class PostProcessContext:
    metrics: Sequence[str]
    group_by: Sequence[str]
    time_dimension: str


PostProcessor = Callable[[pd.DataFrame, PostProcessContext], pd.DataFrame]

_REGISTRY: Dict[str, PostProcessor] = {}

logger = logging.getLogger(__name__)


def register_post_processor(name: str):
    """Decorator registering a post-processor under ``name``."""
    def decorator(func: PostProcessor) -> PostProcessor:
        _REGISTRY[name] = func
        return func
    return decorator


def available_post_processors() -> List[str]:
    return sorted(_REGISTRY)


def validate_post_processors(names: Iterable[str]) -> None:
    unknown = [name for name in names if name not in _REGISTRY]
    if unknown:
        raise QueryValidationError(
            f"Unknown post-processor(s): {', '.join(unknown)}",
            {"unknown": unknown, "available": available_post_processors()},
            [f"Use one of: {', '.join(available_post_processors())}"]
        )


def apply_post_processors(
    frame: pd.DataFrame,
    names: Sequence[str],
    context: PostProcessContext,
) -> pd.DataFrame:
    validate_post_processors(names)
    for name in names:
        logger.debug(f"Applying post-processor {name}")
        frame = _REGISTRY[name](frame, context)
    return frame


def _present_metrics(frame: pd.DataFrame, context: PostProcessContext) -> List[str]:
    return [m for m in context.metrics if m in frame.columns]


@register_post_processor("drop_null_metrics")
def drop_null_metrics(frame: pd.DataFrame, context: PostProcessContext) -> pd.DataFrame:
    """Drop rows where every metric is null."""
    metrics = _present_metrics(frame, context)
    if not metrics:
        return frame
    return frame.dropna(subset=metrics, how="all").reset_index(drop=True)


@register_post_processor("fill_null_metrics")
def fill_null_metrics(frame: pd.DataFrame, context: PostProcessContext) -> pd.DataFrame:
    """Replace null metric values with zero."""
    metrics = _present_metrics(frame, context)
    if not metrics:
        return frame
    filled = frame.copy()
    filled[metrics] = filled[metrics].fillna(0)
    return filled


@register_post_processor("sort_by_time")
def sort_by_time(frame: pd.DataFrame, context: PostProcessContext) -> pd.DataFrame:
    """Stable sort on the time dimension, when present."""
    if context.time_dimension not in frame.columns:
        return frame
    return frame.sort_values(by=context.time_dimension, kind="mergesort").reset_index(drop=True)
