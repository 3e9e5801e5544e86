"""
Query Schema Package for the MQL server backend.

Public API:
- Enums: MqlQueryStatus, CacheMode, AtomicConstraintType
- Value objects: ModelKey, QuerySpecification
- Constraint tree: AndConstraint, OrConstraint, AtomicConstraint, ConstraintNode
- Results: MqlQueryResultSeries, TimeSeriesDatum, ScalarDatum, ResultDatum
"""

from .enums import (
    MqlQueryStatus,
    CacheMode,
    AtomicConstraintType,
    TERMINAL_STATUSES,
    ACTIVE_STATUSES,
)

from .model_key import ModelKey

from .constraints import (
    AndConstraint,
    OrConstraint,
    AtomicConstraint,
    ConstraintNode,
    set_constraint,
    range_constraint,
)

from .specification import QuerySpecification

from .results import (
    ALL_SERIES_VALUE,
    MqlQueryResultSeries,
    TimeSeriesDatum,
    ScalarDatum,
    ResultDatum,
)

__all__ = [
    # Enums
    'MqlQueryStatus',
    'CacheMode',
    'AtomicConstraintType',
    'TERMINAL_STATUSES',
    'ACTIVE_STATUSES',

    # Value objects
    'ModelKey',
    'QuerySpecification',

    # Constraint tree
    'AndConstraint',
    'OrConstraint',
    'AtomicConstraint',
    'ConstraintNode',
    'set_constraint',
    'range_constraint',

    # Results
    'ALL_SERIES_VALUE',
    'MqlQueryResultSeries',
    'TimeSeriesDatum',
    'ScalarDatum',
    'ResultDatum',
]
