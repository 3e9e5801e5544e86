"""
Constraint evaluation package.

Parses, validates, normalizes and evaluates boolean filter trees over
dimension values. Pure and stateless.

Usage:
    from mql_server_backend.core.constraints import parse_constraint, normalize, evaluate

    node = parse_constraint({"or": [
        {"constraint_type": "SET", "dimension_name": "country", "values": ["US"]},
        {"constraint_type": "RANGE", "dimension_name": "metric_time",
         "start": "2020-01-01", "stop": "2020-01-31"},
    ]})
    evaluate(normalize(node), {"country": "CA", "metric_time": "2020-01-15"})  # True
"""

from .parser import parse_constraint
from .normalizer import (
    validate_constraint,
    normalize,
    to_canonical_dict,
    referenced_dimensions,
)
from .evaluator import evaluate
from .values import as_text

__all__ = [
    "parse_constraint",
    "validate_constraint",
    "normalize",
    "to_canonical_dict",
    "referenced_dimensions",
    "evaluate",
    "as_text",
]
