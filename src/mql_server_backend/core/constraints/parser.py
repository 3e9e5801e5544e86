"""
Constraint tree parsing from JSON-like mappings.

Accepted forms::

    {"and": [<node>, ...]}
    {"or": [<node>, ...]}
    {"constraint_type": "SET", "dimension_name": "country", "values": ["US", "CA"]}
    {"constraint_type": "RANGE", "dimension_name": "metric_time",
     "start": "2020-01-01", "stop": "2020-01-31"}

Parsing only checks structure. Leaf well-formedness is checked by
``validate_constraint`` so every malformed tree is reported the same way.
"""

from typing import Any, Mapping

from ...exceptions.query_exceptions import ConstraintValidationError
from ...models.query_schema import (
    AndConstraint,
    AtomicConstraint,
    AtomicConstraintType,
    ConstraintNode,
    OrConstraint,
)

_LEAF_KEYS = {"constraint_type", "dimension_name", "values", "start", "stop"}


def parse_constraint(data: Any) -> ConstraintNode:
    """
    Parse a constraint tree.

    Already-built nodes are returned unchanged.

    Raises:
        ConstraintValidationError: If the mapping is not a recognizable node
    """
    if isinstance(data, (AndConstraint, OrConstraint, AtomicConstraint)):
        return data

    if not isinstance(data, Mapping):
        raise ConstraintValidationError(
            f"Constraint must be a mapping, got {type(data).__name__}"
        )

    lowered = {str(k).lower(): v for k, v in data.items()}

    for operator, node_class in (("and", AndConstraint), ("or", OrConstraint)):
        if operator in lowered:
            if len(lowered) != 1:
                raise ConstraintValidationError(
                    f"'{operator}' node must not carry other keys: {sorted(lowered)}"
                )
            children = lowered[operator]
            if isinstance(children, (str, bytes)) or not hasattr(children, "__iter__"):
                raise ConstraintValidationError(f"'{operator}' node requires a list of children")
            return node_class(tuple(parse_constraint(child) for child in children))

    unknown_keys = set(lowered) - _LEAF_KEYS
    if unknown_keys:
        raise ConstraintValidationError(
            f"Unknown constraint keys: {sorted(unknown_keys)}"
        )

    if "constraint_type" not in lowered:
        raise ConstraintValidationError("Leaf constraint requires 'constraint_type'")

    try:
        constraint_type = AtomicConstraintType.parse(lowered["constraint_type"])
    except ValueError as e:
        raise ConstraintValidationError(str(e)) from e

    values = lowered.get("values")
    if values is not None:
        if isinstance(values, (str, bytes)) or not hasattr(values, "__iter__"):
            raise ConstraintValidationError(
                "'values' must be a list",
                dimension_name=lowered.get("dimension_name")
            )
        values = tuple(str(v) for v in values)

    return AtomicConstraint(
        constraint_type=constraint_type,
        dimension_name=lowered.get("dimension_name"),
        values=values,
        start=lowered.get("start"),
        stop=lowered.get("stop"),
    )
