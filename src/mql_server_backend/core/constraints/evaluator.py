"""
Constraint tree evaluation over dimension values.
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
from .normalizer import check_leaf
from .values import as_text, in_range, is_missing


def _leaf_value(leaf: AtomicConstraint, row: Any) -> Any:
    if isinstance(row, Mapping):
        return row.get(leaf.dimension_name)
    return row


def _evaluate_leaf(leaf: AtomicConstraint, row: Any) -> bool:
    check_leaf(leaf)
    value = _leaf_value(leaf, row)
    if is_missing(value):
        return False
    if leaf.constraint_type is AtomicConstraintType.SET:
        return as_text(value) in {as_text(v) for v in leaf.values}
    return in_range(value, leaf.start, leaf.stop)


def evaluate(node: ConstraintNode, row: Any) -> bool:
    """
    Apply a constraint tree to a row.

    Args:
        node: Constraint tree (normalized or not)
        row: Mapping of dimension name to value, or a bare value that every
            leaf is tested against

    Returns:
        True if the row satisfies the tree

    Raises:
        ConstraintValidationError: If a leaf is malformed
    """
    if isinstance(node, AndConstraint):
        return all(evaluate(child, row) for child in node.children)
    if isinstance(node, OrConstraint):
        return any(evaluate(child, row) for child in node.children)
    if isinstance(node, AtomicConstraint):
        return _evaluate_leaf(node, row)
    raise ConstraintValidationError(f"Not a constraint node: {type(node).__name__}")
