"""
Constraint tree validation and canonicalization.

``normalize`` produces a canonical, order-independent tree so that
logically equivalent filters fingerprint identically:

- nested nodes of the same operator are flattened
- AND/OR nodes with a single child collapse to that child
- duplicate children are removed and the rest sorted by canonical form
- SET values are deduplicated and sorted
"""

import json
from typing import Any, Dict, List, Set

from ...exceptions.query_exceptions import ConstraintValidationError
from ...models.query_schema import (
    AndConstraint,
    AtomicConstraint,
    AtomicConstraintType,
    ConstraintNode,
    OrConstraint,
)
from .values import as_text, comparable


def check_leaf(leaf: AtomicConstraint) -> None:
    """
    Validate a single leaf.

    Raises:
        ConstraintValidationError: If the field combination does not match the type
    """
    dimension_name = leaf.dimension_name
    if not isinstance(dimension_name, str) or not dimension_name.strip():
        raise ConstraintValidationError("Constraint requires a non-empty 'dimension_name'")

    if leaf.constraint_type is AtomicConstraintType.SET:
        if leaf.values is None:
            raise ConstraintValidationError(
                f"SET constraint on '{dimension_name}' requires 'values'",
                dimension_name=dimension_name
            )
        if leaf.start is not None or leaf.stop is not None:
            raise ConstraintValidationError(
                f"SET constraint on '{dimension_name}' must not set 'start' or 'stop'",
                dimension_name=dimension_name
            )
    elif leaf.constraint_type is AtomicConstraintType.RANGE:
        if leaf.values is not None:
            raise ConstraintValidationError(
                f"RANGE constraint on '{dimension_name}' must not set 'values'",
                dimension_name=dimension_name
            )
        if leaf.start is None or leaf.stop is None:
            raise ConstraintValidationError(
                f"RANGE constraint on '{dimension_name}' requires both 'start' and 'stop'",
                dimension_name=dimension_name
            )
        start, stop = comparable(leaf.start, leaf.stop)
        if start > stop:
            raise ConstraintValidationError(
                f"RANGE constraint on '{dimension_name}' has start {leaf.start!r} after stop {leaf.stop!r}",
                dimension_name=dimension_name
            )
    else:
        raise ConstraintValidationError(
            f"Unsupported constraint type {leaf.constraint_type!r}",
            dimension_name=dimension_name
        )


def validate_constraint(node: ConstraintNode) -> None:
    """
    Recursively validate a constraint tree.

    Raises:
        ConstraintValidationError: On the first malformed node
    """
    if isinstance(node, AtomicConstraint):
        check_leaf(node)
    elif isinstance(node, (AndConstraint, OrConstraint)):
        for child in node.children:
            validate_constraint(child)
    else:
        raise ConstraintValidationError(f"Not a constraint node: {type(node).__name__}")


def to_canonical_dict(node: ConstraintNode) -> Dict[str, Any]:
    """Render a (normalized) tree as a JSON-safe mapping."""
    if isinstance(node, AndConstraint):
        return {"and": [to_canonical_dict(child) for child in node.children]}
    if isinstance(node, OrConstraint):
        return {"or": [to_canonical_dict(child) for child in node.children]}
    if isinstance(node, AtomicConstraint):
        result = {
            "constraint_type": node.constraint_type.value,
            "dimension_name": node.dimension_name,
        }
        if node.constraint_type is AtomicConstraintType.SET:
            result["values"] = [as_text(v) for v in node.values]
        else:
            result["start"] = as_text(node.start)
            result["stop"] = as_text(node.stop)
        return result
    raise ConstraintValidationError(f"Not a constraint node: {type(node).__name__}")


def _sort_key(node: ConstraintNode) -> str:
    return json.dumps(to_canonical_dict(node), sort_keys=True, separators=(",", ":"))


def _normalize_children(node_class, children) -> ConstraintNode:
    flattened: List[ConstraintNode] = []
    for child in children:
        normalized = normalize(child)
        if isinstance(normalized, node_class):
            flattened.extend(normalized.children)
        else:
            flattened.append(normalized)

    unique = {}
    for child in flattened:
        unique.setdefault(_sort_key(child), child)
    ordered = tuple(unique[key] for key in sorted(unique))

    if len(ordered) == 1:
        return ordered[0]
    return node_class(ordered)


def normalize(node: ConstraintNode) -> ConstraintNode:
    """
    Validate and canonicalize a constraint tree.

    Raises:
        ConstraintValidationError: If any leaf is malformed
    """
    if isinstance(node, AtomicConstraint):
        check_leaf(node)
        if node.constraint_type is AtomicConstraintType.SET:
            values = tuple(sorted({as_text(v) for v in node.values}))
            return AtomicConstraint(AtomicConstraintType.SET, node.dimension_name.strip(), values=values)
        return AtomicConstraint(
            AtomicConstraintType.RANGE,
            node.dimension_name.strip(),
            start=node.start,
            stop=node.stop,
        )
    if isinstance(node, AndConstraint):
        return _normalize_children(AndConstraint, node.children)
    if isinstance(node, OrConstraint):
        return _normalize_children(OrConstraint, node.children)
    raise ConstraintValidationError(f"Not a constraint node: {type(node).__name__}")


def referenced_dimensions(node: ConstraintNode) -> Set[str]:
    """Dimension names used anywhere in the tree."""
    if isinstance(node, AtomicConstraint):
        return {node.dimension_name}
    names: Set[str] = set()
    for child in node.children:
        names |= referenced_dimensions(child)
    return names
