"""
Constraint tree value objects.

A constraint tree is a closed tagged union of three variants. Every variant
carries a ``kind`` discriminator so consumers can dispatch exhaustively:

- ``AndConstraint`` (kind ``"and"``): true iff all children are true
- ``OrConstraint`` (kind ``"or"``): true iff any child is true
- ``AtomicConstraint`` (kind ``"atomic"``): a SET or RANGE leaf over one dimension

Well-formedness is checked by ``core.constraints.validate_constraint``, not
at construction, so that malformed trees can still be built, inspected and
reported.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union

from .enums import AtomicConstraintType


@dataclass(frozen=True)
class AtomicConstraint:
    """
    Leaf constraint over a single dimension.

    Attributes:
        constraint_type: SET or RANGE
        dimension_name: Dimension the constraint tests
        values: Allowed values (SET only)
        start: Inclusive lower bound (RANGE only)
        stop: Inclusive upper bound (RANGE only)
    """

    constraint_type: AtomicConstraintType
    dimension_name: str
    values: Optional[Tuple[str, ...]] = None
    start: Optional[Any] = None
    stop: Optional[Any] = None
    kind: str = field(default="atomic", init=False)

    def __post_init__(self) -> None:
        if self.values is not None and not isinstance(self.values, tuple):
            object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True)
class AndConstraint:
    """Conjunction of child constraints. An empty conjunction is true."""

    children: Tuple["ConstraintNode", ...] = ()
    kind: str = field(default="and", init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))


@dataclass(frozen=True)
class OrConstraint:
    """Disjunction of child constraints. An empty disjunction is false."""

    children: Tuple["ConstraintNode", ...] = ()
    kind: str = field(default="or", init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))


ConstraintNode = Union[AndConstraint, OrConstraint, AtomicConstraint]


def set_constraint(dimension_name: str, values) -> AtomicConstraint:
    """Build a SET leaf."""
    return AtomicConstraint(AtomicConstraintType.SET, dimension_name, values=tuple(values))


def range_constraint(dimension_name: str, start: Any, stop: Any) -> AtomicConstraint:
    """Build a RANGE leaf."""
    return AtomicConstraint(AtomicConstraintType.RANGE, dimension_name, start=start, stop=stop)
