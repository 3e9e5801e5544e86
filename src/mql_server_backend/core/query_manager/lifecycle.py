"""
Query status state machine.

Transitions are monotonic: a terminal status never changes again and
UNKNOWN only ever resolves forward.
"""

from typing import Dict, FrozenSet

from ...exceptions.query_exceptions import InvalidStateTransitionError
from ...models.query_schema import MqlQueryStatus

LEGAL_TRANSITIONS: Dict[MqlQueryStatus, FrozenSet[MqlQueryStatus]] = {
    MqlQueryStatus.PENDING: frozenset({
        MqlQueryStatus.RUNNING,
        MqlQueryStatus.UNKNOWN,
        MqlQueryStatus.FAILED,
    }),
    MqlQueryStatus.RUNNING: frozenset({
        MqlQueryStatus.SUCCESSFUL,
        MqlQueryStatus.FAILED,
        MqlQueryStatus.UNHANDLED_EXCEPTION,
        MqlQueryStatus.UNKNOWN,
    }),
    MqlQueryStatus.UNKNOWN: frozenset({
        MqlQueryStatus.SUCCESSFUL,
        MqlQueryStatus.FAILED,
        MqlQueryStatus.UNHANDLED_EXCEPTION,
    }),
    MqlQueryStatus.SUCCESSFUL: frozenset(),
    MqlQueryStatus.FAILED: frozenset(),
    MqlQueryStatus.UNHANDLED_EXCEPTION: frozenset(),
}


def can_transition(current: MqlQueryStatus, target: MqlQueryStatus) -> bool:
    return target in LEGAL_TRANSITIONS[current]


def check_transition(query_id: str, current: MqlQueryStatus, target: MqlQueryStatus) -> None:
    """
    Raises:
        InvalidStateTransitionError: If ``current -> target`` is not allowed
    """
    if not can_transition(current, target):
        raise InvalidStateTransitionError(query_id, current, target)
