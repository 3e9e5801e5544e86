"""
Enumeration types for the query schema.

This module defines the explicit option sets consumed by the engine: query
lifecycle status, cache interaction mode and atomic constraint type.
"""

from enum import Enum
from typing import Any


class _ParseableEnum(Enum):
    """Enum that accepts its value or member name case-insensitively."""

    @classmethod
    def parse(cls, value: Any):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.name == normalized or str(member.value).upper() == normalized:
                    return member
        raise ValueError(
            f"Invalid {cls.__name__} '{value}'. "
            f"Expected one of: {', '.join(m.name for m in cls)}"
        )

    def __str__(self) -> str:
        return self.value


class MqlQueryStatus(_ParseableEnum):
    """Lifecycle status of a submitted query."""
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"
    UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"
    UNKNOWN = "UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


TERMINAL_STATUSES = frozenset({
    MqlQueryStatus.SUCCESSFUL,
    MqlQueryStatus.FAILED,
    MqlQueryStatus.UNHANDLED_EXCEPTION,
})

# UNKNOWN is a degraded signal, not a terminal state, so it counts as active.
ACTIVE_STATUSES = frozenset({
    MqlQueryStatus.PENDING,
    MqlQueryStatus.RUNNING,
    MqlQueryStatus.UNKNOWN,
})


class CacheMode(_ParseableEnum):
    """Policy controlling whether a query checks and/or writes the result cache."""
    READ = "READ"
    READWRITE = "READWRITE"
    WRITE = "WRITE"
    IGNORE = "IGNORE"

    @property
    def reads_cache(self) -> bool:
        return self in (CacheMode.READ, CacheMode.READWRITE)

    @property
    def writes_cache(self) -> bool:
        return self in (CacheMode.READWRITE, CacheMode.WRITE)


class AtomicConstraintType(_ParseableEnum):
    """Leaf constraint kinds."""
    SET = "SET"
    RANGE = "RANGE"
