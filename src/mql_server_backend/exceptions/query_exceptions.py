"""
Query-related exceptions for the MQL server backend.

This module defines exceptions raised while validating query specifications,
evaluating constraint trees, and reading the lifecycle state of submitted
queries.
"""

from typing import Any, Dict, List, Optional

from .base import ErrorSeverity, MqlServerError, MqlValidationError


class QueryValidationError(MqlValidationError):
    """Exception raised when a query specification is malformed."""
    error_code = "query_validation_error"


class ConstraintValidationError(QueryValidationError):
    """Exception raised when a constraint tree is malformed."""
    error_code = "constraint_validation_error"

    def __init__(
        self,
        message: str,
        dimension_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        suggestions = [
            "SET constraints take 'values' and nothing else",
            "RANGE constraints take both 'start' and 'stop' and no 'values'",
        ]
        details = dict(details or {})
        if dimension_name:
            details["dimension_name"] = dimension_name
        super().__init__(message, details, suggestions)
        self.dimension_name = dimension_name


class QueryNotFoundError(MqlValidationError):
    """Exception raised when a query id was never issued."""
    error_code = "query_not_found"

    def __init__(self, query_id: str) -> None:
        super().__init__(
            f"Query '{query_id}' not found",
            {"query_id": query_id},
            ["Check the query id returned by submit"]
        )
        self.query_id = query_id


class QueryExpiredError(MqlServerError):
    """Exception raised when a query was evicted after its retention window."""
    error_code = "query_expired"

    def __init__(self, query_id: str) -> None:
        super().__init__(
            f"Query '{query_id}' has expired and its results were released",
            {"query_id": query_id},
            ["Poll results promptly after completion", "Resubmit the query"]
        )
        self.query_id = query_id


class QueryNotReadyError(MqlServerError):
    """Exception raised when results are requested before completion."""
    error_code = "query_not_ready"
    severity = ErrorSeverity.LOW

    def __init__(self, query_id: str, status: Any) -> None:
        status_value = getattr(status, "value", status)
        super().__init__(
            f"Query '{query_id}' is not ready (status: {status_value})",
            {"query_id": query_id, "status": status_value},
            ["Poll the query status until it is terminal"]
        )
        self.query_id = query_id
        self.status = status


class QueryFailedError(MqlServerError):
    """Exception raised when results are requested for a failed query."""
    error_code = "query_failed"
    severity = ErrorSeverity.HIGH

    def __init__(self, query_id: str, status: Any, error: Optional[str] = None) -> None:
        status_value = getattr(status, "value", status)
        message = f"Query '{query_id}' finished with status {status_value}"
        if error:
            message = f"{message}: {error}"
        super().__init__(
            message,
            {"query_id": query_id, "status": status_value, "error": error},
            ["Read the query logs for the failure cause"]
        )
        self.query_id = query_id
        self.status = status
        self.error = error


class InvalidStateTransitionError(MqlServerError):
    """Exception raised on a non-monotonic query status transition."""
    error_code = "invalid_state_transition"
    severity = ErrorSeverity.CRITICAL

    def __init__(self, query_id: str, current: Any, target: Any) -> None:
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            f"Query '{query_id}' cannot move from {current_value} to {target_value}",
            {"query_id": query_id, "current": current_value, "target": target_value}
        )


class InvalidCursorError(MqlValidationError):
    """Exception raised when a pagination cursor is malformed or foreign."""
    error_code = "invalid_cursor"

    def __init__(self, message: str, cursor: Optional[str] = None) -> None:
        super().__init__(
            message,
            {"cursor": cursor} if cursor else None,
            ["Pass the next_cursor value returned by the previous page unchanged"]
        )


class TableLocationError(MqlValidationError):
    """Exception raised when a materialization target is not a valid table name."""
    error_code = "invalid_table_location"


class MaterializationError(MqlServerError):
    """Exception raised when a query result cannot be persisted as a table."""
    error_code = "materialization_error"
    severity = ErrorSeverity.HIGH

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 suggestions: Optional[List[str]] = None) -> None:
        super().__init__(message, details, suggestions)
