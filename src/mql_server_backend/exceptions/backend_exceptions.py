"""
Exceptions raised by external collaborators: the execution backend, the
table store and the semantic model repository.

Backends signal expected compilation or run failures with
QueryExecutionError and lost connectivity with BackendUnavailableError.
Anything else they raise is treated as an unhandled fault.
"""

from typing import Any, Dict, List, Optional

from .base import ErrorSeverity, MqlServerError


class QueryExecutionError(MqlServerError):
    """Expected failure while compiling or running a query (e.g. unknown dimension)."""
    error_code = "query_execution_error"
    severity = ErrorSeverity.MEDIUM


class BackendUnavailableError(MqlServerError):
    """Exception raised when the execution backend cannot be reached."""
    error_code = "backend_unavailable"
    severity = ErrorSeverity.HIGH

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None
    ) -> None:
        super().__init__(
            message,
            details,
            suggestions or ["Check network connectivity to the execution backend"]
        )


class TableStoreError(MqlServerError):
    """Exception raised when the external table store rejects a write."""
    error_code = "table_store_error"
    severity = ErrorSeverity.HIGH


class ModelRepositoryUnavailableError(MqlServerError):
    """Exception raised when no semantic model repository is configured or reachable."""
    error_code = "model_repository_unavailable"
