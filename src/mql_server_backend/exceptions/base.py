"""
Base exception classes for the MQL server backend.

Every error raised by the engine derives from MqlServerError so that the
surrounding API layer can render a distinguishable payload (error code,
message, details and suggestions) without inspecting exception internals.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels with ordering support."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __lt__(self, other):
        """Enable ordering of severity levels."""
        if not isinstance(other, ErrorSeverity):
            return NotImplemented

        order = {
            ErrorSeverity.LOW: 1,
            ErrorSeverity.MEDIUM: 2,
            ErrorSeverity.HIGH: 3,
            ErrorSeverity.CRITICAL: 4
        }
        return order[self] < order[other]


class MqlServerError(Exception):
    """
    Base exception for all MQL server errors.

    Subclasses override ``error_code`` with a stable, machine-readable
    identifier. The code is what transport layers map to status codes.
    """

    error_code: str = "mql_server_error"
    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None
    ) -> None:
        """
        Initialize the error.

        Args:
            message: Error description
            details: Structured context (query id, fingerprint, ...)
            suggestions: List of suggested fixes
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []

    def __str__(self) -> str:
        """Return formatted error message with suggestions."""
        msg = self.message

        if self.suggestions:
            msg += "\n\nSuggestions:"
            for i, suggestion in enumerate(self.suggestions, 1):
                msg += f"\n  {i}. {suggestion}"

        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
        }
        if self.details:
            result["details"] = dict(self.details)
        if self.suggestions:
            result["suggestions"] = list(self.suggestions)
        return result


class MqlValidationError(MqlServerError):
    """Base exception for requests rejected synchronously before execution."""
    error_code = "validation_error"
    severity = ErrorSeverity.LOW
