"""
Cache-related exceptions for the MQL server backend.
"""

from .base import ErrorSeverity, MqlServerError


class CacheError(MqlServerError):
    """Exception raised when the cache backend cannot be read or written."""
    error_code = "cache_error"
    severity = ErrorSeverity.MEDIUM


class CacheUnavailableError(CacheError):
    """Exception raised when the cache backend is unreachable."""
    error_code = "cache_unavailable"
