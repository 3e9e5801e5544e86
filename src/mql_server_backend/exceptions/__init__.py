"""
Exceptions package for the MQL server backend.

This package contains custom exception classes for the error scenarios of
the query engine: synchronous validation failures, lifecycle conditions,
execution failures, connectivity degradation, cache and configuration
errors.
"""

from .base import (
    ErrorSeverity,
    MqlServerError,
    MqlValidationError,
)

from .query_exceptions import (
    QueryValidationError,
    ConstraintValidationError,
    QueryNotFoundError,
    QueryExpiredError,
    QueryNotReadyError,
    QueryFailedError,
    InvalidStateTransitionError,
    InvalidCursorError,
    TableLocationError,
    MaterializationError,
)

from .cache_exceptions import (
    CacheError,
    CacheUnavailableError,
)

from .backend_exceptions import (
    QueryExecutionError,
    BackendUnavailableError,
    TableStoreError,
    ModelRepositoryUnavailableError,
)

from .config_exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
    ConfigurationSchemaError,
    EnvironmentVariableError,
)

__all__ = [
    # Base
    "ErrorSeverity",
    "MqlServerError",
    "MqlValidationError",
    # Query
    "QueryValidationError",
    "ConstraintValidationError",
    "QueryNotFoundError",
    "QueryExpiredError",
    "QueryNotReadyError",
    "QueryFailedError",
    "InvalidStateTransitionError",
    "InvalidCursorError",
    "TableLocationError",
    "MaterializationError",
    # Cache
    "CacheError",
    "CacheUnavailableError",
    # Backends
    "QueryExecutionError",
    "BackendUnavailableError",
    "TableStoreError",
    "ModelRepositoryUnavailableError",
    # Configuration
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "ConfigurationValidationError",
    "ConfigurationSchemaError",
    "EnvironmentVariableError",
]
