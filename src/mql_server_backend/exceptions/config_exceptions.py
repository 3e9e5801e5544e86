"""
Configuration-related exceptions for the MQL server backend.

Raised while layering defaults, the JSON config file, ``MQL_*`` environment
variables and overrides. Structured context (file, failing fields,
variable) lands in ``details`` so ``to_dict`` carries it to callers.
"""

from typing import Any, Dict, List, Optional

from .base import ErrorSeverity, MqlServerError


class ConfigurationError(MqlServerError):
    """Base exception for configuration-related errors."""
    error_code = "configuration_error"
    severity = ErrorSeverity.HIGH

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Args:
            message: Error description
            config_file: Configuration file the error refers to, if any
            suggestions: List of suggested fixes
            details: Extra structured context merged with ``config_file``
        """
        merged = dict(details or {})
        if config_file:
            merged["config_file"] = config_file
        super().__init__(message, merged, suggestions)
        self.config_file = config_file

    def _detail_lines(self) -> List[str]:
        return []

    def __str__(self) -> str:
        parts = [self.message]
        if self.config_file:
            parts.append(f"Config file: {self.config_file}")
        lines = self._detail_lines()
        if lines:
            parts.append("\n".join(lines))
        if self.suggestions:
            parts.append("Try:\n" + "\n".join(f"  - {s}" for s in self.suggestions))
        return "\n\n".join(parts)


class ConfigurationFileNotFoundError(ConfigurationError):
    """Raised when an explicitly requested config file does not exist."""
    error_code = "configuration_file_not_found"

    def __init__(self, message: str, config_file: Optional[str] = None) -> None:
        super().__init__(message, config_file, [
            "Pass an existing file to --config-path",
            "Omit --config-path to fall back to mqlserver.config.json or the built-in defaults",
        ])


class ConfigurationValidationError(ConfigurationError):
    """
    Raised when the merged configuration violates the schema.

    Every schema violation is collected, not just the first one.
    """
    error_code = "configuration_validation_error"

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        validation_errors: Optional[List[str]] = None,
        invalid_fields: Optional[List[str]] = None
    ) -> None:
        self.validation_errors = list(validation_errors or [])
        self.invalid_fields = list(invalid_fields or [])

        suggestions = ["Run 'mql-server config show' to see the effective values"]
        if self.invalid_fields:
            suggestions.insert(0, f"Correct {', '.join(self.invalid_fields)}")

        super().__init__(message, config_file, suggestions, {
            "validation_errors": self.validation_errors,
            "invalid_fields": self.invalid_fields,
        })

    def _detail_lines(self) -> List[str]:
        return [f"  * {error}" for error in self.validation_errors]


class ConfigurationSchemaError(ConfigurationError):
    """Raised when the configuration schema itself is not valid JSON Schema."""
    error_code = "configuration_schema_error"
    severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, schema_errors: Optional[List[str]] = None) -> None:
        self.schema_errors = list(schema_errors or [])
        super().__init__(message, details={"schema_errors": self.schema_errors})


class EnvironmentVariableError(ConfigurationError):
    """Raised when an ``MQL_*`` variable cannot be converted to its config type."""
    error_code = "environment_variable_error"

    def __init__(self, message: str, variable_name: Optional[str] = None) -> None:
        self.variable_name = variable_name
        suggestions = []
        if variable_name:
            suggestions.append(f"Fix or unset {variable_name} (check .env as well as the shell)")
        super().__init__(
            message,
            suggestions=suggestions,
            details={"variable_name": variable_name} if variable_name else None,
        )
