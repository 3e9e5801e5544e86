"""
Schema validation for configuration management.

The configuration schema is embedded so validation never depends on files
shipped next to the process.
"""

import logging
from typing import Any, Dict, Optional

import jsonschema

from ...exceptions.config_exceptions import (
    ConfigurationSchemaError,
    ConfigurationValidationError,
)


logger = logging.getLogger(__name__)

_NULLABLE_STRING = {"type": ["string", "null"]}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "query": {
            "type": "object",
            "properties": {
                "retention_seconds": {"type": "number", "minimum": 0},
                "max_workers": {"type": "integer", "minimum": 1},
                "sweep_interval_seconds": {"type": "number", "minimum": 0},
                "unknown_timeout_seconds": {"type": "number", "minimum": 0},
                "time_dimension": {"type": "string", "minLength": 1},
            },
        },
        "cache": {
            "type": "object",
            "properties": {
                "enabled": {"type": "boolean"},
                "max_size": {"type": "integer", "minimum": 1},
                "ttl_seconds": {"type": ["number", "null"], "exclusiveMinimum": 0},
                "drop_confirmation_token": _NULLABLE_STRING,
            },
        },
        "materializer": {
            "type": "object",
            "properties": {
                "page_size": {"type": "integer", "minimum": 1},
                "default_schema": {"type": "string", "pattern": "^[A-Za-z_][A-Za-z0-9_]*$"},
                "wait_timeout_seconds": {"type": "number", "minimum": 0},
            },
        },
        "health": {
            "type": "object",
            "properties": {
                "probe_timeout_seconds": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
                                   "debug", "info", "warning", "error", "critical"]},
                "format": {"enum": ["text", "json", "detailed"]},
                "file": _NULLABLE_STRING,
            },
        },
    },
}


class SchemaValidator:
    """
    Validates configuration dicts against a JSON schema and reports every
    violation at once.
    """

    def __init__(self, schema: Optional[Dict[str, Any]] = None) -> None:
        self.schema = schema if schema is not None else CONFIG_SCHEMA
        self.logger = logger

    def validate_config(self, config: Dict[str, Any], config_file: str = "unknown") -> bool:
        """
        Raises:
            ConfigurationValidationError: If validation fails
            ConfigurationSchemaError: If the schema itself is invalid
        """
        try:
            validator_class = jsonschema.validators.validator_for(self.schema)
            validator_class.check_schema(self.schema)
        except jsonschema.SchemaError as e:
            raise ConfigurationSchemaError(
                f"Invalid JSON schema: {e.message}",
                schema_errors=[e.message]
            ) from e

        errors = sorted(
            validator_class(self.schema).iter_errors(config),
            key=lambda error: list(error.absolute_path),
        )
        if not errors:
            return True

        validation_errors = []
        invalid_fields = []
        for error in errors:
            field_path = ".".join(str(p) for p in error.absolute_path)
            validation_errors.append(f"{field_path or '<root>'}: {error.message}")
            if field_path:
                invalid_fields.append(field_path)

        self.logger.error(f"Configuration validation failed with {len(errors)} error(s)")
        raise ConfigurationValidationError(
            f"Configuration validation failed: {errors[0].message}",
            config_file,
            validation_errors,
            invalid_fields
        )
