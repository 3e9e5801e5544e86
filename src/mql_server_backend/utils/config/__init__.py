"""Configuration management package.

This package provides a layered configuration system with support for:
- Built-in defaults
- An optional JSON configuration file
- Environment variable overrides (including .env files)
- JSON schema validation

Usage:
    from mql_server_backend.utils.config import ConfigManager

    config = ConfigManager()
    retention = config.get("query.retention_seconds", 3600)
"""

from .manager import ConfigManager, deep_merge
from .paths import DEFAULT_CONFIG, ConfigPaths
from .file_operations import FileOperations
from .schema_validation import CONFIG_SCHEMA, SchemaValidator
from .environment import ENV_MAPPING, EnvironmentHandler

__all__ = [
    'ConfigManager',
    'deep_merge',
    'DEFAULT_CONFIG',
    'ConfigPaths',
    'FileOperations',
    'CONFIG_SCHEMA',
    'SchemaValidator',
    'ENV_MAPPING',
    'EnvironmentHandler',
]
