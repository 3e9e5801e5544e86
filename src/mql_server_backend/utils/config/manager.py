"""
Main configuration manager for the MQL server backend.

This module provides the ConfigManager class that layers configuration from
built-in defaults, an optional JSON file, environment variables and explicit
overrides, and validates the result.
"""

import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ...exceptions.config_exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
)
from .environment import EnvironmentHandler, set_nested_value
from .file_operations import FileOperations
from .paths import DEFAULT_CONFIG, ConfigPaths
from .schema_validation import SchemaValidator


logger = logging.getLogger(__name__)

_MISSING = object()


def deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested dicts merge key by key."""
    result = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)
    return result


class ConfigManager:
    """
    Configuration manager for the MQL server backend.

    Sources, later ones winning:
    - DEFAULT_CONFIG
    - the JSON configuration file (optional unless named explicitly)
    - environment variables (after loading ``.env``)
    - ``overrides`` passed by the caller
    """

    def __init__(
        self,
        config_file: Optional[str] = None,
        project_root: Optional[Union[str, Path]] = None,
        load_env: bool = True,
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize the ConfigManager.

        Args:
            config_file: Path to the configuration file (default: mqlserver.config.json)
            project_root: Directory relative paths resolve against (default: cwd)
            load_env: Whether to read the .env file and environment variables
            overrides: Nested values applied last
            environ: Environment mapping to read instead of os.environ
        """
        self.project_root = Path(project_root or os.getcwd()).resolve()
        self.paths = ConfigPaths()
        self.explicit_config_file = config_file is not None
        self.config_file = config_file or self.paths.DEFAULT_CONFIG_FILE
        self.load_env = load_env
        self.overrides = deepcopy(dict(overrides or {}))

        self._config: Dict[str, Any] = {}
        self._loaded = False
        self._config_file_loaded = False

        self.logger = logger

        self.file_ops = FileOperations(self.project_root, self.paths.ENV_FILE)
        self.schema_validator = SchemaValidator()
        self.env_handler = EnvironmentHandler(environ)

        if load_env and environ is None:
            self.file_ops.load_environment_variables()

    @property
    def config(self) -> Dict[str, Any]:
        """Get the current configuration. Loads if not already loaded."""
        if not self._loaded:
            self.load_config()
        return deepcopy(self._config)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load_config(self, force_reload: bool = False, validate: bool = True) -> Dict[str, Any]:
        """
        Load configuration from all sources.

        Raises:
            ConfigurationFileNotFoundError: If an explicitly named file is missing
            ConfigurationError: If the file cannot be parsed
            ConfigurationValidationError: If the merged configuration is invalid
        """
        if self._loaded and not force_reload:
            return deepcopy(self._config)

        merged = deepcopy(DEFAULT_CONFIG)

        try:
            file_config = self.file_ops.load_json_file(self.config_file)
            merged = deep_merge(merged, file_config)
            self._config_file_loaded = True
        except ConfigurationFileNotFoundError:
            if self.explicit_config_file:
                raise
            self._config_file_loaded = False
            self.logger.debug(f"No configuration file at {self.config_file}, using defaults")

        if self.load_env:
            merged = self.env_handler.apply_environment_overrides(merged)

        merged = deep_merge(merged, self.overrides)

        if validate:
            self.schema_validator.validate_config(merged, self.config_file)

        self._config = merged
        self._loaded = True
        self.logger.debug("Configuration loaded")
        return deepcopy(self._config)

    def reload_config(self) -> Dict[str, Any]:
        return self.load_config(force_reload=True)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key using dot notation.

        Args:
            key: Configuration key (e.g. 'query.retention_seconds')
            default: Default value if the key is not found
        """
        if not self._loaded:
            self.load_config()

        value: Any = self._config
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value in memory using dot notation.

        The value is kept as an override so it survives a reload.

        Raises:
            ConfigurationValidationError: If the new value is invalid
        """
        if not self._loaded:
            self.load_config()

        candidate = deepcopy(self._config)
        set_nested_value(candidate, key, value)
        self.schema_validator.validate_config(candidate, self.config_file)

        set_nested_value(self.overrides, key, value)
        self._config = candidate

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def reset(self) -> None:
        """Reset configuration state, forcing a reload on next access."""
        self._config = {}
        self._loaded = False

    def get_config_summary(self) -> Dict[str, Any]:
        """Where the configuration came from, for operator display."""
        if not self._loaded:
            self.load_config()
        return {
            "config_file": str(self.file_ops.resolve_path(self.config_file)),
            "config_file_loaded": self._config_file_loaded,
            "project_root": str(self.project_root),
            "environment_overrides": self.env_handler.active_overrides() if self.load_env else {},
            "config_keys": self._get_all_keys(self._config),
        }

    def _get_all_keys(self, config: Dict[str, Any], prefix: str = "") -> List[str]:
        keys = []
        for key, value in config.items():
            full_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                keys.extend(self._get_all_keys(value, full_key))
            else:
                keys.append(full_key)
        return keys

    def require(self, key: str) -> Any:
        """
        Get a value that must be set.

        Raises:
            ConfigurationError: If the key is missing or null
        """
        value = self.get(key)
        if value is None:
            raise ConfigurationError(
                f"Required configuration value '{key}' is not set",
                self.config_file,
                [f"Set '{key}' in {self.config_file} or through its environment variable"]
            )
        return value
