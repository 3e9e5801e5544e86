"""
Environment variable overrides for configuration management.

Each supported variable maps to a dot-path configuration key and a target
type. Values that fail conversion are logged and skipped.
"""

import json
import logging
import os
from copy import deepcopy
from typing import Any, Dict, Mapping, Optional, Tuple

from ...exceptions.config_exceptions import EnvironmentVariableError


logger = logging.getLogger(__name__)


ENV_MAPPING: Dict[str, Tuple[str, str]] = {
    'MQL_QUERY_RETENTION_SECONDS': ('query.retention_seconds', 'float'),
    'MQL_QUERY_MAX_WORKERS': ('query.max_workers', 'integer'),
    'MQL_QUERY_UNKNOWN_TIMEOUT': ('query.unknown_timeout_seconds', 'float'),
    'MQL_CACHE_ENABLED': ('cache.enabled', 'boolean'),
    'MQL_CACHE_MAX_SIZE': ('cache.max_size', 'integer'),
    'MQL_CACHE_DROP_TOKEN': ('cache.drop_confirmation_token', 'string'),
    'MQL_MATERIALIZER_PAGE_SIZE': ('materializer.page_size', 'integer'),
    'MQL_HEALTH_PROBE_TIMEOUT': ('health.probe_timeout_seconds', 'float'),
    'MQL_LOG_LEVEL': ('logging.level', 'string'),
    'MQL_LOG_FORMAT': ('logging.format', 'string'),
}


class EnvironmentHandler:
    """Applies typed environment variable overrides to a configuration dict."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self.environ = environ
        self.logger = logger

    def _env(self) -> Mapping[str, str]:
        return self.environ if self.environ is not None else os.environ

    def get_env_mapping(self) -> Dict[str, Tuple[str, str]]:
        """Environment variable name -> (configuration key, target type)."""
        return dict(ENV_MAPPING)

    def convert_env_value(self, value: str, target_type: str = 'string', variable_name: Optional[str] = None) -> Any:
        """
        Convert an environment variable string to a Python value.

        Args:
            value: Raw variable value
            target_type: 'string', 'boolean', 'integer', 'float' or 'json'
            variable_name: Variable name for error reporting

        Raises:
            EnvironmentVariableError: If conversion fails
        """
        if value == "":
            return None

        try:
            if target_type == 'boolean':
                return value.strip().lower() in ('true', '1', 'yes', 'on', 'enabled')
            elif target_type == 'integer':
                return int(value)
            elif target_type == 'float':
                return float(value)
            elif target_type == 'json':
                return json.loads(value)
            return value
        except ValueError as e:
            raise EnvironmentVariableError(
                f"Failed to convert environment variable value '{value}' to {target_type}: {e}",
                variable_name
            ) from e

    def apply_environment_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``config`` with environment overrides applied."""
        result = deepcopy(config)
        environ = self._env()

        for env_var, (config_key, target_type) in self.get_env_mapping().items():
            env_value = environ.get(env_var)
            if env_value is None:
                continue
            try:
                converted_value = self.convert_env_value(env_value, target_type, env_var)
            except EnvironmentVariableError as e:
                self.logger.warning(f"Ignoring environment variable {env_var}: {e.message}")
                continue
            set_nested_value(result, config_key, converted_value)
            self.logger.debug(f"Applied environment override: {env_var} -> {config_key}")

        return result

    def active_overrides(self) -> Dict[str, str]:
        """Variables currently set, mapped to the key they override."""
        environ = self._env()
        return {
            env_var: config_key
            for env_var, (config_key, _) in self.get_env_mapping().items()
            if environ.get(env_var) is not None
        }


def set_nested_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """Set a nested value in ``config`` using dot notation."""
    keys = key_path.split('.')
    current = config
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value
