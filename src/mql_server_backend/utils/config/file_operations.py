"""
Config file and ``.env`` access for ConfigManager.

Relative paths resolve against the project root. Only ``MQL_*`` entries of
a ``.env`` file reach the process environment, and variables the process
already has are never replaced.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Union

from dotenv import dotenv_values

from ...exceptions.config_exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "MQL_"


class FileOperations:
    """Reads the JSON config file and the ``.env`` file for one project root."""

    def __init__(self, project_root: Path, env_file: str) -> None:
        self.project_root = project_root
        self.env_file = env_file
        self.logger = logger

    def resolve_path(self, path: Union[str, Path]) -> Path:
        path_obj = Path(path)
        if path_obj.is_absolute():
            return path_obj
        return (self.project_root / path_obj).resolve()

    def load_environment_variables(self) -> List[str]:
        """
        Export the ``MQL_*`` entries of the ``.env`` file into ``os.environ``.

        Returns:
            Names of the variables that were exported
        """
        env_path = self.resolve_path(self.env_file)
        if not env_path.is_file():
            self.logger.debug(f"No {self.env_file} at {env_path}")
            return []

        exported = []
        for name, value in dotenv_values(env_path).items():
            if not name.startswith(ENV_PREFIX) or value is None or name in os.environ:
                continue
            os.environ[name] = value
            exported.append(name)

        if exported:
            self.logger.info(f"Exported {', '.join(sorted(exported))} from {env_path}")
        return exported

    def load_json_file(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Read a configuration file holding one JSON object.

        Raises:
            ConfigurationFileNotFoundError: If the file doesn't exist
            ConfigurationError: If the file is unreadable or not a JSON object
        """
        path = self.resolve_path(file_path)
        if not path.is_file():
            raise ConfigurationFileNotFoundError(f"Configuration file not found: {path}", str(path))

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise self._read_error(path, f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}") from e
        except OSError as e:
            raise self._read_error(path, f"Cannot read file: {e}") from e

        if not isinstance(data, dict):
            raise self._read_error(path, f"Top level must be a JSON object, not {type(data).__name__}")

        self.logger.info(f"Loaded configuration from {path}")
        return data

    def _read_error(self, path: Path, reason: str) -> ConfigurationError:
        self.logger.error(f"{path}: {reason}")
        return ConfigurationError(f"{reason} ({path})", str(path))
