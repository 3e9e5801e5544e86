"""
Configuration file names and built-in defaults for the MQL server backend.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class ConfigPaths:
    """Configuration file paths and constants."""

    DEFAULT_CONFIG_FILE: str = "mqlserver.config.json"
    ENV_FILE: str = ".env"


DEFAULT_CONFIG: Dict[str, Any] = {
    "query": {
        "retention_seconds": 3600,
        "max_workers": 4,
        "sweep_interval_seconds": 30,
        "unknown_timeout_seconds": 300,
        "time_dimension": "metric_time",
    },
    "cache": {
        "enabled": True,
        "max_size": 1000,
        "ttl_seconds": None,
        "drop_confirmation_token": None,
    },
    "materializer": {
        "page_size": 1000,
        "default_schema": "mql",
        "wait_timeout_seconds": 600,
    },
    "health": {
        "probe_timeout_seconds": 5.0,
    },
    "logging": {
        "level": "INFO",
        "format": "text",
        "file": None,
    },
}
