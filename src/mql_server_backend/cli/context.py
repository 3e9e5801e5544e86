"""
Shared CLI state: the configuration manager for the current invocation.
"""

from typing import Optional

import typer
from rich import print as rprint

from ..exceptions.config_exceptions import ConfigurationError
from ..utils.config import ConfigManager

_config_manager: Optional[ConfigManager] = None
_config_path: Optional[str] = None


def set_config_path(config_path: Optional[str]) -> None:
    """Select the configuration file and drop any previously loaded manager."""
    global _config_manager, _config_path
    _config_path = config_path
    _config_manager = None


def get_config_manager() -> ConfigManager:
    """
    Get or create the configuration manager for this invocation.

    Raises:
        typer.Exit: If configuration loading fails
    """
    global _config_manager

    if _config_manager is None:
        try:
            manager = ConfigManager(config_file=_config_path, load_env=True)
            manager.load_config()
        except ConfigurationError as e:
            rprint(f"[red]Configuration Error:[/red] {e}")
            raise typer.Exit(1)
        _config_manager = manager

    return _config_manager
