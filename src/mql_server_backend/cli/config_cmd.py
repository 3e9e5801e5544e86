"""
Configuration commands for the MQL server CLI.
"""

import json

import typer
from rich import print as rprint
from rich.console import Console

from ..exceptions.config_exceptions import ConfigurationError
from .context import get_config_manager

console = Console()

config_app = typer.Typer(help="Inspect configuration")

_SECRET_KEYS = {"drop_confirmation_token"}


def _mask(config):
    if isinstance(config, dict):
        return {
            key: ("***" if key in _SECRET_KEYS and value else _mask(value))
            for key, value in config.items()
        }
    return config


@config_app.command("show")
def show(
    reveal: bool = typer.Option(False, "--reveal", help="Print secrets unmasked"),
) -> None:
    """Print the effective configuration and where it came from."""
    config_manager = get_config_manager()
    config = config_manager.config
    console.print_json(json.dumps({
        "config": config if reveal else _mask(config),
        "source": config_manager.get_config_summary(),
    }))


@config_app.command("validate")
def validate() -> None:
    """Reload and validate the configuration."""
    config_manager = get_config_manager()
    try:
        config_manager.reload_config()
    except ConfigurationError as e:
        rprint(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1)
    rprint("[green]Configuration is valid[/green]")
