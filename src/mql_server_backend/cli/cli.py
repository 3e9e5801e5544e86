"""
MQL server operator CLI.

Main entry point for the ``mql-server`` command. It runs queries against a
local JSON dataset through the full engine (cache, lifecycle, materializer),
prints fingerprints and health, and shows the effective configuration.
"""

import json
import logging
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .. import __version__
from ..exceptions.base import MqlServerError
from ..utils.config import ConfigManager
from ..utils.logging_config import configure_logging_from_config
from .config_cmd import config_app
from .context import get_config_manager, set_config_path
from .query import build_local_service, query_app

console = Console()

app = typer.Typer(
    name="mql-server",
    help="Operator tool for the MQL query execution and caching engine",
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.add_typer(query_app, name="query", help="Run queries and inspect fingerprints")
app.add_typer(config_app, name="config", help="Inspect configuration")


def setup_logging(config_manager: ConfigManager, verbose: bool = False) -> logging.Logger:
    """Route process logs through a RichHandler on stderr."""
    rich_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    configure_logging_from_config(
        config_manager,
        console_handler=rich_handler,
        level_override="DEBUG" if verbose else None,
    )
    return logging.getLogger("mql_server_backend")


@app.callback()
def main(
    config_path: Optional[str] = typer.Option(
        None,
        "--config-path",
        "-c",
        help="Path to configuration file (default: mqlserver.config.json)",
        metavar="PATH",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging (DEBUG level)",
    ),
) -> None:
    """
    MQL server CLI.

    Common workflows:
    • Run a query: mql-server query run spec.json --dataset data.json
    • Fingerprint a query: mql-server query fingerprint spec.json
    • Check component health: mql-server health
    """
    set_config_path(config_path)
    setup_logging(get_config_manager(), verbose)


@app.command()
def health(
    dataset: Optional[str] = typer.Option(
        None, "--dataset", "-d", help="JSON dataset for the in-memory backend"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Probe the cache, execution backend and query manager."""
    try:
        service, _ = build_local_service(get_config_manager(), dataset)
    except (MqlServerError, OSError, ValueError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    with service:
        report = service.health_report()

    if as_json:
        console.print_json(json.dumps([item.to_dict() for item in report]))
    else:
        table = Table(title="Component Health")
        table.add_column("Component", style="cyan")
        table.add_column("Status")
        table.add_column("Detail")
        for item in report:
            style = "green" if item.healthy else "red"
            table.add_row(item.name, f"[{style}]{item.status.value}[/{style}]", item.error_message or "")
        console.print(table)

    if not all(item.healthy for item in report):
        raise typer.Exit(2)


@app.command()
def version() -> None:
    """Show version information."""
    rprint(f"MQL server backend [blue]v{__version__}[/blue]")


def cli_main() -> None:
    """Console script entry point."""
    try:
        app()
    except KeyboardInterrupt:
        rprint("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(130)


if __name__ == "__main__":
    cli_main()
