"""
Query commands for the MQL server CLI.

``query run`` loads a JSON dataset into the in-memory backend, submits a
specification, streams the query log while it executes and prints the
result as series or as one tabular page.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from ..backends import (
    InMemoryDataset,
    InMemoryExecutionBackend,
    InMemoryModelRepository,
    InMemoryTableStore,
)
from ..core.constraints import normalize, to_canonical_dict
from ..core.fingerprint import compute_fingerprint
from ..core.result_materializer import decode_page_data
from ..exceptions.base import MqlServerError
from ..models.query_schema import QuerySpecification
from ..services import MqlService, create_service
from ..utils.config import ConfigManager
from .context import get_config_manager

console = Console()
logger = logging.getLogger(__name__)

query_app = typer.Typer(help="Run queries and inspect fingerprints")


def _load_json(path: str) -> Dict[str, Any]:
    try:
        with open(Path(path), "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        rprint(f"[red]Cannot read {path}:[/red] {e}")
        raise typer.Exit(1)


def load_specification(path: str) -> QuerySpecification:
    try:
        return QuerySpecification.from_dict(_load_json(path))
    except MqlServerError as e:
        rprint(f"[red]Invalid query specification:[/red] {e}")
        raise typer.Exit(1)


def build_local_service(
    config_manager: ConfigManager,
    dataset_path: Optional[str] = None,
) -> Tuple[MqlService, InMemoryExecutionBackend]:
    """Wire a service around an in-memory backend loaded from ``dataset_path``."""
    if dataset_path:
        dataset = InMemoryDataset.from_json_file(dataset_path)
    else:
        dataset = InMemoryDataset(rows=[], dimensions=[], metrics={})
    backend = InMemoryExecutionBackend(dataset)
    service = create_service(
        config_manager,
        backend=backend,
        table_store=InMemoryTableStore(),
        model_repository=InMemoryModelRepository(backend),
    )
    return service, backend


def _stream_logs(service: MqlService, query_id: str, timeout: float) -> None:
    printed = 0
    waited = 0.0
    while True:
        status = service.wait_for_query(query_id, timeout=0.2)
        waited += 0.2
        lines = service.get_query_logs(query_id, from_line=printed)
        if lines:
            for line in lines.split("\n"):
                console.print(f"[dim]{line}[/dim]", highlight=False, markup=False)
            printed += len(lines.split("\n"))
        if status.is_terminal or waited >= timeout:
            return


def _print_series(service: MqlService, query_id: str, metric: Optional[str]) -> None:
    series_list = service.get_query_result(query_id, metric=metric)
    table = Table(title=f"Series ({metric or 'first metric'})")
    table.add_column("Series", style="cyan")
    table.add_column("x")
    table.add_column("y", justify="right", style="green")
    for series in series_list:
        for datum in series.data:
            x = datum.x_date.isoformat() if datum.kind == "time_series" else ""
            table.add_row(series.series_value, x, f"{datum.y:g}")
    console.print(table)


@query_app.command("run")
def run(
    spec_path: str = typer.Argument(..., help="JSON file with the query specification"),
    dataset: str = typer.Option(..., "--dataset", "-d", help="JSON dataset for the in-memory backend"),
    tabular: bool = typer.Option(False, "--tabular", help="Print a tabular page instead of series"),
    orient: str = typer.Option("records", "--orient", help="Tabular JSON orient"),
    metric: Optional[str] = typer.Option(None, "--metric", "-m", help="Metric to project into series"),
    timeout: float = typer.Option(60.0, "--timeout", help="Seconds to wait for completion"),
) -> None:
    """Execute a query against a local dataset and print the result."""
    spec = load_specification(spec_path)
    try:
        service, _ = build_local_service(get_config_manager(), dataset)
    except (MqlServerError, OSError, ValueError) as e:
        rprint(f"[red]Cannot load dataset:[/red] {e}")
        raise typer.Exit(1)

    with service:
        try:
            query_id = service.submit_query(spec)
            rprint(f"Submitted query [bold]{query_id}[/bold]")
            _stream_logs(service, query_id, timeout)

            status = service.get_query_status(query_id)
            rprint(f"Status: [bold]{status.value}[/bold]")
            if not status.is_terminal:
                raise typer.Exit(3)

            if tabular:
                page = service.get_query_result_tabular(query_id, orient=orient)
                console.print_json(decode_page_data(page.data))
                if page.next_cursor:
                    rprint(f"Next cursor: {page.next_cursor}")
            else:
                _print_series(service, query_id, metric)
        except MqlServerError as e:
            rprint(f"[red]Error ({e.error_code}):[/red] {e}")
            raise typer.Exit(1)


@query_app.command("fingerprint")
def fingerprint(
    spec_path: str = typer.Argument(..., help="JSON file with the query specification"),
) -> None:
    """Print the normalized constraints and the cache fingerprint of a query."""
    spec = load_specification(spec_path)
    try:
        where = to_canonical_dict(normalize(spec.where)) if spec.where is not None else None
        checksum = compute_fingerprint(spec).checksum
    except MqlServerError as e:
        rprint(f"[red]Invalid query specification:[/red] {e}")
        raise typer.Exit(1)

    console.print_json(json.dumps({"fingerprint": checksum, "where": where}))
