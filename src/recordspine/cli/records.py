"""
CLI: ``recordspine records`` -- read records through the repository.
"""

from __future__ import annotations

from pathlib import Path

import typer

from recordspine.cli.utils import (
    err_console,
    fail,
    open_repository,
    output_records,
    parse_filters,
)
from recordspine.core.errors import RecordSpineError
from recordspine.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command()
def get(
    record_type: str = typer.Argument(..., help="Record type, e.g. Item"),
    name: str = typer.Argument(..., help="Primary key value"),
    fields: list[str] | None = typer.Option(None, "--field", "-f", help="Columns to show"),
    schema: Path | None = typer.Option(None, "--schema", "-s"),
    database: Path | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one record by primary key."""
    try:
        with open_repository(database, schema) as repo:
            record = repo.get(record_type, name, fields or "*")
    except (RecordSpineError, FileNotFoundError) as e:
        fail(e)

    if not record:
        # stderr, so --json leaves stdout empty
        err_console.print(f"[dim]{record_type} {name!r} not found.[/dim]")
        raise typer.Exit(code=1)
    output_records(record, as_json=json_out, title=f"{record_type} {name}")


@app.command("list")
def list_records(
    record_type: str = typer.Argument(..., help="Record type, e.g. Item"),
    filters: list[str] | None = typer.Option(
        None, "--filter", "-F", help="field=value (equals) or field~text (like)"
    ),
    fields: list[str] | None = typer.Option(None, "--field", "-f", help="Columns to show"),
    limit: int = typer.Option(20, "--limit", "-n"),
    start: int = typer.Option(0, "--start"),
    order_by: str | None = typer.Option(None, "--order-by"),
    order: str | None = typer.Option(None, "--order"),
    schema: Path | None = typer.Option(None, "--schema", "-s"),
    database: Path | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List records matching the given filters."""
    settings = get_settings()
    try:
        with open_repository(database, schema) as repo:
            records = repo.get_all(
                record_type,
                fields=fields or None,
                filters=parse_filters(filters),
                start=start,
                limit=limit,
                order_by=order_by or settings.default_order_by,
                order=order or settings.default_order,
            )
    except (RecordSpineError, FileNotFoundError) as e:
        fail(e)

    output_records(records, as_json=json_out, title=record_type)


@app.command()
def value(
    record_type: str = typer.Argument(..., help="Record type, e.g. Item"),
    name: str = typer.Argument(..., help="Primary key value"),
    field: str = typer.Option("name", "--field", "-f"),
    schema: Path | None = typer.Option(None, "--schema", "-s"),
    database: Path | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Print a single field of one record."""
    try:
        with open_repository(database, schema) as repo:
            result = repo.get_value(record_type, name, field)
    except (RecordSpineError, FileNotFoundError) as e:
        fail(e)

    if result is None:
        raise typer.Exit(code=1)
    typer.echo(result)
