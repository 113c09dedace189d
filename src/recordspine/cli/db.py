"""
CLI: ``recordspine db`` -- migration and table inspection.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from recordspine.cli.utils import console, fail, load_catalog, open_database
from recordspine.core.errors import RecordSpineError
from recordspine.core.identifiers import ident
from recordspine.core.migrations import SchemaMigrator

app = typer.Typer(no_args_is_help=True)


@app.command()
def migrate(
    schema: Path | None = typer.Option(None, "--schema", "-s", help="Schema file (YAML/JSON)"),
    database: Path | None = typer.Option(None, "--database", "-d", help="Database path"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create missing tables and add missing columns."""
    try:
        catalog = load_catalog(schema)
        with open_database(database) as db:
            report = SchemaMigrator(db, catalog).migrate()
    except (RecordSpineError, FileNotFoundError) as e:
        fail(e)

    if json_out:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return

    for table in report.created:
        console.print(f"[green]created[/green]  {table}")
    for table, columns in report.altered.items():
        console.print(f"[yellow]altered[/yellow]  {table} (+{', '.join(columns)})")
    for table in report.unchanged:
        console.print(f"[dim]ok[/dim]       {table}")
    if not report.changed:
        console.print("[dim]Schema up to date.[/dim]")


@app.command()
def tables(
    database: Path | None = typer.Option(None, "--database", "-d", help="Database path"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List tables and their columns."""
    try:
        with open_database(database) as db:
            layout = {table: db.columns(ident(table)) for table in db.tables()}
    except RecordSpineError as e:
        fail(e)

    if json_out:
        typer.echo(json.dumps(layout, indent=2))
        return
    if not layout:
        console.print("[dim]No tables.[/dim]")
        return
    for table, columns in layout.items():
        console.print(f"[bold]{table}[/bold]: {', '.join(columns)}")
