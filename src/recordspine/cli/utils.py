"""
CLI utility helpers: settings resolution, database/catalog handles, output.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from recordspine.core.connection import Database
from recordspine.core.errors import ConfigError, RecordSpineError
from recordspine.core.repository import RecordRepository
from recordspine.core.schema import SchemaCatalog
from recordspine.core.settings import get_settings

console = Console()
err_console = Console(stderr=True)


# ── Connection helpers ───────────────────────────────────────────────────


def load_catalog(schema: Path | None) -> SchemaCatalog:
    """Load the schema catalog from *schema* or ``RECORDSPINE_SCHEMA_PATH``."""
    path = schema or get_settings().schema_path
    if path is None:
        raise ConfigError(
            "No schema file given. Pass --schema or set RECORDSPINE_SCHEMA_PATH."
        )
    return SchemaCatalog.load(path)


@contextmanager
def open_database(database: Path | None) -> Iterator[Database]:
    """Open *database* (default: ``RECORDSPINE_DATABASE``) for one command."""
    settings = get_settings()
    db = Database(database or settings.database, trace=settings.trace_sql)
    with db:
        yield db


@contextmanager
def open_repository(
    database: Path | None,
    schema: Path | None,
) -> Iterator[RecordRepository]:
    catalog = load_catalog(schema)
    with open_database(database) as db:
        yield RecordRepository(db, catalog)


def fail(error: Exception) -> None:
    """Print *error* with its context and exit with status 1."""
    if isinstance(error, RecordSpineError):
        err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}")
        for key, value in error.context.to_dict().items():
            err_console.print(f"  [dim]{key}[/dim]: {escape(str(value))}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {escape(str(error))}")
    raise typer.Exit(code=1)


def parse_filters(raw: list[str] | None) -> dict[str, Any]:
    """``["status=Open", "name~apple"]`` → ``{"status": "Open", "name": ["like", "apple"]}``."""
    filters: dict[str, Any] = {}
    for item in raw or []:
        if "~" in item and ("=" not in item or item.index("~") < item.index("=")):
            key, _, value = item.partition("~")
            filters[key.strip()] = ["like", value]
        elif "=" in item:
            key, _, value = item.partition("=")
            filters[key.strip()] = value
        else:
            raise typer.BadParameter(
                f"Filter {item!r} must look like field=value or field~text",
                param_hint="--filter",
            )
    return filters


# ── Output helpers ───────────────────────────────────────────────────────


def output_records(
    records: list[dict[str, Any]] | dict[str, Any],
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render one record (dict) or many (list) to the terminal."""
    if as_json:
        typer.echo(json.dumps(records, indent=2, default=str))
        return

    if isinstance(records, dict):
        if not records:
            console.print("[dim]Not found.[/dim]")
            return
        _print_dict(records, title=title)
        return

    if not records:
        console.print("[dim]No records.[/dim]")
        return
    _print_table(records, title=title)


def _print_table(items: list[dict[str, Any]], *, title: str = "") -> None:
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in items[0]:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*("" if v is None else str(v) for v in item.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
