"""
Root Typer application for the recordspine CLI.
"""

from __future__ import annotations

import logging

import typer
from typer import Typer

from recordspine.core.logging import configure_logging
from recordspine.core.settings import get_settings

app = Typer(
    name="recordspine",
    help="recordspine -- schema-driven SQLite persistence.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from recordspine import __version__

        typer.echo(f"recordspine {__version__}")
        raise typer.Exit()


def _log_level_callback(value: str | None) -> str | None:
    if value is None:
        return None
    level = value.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise typer.BadParameter(f"Unknown log level: {value!r}")
    return level


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Override RECORDSPINE_LOG_LEVEL.",
        callback=_log_level_callback,
    ),
) -> None:
    """recordspine CLI -- migrate schemas and inspect records."""
    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        json_format=settings.log_json,
    )


# ── Sub-command registration ─────────────────────────────────────────────

from recordspine.cli.db import app as db_app  # noqa: E402
from recordspine.cli.records import app as records_app  # noqa: E402

app.add_typer(db_app, name="db", help="Migrate the schema and inspect tables.")
app.add_typer(records_app, name="records", help="Read records.")


def run() -> None:
    """Console-script entry point."""
    app()
