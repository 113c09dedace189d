"""Settings for recordspine.

Values come from environment variables prefixed ``RECORDSPINE_`` and from a
``.env`` file in the working directory; CLI options override both.

Examples:
    >>> import os
    >>> os.environ["RECORDSPINE_DATABASE"] = "/tmp/records.db"
    >>> RecordSpineSettings().database
    PosixPath('/tmp/records.db')

Tags:
    settings, configuration, pydantic, environment, recordspine
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecordSpineSettings(BaseSettings):
    """Runtime configuration.

    Fields
    ──────
    database          : SQLite file path (or ``:memory:``)
    schema_path       : YAML/JSON schema catalog to migrate and query against
    log_level         : structlog level
    log_json          : JSON logs (None = auto-detect from tty)
    trace_sql         : Log every executed statement at debug level
    default_order_by  : Sort column for list queries
    default_order     : Sort direction for list queries
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database: Path = Field(
        default_factory=lambda: Path.home() / ".recordspine" / "records.db",
        description="SQLite database file",
    )
    schema_path: Path | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
    trace_sql: bool = False

    # ── Query defaults ───────────────────────────────────────────
    default_order_by: str = "modified"
    default_order: str = "desc"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @field_validator("default_order")
    @classmethod
    def _check_order(cls, value: str) -> str:
        order = value.lower()
        if order not in ("asc", "desc"):
            raise ValueError(f"default_order must be 'asc' or 'desc', got {value!r}")
        return order


@lru_cache(maxsize=1)
def get_settings() -> RecordSpineSettings:
    """Process-wide settings, read once."""
    return RecordSpineSettings()


__all__ = [
    "RecordSpineSettings",
    "get_settings",
]
