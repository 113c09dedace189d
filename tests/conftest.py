"""
Shared pytest fixtures for recordspine tests.

This module provides:
- An in-memory ``Database`` per test
- A sample ``SchemaCatalog`` (Item, Customer, and a UI-only type)
- A migrated ``RecordRepository``
- Quiet structured logging for the whole session
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from recordspine.core.connection import MEMORY, Database
from recordspine.core.logging import configure_logging
from recordspine.core.migrations import SchemaMigrator
from recordspine.core.repository import RecordRepository
from recordspine.core.schema import FieldDefinition, RecordTypeSchema, SchemaCatalog
from recordspine.core.settings import get_settings

SAMPLE_SCHEMA_YAML = """\
record_types:
  Item:
    standard_fields: true
    keyword_fields: [name, item_name]
    fields:
      - {name: item_name, type: Data, required: true}
      - {name: status, type: Select, default: Open}
      - {name: rate, type: Currency, default: 0}
      - {name: description, type: Text Editor}
      - {name: details_section, type: Section Break}
  Customer:
    standard_fields: true
    fields:
      - {name: customer_name, type: Data, required: true}
      - {name: credit_limit, type: Currency}
"""


def pytest_configure(config: pytest.Config) -> None:
    configure_logging(level="WARNING", json_format=False, add_timestamp=False)


def item_schema(*extra: FieldDefinition) -> RecordTypeSchema:
    return RecordTypeSchema(
        name="Item",
        fields=(
            FieldDefinition("item_name", "Data", required=True),
            FieldDefinition("status", "Select", default="Open"),
            FieldDefinition("rate", "Currency", default=0),
            FieldDefinition("description", "Text Editor"),
            FieldDefinition("details_section", "Section Break"),
            *extra,
        ),
        keyword_fields=("name", "item_name"),
        standard_fields=True,
    )


def customer_schema() -> RecordTypeSchema:
    return RecordTypeSchema(
        name="Customer",
        fields=(
            FieldDefinition("customer_name", "Data", required=True),
            FieldDefinition("credit_limit", "Currency"),
        ),
        standard_fields=True,
    )


@pytest.fixture
def db() -> Iterator[Database]:
    database = Database(MEMORY).connect()
    yield database
    database.close()


@pytest.fixture
def catalog() -> SchemaCatalog:
    return SchemaCatalog(
        [
            item_schema(),
            customer_schema(),
            RecordTypeSchema(
                name="Report View",
                fields=(FieldDefinition("chart", "HTML"),),
            ),
        ]
    )


@pytest.fixture
def repo(db: Database, catalog: SchemaCatalog) -> RecordRepository:
    SchemaMigrator(db, catalog).migrate()
    return RecordRepository(db, catalog)


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    path = tmp_path / "schema.yaml"
    path.write_text(SAMPLE_SCHEMA_YAML, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Isolate settings from the developer's environment and ``.env``."""
    for var in (
        "DATABASE", "SCHEMA_PATH", "LOG_LEVEL", "LOG_JSON", "TRACE_SQL",
        "DEFAULT_ORDER_BY", "DEFAULT_ORDER",
    ):
        monkeypatch.delenv(f"RECORDSPINE_{var}", raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
