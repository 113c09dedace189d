"""Tests for recordspine.cli: commands invoked through typer's CliRunner.

Each test works against a real SQLite file and schema file in ``tmp_path``;
``--json`` output is parsed so assertions do not depend on rich rendering.
"""

from __future__ import annotations

import json
from datetime import datetime

import pytest
from typer.testing import CliRunner

from recordspine import __version__
from recordspine.cli.app import app
from recordspine.core.connection import Database
from recordspine.core.migrations import SchemaMigrator
from recordspine.core.repository import RecordRepository
from recordspine.core.schema import SchemaCatalog

runner = CliRunner()


@pytest.fixture
def env(monkeypatch, tmp_path, schema_file):
    """Point the CLI at a database and schema file via environment variables."""
    database = tmp_path / "data" / "records.db"
    monkeypatch.setenv("RECORDSPINE_DATABASE", str(database))
    monkeypatch.setenv("RECORDSPINE_SCHEMA_PATH", str(schema_file))
    monkeypatch.setenv("RECORDSPINE_LOG_LEVEL", "WARNING")
    return database


@pytest.fixture
def seeded(env, schema_file):
    catalog = SchemaCatalog.load(schema_file)
    with Database(env) as db:
        SchemaMigrator(db, catalog).migrate()
        repo = RecordRepository(db, catalog)
        for i, (item_name, status) in enumerate(
            [("Apple", "Open"), ("Banana", "Closed"), ("Pineapple", "Open")], start=1
        ):
            repo.insert(
                "Item",
                {
                    "name": f"ITEM-00{i}",
                    "item_name": item_name,
                    "status": status,
                    "modified": datetime(2024, 1, i),
                },
            )
        repo.commit()
    return env


# ─── Root app ────────────────────────────────────────────────────────────


class TestRootCLI:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"recordspine {__version__}" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "db" in result.output
        assert "records" in result.output

    def test_unknown_log_level_is_rejected(self, env):
        result = runner.invoke(app, ["--log-level", "chatty", "db", "tables"])
        assert result.exit_code == 2
        assert "Unknown log level" in result.output
        assert not isinstance(result.exception, AttributeError)

    def test_log_level_is_case_insensitive(self, env):
        result = runner.invoke(app, ["--log-level", "error", "db", "tables"])
        assert result.exit_code == 0, result.output


# ─── db commands ─────────────────────────────────────────────────────────


class TestMigrateCLI:
    def test_migrate_creates_tables(self, env):
        result = runner.invoke(app, ["db", "migrate", "--json"])
        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["created"] == ["item", "customer"]
        assert env.exists()

    def test_migrate_twice_is_unchanged(self, env):
        runner.invoke(app, ["db", "migrate"])
        result = runner.invoke(app, ["db", "migrate", "--json"])
        report = json.loads(result.stdout)
        assert report["created"] == []
        assert report["altered"] == {}
        assert report["unchanged"] == ["item", "customer"]

    def test_migrate_human_output(self, env):
        result = runner.invoke(app, ["db", "migrate"])
        assert result.exit_code == 0
        assert "created" in result.stdout
        assert "item" in result.stdout

    def test_migrate_reports_added_columns(self, env, schema_file):
        runner.invoke(app, ["db", "migrate"])
        schema_file.write_text(
            schema_file.read_text() + "      - {name: phone, type: Data}\n",
            encoding="utf-8",
        )
        result = runner.invoke(app, ["db", "migrate", "--json"])
        assert json.loads(result.stdout)["altered"] == {"customer": ["phone"]}

    def test_explicit_options_override_env(self, env, tmp_path, schema_file):
        other = tmp_path / "other.db"
        result = runner.invoke(
            app, ["db", "migrate", "--schema", str(schema_file), "--database", str(other)]
        )
        assert result.exit_code == 0
        assert other.exists()

    def test_missing_schema_file(self, env, tmp_path):
        result = runner.invoke(app, ["db", "migrate", "--schema", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "Schema file not found" in result.output

    def test_no_schema_configured(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RECORDSPINE_DATABASE", str(tmp_path / "r.db"))
        monkeypatch.setenv("RECORDSPINE_LOG_LEVEL", "WARNING")
        result = runner.invoke(app, ["db", "migrate"])
        assert result.exit_code == 1
        assert "No schema file given" in result.output

    def test_failed_migration_exits_1(self, seeded, schema_file):
        with Database(seeded) as db:
            repo = RecordRepository(db, SchemaCatalog.load(schema_file))
            repo.insert("Customer", {"name": "CUST-001", "customer_name": "Acme"})
            repo.commit()
        schema_file.write_text(
            schema_file.read_text() + "      - {name: tax_id, type: Data, required: true}\n",
            encoding="utf-8",
        )
        result = runner.invoke(app, ["db", "migrate"])
        assert result.exit_code == 1
        assert "Customer" in result.output


class TestTablesCLI:
    def test_tables_json(self, seeded):
        result = runner.invoke(app, ["db", "tables", "--json"])
        assert result.exit_code == 0
        layout = json.loads(result.stdout)
        assert list(layout) == ["customer", "item"]
        assert layout["item"][:2] == ["name", "owner"]

    def test_no_tables(self, env):
        result = runner.invoke(app, ["db", "tables"])
        assert result.exit_code == 0
        assert "No tables" in result.stdout


# ─── records commands ────────────────────────────────────────────────────


class TestRecordsGetCLI:
    def test_get_json(self, seeded):
        result = runner.invoke(app, ["records", "get", "Item", "ITEM-002", "--json"])
        assert result.exit_code == 0
        record = json.loads(result.stdout)
        assert record["item_name"] == "Banana"
        assert record["modified"] == "2024-01-02T00:00:00"

    def test_get_fields(self, seeded):
        result = runner.invoke(
            app, ["records", "get", "Item", "ITEM-001", "-f", "item_name", "--json"]
        )
        assert json.loads(result.stdout) == {"item_name": "Apple"}

    def test_get_missing(self, seeded):
        result = runner.invoke(app, ["records", "get", "Item", "NOPE"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_get_missing_json_exits_1(self, seeded):
        result = runner.invoke(app, ["records", "get", "Item", "NOPE", "--json"])
        assert result.exit_code == 1
        assert "{" not in result.stdout

    def test_get_unknown_type(self, seeded):
        result = runner.invoke(app, ["records", "get", "Widget", "W-1"])
        assert result.exit_code == 1
        assert "Unknown record type" in result.output


class TestRecordsListCLI:
    def test_list_defaults_to_newest_first(self, seeded):
        result = runner.invoke(app, ["records", "list", "Item", "--json"])
        assert result.exit_code == 0
        rows = json.loads(result.stdout)
        assert rows == [
            {"name": "ITEM-003", "item_name": "Pineapple"},
            {"name": "ITEM-002", "item_name": "Banana"},
            {"name": "ITEM-001", "item_name": "Apple"},
        ]

    def test_list_equality_filter(self, seeded):
        result = runner.invoke(
            app, ["records", "list", "Item", "-F", "status=Open", "-f", "name", "--order", "asc", "--json"]
        )
        assert json.loads(result.stdout) == [{"name": "ITEM-001"}, {"name": "ITEM-003"}]

    def test_list_like_filter(self, seeded):
        result = runner.invoke(
            app, ["records", "list", "Item", "-F", "item_name~apple", "-f", "item_name", "--json"]
        )
        names = sorted(row["item_name"] for row in json.loads(result.stdout))
        assert names == ["Apple", "Pineapple"]

    def test_list_pagination(self, seeded):
        result = runner.invoke(
            app,
            ["records", "list", "Item", "-f", "name", "--order-by", "name", "--order", "asc",
             "--start", "1", "--limit", "1", "--json"],
        )
        assert json.loads(result.stdout) == [{"name": "ITEM-002"}]

    def test_list_table_output(self, seeded):
        result = runner.invoke(app, ["records", "list", "Item"])
        assert result.exit_code == 0
        assert "ITEM-001" in result.stdout

    def test_list_bad_filter(self, seeded):
        result = runner.invoke(app, ["records", "list", "Item", "-F", "status"])
        assert result.exit_code != 0

    def test_list_unknown_column(self, seeded):
        result = runner.invoke(app, ["records", "list", "Item", "-F", "colour=red"])
        assert result.exit_code == 1
        assert "Unknown column" in result.output


class TestRecordsValueCLI:
    def test_value(self, seeded):
        result = runner.invoke(app, ["records", "value", "Item", "ITEM-003", "--field", "item_name"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "Pineapple"

    def test_value_missing(self, seeded):
        result = runner.invoke(app, ["records", "value", "Item", "NOPE"])
        assert result.exit_code == 1
