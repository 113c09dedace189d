"""Tests for ``recordspine.core.migrations``: additive schema migration."""

from __future__ import annotations

import pytest

from conftest import item_schema
from recordspine.core.errors import MigrationError
from recordspine.core.identifiers import ident
from recordspine.core.migrations import MigrationReport, SchemaMigrator
from recordspine.core.schema import FieldDefinition, RecordTypeSchema, SchemaCatalog


def _table_info(db, table: str) -> dict[str, dict]:
    rows = db.sql(f"PRAGMA table_info({table})").unwrap()
    return {row["name"]: row for row in rows}


class TestMigrationReport:
    def test_empty_report_is_unchanged(self):
        report = MigrationReport()
        assert report.changed is False

    def test_to_dict(self):
        report = MigrationReport(created=["item"], altered={"customer": ["phone"]})
        assert report.changed is True
        assert report.to_dict() == {
            "created": ["item"],
            "altered": {"customer": ["phone"]},
            "unchanged": [],
            "skipped": [],
        }


class TestCreate:
    def test_creates_tables_for_persistable_types(self, db, catalog):
        report = SchemaMigrator(db, catalog).migrate()
        assert report.created == ["item", "customer"]
        assert report.skipped == ["Report View"]
        assert db.tables() == ["customer", "item"]

    def test_columns_follow_schema_order(self, db, catalog):
        SchemaMigrator(db, catalog).migrate()
        assert db.columns(ident("item")) == [
            "name", "owner", "creation", "modified",
            "item_name", "status", "rate", "description",
        ]

    def test_column_types_and_constraints(self, db, catalog):
        SchemaMigrator(db, catalog).migrate()
        info = _table_info(db, "item")
        assert info["name"]["pk"] == 1
        assert info["item_name"]["notnull"] == 1
        assert info["rate"]["type"].lower() == "real"
        assert info["rate"]["dflt_value"] == "0"
        assert info["status"]["dflt_value"] == "'Open'"
        assert info["description"]["type"].lower() == "text"

    def test_table_exists(self, db, catalog):
        migrator = SchemaMigrator(db, catalog)
        assert migrator.table_exists("Item") is False
        migrator.migrate()
        assert migrator.table_exists("Item") is True

    def test_create_table_without_columns(self, db, catalog):
        with pytest.raises(MigrationError, match="no persistable fields"):
            SchemaMigrator(db, catalog).create_table("Report View")

    def test_defaults_apply_on_insert(self, repo):
        repo.insert("Item", {"name": "ITEM-001", "item_name": "Apple"})
        record = repo.get("Item", "ITEM-001")
        assert record["status"] == "Open"
        assert record["rate"] == 0


class TestIdempotence:
    def test_second_run_changes_nothing(self, db, catalog):
        migrator = SchemaMigrator(db, catalog)
        migrator.migrate()
        before = {t: db.columns(ident(t)) for t in db.tables()}

        report = migrator.migrate()

        assert report.changed is False
        assert report.unchanged == ["item", "customer"]
        assert {t: db.columns(ident(t)) for t in db.tables()} == before


class TestAlter:
    def test_adds_missing_columns_and_keeps_rows(self, db, catalog, repo):
        repo.insert("Item", {"name": "ITEM-001", "item_name": "Apple", "rate": 2.5})
        repo.commit()

        catalog.register(
            item_schema(
                FieldDefinition("stock_uom", "Link", default="Nos"),
                FieldDefinition("weight", "Float"),
                FieldDefinition("is_stock_item", "Check", default=1),
            )
        )
        report = SchemaMigrator(db, catalog).migrate()

        assert report.altered == {"item": ["stock_uom", "weight", "is_stock_item"]}
        record = repo.get("Item", "ITEM-001")
        assert record["item_name"] == "Apple"
        assert record["rate"] == 2.5
        assert record["weight"] is None

    def test_each_added_column_gets_its_own_default(self, db, catalog, repo):
        repo.insert("Item", {"name": "ITEM-001", "item_name": "Apple"})
        catalog.register(
            item_schema(
                FieldDefinition("stock_uom", "Link", default="Nos"),
                FieldDefinition("weight", "Float"),
                FieldDefinition("is_stock_item", "Check", default=1),
            )
        )
        SchemaMigrator(db, catalog).migrate()

        record = repo.get("Item", "ITEM-001", ["stock_uom", "weight", "is_stock_item"])
        assert record == {"stock_uom": "Nos", "weight": None, "is_stock_item": 1}

    def test_existing_columns_are_never_dropped(self, db, catalog):
        SchemaMigrator(db, catalog).migrate()
        narrowed = SchemaCatalog(
            [RecordTypeSchema("Item", fields=(FieldDefinition("name", "Data"),))]
        )
        report = SchemaMigrator(db, narrowed).migrate()
        assert report.unchanged == ["item"]
        assert "description" in db.columns(ident("item"))

    def test_ui_fields_are_not_added(self, db, catalog):
        SchemaMigrator(db, catalog).migrate()
        catalog.register(item_schema(FieldDefinition("more_info", "Column Break")))
        report = SchemaMigrator(db, catalog).migrate()
        assert report.altered == {}

    def test_primary_key_field_added_to_existing_table(self, db):
        db.run("CREATE TABLE note (body text)")
        catalog = SchemaCatalog(
            [
                RecordTypeSchema(
                    "Note",
                    fields=(FieldDefinition("body", "Text"), FieldDefinition("name", "Data")),
                )
            ]
        )
        report = SchemaMigrator(db, catalog).migrate()
        assert report.altered == {"note": ["name"]}
        assert _table_info(db, "note")["name"]["pk"] == 0


class TestFailure:
    def test_not_null_without_default_is_surfaced(self, db, catalog, repo):
        # sqlite only rejects the column once the table has rows
        repo.insert("Item", {"name": "ITEM-001", "item_name": "Apple"})
        catalog.register(item_schema(FieldDefinition("barcode", "Barcode", required=True)))

        with pytest.raises(MigrationError) as exc_info:
            SchemaMigrator(db, catalog).migrate()

        error = exc_info.value
        assert error.context.record_type == "Item"
        assert error.context.table == "item"
        assert error.context.column == "barcode"
        assert "ALTER TABLE item ADD COLUMN barcode" in error.context.statement
        assert "Item" in error.message

    def test_earlier_tables_remain_after_failure(self, db):
        catalog = SchemaCatalog(
            [
                RecordTypeSchema("Good", fields=(FieldDefinition("a", "Data"),)),
                RecordTypeSchema("Bad", fields=(FieldDefinition("b", "Data"),)),
            ]
        )
        db.run("CREATE TABLE bad (x text)")
        db.run("INSERT INTO bad (x) VALUES (?)", ("row",))
        catalog.register(
            RecordTypeSchema("Bad", fields=(FieldDefinition("b", "Data", required=True),))
        )

        with pytest.raises(MigrationError):
            SchemaMigrator(db, catalog).migrate()
        assert db.table_exists(ident("good"))

    def test_not_null_with_default_is_added(self, db, catalog):
        SchemaMigrator(db, catalog).migrate()
        catalog.register(
            item_schema(FieldDefinition("uom", "Link", required=True, default="Nos"))
        )
        report = SchemaMigrator(db, catalog).migrate()
        assert report.altered == {"item": ["uom"]}
