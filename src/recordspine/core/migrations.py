"""Schema migration engine.

Reconciles live tables with a :class:`~recordspine.core.schema.SchemaRegistry`:
for every record type that has fields, create its table when absent, else
add the columns the table is missing. Existing columns are never dropped,
renamed or retyped.

There is no migration-history table; the live ``sqlite_master`` /
``PRAGMA table_info`` catalog is the state being reconciled, so running
:meth:`SchemaMigrator.migrate` twice is a no-op the second time.

Example::

    from recordspine.core.connection import Database
    from recordspine.core.migrations import SchemaMigrator
    from recordspine.core.schema import SchemaCatalog

    db = Database("records.db").connect()
    report = SchemaMigrator(db, SchemaCatalog.load("schema.yaml")).migrate()
    print(report.created, report.altered)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from recordspine.core.connection import Database
from recordspine.core.errors import DatabaseError, MigrationError
from recordspine.core.logging import LogContext, get_logger
from recordspine.core.schema import SchemaRegistry

logger = get_logger(__name__)


@dataclass
class MigrationReport:
    """Outcome of a migration pass, keyed by table name."""

    created: list[str] = field(default_factory=list)
    altered: dict[str, list[str]] = field(default_factory=dict)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.altered)

    def to_dict(self) -> dict[str, object]:
        return {
            "created": list(self.created),
            "altered": {k: list(v) for k, v in self.altered.items()},
            "unchanged": list(self.unchanged),
            "skipped": list(self.skipped),
        }


class SchemaMigrator:
    """Creates and extends tables to match the registry.

    Parameters
    ----------
    db
        Connected :class:`Database`.
    registry
        Source of record types, field definitions and table names.
    """

    def __init__(self, db: Database, registry: SchemaRegistry) -> None:
        self._db = db
        self._registry = registry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def migrate(self) -> MigrationReport:
        """Reconcile every record type in registry order, then commit.

        Types are processed one after another; a failure stops the pass with
        :class:`MigrationError` and leaves earlier tables in place.
        """
        report = MigrationReport()

        for record_type in self._registry.record_types():
            schema = self._registry.get_schema(record_type)
            if not schema.has_persistence:
                report.skipped.append(record_type)
                logger.debug("migration.skipped", record_type=record_type)
                continue

            table = self._registry.table_name(record_type)
            with LogContext(record_type=record_type, table=table):
                if self.table_exists(record_type):
                    added = self.alter_table(record_type)
                    if added:
                        report.altered[table] = added
                    else:
                        report.unchanged.append(table)
                else:
                    self.create_table(record_type)
                    report.created.append(table)

        self._db.commit()
        logger.info(
            "migration.completed",
            created=len(report.created),
            altered=len(report.altered),
            unchanged=len(report.unchanged),
        )
        return report

    def table_exists(self, record_type: str) -> bool:
        return self._db.table_exists(self._registry.table_name(record_type))

    def create_table(self, record_type: str) -> None:
        """``CREATE TABLE IF NOT EXISTS`` with one column per persistable field."""
        table = self._registry.table_name(record_type)
        columns = self._registry.get_schema(record_type).columns()
        if not columns:
            raise MigrationError(
                f"Record type {record_type!r} has no persistable fields"
            ).with_context(record_type=record_type, table=table, operation="create")

        clauses = ", ".join(col.ddl() for col in columns)
        self._execute_ddl(
            f"CREATE TABLE IF NOT EXISTS {table} ({clauses})",
            record_type=record_type,
            table=table,
            operation="create",
        )
        logger.info("migration.table_created", columns=len(columns))

    def alter_table(self, record_type: str) -> list[str]:
        """Add every missing column, one ``ALTER TABLE`` per column.

        Returns the names of the added columns.
        """
        table = self._registry.table_name(record_type)
        existing = set(self._db.columns(table))
        added: list[str] = []

        for col in self._registry.get_schema(record_type).columns():
            if col.name in existing:
                continue
            # sqlite cannot add a PRIMARY KEY column to an existing table
            self._execute_ddl(
                f"ALTER TABLE {table} ADD COLUMN {col.ddl(allow_primary_key=False)}",
                record_type=record_type,
                table=table,
                column=col.name,
                operation="alter",
            )
            added.append(str(col.name))
            logger.info("migration.column_added", column=col.name)

        return added

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _execute_ddl(self, statement: str, **context: str) -> None:
        try:
            self._db.run(statement)
        except DatabaseError as e:
            logger.error("migration.failed", statement=statement, error=e.message)
            raise MigrationError(
                f"Migration of {context.get('record_type')!r} "
                f"(table {context.get('table')!r}) failed: {e.message}",
                cause=e,
            ).with_context(statement=statement, **context) from e


__all__ = [
    "MigrationReport",
    "SchemaMigrator",
]
