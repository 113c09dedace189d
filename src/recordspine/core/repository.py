"""Record CRUD over a schema catalog.

:class:`RecordRepository` pairs a :class:`~recordspine.core.connection.Database`
with a :class:`~recordspine.core.schema.SchemaRegistry`. Every operation takes
a record type name, resolves its table through the registry and checks each
referenced column against the record type's schema before any SQL is built.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       RecordRepository                             │
    │                                                                    │
    │   db: Database               ← run() / sql() / commit()            │
    │   registry: SchemaRegistry   ← tables, columns, keyword fields     │
    │                                                                    │
    │   get(type, name, fields)        → dict ({} when absent)           │
    │   insert(type, record)           → None                            │
    │   update(type, record)           → int (rows updated)              │
    │   delete(type, name)             → int (rows deleted)              │
    │   get_all(type, ...)             → list[dict]                      │
    │   get_value(type, filters, fld)  → value | None                    │
    └────────────────────────────────────────────────────────────────────┘

Reads unwrap the ``Result`` returned by ``Database.sql``: a failed read
raises :class:`~recordspine.core.errors.QueryError` rather than looking like
an empty table.

Tags:
    repository, crud, records, recordspine
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from recordspine.core.connection import Database
from recordspine.core.errors import DatabaseError, QueryError, ValidationError
from recordspine.core.identifiers import SafeIdentifier, ident
from recordspine.core.logging import get_logger
from recordspine.core.query import build_select, format_value
from recordspine.core.schema import PRIMARY_KEY, SchemaRegistry

logger = get_logger(__name__)

DEFAULT_ORDER_BY = "modified"
DEFAULT_ORDER = "desc"


class RecordRepository:
    """Schema-aware CRUD and filtered queries.

    Parameters:
        db: Connected database handle.
        registry: Schema catalog for record types and table names.
    """

    def __init__(self, db: Database, registry: SchemaRegistry) -> None:
        self.db = db
        self.registry = registry

    # -- Single-record operations ------------------------------------------

    def get(
        self,
        record_type: str,
        name: str,
        fields: Sequence[str] | str = "*",
    ) -> dict[str, Any]:
        """Fetch one record by primary key; ``{}`` when there is no such row."""
        table = self._table(record_type)
        projection = self._projection(record_type, fields)
        sql, params = build_select(table, projection, {PRIMARY_KEY: name}, limit=1)
        rows = self.db.sql(sql, params).unwrap()
        return rows[0] if rows else {}

    def insert(self, record_type: str, record: Mapping[str, Any]) -> None:
        """Insert *record*; columns follow the mapping's key order."""
        if not record:
            raise ValidationError(f"Cannot insert an empty {record_type} record")
        table = self._table(record_type)
        columns = self._columns(record_type, record.keys())
        placeholders = ", ".join("?" for _ in columns)
        self._execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
            self.get_formatted_values(record),
            record_type=record_type,
            operation="insert",
        )

    def update(self, record_type: str, record: Mapping[str, Any]) -> int:
        """Update the row named ``record["name"]`` with every key in *record*."""
        if PRIMARY_KEY not in record:
            raise ValidationError(
                f"Cannot update a {record_type} record without {PRIMARY_KEY!r}",
                field=PRIMARY_KEY,
            )
        table = self._table(record_type)
        columns = self._columns(record_type, record.keys())
        assigns = ", ".join(f"{col} = ?" for col in columns)
        values = self.get_formatted_values(record)
        values.append(record[PRIMARY_KEY])
        return self._execute(
            f"UPDATE {table} SET {assigns} WHERE {PRIMARY_KEY} = ?",
            values,
            record_type=record_type,
            operation="update",
        )

    def delete(self, record_type: str, name: str) -> int:
        table = self._table(record_type)
        return self._execute(
            f"DELETE FROM {table} WHERE {PRIMARY_KEY} = ?",
            (name,),
            record_type=record_type,
            operation="delete",
        )

    def get_value(
        self,
        record_type: str,
        filters: Mapping[str, Any] | str,
        field: str = PRIMARY_KEY,
    ) -> Any:
        """Value of *field* on the first matching row, or ``None``.

        A string *filters* is shorthand for ``{"name": filters}``.
        """
        if isinstance(filters, str):
            filters = {PRIMARY_KEY: filters}
        rows = self.get_all(
            record_type,
            fields=[field],
            filters=filters,
            start=0,
            limit=1,
        )
        return rows[0][field] if rows else None

    # -- Queries -------------------------------------------------------------

    def get_all(
        self,
        record_type: str,
        fields: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
        start: int | None = 0,
        limit: int | None = 0,
        order_by: str | None = DEFAULT_ORDER_BY,
        order: str | None = DEFAULT_ORDER,
    ) -> list[dict[str, Any]]:
        """Records matching *filters*, projected onto *fields*.

        *fields* defaults to the record type's keyword fields. ``order_by``
        is dropped when the default ``modified`` column does not exist on
        the record type; an explicitly unknown column raises ``QueryError``.
        """
        schema = self.registry.get_schema(record_type)
        table = self._table(record_type)
        projection = self._projection(record_type, fields or schema.get_keyword_fields())

        if filters:
            self._columns(record_type, filters.keys())
        sort_column: SafeIdentifier | None = None
        implicit = order_by == DEFAULT_ORDER_BY and order_by not in schema.column_names()
        if order_by and not implicit:
            sort_column = self._columns(record_type, [order_by])[0]

        sql, params = build_select(
            table,
            projection,
            filters,
            start=start,
            limit=limit,
            order_by=sort_column,
            order=order,
        )
        return self.db.sql(sql, params).unwrap()

    def get_all_options(self, options: Mapping[str, Any]) -> list[dict[str, Any]]:
        """``get_all`` driven by an options mapping.

        Recognized keys: ``type`` (required), ``fields``, ``filters``,
        ``start``, ``limit``, ``order_by``, ``order``.
        """
        unknown = set(options) - {"type", "fields", "filters", "start", "limit", "order_by", "order"}
        if unknown:
            raise ValidationError(f"Unknown get_all options: {sorted(unknown)}")
        if "type" not in options:
            raise ValidationError("get_all options need a 'type'", field="type")
        return self.get_all(
            options["type"],
            fields=options.get("fields"),
            filters=options.get("filters"),
            start=options.get("start", 0),
            limit=options.get("limit", 0),
            order_by=options.get("order_by", DEFAULT_ORDER_BY),
            order=options.get("order", DEFAULT_ORDER),
        )

    def commit(self) -> None:
        """Commit the current transaction (no-op when none is open)."""
        self.db.commit()

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def get_formatted_values(record: Mapping[str, Any]) -> list[Any]:
        return [format_value(value) for value in record.values()]

    def _table(self, record_type: str) -> SafeIdentifier:
        """Table of a registered record type; unknown types raise ``SchemaError``."""
        self.registry.get_schema(record_type)
        return self.registry.table_name(record_type)

    def _columns(self, record_type: str, names: Iterable[str]) -> list[SafeIdentifier]:
        """Validate *names* as columns of *record_type*."""
        known = set(self.registry.get_schema(record_type).column_names())
        columns = []
        for name in names:
            if name not in known:
                raise QueryError(
                    f"Unknown column {name!r} for record type {record_type!r}"
                ).with_context(record_type=record_type, column=str(name))
            columns.append(ident(name))
        return columns

    def _projection(
        self,
        record_type: str,
        fields: Sequence[str] | str,
    ) -> list[SafeIdentifier] | str:
        if fields == "*":
            return "*"
        if isinstance(fields, str):
            fields = [f.strip() for f in fields.split(",")]
        return self._columns(record_type, fields)

    def _execute(self, sql: str, params: Sequence[Any], **context: str) -> int:
        try:
            rowcount = self.db.run(sql, params)
        except DatabaseError as e:
            e.with_context(**context)
            raise
        logger.debug("record.written", rows=rowcount, **context)
        return rowcount


__all__ = [
    "DEFAULT_ORDER",
    "DEFAULT_ORDER_BY",
    "RecordRepository",
]
