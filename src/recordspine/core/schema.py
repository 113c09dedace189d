"""
Record type schemas and the schema catalog.

A :class:`SchemaCatalog` is the explicit registry handed to the migrator and
the repository at startup: record type name to :class:`RecordTypeSchema`,
plus the sanitizer that turns a record type name into a table name.

Manifesto:
    The tables a database should contain are derived from one place. Nothing
    scans modules or imports plugins to discover record types; the catalog
    is built from a mapping or loaded from a YAML/JSON file and passed in.

    - **Explicit:** ``SchemaCatalog`` is constructed, not discovered
    - **Immutable:** field definitions are frozen dataclasses
    - **Derived columns:** ``ColumnDefinition`` is computed, never stored

Architecture:
    ::

        SchemaCatalog
        ├── sanitizer: Callable[[str], SafeIdentifier]   (default: slugify)
        └── schemas: {record_type: RecordTypeSchema}
                         ├── fields: (FieldDefinition, ...)
                         ├── keyword_fields: (str, ...)
                         └── columns() → [ColumnDefinition, ...]   (persistable only)

Schema file format (YAML or JSON)::

    record_types:
      Item:
        standard_fields: true
        keyword_fields: [name, item_name]
        fields:
          - {name: item_name, type: Data, required: true}
          - {name: rate, type: Currency, default: 0}

Tags:
    schema, catalog, metadata, record-types, recordspine

Doc-Types:
    - API Reference
    - Schema File Reference
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

from recordspine.core.errors import SchemaError
from recordspine.core.identifiers import SafeIdentifier, ident, slugify, sql_literal
from recordspine.core.logging import get_logger
from recordspine.core.types import is_persistable, sql_type_for

logger = get_logger(__name__)

PRIMARY_KEY = "name"


@dataclass(frozen=True)
class FieldDefinition:
    """One attribute of a record type."""

    name: str
    type: str
    required: bool = False
    default: Any = None

    def __post_init__(self) -> None:
        ident(self.name)

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldDefinition:
        try:
            name = data["name"]
            fieldtype = data["type"]
        except KeyError as e:
            raise SchemaError(f"Field definition missing {e.args[0]!r}: {dict(data)!r}") from e
        return cls(
            name=name,
            type=fieldtype,
            required=bool(data.get("required", False)),
            default=data.get("default"),
        )


STANDARD_FIELDS: tuple[FieldDefinition, ...] = (
    FieldDefinition("name", "Data", required=True),
    FieldDefinition("owner", "Data"),
    FieldDefinition("creation", "Datetime"),
    FieldDefinition("modified", "Datetime"),
)


def _standard_fields_for(fields: Iterable[FieldDefinition]) -> tuple[FieldDefinition, ...]:
    declared = {df.name for df in fields}
    return tuple(df for df in STANDARD_FIELDS if df.name not in declared)


@dataclass(frozen=True)
class ColumnDefinition:
    """Column derived from a persistable :class:`FieldDefinition`."""

    name: SafeIdentifier
    sql_type: str
    not_null: bool = False
    default: Any = None
    primary_key: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @classmethod
    def from_field(cls, df: FieldDefinition) -> ColumnDefinition | None:
        """Derive the column for *df*; ``None`` when the type has no column."""
        sql_type = sql_type_for(df.type)
        if sql_type is None:
            return None
        return cls(
            name=ident(df.name),
            sql_type=sql_type,
            not_null=df.required,
            default=df.default,
            primary_key=df.name == PRIMARY_KEY,
        )

    def ddl(self, *, allow_primary_key: bool = True) -> str:
        """Column clause for ``CREATE TABLE`` / ``ALTER TABLE ADD COLUMN``.

        >>> ColumnDefinition(ident("rate"), "real", default=0).ddl()
        'rate real default 0'
        """
        parts = [self.name, self.sql_type]
        if self.primary_key and allow_primary_key:
            parts.append("primary key")
        if self.not_null:
            parts.append("not null")
        if self.has_default:
            parts.append(f"default {sql_literal(self.default)}")
        return " ".join(parts)


@dataclass(frozen=True)
class RecordTypeSchema:
    """Ordered field definitions for one record type."""

    name: str
    fields: tuple[FieldDefinition, ...] = ()
    keyword_fields: tuple[str, ...] = ()
    standard_fields: bool = False

    def __post_init__(self) -> None:
        if self.standard_fields:
            # standard columns precede the declared fields
            object.__setattr__(
                self, "fields", _standard_fields_for(self.fields) + tuple(self.fields)
            )
        seen: set[str] = set()
        for df in self.fields:
            if df.name in seen:
                raise SchemaError(
                    f"Duplicate field {df.name!r} in record type {self.name!r}",
                    field=df.name,
                )
            seen.add(df.name)
        for fieldname in self.keyword_fields:
            if fieldname not in seen:
                raise SchemaError(
                    f"Keyword field {fieldname!r} is not a field of {self.name!r}",
                    field=fieldname,
                )

    @property
    def has_persistence(self) -> bool:
        """Record types without persistable fields have no table."""
        return bool(self.eligible_fields())

    def eligible_fields(self) -> list[FieldDefinition]:
        """Fields whose abstract type maps to a column, in schema order."""
        return [df for df in self.fields if is_persistable(df.type)]

    def columns(self) -> list[ColumnDefinition]:
        return [ColumnDefinition.from_field(df) for df in self.eligible_fields()]

    def column_names(self) -> list[str]:
        return [df.name for df in self.eligible_fields()]

    def get_keyword_fields(self) -> list[str]:
        """Default projection: explicit keyword fields, else name + required fields."""
        if self.keyword_fields:
            return list(self.keyword_fields)
        names = self.column_names()
        keywords = [PRIMARY_KEY] if PRIMARY_KEY in names else []
        keywords.extend(
            df.name for df in self.eligible_fields()
            if df.required and df.name not in keywords
        )
        return keywords or names

    def with_standard_fields(self) -> RecordTypeSchema:
        """Copy of this schema with the standard columns prepended."""
        return RecordTypeSchema(
            name=self.name,
            fields=self.fields,
            keyword_fields=self.keyword_fields,
            standard_fields=True,
        )

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> RecordTypeSchema:
        raw_fields = data.get("fields") or []
        if not isinstance(raw_fields, list):
            raise SchemaError(f"'fields' of {name!r} must be a list")
        return cls(
            name=name,
            fields=tuple(FieldDefinition.from_dict(f) for f in raw_fields),
            keyword_fields=tuple(data.get("keyword_fields") or ()),
            standard_fields=bool(data.get("standard_fields", False)),
        )


@runtime_checkable
class SchemaRegistry(Protocol):
    """What the migrator and repository need from a schema source."""

    def record_types(self) -> list[str]:
        ...

    def get_schema(self, record_type: str) -> RecordTypeSchema:
        ...

    def table_name(self, record_type: str) -> SafeIdentifier:
        ...


class SchemaCatalog:
    """In-memory :class:`SchemaRegistry` built from explicit schemas.

    Parameters:
        schemas: Record type schemas, iterated in the given order.
        sanitizer: Maps a record type name to a table identifier.
    """

    def __init__(
        self,
        schemas: Iterable[RecordTypeSchema] = (),
        *,
        sanitizer: Callable[[str], str] = slugify,
    ) -> None:
        self._schemas: dict[str, RecordTypeSchema] = {}
        self._tables: dict[str, str] = {}
        self._sanitizer = sanitizer
        for schema in schemas:
            self.register(schema)

    def register(self, schema: RecordTypeSchema) -> None:
        """Add or replace a record type schema.

        Raises:
            SchemaError: If another record type already maps to the same table
        """
        table = self.table_name(schema.name)
        owner = self._tables.get(table)
        if owner is not None and owner != schema.name:
            raise SchemaError(
                f"Record types {owner!r} and {schema.name!r} both map to table {str(table)!r}",
                value=schema.name,
            ).with_context(record_type=schema.name, table=table)
        self._tables[table] = schema.name
        self._schemas[schema.name] = schema

    def record_types(self) -> list[str]:
        return list(self._schemas)

    def get_schema(self, record_type: str) -> RecordTypeSchema:
        try:
            return self._schemas[record_type]
        except KeyError:
            raise SchemaError(
                f"Unknown record type: {record_type!r}",
                value=record_type,
            ) from None

    def table_name(self, record_type: str) -> SafeIdentifier:
        return ident(self._sanitizer(record_type))

    def __contains__(self, record_type: object) -> bool:
        return record_type in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    # -- Constructors ------------------------------------------------------

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        sanitizer: Callable[[str], str] = slugify,
    ) -> SchemaCatalog:
        """Build a catalog from ``{"record_types": {name: {...}}}``.

        A mapping without the ``record_types`` key is taken to be the
        record type mapping itself.
        """
        types = data.get("record_types", data) if isinstance(data, Mapping) else None
        if not isinstance(types, Mapping):
            raise SchemaError("Schema definition must be a mapping of record types")
        schemas = []
        for name, body in types.items():
            if not isinstance(body, Mapping):
                raise SchemaError(f"Record type {name!r} must be a mapping", value=name)
            schemas.append(RecordTypeSchema.from_dict(str(name), body))
        return cls(schemas, sanitizer=sanitizer)

    @classmethod
    def load(
        cls,
        path: Path | str,
        *,
        sanitizer: Callable[[str], str] = slugify,
    ) -> SchemaCatalog:
        """Load a catalog from a ``.yaml``/``.yml`` or ``.json`` file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            SchemaError: If the file can't be parsed or is malformed
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Schema file not found: {path}")

        logger.debug("schema.load", path=str(path))

        text = path.read_text(encoding="utf-8")
        try:
            if path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise SchemaError(f"Invalid schema file {path}: {e}", cause=e) from e

        if not isinstance(data, dict):
            raise SchemaError(
                f"Expected a mapping in {path}, got {type(data).__name__}"
            )
        catalog = cls.from_mapping(data, sanitizer=sanitizer)
        logger.info("schema.loaded", path=str(path), record_types=len(catalog))
        return catalog


__all__ = [
    "PRIMARY_KEY",
    "STANDARD_FIELDS",
    "FieldDefinition",
    "ColumnDefinition",
    "RecordTypeSchema",
    "SchemaRegistry",
    "SchemaCatalog",
]
