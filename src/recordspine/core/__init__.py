"""recordspine core -- schema-driven SQLite persistence.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Error hierarchy (RecordSpineError, MigrationError, ...)
        result.py          Result[T] envelope (Ok / Err)
        types.py           Abstract field type -> SQLite column type
        identifiers.py     SafeIdentifier, slugify, DDL literals

    Layer 2 -- Schema
        schema.py          FieldDefinition, RecordTypeSchema, SchemaCatalog

    Layer 3 -- Database
        connection.py      Database: connect / run / sql / commit / close
        migrations.py      SchemaMigrator: create table / add missing columns
        query.py           Filter compilation + SELECT builder
        repository.py      RecordRepository: get / insert / update / delete / get_all

    Layer 4 -- Cross-Cutting Concerns
        logging.py         structlog configuration
        settings.py        pydantic-settings configuration

Module Map (recommended reading order)
--------------------------------------
  schema -> connection -> migrations -> query -> repository

Tags:
    recordspine, orm, sqlite, migrations, query-builder

Doc-Types:
    package-overview, module-index
"""

from recordspine.core.connection import MEMORY, Database
from recordspine.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    IntegrityError,
    MigrationError,
    QueryError,
    RecordSpineError,
    SchemaError,
    ValidationError,
)
from recordspine.core.identifiers import SafeIdentifier, ident, slugify
from recordspine.core.migrations import MigrationReport, SchemaMigrator
from recordspine.core.query import build_select, compile_filters, format_value
from recordspine.core.repository import RecordRepository
from recordspine.core.result import Err, Ok, Result
from recordspine.core.schema import (
    ColumnDefinition,
    FieldDefinition,
    RecordTypeSchema,
    SchemaCatalog,
    SchemaRegistry,
)
from recordspine.core.types import TYPE_MAP, is_persistable, sql_type_for

__all__ = [
    # connection
    "MEMORY",
    "Database",
    # errors
    "ConfigError",
    "DatabaseConnectionError",
    "DatabaseError",
    "ErrorCategory",
    "ErrorContext",
    "IntegrityError",
    "MigrationError",
    "QueryError",
    "RecordSpineError",
    "SchemaError",
    "ValidationError",
    # identifiers
    "SafeIdentifier",
    "ident",
    "slugify",
    # migrations
    "MigrationReport",
    "SchemaMigrator",
    # query
    "build_select",
    "compile_filters",
    # repository
    "RecordRepository",
    "format_value",
    # result
    "Err",
    "Ok",
    "Result",
    # schema
    "ColumnDefinition",
    "FieldDefinition",
    "RecordTypeSchema",
    "SchemaCatalog",
    "SchemaRegistry",
    # types
    "TYPE_MAP",
    "sql_type_for",
    "is_persistable",
]
