"""
Structured error types for recordspine.

Every failure the persistence layer raises is a ``RecordSpineError``
subclass carrying a category, a structured context (record type, table,
statement) and the underlying driver exception as ``cause``.

Manifesto:
    Database failures are only useful when they name what failed. A bare
    ``sqlite3.OperationalError: duplicate column name`` says nothing about
    which record type was being migrated. Wrapping driver errors in a small
    hierarchy keeps the diagnostic next to the exception:

    - **Categorized:** DATABASE / VALIDATION / CONFIG for routing
    - **Contextual:** record_type, table and statement travel with the error
    - **Chained:** the driver exception is kept as ``__cause__``
    - **Serializable:** ``to_dict()`` feeds structured logging

Architecture:
    ::

        RecordSpineError
        ├── DatabaseConnectionError   handle missing / failed to open
        ├── DatabaseError
        │   ├── QueryError            malformed SQL, unknown column/operator
        │   ├── IntegrityError        constraint violations
        │   └── MigrationError        DDL failure during migrate()
        ├── ValidationError
        │   └── SchemaError           unknown record type, bad schema file
        └── ConfigError               invalid settings

Examples:
    >>> err = MigrationError("ALTER failed").with_context(record_type="Item", table="item")
    >>> err.to_dict()["context"]
    {'record_type': 'Item', 'table': 'item'}

Tags:
    errors, exceptions, error-context, recordspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for logging and routing."""

    DATABASE = "DATABASE"         # Execution, catalog, DDL
    VALIDATION = "VALIDATION"     # Schema, identifiers, record shape
    CONFIG = "CONFIG"             # Settings, schema files
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set appear in ``to_dict()``; anything that does not
    fit a named slot goes to ``metadata``.

    Attributes:
        record_type: Record type being processed (e.g. ``"Item"``)
        table: Sanitized table name
        column: Column involved, if any
        statement: SQL text that failed
        operation: Logical operation (``"insert"``, ``"migrate"``, ...)
        metadata: Additional key-value pairs
    """

    record_type: str | None = None
    table: str | None = None
    column: str | None = None
    statement: str | None = None
    operation: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["record_type", "table", "column", "statement", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecordSpineError(Exception):
    """
    Base exception for all recordspine errors.

    Subclasses set ``default_category``; callers may override it per
    instance. ``cause`` is chained as ``__cause__`` so tracebacks show the
    driver error.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecordSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise MigrationError("Failed").with_context(
                record_type="Item",
                table="item",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseConnectionError(RecordSpineError):
    """Database handle could not be opened, or is already closed."""

    default_category = ErrorCategory.DATABASE


class DatabaseError(RecordSpineError):
    """Database statement or transaction error."""

    default_category = ErrorCategory.DATABASE


class QueryError(DatabaseError):
    """SQL execution error or an invalid query request."""

    pass


class IntegrityError(DatabaseError):
    """Database integrity constraint violation."""

    pass


class MigrationError(DatabaseError):
    """DDL statement failed while reconciling a table with its schema."""

    pass


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(RecordSpineError):
    """
    Invalid input: a record, an identifier or a schema definition.

    Never fixed by retrying; the input must change.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class SchemaError(ValidationError):
    """Unknown record type or malformed schema definition."""

    pass


class ConfigError(RecordSpineError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordSpineError",
    "DatabaseConnectionError",
    "DatabaseError",
    "QueryError",
    "IntegrityError",
    "MigrationError",
    "ValidationError",
    "SchemaError",
    "ConfigError",
]
