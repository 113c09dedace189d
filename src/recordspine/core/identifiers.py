"""Identifier and literal rendering for generated SQL.

Generated statements have two inputs. Values supplied at request time are
always bound as parameters. Table and column names cannot be bound, so they
are interpolated, but only as :class:`SafeIdentifier` instances: strings that
passed :func:`ident` validation and were derived from the schema catalog.

Column defaults are the one place a *value* is rendered into SQL text.
SQLite does not accept bound parameters inside ``CREATE TABLE`` or
``ALTER TABLE``, so catalog defaults go through :func:`sql_literal`.

Usage::

    from recordspine.core.identifiers import ident, slugify

    table = slugify("Sales Invoice")      # SafeIdentifier('sales_invoice')
    column = ident("customer_name")       # SafeIdentifier('customer_name')
    ident("name; DROP TABLE item")        # raises SchemaError
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time
from typing import Any

from recordspine.core.errors import SchemaError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9_]+")


class SafeIdentifier(str):
    """A ``str`` that has passed identifier validation.

    Instances are only created through :func:`ident` or :func:`slugify`;
    SQL builders accept ``SafeIdentifier`` for every interpolated name.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"SafeIdentifier({str(self)!r})"


def ident(name: str) -> SafeIdentifier:
    """Validate *name* as a bare SQL identifier."""
    if isinstance(name, SafeIdentifier):
        return name
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise SchemaError(f"Invalid SQL identifier: {name!r}", value=name)
    return SafeIdentifier(name)


def slugify(record_type: str) -> SafeIdentifier:
    """Default sanitizer: record type name to table name.

    Lower-cases the name, turns spaces and hyphens into underscores and drops
    everything else outside ``[a-z0-9_]``. Names that would start with a digit
    get a leading underscore.

    >>> slugify("Sales Invoice")
    SafeIdentifier('sales_invoice')
    """
    slug = record_type.strip().lower().replace(" ", "_").replace("-", "_")
    slug = _SLUG_STRIP_RE.sub("", slug)
    if not slug:
        raise SchemaError(
            f"Record type {record_type!r} has no usable table name",
            value=record_type,
        )
    if slug[0].isdigit():
        slug = f"_{slug}"
    return SafeIdentifier(slug)


def sql_literal(value: Any) -> str:
    """Render a catalog default value as a SQLite literal.

    >>> sql_literal("it's")
    "'it''s'"
    >>> sql_literal(True)
    '1'
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and not math.isfinite(value):
        raise SchemaError(f"Non-finite default value: {value!r}", value=value)
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (datetime, date, time)):
        value = value.isoformat()
    if not isinstance(value, str):
        raise SchemaError(
            f"Unsupported default value type: {type(value).__name__}",
            value=value,
        )
    return "'" + value.replace("'", "''") + "'"


__all__ = [
    "SafeIdentifier",
    "ident",
    "slugify",
    "sql_literal",
]
