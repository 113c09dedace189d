"""
Filtered query builder.

Compiles a filter mapping plus projection, ordering and pagination
into one parameterized ``SELECT``.

Manifesto:
    Filters arrive from request handlers as plain dicts. Their *values* are
    untrusted and always travel as bound parameters; their *keys* and the
    projected/ordered columns are identifiers and must already be
    ``SafeIdentifier`` instances checked against the record type's columns.
    Operators come from a fixed allow-list.

Filter mapping::

    {"status": "Open"}                       status = ?           ["Open"]
    {"name": ["like", "apple"]}              name like ?          ["%apple%"]
    {"name": ["like", "apple%"]}             name like ?          ["apple%"]
    {"rate": [">=", 10], "status": "Open"}   rate >= ? and status = ?
    {"status": ["in", ["Open", "Draft"]]}    status in (?, ?)
    {"owner": ["is", None]}                  owner is NULL

Examples:
    >>> compile_filters({"status": "Open"})
    ('status = ?', ['Open'])
    >>> compile_filters({"name": ("like", "apple")})
    ('name like ?', ['%apple%'])

Tags:
    query-builder, filters, sql, parameterized, recordspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from typing import Any

from recordspine.core.errors import QueryError
from recordspine.core.identifiers import SafeIdentifier, ident

COMPARISON_OPERATORS = frozenset({"=", "!=", "<>", "<", ">", "<=", ">="})
PATTERN_OPERATORS = frozenset({"like", "not like"})
LIST_OPERATORS = frozenset({"in", "not in"})
NULL_OPERATORS = frozenset({"is", "is not"})
OPERATORS = COMPARISON_OPERATORS | PATTERN_OPERATORS | LIST_OPERATORS | NULL_OPERATORS

SORT_ORDERS = frozenset({"asc", "desc"})


def format_value(value: Any) -> Any:
    """Normalize a value for binding: date/time values become ISO-8601 strings.

    Writes and filters both go through here, so a ``datetime`` compares
    equal to the text it was stored as.
    """
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def is_operator_pair(value: Any) -> bool:
    """``(operator, value)`` pairs are 2-item lists/tuples led by a string."""
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and isinstance(value[0], str)
    )


def compile_filters(filters: Mapping[str, Any] | None) -> tuple[str, list[Any]]:
    """Compile *filters* to ``(conditions, params)``.

    ``conditions`` is ``""`` when there is nothing to filter on. The input
    mapping is never modified.
    """
    conditions: list[str] = []
    values: list[Any] = []

    for key, value in (filters or {}).items():
        column = ident(key)
        if not is_operator_pair(value):
            conditions.append(f"{column} = ?")
            values.append(format_value(value))
            continue

        raw_op, operand = value
        op = " ".join(raw_op.lower().split())
        if op not in OPERATORS:
            raise QueryError(f"Unsupported filter operator {raw_op!r}").with_context(
                column=key
            )

        if op in PATTERN_OPERATORS:
            operand = str(format_value(operand))
            # like without a wildcard means "contains"
            if op == "like" and "%" not in operand:
                operand = f"%{operand}%"
            conditions.append(f"{column} {op} ?")
            values.append(operand)
        elif op in LIST_OPERATORS:
            if isinstance(operand, (str, bytes)) or not isinstance(operand, Sequence):
                raise QueryError(
                    f"Operator {op!r} needs a list of values"
                ).with_context(column=key)
            if not operand:
                # empty "in" matches nothing, empty "not in" matches everything
                conditions.append("0" if op == "in" else "1")
                continue
            placeholders = ", ".join("?" for _ in operand)
            conditions.append(f"{column} {op} ({placeholders})")
            values.extend(format_value(v) for v in operand)
        elif op in NULL_OPERATORS:
            if operand is not None:
                raise QueryError(
                    f"Operator {op!r} only compares against None"
                ).with_context(column=key)
            conditions.append(f"{column} {op} NULL")
        else:
            conditions.append(f"{column} {op} ?")
            values.append(format_value(operand))

    return " and ".join(conditions), values


def build_select(
    table: SafeIdentifier,
    fields: Sequence[SafeIdentifier] | str = "*",
    filters: Mapping[str, Any] | None = None,
    *,
    start: int | None = None,
    limit: int | None = None,
    order_by: SafeIdentifier | None = None,
    order: str | None = None,
) -> tuple[str, list[Any]]:
    """Build ``SELECT <fields> FROM <table> [WHERE] [ORDER BY] [LIMIT] [OFFSET]``.

    Ordering and pagination are rendered as literal SQL: ``order`` must be
    ``asc`` or ``desc`` and ``start``/``limit`` are coerced to ``int``. Each
    clause is left out when its value is empty or zero.

    >>> build_select(ident("item"), [ident("name")], {"status": "Open"}, limit=2)
    ('SELECT name FROM item WHERE status = ? LIMIT 2', ['Open'])
    """
    projection = fields if isinstance(fields, str) else ", ".join(fields)
    if projection != "*":
        projection = ", ".join(ident(f.strip()) for f in projection.split(","))

    parts = [f"SELECT {projection} FROM {ident(table)}"]

    conditions, values = compile_filters(filters)
    if conditions:
        parts.append(f"WHERE {conditions}")

    if order_by:
        direction = (order or "asc").lower()
        if direction not in SORT_ORDERS:
            raise QueryError(f"Invalid sort order {order!r}")
        parts.append(f"ORDER BY {ident(order_by)} {direction}")

    limit = _as_count(limit, "limit")
    start = _as_count(start, "start")
    if limit:
        parts.append(f"LIMIT {limit}")
    if start:
        if not limit:
            # sqlite only accepts OFFSET after a LIMIT
            parts.append("LIMIT -1")
        parts.append(f"OFFSET {start}")

    return " ".join(parts), values


def _as_count(value: Any, name: str) -> int:
    if value is None or value == "":
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError) as e:
        raise QueryError(f"{name} must be an integer, got {value!r}", cause=e) from e
    if count < 0:
        raise QueryError(f"{name} must not be negative, got {count}")
    return count


__all__ = [
    "OPERATORS",
    "SORT_ORDERS",
    "format_value",
    "is_operator_pair",
    "compile_filters",
    "build_select",
]
