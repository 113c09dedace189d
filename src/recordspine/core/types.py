"""Abstract field type to SQLite column type mapping.

Field types absent from :data:`TYPE_MAP` (UI-only types such as ``Section
Break`` or ``Button``, computed fields, child tables) have no column and
are left out of the table without raising.
"""

from __future__ import annotations

from types import MappingProxyType

TYPE_MAP: MappingProxyType[str, str] = MappingProxyType(
    {
        "Currency": "real",
        "Int": "integer",
        "Float": "real",
        "Percent": "real",
        "Check": "integer",
        "Small Text": "text",
        "Long Text": "text",
        "Code": "text",
        "Text Editor": "text",
        "Date": "text",
        "Datetime": "text",
        "Time": "text",
        "Text": "text",
        "Data": "text",
        "Link": "text",
        "Dynamic Link": "text",
        "Password": "text",
        "Select": "text",
        "Read Only": "text",
        "Attach": "text",
        "Attach Image": "text",
        "Signature": "text",
        "Color": "text",
        "Barcode": "text",
        "Geolocation": "text",
    }
)


def sql_type_for(fieldtype: str) -> str | None:
    """Return the column type for *fieldtype*, or ``None`` if it is not persisted."""
    return TYPE_MAP.get(fieldtype)


def is_persistable(fieldtype: str) -> bool:
    return fieldtype in TYPE_MAP


__all__ = [
    "TYPE_MAP",
    "sql_type_for",
    "is_persistable",
]
