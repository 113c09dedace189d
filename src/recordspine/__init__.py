"""
recordspine - schema-driven persistence for SQLite.

Declare record types, let the migrator create and extend their tables, and
read/write records through a parameterized CRUD and filter API.
"""

__version__ = "0.1.0"

from recordspine.core import *  # noqa
