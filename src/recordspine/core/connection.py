"""SQLite connection manager.

:class:`Database` owns exactly one :class:`sqlite3.Connection` and exposes the
two execution primitives everything else is built on:

- ``run(sql, params)`` for statements that return no rows (DDL, INSERT,
  UPDATE, DELETE). Failures are logged and raised.
- ``sql(sql, params)`` for statements that return rows. The outcome comes
  back as ``Ok(rows)`` or ``Err(QueryError)``; the caller decides whether an
  empty list is an acceptable answer to a failed read.

Usage::

    from recordspine.core.connection import Database

    with Database("records.db") as db:
        db.run("CREATE TABLE t (name text primary key)")
        db.run("INSERT INTO t (name) VALUES (?)", ("a",))
        rows = db.sql("SELECT name FROM t").unwrap()   # [{'name': 'a'}]
        db.commit()

All statements are serialized through an internal lock, so one ``Database``
may be shared across threads; there is no pool.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from recordspine.core.errors import (
    DatabaseConnectionError,
    DatabaseError,
    IntegrityError,
    QueryError,
)
from recordspine.core.identifiers import SafeIdentifier
from recordspine.core.logging import get_logger
from recordspine.core.result import Result, try_result_with

logger = get_logger(__name__)

MEMORY = ":memory:"

# sqlite3 message for COMMIT outside a transaction
_NO_TRANSACTION = "no transaction is active"


class Database:
    """Single-handle SQLite database.

    Parameters:
        path: Database file path, or ``":memory:"``. May be given later to
            :meth:`connect`.
        trace: Log every executed statement at debug level.
        timeout: Seconds sqlite waits on a locked database file.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        trace: bool = False,
        timeout: float = 5.0,
    ) -> None:
        self.path: str | None = str(path) if path is not None else None
        self._trace = trace
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    # -- Lifecycle ---------------------------------------------------------

    def connect(self, path: str | Path | None = None) -> Database:
        """Open the handle. A new *path* closes the current handle and reopens."""
        with self._lock:
            if path is not None:
                path = str(path)
                if self._conn is not None and path != self.path:
                    self.close()
                self.path = path
            if self._conn is not None:
                return self
            if self.path is None:
                raise DatabaseConnectionError("No database path given")

            if self.path != MEMORY:
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)

            try:
                self._conn = sqlite3.connect(
                    self.path,
                    timeout=self._timeout,
                    check_same_thread=False,
                )
            except sqlite3.Error as e:
                raise DatabaseConnectionError(
                    f"Failed to open database {self.path}: {e}",
                    cause=e,
                ).with_context(path=self.path) from e

            self._conn.row_factory = sqlite3.Row
            if self._trace:
                self._conn.set_trace_callback(self._log_statement)

            logger.debug("db.connected", path=self.path)
            return self

    def close(self) -> None:
        """Release the handle. Safe to call when already closed."""
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logger.debug("db.closed", path=self.path)

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> Database:
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_connected else "closed"
        return f"Database({self.path!r}, {state})"

    # -- Execution primitives ----------------------------------------------

    def run(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute a statement that returns no rows; return the rowcount.

        Raises:
            IntegrityError: On constraint violations
            QueryError: On any other sqlite error
        """
        with self._lock:
            conn = self._require()
            try:
                cursor = conn.execute(sql, tuple(params))
            except sqlite3.Error as e:
                error = _wrap_error(e, sql)
                logger.error("db.run_failed", sql=sql, error=str(e))
                raise error from e
            return cursor.rowcount

    def sql(self, sql: str, params: Sequence[Any] = ()) -> Result[list[dict[str, Any]]]:
        """Execute a statement that returns rows.

        Returns ``Ok(list of dict rows)`` or ``Err(QueryError)``; never raises
        for engine errors.
        """
        with self._lock:
            conn = self._require()

            def fetch() -> list[dict[str, Any]]:
                cursor = conn.execute(sql, tuple(params))
                return [dict(row) for row in cursor.fetchall()]

            return try_result_with(
                fetch,
                lambda e: _wrap_error(e, sql),
                catch=(sqlite3.Error,),
            ).inspect_err(
                lambda e: logger.warning("db.query_failed", sql=sql, error=str(e))
            )

    def commit(self) -> None:
        """Commit the open transaction, if there is one.

        Only "no transaction is active" is absorbed; other failures raise.
        """
        with self._lock:
            conn = self._require()
            try:
                conn.execute("COMMIT")
            except sqlite3.OperationalError as e:
                if _NO_TRANSACTION not in str(e):
                    logger.error("db.commit_failed", error=str(e))
                    raise QueryError(f"Commit failed: {e}", cause=e) from e
                logger.debug("db.commit_skipped", reason=str(e))

    # -- Catalog introspection ---------------------------------------------

    def tables(self) -> list[str]:
        """User tables, sorted by name."""
        rows = self.sql(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        ).unwrap()
        return [row["name"] for row in rows]

    def table_exists(self, table: SafeIdentifier) -> bool:
        rows = self.sql(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table,),
        ).unwrap()
        return bool(rows)

    def columns(self, table: SafeIdentifier) -> list[str]:
        """Column names of *table* in declaration order (``[]`` if absent)."""
        rows = self.sql(f"PRAGMA table_info({table})").unwrap()
        return [row["name"] for row in rows]

    # -- Internal helpers --------------------------------------------------

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseConnectionError(
                f"Database {self.path!r} is not connected"
            )
        return self._conn

    @staticmethod
    def _log_statement(statement: str) -> None:
        logger.debug("db.trace", sql=statement)


def _wrap_error(error: sqlite3.Error, sql: str) -> DatabaseError:
    if isinstance(error, sqlite3.IntegrityError):
        wrapped: DatabaseError = IntegrityError(str(error), cause=error)
    else:
        wrapped = QueryError(str(error), cause=error)
    wrapped.with_context(statement=" ".join(sql.split()))
    return wrapped


__all__ = [
    "MEMORY",
    "Database",
]
