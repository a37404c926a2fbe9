"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~sqlspine.core.protocols.Connection` protocol.

The stdlib driver opens transactions implicitly and only before DML, so
a ``CREATE TABLE`` followed by a failing statement would stay behind
after a rollback.  This adapter runs the driver in autocommit mode
(``isolation_level=None``) and opens transactions with an explicit
``BEGIN``, which makes DDL inside a migration step transactional.

Usage::

    from sqlspine.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    conn.begin()
    conn.execute("CREATE TABLE t (id INTEGER)")
    conn.rollback()                # the table is gone again
    conn.close()
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any


def _adapt(value: Any) -> Any:
    # sqlite3's default datetime adapter is deprecated; store ISO-8601 text
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    Maintains a single cursor so that ``execute`` / ``fetchone`` /
    ``fetchall`` operate on the same result set.
    """

    dialect_name = "sqlite"

    def __init__(self, path: str = ":memory:", *, row_factory: Any = sqlite3.Row) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = row_factory
        self._cursor = self._conn.cursor()

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, tuple(_adapt(p) for p in params))
        return self._cursor

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def begin(self) -> None:
        self._conn.execute("BEGIN")

    def commit(self) -> None:
        if self._conn.in_transaction:
            self._conn.commit()

    def rollback(self) -> None:
        if self._conn.in_transaction:
            self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self._conn!r})"
