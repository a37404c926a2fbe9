"""Tests for the SQLite connection adapter."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlspine.core.sqlite_conn import SqliteConnection


def _tables(conn: SqliteConnection) -> list[str]:
    conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return [row[0] for row in conn.fetchall()]


class TestTransactions:
    def test_ddl_rolls_back(self, conn: SqliteConnection):
        conn.begin()
        conn.execute("CREATE TABLE t (id int)")
        assert conn.in_transaction
        conn.rollback()
        assert "t" not in _tables(conn)

    def test_commit(self, conn: SqliteConnection):
        conn.begin()
        conn.execute("CREATE TABLE t (id int)")
        conn.commit()
        assert "t" in _tables(conn)

    def test_autocommit_outside_begin(self, conn: SqliteConnection):
        conn.execute("CREATE TABLE t (id int)")
        assert not conn.in_transaction
        conn.rollback()
        assert "t" in _tables(conn)

    def test_commit_without_transaction_is_noop(self, conn: SqliteConnection):
        conn.commit()
        conn.rollback()


class TestParameters:
    def test_datetime_stored_as_iso_text(self, conn: SqliteConnection):
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        conn.execute("CREATE TABLE t (at TIMESTAMP)")
        conn.execute("INSERT INTO t (at) VALUES (?)", (when,))
        conn.execute("SELECT at FROM t")
        assert conn.fetchone()[0] == when.isoformat()

    def test_dialect_name(self, conn: SqliteConnection):
        assert conn.dialect_name == "sqlite"
