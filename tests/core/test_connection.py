"""Tests for the connection factory."""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlspine.core.connection import ConnectionInfo, _parse_url, create_connection
from sqlspine.core.errors import DatabaseError, InvalidConfigError
from sqlspine.core.protocols import Connection
from sqlspine.core.sqlite_conn import SqliteConnection


class TestParseUrl:
    @pytest.mark.parametrize("url", [None, "", "memory", ":memory:", "sqlite://", "sqlite:///:memory:"])
    def test_memory(self, url):
        assert _parse_url(url) == ("memory", ":memory:")

    def test_sqlite_relative(self):
        assert _parse_url("sqlite:///data/app.db") == ("sqlite", "data/app.db")

    def test_sqlite_absolute(self):
        assert _parse_url("sqlite:////var/db/app.db") == ("sqlite", "/var/db/app.db")

    def test_postgres_normalized(self):
        assert _parse_url("postgres://u@h/db") == ("postgresql", "postgresql://u@h/db")

    def test_postgresql_driver(self):
        assert _parse_url("postgresql+psycopg2://u@h/db")[0] == "postgresql"

    def test_mysql(self):
        assert _parse_url("mysql+pymysql://u@h/db")[0] == "mysql"

    def test_bare_path(self):
        assert _parse_url("app.db") == ("file", "app.db")

    def test_other_scheme(self):
        assert _parse_url("oracle://h/db")[0] == "oracle"


class TestCreateConnection:
    def test_memory(self):
        conn, info = create_connection()
        assert isinstance(conn, SqliteConnection)
        assert isinstance(conn, Connection)
        assert info.is_sqlite
        assert info.persistent is False
        conn.close()

    def test_file(self, tmp_path: Path):
        path = tmp_path / "nested" / "app.db"
        conn, info = create_connection(f"sqlite:///{path}")
        conn.execute("CREATE TABLE t (id int)")
        conn.close()
        assert path.exists()
        assert info.persistent is True
        assert info.resolved_path == str(path.resolve())

    def test_unsupported_scheme(self):
        with pytest.raises(InvalidConfigError, match="oracle"):
            create_connection("oracle://h/db")

    def test_unreachable_server(self):
        pytest.importorskip("psycopg2")
        with pytest.raises(DatabaseError):
            create_connection("postgresql://nobody@127.0.0.1:1/none")


class TestConnectionInfo:
    def test_repr_prefers_path(self):
        info = ConnectionInfo(backend="sqlite", persistent=True, url="a.db", resolved_path="/x/a.db")
        assert "path='/x/a.db'" in repr(info)
