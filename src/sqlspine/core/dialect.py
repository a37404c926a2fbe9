"""SQL dialect abstraction for the migration ledger.

The engine itself never writes backend-specific SQL.  Everything that
differs between databases for the ledger table (identifier quoting,
column types, the bootstrap DDL) comes from a ``Dialect``.  Migration
statements are passed to the database verbatim and are not touched by
the dialect.

Ledger queries always use ``?`` placeholders; the connection adapters
in :mod:`sqlspine.core.connection` translate them for their driver.

Manifesto:
    The same ledger code must run on SQLite, PostgreSQL and MySQL, and a
    ledger table called ``my migrations`` must work as well as
    ``sqlspine_migrations``.

    - **One interface:** Dialect protocol for all ledger DDL
    - **Safe names:** Table and schema names are always quoted
    - **Testable:** SQLiteDialect for tests, PostgreSQLDialect for prod

Architecture::

    ┌──────────────┐ ┌──────────────────────────┐ ┌────────────┐
    │ SQLite       │ │ PostgreSQL               │ │  MySQL     │
    │ "name"       │ │ "schema"."name"          │ │ `name`     │
    │ TIMESTAMP    │ │ TIMESTAMP WITH TIME ZONE │ │ DATETIME   │
    └──────────────┘ └──────────────────────────┘ └────────────┘

Examples:
    >>> from sqlspine.core.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.quote_identifier("my migrations")
    '"my migrations"'
    >>> get_dialect("postgres").qualified_table("ledger", "ops")
    '"ops"."ledger"'

Tags:
    dialect, sql, abstraction, portability, database, sqlspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (string) valid for the
    target database.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def quote_identifier(self, name: str) -> str:
        """Quote a table/schema name so any characters are allowed."""
        ...

    def qualified_table(self, table: str, schema: str | None = None) -> str:
        """Quoted ``schema.table`` (or just ``table``)."""
        ...

    def timestamp_type(self) -> str:
        """Column type used for ``applied_at``."""
        ...

    def create_ledger_table(self, qualified_table: str) -> str:
        """Idempotent DDL for the ledger table (``id``, ``applied_at``)."""
        ...


class _AnsiQuoting:
    """Double-quote identifiers, doubling embedded quotes."""

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def qualified_table(self, table: str, schema: str | None = None) -> str:
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)


class SQLiteDialect(_AnsiQuoting):
    """SQLite dialect: ``"quoted"`` names, ``TIMESTAMP`` column."""

    @property
    def name(self) -> str:
        return "sqlite"

    def timestamp_type(self) -> str:
        return "TIMESTAMP"

    def create_ledger_table(self, qualified_table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {qualified_table} ("
            f"id TEXT NOT NULL PRIMARY KEY, "
            f"applied_at {self.timestamp_type()} NOT NULL)"
        )


class PostgreSQLDialect(_AnsiQuoting):
    """PostgreSQL dialect: ``"quoted"`` names, timezone-aware timestamps."""

    @property
    def name(self) -> str:
        return "postgresql"

    def timestamp_type(self) -> str:
        return "TIMESTAMP WITH TIME ZONE"

    def create_ledger_table(self, qualified_table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {qualified_table} ("
            f"id VARCHAR(255) NOT NULL PRIMARY KEY, "
            f"applied_at {self.timestamp_type()} NOT NULL)"
        )


class MySQLDialect:
    """MySQL dialect: backtick-quoted names, ``DATETIME`` column."""

    @property
    def name(self) -> str:
        return "mysql"

    def quote_identifier(self, name: str) -> str:
        return "`" + name.replace("`", "``") + "`"

    def qualified_table(self, table: str, schema: str | None = None) -> str:
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def timestamp_type(self) -> str:
        return "DATETIME"

    def create_ledger_table(self, qualified_table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {qualified_table} ("
            f"id VARCHAR(255) NOT NULL PRIMARY KEY, "
            f"applied_at {self.timestamp_type()} NOT NULL)"
        )


# =========================================================================
# Registry / Factory
# =========================================================================

# Dialects are stateless, one instance each
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "sqlite3": SQLiteDialect(),  # alias
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.

    Example:
        >>> get_dialect("postgres").name
        'postgresql'
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'sqlite3', 'mariadb'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (lookup key is lower-cased)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "get_dialect",
    "register_dialect",
]
