"""
Canonical protocol definitions for sqlspine.

The migration engine depends on two capabilities and nothing else: a
database connection it can run statements and transactions on, and a
source that lists declared migrations.  Both are structural protocols;
any object with the right shape works, no base class required.

Manifesto:
    Protocols define contracts without inheritance. They enable:
    - **Decoupling:** The planner and executor depend on shape, not drivers
    - **Testability:** An in-memory list is as good a source as a directory
    - **Portability:** Same engine on SQLite and SQLAlchemy-backed databases

Architecture:
    ::

        protocols.py (YOU ARE HERE)
        ├── Connection          sync DB protocol with explicit transactions
        └── MigrationSource     "list declared migrations"

    Implementations:
        Connection       → SqliteConnection, SAConnectionBridge
        MigrationSource  → MemoryMigrationSource, FileMigrationSource,
                           PackageMigrationSource, HttpMigrationSource

Guardrails:
    ❌ DON'T: Pass a raw ``sqlite3.Connection`` (no ``begin()``)
    ✅ DO: Wrap it with ``SqliteConnection`` or use ``create_connection()``

    ❌ DON'T: Return migrations from a source in discovery order and rely on it
    ✅ DO: Let the planner sort; sources sort too, but only as a courtesy

Tags:
    protocol, connection, migration-source, sqlspine, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqlspine.migrate.models import Migration


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface used by the engine.

    Parameters are always passed with ``?`` (qmark) placeholders.
    Adapters translate for their driver.

    Architecture:
        ::

            Connection Protocol:
            ┌────────────────────────────────────────────────────────┐
            │ execute(sql, params)   → Execute single statement      │
            │ fetchone()             → Get one result row            │
            │ fetchall()             → Get all result rows           │
            │ begin()                → Open a transaction            │
            │ commit()               → Commit transaction            │
            │ rollback()             → Rollback transaction          │
            └────────────────────────────────────────────────────────┘

    Outside ``begin()``/``commit()`` the connection must behave as
    autocommit, so ``notransaction`` migrations take effect statement by
    statement.
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters. SYNC."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query. SYNC."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query. SYNC."""
        ...

    def begin(self) -> None:
        """Open a transaction. SYNC."""
        ...

    def commit(self) -> None:
        """Commit current transaction. SYNC."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction. SYNC."""
        ...


@runtime_checkable
class MigrationSource(Protocol):
    """
    Capability: produce the declared migrations for one call.

    Called once per plan; implementations may re-read their backing
    store every time.
    """

    def find_migrations(self) -> list[Migration]:
        """Return every declared migration."""
        ...


__all__ = ["Connection", "MigrationSource"]
