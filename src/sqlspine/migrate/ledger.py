"""Applied-state ledger.

One table per target database records which migrations are applied::

    id          text primary key    migration identifier
    applied_at  timestamp           when the Up step committed

The ledger never commits on its own inside a step: ``insert`` and
``delete`` join whatever transaction the executor opened, so a step's
statements and its ledger row commit or roll back together.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlspine.core.dialect import Dialect, SQLiteDialect
from sqlspine.core.errors import DatabaseError, LedgerWriteError
from sqlspine.core.logging import get_logger
from sqlspine.core.settings import DEFAULT_TABLE_NAME
from sqlspine.migrate import ordering
from sqlspine.migrate.models import MigrationRecord

logger = get_logger(__name__)


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    # SQLite hands TIMESTAMP columns back as text
    return datetime.fromisoformat(str(value))


class MigrationLedger:
    """Read and write the ledger table on one connection.

    Parameters
    ----------
    conn
        A :class:`~sqlspine.core.protocols.Connection`.
    dialect
        Supplies identifier quoting and the table DDL.
    table_name
        Ledger table name, quoted on every use.
    schema_name
        Optional schema the table lives in.
    """

    def __init__(
        self,
        conn: Any,
        dialect: Dialect | None = None,
        table_name: str = DEFAULT_TABLE_NAME,
        schema_name: str | None = None,
    ) -> None:
        self._conn = conn
        self._dialect = dialect or SQLiteDialect()
        self.table_name = table_name
        self.schema_name = schema_name
        self.qualified_table = self._dialect.qualified_table(table_name, schema_name)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure_table(self) -> None:
        """Create the ledger table if it does not exist yet."""
        try:
            self._conn.execute(self._dialect.create_ledger_table(self.qualified_table))
            self._conn.commit()
        except Exception as e:
            self._conn.rollback()
            raise DatabaseError(
                f"Failed to create migration table {self.qualified_table}: {e}", cause=e
            ).with_context(table=self.qualified_table)

    def records(self) -> list[MigrationRecord]:
        """All ledger rows, sorted by identifier ordering."""
        try:
            self._conn.execute(f"SELECT id, applied_at FROM {self.qualified_table}")
            rows = self._conn.fetchall()
        except Exception as e:
            raise DatabaseError(
                f"Failed to read migration table {self.qualified_table}: {e}", cause=e
            ).with_context(table=self.qualified_table)

        records = [MigrationRecord(id=str(row[0]), applied_at=_to_datetime(row[1])) for row in rows]
        records.sort(key=lambda r: ordering.sort_key(r.id))
        return records

    def insert(self, migration_id: str, applied_at: datetime | None = None) -> None:
        """Record ``migration_id`` as applied.  Does not commit."""
        when = applied_at or datetime.now(UTC)
        try:
            self._conn.execute(
                f"INSERT INTO {self.qualified_table} (id, applied_at) VALUES (?, ?)",
                (migration_id, when),
            )
        except Exception as e:
            raise LedgerWriteError(
                f"Failed to record migration {migration_id}: {e}",
                migration_id=migration_id,
                direction="up",
                cause=e,
            ).with_context(table=self.qualified_table)

    def delete(self, migration_id: str) -> None:
        """Remove ``migration_id`` from the ledger.  Does not commit."""
        try:
            self._conn.execute(
                f"DELETE FROM {self.qualified_table} WHERE id = ?",
                (migration_id,),
            )
        except Exception as e:
            raise LedgerWriteError(
                f"Failed to remove migration record {migration_id}: {e}",
                migration_id=migration_id,
                direction="down",
                cause=e,
            ).with_context(table=self.qualified_table)

    def drop(self) -> None:
        """Drop the ledger table.  Forgets every applied migration."""
        self._conn.execute(f"DROP TABLE IF EXISTS {self.qualified_table}")
        self._conn.commit()
        logger.warning("migration.ledger.dropped", table=self.qualified_table)


__all__ = ["DEFAULT_TABLE_NAME", "MigrationLedger"]
