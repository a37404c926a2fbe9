"""
Migration executor.

Manifesto:
    A run is a sequence of steps and each step is all-or-nothing: its
    statements and its ledger row commit together or not at all.  The
    first failure rolls back the step in flight and stops the run.  Steps
    committed before the failure stay committed, and the raised error
    says how many there were (``applied_count``), because an operator
    has to know exactly where the database was left.

    - **Transactional steps:** ``begin`` / statements / ledger / ``commit``
    - **No retries:** every failure surfaces to the caller
    - **Explicit config:** a :class:`MigrationConfig` per ``MigrationSet``,
      never module-level mutable state
    - **Interruptible:** deadline and cancel token checked before every
      statement; the step in flight is rolled back

Architecture:
    ::

        source.find_migrations() ─┐
                                  ├─► planner.plan() ─► [PlannedMigration]
        ledger.records() ─────────┘                          │
                                                             ▼
                           per step: begin ─► statements ─► ledger ─► commit

Examples:
    >>> from sqlspine.core.sqlite_conn import SqliteConnection
    >>> from sqlspine.migrate import FileMigrationSource, MigrationSet, Direction
    >>> conn = SqliteConnection(":memory:")
    >>> MigrationSet().exec(conn, FileMigrationSource("migrations"), Direction.UP)
    2

Tags:
    migrations, executor, transactions, ledger, sqlspine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Any

from sqlspine.core.deadline import Cancelled, Deadline, DeadlineExpired, check_interrupt
from sqlspine.core.dialect import Dialect, get_dialect
from sqlspine.core.errors import (
    LedgerWriteError,
    MigrationCancelledError,
    MigrationExecutionError,
    StatementError,
)
from sqlspine.core.logging import LogContext, get_logger
from sqlspine.core.protocols import MigrationSource
from sqlspine.core.settings import DEFAULT_TABLE_NAME, MigrateSettings
from sqlspine.migrate import ordering
from sqlspine.migrate.ledger import MigrationLedger
from sqlspine.migrate.models import Direction, MigrationRecord, MigrationStatus, PlannedMigration
from sqlspine.migrate.planner import plan

logger = get_logger(__name__)


@dataclass(frozen=True)
class MigrationConfig:
    """Ledger and planning options for one :class:`MigrationSet`."""

    table_name: str = DEFAULT_TABLE_NAME
    schema_name: str | None = None
    ignore_unknown: bool = False
    disable_create_table: bool = False

    @classmethod
    def from_settings(cls, settings: MigrateSettings) -> MigrationConfig:
        return cls(
            table_name=settings.table_name,
            schema_name=settings.schema_name,
            ignore_unknown=settings.ignore_unknown,
            disable_create_table=settings.disable_create_table,
        )


class MigrationSet:
    """Plans and runs migrations against one ledger configuration.

    Parameters
    ----------
    config
        Ledger table, schema and planning flags.  Defaults to
        ``MigrationConfig()``.
    dialect
        Ledger dialect.  When omitted it is looked up from the
        connection's ``dialect_name`` (SQLite if the connection has none).
    """

    def __init__(self, config: MigrationConfig | None = None, dialect: Dialect | None = None) -> None:
        self.config = config or MigrationConfig()
        self._dialect = dialect

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _ledger(self, conn: Any) -> MigrationLedger:
        dialect = self._dialect or get_dialect(getattr(conn, "dialect_name", "sqlite"))
        ledger = MigrationLedger(conn, dialect, self.config.table_name, self.config.schema_name)
        if not self.config.disable_create_table:
            ledger.ensure_table()
        return ledger

    def _plan(
        self,
        ledger: MigrationLedger,
        source: MigrationSource,
        direction: Direction,
        limit: int = 0,
        version: int | None = None,
    ) -> list[PlannedMigration]:
        declared = source.find_migrations()
        records = ledger.records()
        return plan(
            declared,
            records,
            Direction(direction),
            limit=limit,
            version=version,
            ignore_unknown=self.config.ignore_unknown,
        )

    def plan_migration(
        self,
        conn: Any,
        source: MigrationSource,
        direction: Direction,
        max: int = 0,  # noqa: A002
    ) -> list[PlannedMigration]:
        """Steps a run would execute, without executing them."""
        return self._plan(self._ledger(conn), source, direction, limit=max)

    def plan_migration_to_version(
        self,
        conn: Any,
        source: MigrationSource,
        direction: Direction,
        version: int,
    ) -> list[PlannedMigration]:
        """Steps a run to ``version`` would execute, without executing them."""
        return self._plan(self._ledger(conn), source, direction, version=version)

    def get_migration_records(self, conn: Any) -> list[MigrationRecord]:
        """Ledger rows sorted by identifier ordering."""
        return self._ledger(conn).records()

    def status(self, conn: Any, source: MigrationSource) -> list[MigrationStatus]:
        """One row per declared migration, plus rows for unknown ledger ids."""
        ledger = self._ledger(conn)
        applied = {r.id: r for r in ledger.records()}
        rows = []
        for migration in source.find_migrations():
            record = applied.pop(migration.id, None)
            rows.append(
                MigrationStatus(
                    id=migration.id,
                    migrated=record is not None,
                    applied_at=record.applied_at if record else None,
                )
            )
        for record in applied.values():
            rows.append(MigrationStatus(id=record.id, migrated=True, applied_at=record.applied_at, unknown=True))
        rows.sort(key=lambda s: ordering.sort_key(s.id))
        return rows

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def exec(
        self,
        conn: Any,
        source: MigrationSource,
        direction: Direction,
        *,
        deadline: float | Deadline | None = None,
        cancel: threading.Event | None = None,
    ) -> int:
        """Run every step in ``direction``.  Returns the number committed.

        Raises:
            PlanError: Nothing ran.
            MigrationExecutionError: A step failed; ``applied_count``
                steps were committed before it.
        """
        return self._exec(conn, source, direction, 0, None, deadline, cancel)

    def exec_max(
        self,
        conn: Any,
        source: MigrationSource,
        direction: Direction,
        max: int,  # noqa: A002
        *,
        deadline: float | Deadline | None = None,
        cancel: threading.Event | None = None,
    ) -> int:
        """Run at most ``max`` steps (0 = all)."""
        return self._exec(conn, source, direction, max, None, deadline, cancel)

    def exec_version(
        self,
        conn: Any,
        source: MigrationSource,
        direction: Direction,
        version: int,
        *,
        deadline: float | Deadline | None = None,
        cancel: threading.Event | None = None,
    ) -> int:
        """Run steps up to and including the migration numbered ``version``."""
        return self._exec(conn, source, direction, 0, version, deadline, cancel)

    def _exec(
        self,
        conn: Any,
        source: MigrationSource,
        direction: Direction,
        limit: int,
        version: int | None,
        deadline: float | Deadline | None,
        cancel: threading.Event | None,
    ) -> int:
        direction = Direction(direction)
        if isinstance(deadline, (int, float)):
            deadline = Deadline(float(deadline), operation=f"migrate {direction.value}")

        ledger = self._ledger(conn)
        steps = self._plan(ledger, source, direction, limit=limit, version=version)

        applied = 0
        with LogContext(run_id=uuid.uuid4().hex[:12], direction=direction.value):
            logger.info("migration.run.started", steps=len(steps), table=ledger.qualified_table)
            for step in steps:
                self._apply_step(conn, ledger, step, applied, deadline, cancel)
                applied += 1
            logger.info("migration.run.completed", applied=applied)
        return applied

    def _apply_step(
        self,
        conn: Any,
        ledger: MigrationLedger,
        step: PlannedMigration,
        applied: int,
        deadline: Deadline | None,
        cancel: threading.Event | None,
    ) -> None:
        direction = step.direction.value
        label = f"{direction} {step.id}"
        log = logger.bind(migration_id=step.id, direction=direction, catch_up=step.catch_up)
        log.info("migration.step.started", statements=len(step.queries), transaction=not step.disable_transaction)

        try:
            check_interrupt(deadline, cancel, label)
            if not step.disable_transaction:
                try:
                    conn.begin()
                except Exception as e:
                    raise StatementError(
                        f"Migration {step.id} ({direction}) failed to begin a transaction: {e}",
                        migration_id=step.id,
                        direction=direction,
                        cause=e,
                    )

            for query in step.queries:
                check_interrupt(deadline, cancel, label)
                try:
                    conn.execute(query)
                    if step.disable_transaction:
                        conn.commit()
                except Exception as e:
                    raise StatementError(
                        f"Migration {step.id} ({direction}) failed: {e}",
                        migration_id=step.id,
                        direction=direction,
                        statement=query,
                        cause=e,
                    )

            if step.direction == Direction.UP:
                ledger.insert(step.id)
            else:
                ledger.delete(step.id)

            try:
                conn.commit()
            except Exception as e:
                raise LedgerWriteError(
                    f"Migration {step.id} ({direction}) failed to commit: {e}",
                    migration_id=step.id,
                    direction=direction,
                    cause=e,
                )
        except (Cancelled, DeadlineExpired) as e:
            conn.rollback()
            log.warning("migration.step.failed", error=str(e), applied=applied)
            raise MigrationCancelledError(
                f"Migration run interrupted at {step.id} ({direction}): {e}",
                applied_count=applied,
                migration_id=step.id,
                direction=direction,
                cause=e,
            )
        except MigrationExecutionError as e:
            conn.rollback()
            e.applied_count = applied
            log.error("migration.step.failed", error=str(e), applied=applied, error_type=type(e).__name__)
            raise

        log.info("migration.step.applied")


# =========================================================================
# Module-level API with default configuration
# =========================================================================


def _default() -> MigrationSet:
    return MigrationSet()


def exec(  # noqa: A001
    conn: Any,
    source: MigrationSource,
    direction: Direction,
    *,
    deadline: float | Deadline | None = None,
    cancel: threading.Event | None = None,
) -> int:
    return _default().exec(conn, source, direction, deadline=deadline, cancel=cancel)


def exec_max(
    conn: Any,
    source: MigrationSource,
    direction: Direction,
    max: int,  # noqa: A002
    *,
    deadline: float | Deadline | None = None,
    cancel: threading.Event | None = None,
) -> int:
    return _default().exec_max(conn, source, direction, max, deadline=deadline, cancel=cancel)


def exec_version(
    conn: Any,
    source: MigrationSource,
    direction: Direction,
    version: int,
    *,
    deadline: float | Deadline | None = None,
    cancel: threading.Event | None = None,
) -> int:
    return _default().exec_version(conn, source, direction, version, deadline=deadline, cancel=cancel)


def plan_migration(
    conn: Any,
    source: MigrationSource,
    direction: Direction,
    max: int = 0,  # noqa: A002
) -> list[PlannedMigration]:
    return _default().plan_migration(conn, source, direction, max)


def plan_migration_to_version(
    conn: Any,
    source: MigrationSource,
    direction: Direction,
    version: int,
) -> list[PlannedMigration]:
    return _default().plan_migration_to_version(conn, source, direction, version)


def get_migration_records(conn: Any) -> list[MigrationRecord]:
    return _default().get_migration_records(conn)


__all__ = [
    "MigrationConfig",
    "MigrationSet",
    "exec",
    "exec_max",
    "exec_version",
    "plan_migration",
    "plan_migration_to_version",
    "get_migration_records",
]
