"""Data model for migrations, ledger records and plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from sqlspine.migrate import ordering


class Direction(str, Enum):
    """Migration direction.  Up only adds ledger records, Down only removes them."""

    UP = "up"
    DOWN = "down"


@dataclass(eq=False)
class Migration:
    """A declared unit of schema change.

    Identity is the ``id`` alone: two migrations with the same id are
    the same migration whatever their statement bodies say.
    """

    id: str
    up: list[str] = field(default_factory=list)
    down: list[str] = field(default_factory=list)
    disable_transaction_up: bool = False
    disable_transaction_down: bool = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Migration):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def less(self, other: Migration) -> bool:
        return ordering.less(self.id, other.id)

    def version_int(self) -> int | None:
        return ordering.version_int(self.id)

    def statements(self, direction: Direction) -> list[str]:
        return list(self.up if direction == Direction.UP else self.down)

    def disable_transaction(self, direction: Direction) -> bool:
        if direction == Direction.UP:
            return self.disable_transaction_up
        return self.disable_transaction_down


@dataclass(frozen=True)
class MigrationRecord:
    """Ledger row: migration ``id`` was applied at ``applied_at``."""

    id: str
    applied_at: datetime


@dataclass
class PlannedMigration:
    """One step of a plan.

    ``catch_up`` marks Up steps the planner injected ahead of a Down run
    to fill holes below the newest applied migration; the caller did not
    ask for them explicitly.
    """

    migration: Migration
    direction: Direction
    queries: list[str]
    catch_up: bool = False
    disable_transaction: bool = False

    @property
    def id(self) -> str:
        return self.migration.id


@dataclass
class MigrationStatus:
    """One row of a status report."""

    id: str
    migrated: bool
    applied_at: datetime | None = None
    unknown: bool = False


__all__ = [
    "Direction",
    "Migration",
    "MigrationRecord",
    "PlannedMigration",
    "MigrationStatus",
]
