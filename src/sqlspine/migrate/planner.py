"""
Migration planner.

Manifesto:
    Planning is a pure function.  Given the migrations a source declares
    and the records the ledger holds, it decides which steps to run, in
    which order, and touches nothing.  The executor runs plans; the CLI
    prints them for ``--dry-run``.  Both get exactly the same list.

    The planner refuses to plan at all when the ledger names a migration
    the source no longer declares.  Running anything on top of a database
    whose history nobody can account for is how schemas drift.

Rules:
    - **Up:** every declared migration without a ledger record, ascending.
      Holes (unapplied ids below the newest applied one) are included.
    - **Down:** first *catch-up* Up steps for every hole below the newest
      applied id, then Down steps from the newest applied id downwards.
      After the catch-up the database matches a linear history, so the
      reversal is well defined.  ``limit`` counts Down steps only.
    - **Version:** ``version`` names the last step to run, matched on the
      leading integer of the id (``10_add_last_name.sql`` is version 10).
      Inclusive in both directions.

Examples:
    >>> declared = [Migration("1"), Migration("2"), Migration("3")]
    >>> applied = [MigrationRecord("1", now), MigrationRecord("3", now)]
    >>> [(s.id, s.direction.value) for s in plan(declared, applied, Direction.DOWN, limit=1)]
    [('2', 'up'), ('3', 'down')]

Tags:
    migrations, planner, ordering, reconciliation, sqlspine

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlspine.core.errors import PlanError
from sqlspine.migrate import ordering
from sqlspine.migrate.models import Direction, Migration, MigrationRecord, PlannedMigration


def _step(migration: Migration, direction: Direction, catch_up: bool = False) -> PlannedMigration:
    return PlannedMigration(
        migration=migration,
        direction=direction,
        queries=migration.statements(direction),
        catch_up=catch_up,
        disable_transaction=migration.disable_transaction(direction),
    )


def _cut_at_version(candidates: list[Migration], version: int, direction: Direction) -> list[Migration]:
    """Candidates in execution order up to and including ``version``."""
    for index, migration in enumerate(candidates):
        value = migration.version_int()
        if value is None:
            continue
        if value == version:
            return candidates[: index + 1]
        passed = value > version if direction == Direction.UP else value < version
        if passed:
            break
    raise PlanError(
        f"Unknown migration with version id {version} in {direction.value} plan",
        requested_version=version,
    )


def _cut(
    candidates: list[Migration],
    direction: Direction,
    limit: int,
    version: int | None,
) -> list[Migration]:
    if version is not None:
        return _cut_at_version(candidates, version, direction)
    if limit > 0:
        return candidates[:limit]
    return candidates


def plan(
    declared: Iterable[Migration],
    applied: Iterable[MigrationRecord],
    direction: Direction,
    *,
    limit: int = 0,
    version: int | None = None,
    ignore_unknown: bool = False,
) -> list[PlannedMigration]:
    """Compute the ordered steps that move ``applied`` towards ``declared``.

    Args:
        declared: Migrations from the source, any order.
        applied: Ledger records, any order.
        direction: ``Direction.UP`` or ``Direction.DOWN``.
        limit: Maximum number of steps (Down: reversions), 0 for all.
        version: Target version, inclusive.  Takes precedence over ``limit``.
        ignore_unknown: Drop ledger ids the source does not declare
            instead of failing.

    Returns:
        Steps in execution order.

    Raises:
        PlanError: Negative ``limit`` or ``version``, unknown applied ids,
            or a ``version`` that matches no candidate step.
    """
    direction = Direction(direction)
    if limit < 0:
        raise PlanError(f"Migration limit must not be negative, got {limit}")
    if version is not None and version < 0:
        raise PlanError(f"Unknown migration with version id {version}", requested_version=version)

    migrations = sorted(declared, key=lambda m: ordering.sort_key(m.id))
    known = {m.id for m in migrations}
    applied_ids = {r.id for r in applied}

    unknown = sorted(applied_ids - known, key=ordering.sort_key)
    if unknown and not ignore_unknown:
        raise PlanError(
            f"Unknown migration in database: {', '.join(unknown)}",
            unknown_ids=unknown,
        )
    applied_ids &= known

    if direction == Direction.UP:
        pending = [m for m in migrations if m.id not in applied_ids]
        return [_step(m, Direction.UP) for m in _cut(pending, direction, limit, version)]

    if not applied_ids:
        if version is not None:
            _cut_at_version([], version, direction)
        return []

    newest = max(applied_ids, key=ordering.sort_key)
    below = [m for m in migrations if not ordering.less(newest, m.id)]

    steps = [_step(m, Direction.UP, catch_up=True) for m in below if m.id not in applied_ids]
    revert = list(reversed(below))
    steps.extend(_step(m, Direction.DOWN) for m in _cut(revert, direction, limit, version))
    return steps


__all__ = ["plan"]
