"""
CLI utility helpers: settings, connections and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from sqlspine.core.connection import create_connection
from sqlspine.core.dialect import get_dialect
from sqlspine.core.errors import (
    InvalidConfigError,
    MigrationExecutionError,
    MissingConfigError,
    SqlSpineError,
)
from sqlspine.core.logging import configure_logging
from sqlspine.core.settings import DEFAULT_CONFIG_FILE, MigrateSettings, load_settings
from sqlspine.migrate.executor import MigrationConfig, MigrationSet
from sqlspine.migrate.models import MigrationStatus, PlannedMigration
from sqlspine.migrate.sources import FileMigrationSource

console = Console()
err_console = Console(stderr=True)


# ── Settings / connection helpers ────────────────────────────────────────


@dataclass
class CliState:
    """Global options shared by every command (stored on ``ctx.obj``)."""

    config_file: Path | None = None
    environment: str = "development"


def load_cli_settings(state: CliState) -> MigrateSettings:
    """Load settings for a command and configure logging from them."""
    config_file = state.config_file
    if config_file is None and Path(DEFAULT_CONFIG_FILE).exists():
        config_file = Path(DEFAULT_CONFIG_FILE)
    settings = load_settings(config_file, state.environment)
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


def migration_set(settings: MigrateSettings) -> MigrationSet:
    dialect = None
    if settings.dialect:
        try:
            dialect = get_dialect(settings.dialect)
        except ValueError as e:
            raise InvalidConfigError("dialect", settings.dialect, str(e)) from e
    return MigrationSet(MigrationConfig.from_settings(settings), dialect=dialect)


@contextmanager
def open_connection(settings: MigrateSettings) -> Iterator[Any]:
    """Connect to ``settings.database_url`` and close the connection afterwards."""
    if not settings.database_url:
        raise MissingConfigError(
            "database_url",
            "No database configured: set 'url' in dbconfig.yml or SQLSPINE_DATABASE_URL",
        )
    conn, _info = create_connection(settings.database_url)
    try:
        yield conn
    finally:
        conn.close()


def migration_source(settings: MigrateSettings) -> FileMigrationSource:
    return FileMigrationSource(settings.migrations_dir)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print sqlspine errors in red and exit with status 1."""
    try:
        yield
    except MigrationExecutionError as e:
        console.print(f"Applied {_plural(e.applied_count)}")
        _fail(e)
    except SqlSpineError as e:
        _fail(e)


def _fail(error: SqlSpineError) -> None:
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _plural(count: int) -> str:
    return f"{count} migration" + ("" if count == 1 else "s")


def print_applied(count: int) -> None:
    console.print(f"Applied {_plural(count)}")


def print_plan(steps: list[PlannedMigration]) -> None:
    """Render a dry-run plan: each step and the statements it would run."""
    if not steps:
        console.print("[dim]Nothing to do.[/dim]")
        return
    for step in steps:
        note = " [dim](catch-up)[/dim]" if step.catch_up else ""
        console.print(f"==> Would apply migration [bold]{step.id}[/bold] ({step.direction.value}){note}")
        for query in step.queries:
            console.print(query, markup=False, highlight=False)


def print_status(rows: list[MigrationStatus], *, as_json: bool = False) -> None:
    if as_json:
        payload = [
            {
                "id": r.id,
                "migrated": r.migrated,
                "applied_at": r.applied_at.isoformat() if r.applied_at else None,
                "unknown": r.unknown,
            }
            for r in rows
        ]
        console.print_json(json.dumps(payload))
        return

    if not rows:
        console.print("[dim]No migrations.[/dim]")
        return

    table = Table(title="Migrations", show_lines=False, pad_edge=False)
    table.add_column("Migration", overflow="fold")
    table.add_column("Applied")
    for row in rows:
        if row.applied_at is None:
            applied = "[yellow]no[/yellow]"
        else:
            applied = row.applied_at.isoformat(sep=" ", timespec="seconds")
        if row.unknown:
            applied += " [red](unknown)[/red]"
        table.add_row(row.id, applied)
    console.print(table)
