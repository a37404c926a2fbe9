"""
Root Typer application for the ``sqlspine`` CLI.

Commands read their settings from ``dbconfig.yml`` (``--config``,
``--env``) and ``SQLSPINE_*`` environment variables, then run against
the migrations in ``migrations_dir``.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import typer
from typer import Typer

from sqlspine.cli.utils import (
    CliState,
    console,
    handle_errors,
    load_cli_settings,
    migration_set,
    migration_source,
    open_connection,
    print_applied,
    print_plan,
    print_status,
)
from sqlspine.core.errors import InvalidConfigError
from sqlspine.core.settings import DEFAULT_ENVIRONMENT
from sqlspine.migrate.models import Direction

app = Typer(
    name="sqlspine",
    help="sqlspine: SQL schema migrations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

MIGRATION_TEMPLATE = """-- +migrate Up

-- +migrate Down
"""


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from sqlspine import __version__

        typer.echo(f"sqlspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Configuration file (default: ./dbconfig.yml if present)."
    ),
    env: str = typer.Option(DEFAULT_ENVIRONMENT, "--env", "-e", help="Environment block to use."),
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """sqlspine CLI: apply, revert and inspect migrations."""
    ctx.obj = CliState(config_file=config, environment=env)


# ── Commands ─────────────────────────────────────────────────────────────


def _migrate(
    ctx: typer.Context,
    direction: Direction,
    limit: int,
    version: int | None,
    dry_run: bool,
) -> None:
    with handle_errors():
        settings = load_cli_settings(ctx.obj)
        ms = migration_set(settings)
        source = migration_source(settings)
        with open_connection(settings) as conn:
            if dry_run:
                if version is not None:
                    steps = ms.plan_migration_to_version(conn, source, direction, version)
                else:
                    steps = ms.plan_migration(conn, source, direction, limit)
                print_plan(steps)
                return

            if version is not None:
                applied = ms.exec_version(conn, source, direction, version)
            else:
                applied = ms.exec_max(conn, source, direction, limit)
            print_applied(applied)


@app.command()
def up(
    ctx: typer.Context,
    limit: int = typer.Option(0, "--limit", "-n", help="Apply at most N migrations (0 = all)."),
    version: int | None = typer.Option(None, "--version", "-v", help="Migrate up to this version."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without running it."),
) -> None:
    """Apply pending migrations."""
    _migrate(ctx, Direction.UP, limit, version, dry_run)


@app.command()
def down(
    ctx: typer.Context,
    limit: int = typer.Option(1, "--limit", "-n", help="Revert at most N migrations (0 = all)."),
    version: int | None = typer.Option(None, "--version", "-v", help="Revert down to this version."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without running it."),
) -> None:
    """Revert applied migrations (the newest one by default)."""
    _migrate(ctx, Direction.DOWN, limit, version, dry_run)


@app.command()
def redo(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without running it."),
) -> None:
    """Revert the newest migration and apply it again."""
    with handle_errors():
        settings = load_cli_settings(ctx.obj)
        ms = migration_set(settings)
        source = migration_source(settings)
        with open_connection(settings) as conn:
            steps = ms.plan_migration(conn, source, Direction.DOWN, 1)
            if not steps:
                console.print("[dim]Nothing to do.[/dim]")
                return
            if dry_run:
                last = steps[-1]
                print_plan(steps)
                console.print(f"==> Would apply migration [bold]{last.id}[/bold] (up)")
                for query in last.migration.up:
                    console.print(query, markup=False, highlight=False)
                return

            migration_id = steps[-1].id
            ms.exec_max(conn, source, Direction.DOWN, 1)
            console.print(f"Reverted migration {migration_id}")
            ms.exec_max(conn, source, Direction.UP, 1)
            console.print(f"Reapplied migration {migration_id}")


@app.command()
def status(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show which migrations are applied."""
    with handle_errors():
        settings = load_cli_settings(ctx.obj)
        ms = migration_set(settings)
        source = migration_source(settings)
        with open_connection(settings) as conn:
            rows = ms.status(conn, source)
        print_status(rows, as_json=json_out)


@app.command()
def new(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Short description, e.g. add_users_table"),
) -> None:
    """Create a new, empty migration file."""
    with handle_errors():
        if not name or "/" in name or "\\" in name:
            raise InvalidConfigError("name", name, f"Invalid migration name: {name!r}")
        settings = load_cli_settings(ctx.obj)
        directory = Path(settings.migrations_dir)
        directory.mkdir(parents=True, exist_ok=True)

        filename = f"{datetime.now().strftime('%Y%m%d%H%M%S')}-{name}.sql"
        path = directory / filename
        if path.exists():
            raise InvalidConfigError("name", name, f"Migration already exists: {path}")
        path.write_text(MIGRATION_TEMPLATE, encoding="utf-8")
        console.print(f"Created migration {path}")
