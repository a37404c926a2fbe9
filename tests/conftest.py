"""
Shared pytest fixtures and configuration for sqlspine tests.

This module provides:
- SQLite connections (in-memory and file-backed)
- The two-migration ``people`` fixture set used across executor tests
- A directory of ``.sql`` migration files

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments.

    def test_something(conn, people_source):
        ...
"""

from __future__ import annotations

import textwrap
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from sqlspine.core.sqlite_conn import SqliteConnection
from sqlspine.migrate.models import Migration
from sqlspine.migrate.sources import MemoryMigrationSource


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: tests touching files or the CLI end to end")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = item.path.relative_to(Path(__file__).parent)

        if test_path.parts and test_path.parts[0] == "cli":
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Logging Cleanup
# =============================================================================


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo configure_logging() calls made by CLI commands."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture()
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection with transactional DDL."""
    c = SqliteConnection(":memory:")
    yield c
    c.close()


# =============================================================================
# Migration Fixtures
# =============================================================================


@pytest.fixture()
def people_migrations() -> list[Migration]:
    """``123`` creates ``people``; ``124`` adds ``first_name``."""
    return [
        Migration(
            id="123",
            up=["CREATE TABLE people (id int);"],
            down=["DROP TABLE people;"],
        ),
        Migration(
            id="124",
            up=["ALTER TABLE people ADD COLUMN first_name text;"],
            down=["SELECT 0;"],
        ),
    ]


@pytest.fixture()
def people_source(people_migrations: list[Migration]) -> MemoryMigrationSource:
    return MemoryMigrationSource(people_migrations)


@pytest.fixture()
def migrations_dir(tmp_path: Path) -> Path:
    """Directory with ``1_initial.sql`` and ``2_record.sql``."""
    d = tmp_path / "migrations"
    d.mkdir()
    (d / "1_initial.sql").write_text(
        textwrap.dedent("""\
            -- +migrate Up
            -- SQL in section 'Up' is executed when this migration is applied
            CREATE TABLE people (id int);

            -- +migrate Down
            -- SQL section 'Down' is executed when this migration is rolled back
            DROP TABLE people;
        """),
        encoding="utf-8",
    )
    (d / "2_record.sql").write_text(
        textwrap.dedent("""\
            -- +migrate Up
            INSERT INTO people (id) VALUES (1);

            -- +migrate Down
            DELETE FROM people WHERE id=1;
        """),
        encoding="utf-8",
    )
    return d
