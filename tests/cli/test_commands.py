"""
Tests for the sqlspine CLI commands.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from sqlspine import __version__
from sqlspine.cli.app import app

runner = CliRunner()


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty working directory, isolated from SQLSPINE_* variables."""
    for key in list(os.environ):
        if key.startswith("SQLSPINE_"):
            monkeypatch.delenv(key)
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture()
def config(workdir: Path, migrations_dir: Path) -> Path:
    """dbconfig.yml pointing at a SQLite file and the fixture migrations."""
    path = workdir / "dbconfig.yml"
    path.write_text(
        "development:\n"
        f"  url: sqlite:///{workdir / 'app.db'}\n"
        f"  dir: {migrations_dir}\n"
        "production:\n"
        f"  url: sqlite:///{workdir / 'prod.db'}\n"
        f"  dir: {migrations_dir}\n"
        "  table: prod_migrations\n",
        encoding="utf-8",
    )
    return path


def invoke(*args: str):
    return runner.invoke(app, list(args))


# ── Root app ──────────────────────────────────────────────────────────


class TestRootApp:
    def test_help(self):
        result = invoke("--help")
        assert result.exit_code == 0
        for command in ("up", "down", "redo", "status", "new"):
            assert command in result.output

    def test_version(self):
        result = invoke("--version")
        assert result.exit_code == 0
        assert f"sqlspine {__version__}" in result.output

    def test_no_args_shows_help(self):
        result = invoke()
        assert result.exit_code in (0, 2)


# ── up / down ─────────────────────────────────────────────────────────


class TestUpDown:
    def test_up_applies_all(self, config: Path):
        result = invoke("up")
        assert result.exit_code == 0, result.output
        assert "Applied 2 migrations" in result.output

        again = invoke("up")
        assert "Applied 0 migrations" in again.output

    def test_explicit_config_path(self, config: Path, workdir: Path):
        moved = workdir / "conf" / "db.yml"
        moved.parent.mkdir()
        config.rename(moved)
        result = invoke("--config", str(moved), "up", "--limit", "1")
        assert result.exit_code == 0, result.output
        assert "Applied 1 migration" in result.output

    def test_up_to_version(self, config: Path):
        result = invoke("up", "--version", "1")
        assert result.exit_code == 0, result.output
        assert "Applied 1 migration" in result.output

    def test_down_reverts_one_by_default(self, config: Path):
        invoke("up")
        result = invoke("down")
        assert result.exit_code == 0, result.output
        assert "Applied 1 migration" in result.output

    def test_down_all(self, config: Path):
        invoke("up")
        result = invoke("down", "--limit", "0")
        assert "Applied 2 migrations" in result.output

    def test_dry_run_changes_nothing(self, config: Path):
        result = invoke("up", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "Would apply migration 1_initial.sql (up)" in result.output
        assert "CREATE TABLE people (id int);" in result.output

        status = invoke("status", "--json")
        assert all(row["migrated"] is False for row in json.loads(status.output))

    def test_down_dry_run_with_nothing_applied(self, config: Path):
        result = invoke("down", "--dry-run")
        assert result.exit_code == 0
        assert "Nothing to do" in result.output

    def test_environment_block(self, config: Path, workdir: Path):
        result = invoke("--env", "production", "up")
        assert result.exit_code == 0, result.output
        assert (workdir / "prod.db").exists()
        assert not (workdir / "app.db").exists()

    def test_settings_from_environment(self, workdir: Path, migrations_dir: Path):
        result = runner.invoke(
            app,
            ["up"],
            env={
                "SQLSPINE_DATABASE_URL": f"sqlite:///{workdir / 'env.db'}",
                "SQLSPINE_MIGRATIONS_DIR": str(migrations_dir),
            },
        )
        assert result.exit_code == 0, result.output
        assert "Applied 2 migrations" in result.output


# ── redo / status / new ───────────────────────────────────────────────


class TestRedo:
    def test_redo(self, config: Path):
        invoke("up")
        result = invoke("redo")
        assert result.exit_code == 0, result.output
        assert "Reapplied migration 2_record.sql" in result.output

        rows = json.loads(invoke("status", "--json").output)
        assert [r["migrated"] for r in rows] == [True, True]

    def test_redo_dry_run(self, config: Path):
        invoke("up")
        result = invoke("redo", "--dry-run")
        assert "Would apply migration 2_record.sql (down)" in result.output
        assert "Would apply migration 2_record.sql (up)" in result.output

    def test_redo_reports_revert_when_reapply_fails(self, config: Path, migrations_dir: Path):
        (migrations_dir / "3_tags.sql").write_text(
            "-- +migrate Up\nCREATE TABLE tags (id int);\n\n-- +migrate Down\nSELECT 0;\n",
            encoding="utf-8",
        )
        invoke("up")
        result = invoke("redo")
        assert result.exit_code == 1
        assert "Reverted migration 3_tags.sql" in result.output
        assert "Reapplied" not in result.output
        assert "Error" in result.output

        rows = json.loads(invoke("status", "--json").output)
        assert [(r["id"], r["migrated"]) for r in rows][-1] == ("3_tags.sql", False)

    def test_redo_nothing_applied(self, config: Path):
        result = invoke("redo")
        assert result.exit_code == 0
        assert "Nothing to do" in result.output


class TestStatus:
    def test_table(self, config: Path):
        invoke("up", "--limit", "1")
        result = invoke("status")
        assert result.exit_code == 0, result.output
        assert "1_initial.sql" in result.output
        assert "2_record.sql" in result.output
        assert "no" in result.output

    def test_json(self, config: Path):
        invoke("up", "--limit", "1")
        rows = json.loads(invoke("status", "--json").output)
        assert [(r["id"], r["migrated"]) for r in rows] == [("1_initial.sql", True), ("2_record.sql", False)]
        assert rows[0]["applied_at"] is not None


class TestNew:
    def test_creates_template(self, config: Path, migrations_dir: Path):
        result = invoke("new", "add_users")
        assert result.exit_code == 0, result.output
        [created] = list(migrations_dir.glob("*-add_users.sql"))
        text = created.read_text(encoding="utf-8")
        assert "-- +migrate Up" in text
        assert "-- +migrate Down" in text

    def test_creates_missing_directory(self, workdir: Path):
        result = runner.invoke(app, ["new", "init"], env={"SQLSPINE_MIGRATIONS_DIR": str(workdir / "fresh")})
        assert result.exit_code == 0, result.output
        assert len(list((workdir / "fresh").glob("*-init.sql"))) == 1

    def test_rejects_path_in_name(self, config: Path):
        result = invoke("new", "../escape")
        assert result.exit_code == 1


# ── Errors ────────────────────────────────────────────────────────────


class TestErrors:
    def test_no_database_configured(self, workdir: Path):
        result = invoke("status")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_config_file(self, workdir: Path):
        result = invoke("--config", "missing.yml", "up")
        assert result.exit_code == 1
        assert "CONFIG" in result.output

    def test_unknown_migration_in_database(self, config: Path, migrations_dir: Path):
        invoke("up")
        (migrations_dir / "2_record.sql").unlink()
        result = invoke("up")
        assert result.exit_code == 1
        assert "PLAN" in result.output

    def test_failed_migration_reports_progress(self, config: Path, migrations_dir: Path):
        (migrations_dir / "3_broken.sql").write_text("-- +migrate Up\nSELECT fail;\n", encoding="utf-8")
        result = invoke("up")
        assert result.exit_code == 1
        assert "Applied 2 migrations" in result.output
        assert "Error" in result.output

    def test_unknown_dialect(self, config: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SQLSPINE_DIALECT", "oracle")
        result = invoke("up")
        assert result.exit_code == 1
        assert "CONFIG" in result.output
