"""Tests for core.settings module.

Covers:
- MigrateSettings defaults
- Environment variable override
- dbconfig.yml environment blocks and variable expansion
- Precedence of file, environment and explicit overrides
"""

from pathlib import Path

import pytest

from sqlspine.core.errors import InvalidConfigError, MissingConfigError
from sqlspine.core.settings import (
    DEFAULT_TABLE_NAME,
    MigrateSettings,
    load_settings,
    read_config_file,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Isolate from SQLSPINE_* variables and any .env in the working directory."""
    import os

    for key in list(os.environ):
        if key.startswith("SQLSPINE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "dbconfig.yml"
    path.write_text(
        "development:\n"
        "  url: sqlite:///dev.db\n"
        "  dir: db/migrations\n"
        "production:\n"
        "  url: ${SQLSPINE_TEST_DB}\n"
        "  dialect: postgres\n"
        "  table: schema_migrations\n"
        "  schema: ops\n"
        "  ignore_unknown: true\n",
        encoding="utf-8",
    )
    return path


class TestMigrateSettingsDefaults:
    def test_defaults(self):
        s = MigrateSettings()
        assert s.database_url is None
        assert s.migrations_dir == Path("migrations")
        assert s.table_name == DEFAULT_TABLE_NAME
        assert s.schema_name is None
        assert s.ignore_unknown is False
        assert s.disable_create_table is False
        assert s.log_level == "WARNING"


class TestMigrateSettingsEnvOverride:
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SQLSPINE_DATABASE_URL", "sqlite:///env.db")
        monkeypatch.setenv("SQLSPINE_IGNORE_UNKNOWN", "true")
        s = MigrateSettings()
        assert s.database_url == "sqlite:///env.db"
        assert s.ignore_unknown is True

    def test_dotenv_file(self, tmp_path: Path):
        (tmp_path / ".env").write_text("SQLSPINE_TABLE_NAME=from_dotenv\n", encoding="utf-8")
        assert MigrateSettings().table_name == "from_dotenv"


class TestReadConfigFile:
    def test_development_block(self, config_file: Path):
        values = read_config_file(config_file)
        assert values == {"database_url": "sqlite:///dev.db", "migrations_dir": "db/migrations"}

    def test_expands_environment_variables(self, config_file: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SQLSPINE_TEST_DB", "postgresql://app@db/prod")
        values = read_config_file(config_file, "production")
        assert values["database_url"] == "postgresql://app@db/prod"
        assert values["schema_name"] == "ops"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(MissingConfigError):
            read_config_file(tmp_path / "nope.yml")

    def test_missing_environment(self, config_file: Path):
        with pytest.raises(MissingConfigError, match="staging"):
            read_config_file(config_file, "staging")

    def test_unknown_key(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("development:\n  colour: blue\n", encoding="utf-8")
        with pytest.raises(InvalidConfigError, match="colour"):
            read_config_file(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(InvalidConfigError):
            read_config_file(path)

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "broken.yml"
        path.write_text("development: [unclosed\n", encoding="utf-8")
        with pytest.raises(InvalidConfigError):
            read_config_file(path)


class TestLoadSettings:
    def test_without_file(self):
        assert load_settings().table_name == DEFAULT_TABLE_NAME

    def test_file_values(self, config_file: Path):
        s = load_settings(config_file, "production")
        assert s.table_name == "schema_migrations"
        assert s.dialect == "postgres"
        assert s.ignore_unknown is True

    def test_env_beats_file(self, config_file: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SQLSPINE_DATABASE_URL", "sqlite:///override.db")
        s = load_settings(config_file)
        assert s.database_url == "sqlite:///override.db"
        assert s.migrations_dir == Path("db/migrations")

    def test_overrides_beat_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SQLSPINE_TABLE_NAME", "from_env")
        assert load_settings(table_name="from_flag").table_name == "from_flag"

    def test_none_override_ignored(self, config_file: Path):
        assert load_settings(config_file, database_url=None).database_url == "sqlite:///dev.db"
