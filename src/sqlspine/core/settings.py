"""Settings for sqlspine.

Configuration comes from three layers, later ones winning:

1. field defaults,
2. one environment block of a ``dbconfig.yml`` file,
3. ``SQLSPINE_*`` environment variables and ``.env``.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Switches that change planning (``ignore_unknown``) or bootstrapping
    (``disable_create_table``) are read once into a value object and
    passed to each call, never kept as mutable process-wide state.

    - **Pydantic validation:** Type-checked at startup, not mid-run
    - **Environment-driven:** Reads from env vars and .env files
    - **Per-environment files:** ``development`` / ``production`` blocks

Examples:
    ``dbconfig.yml``::

        development:
          url: sqlite:///dev.db
          dir: migrations
        production:
          url: ${DATABASE_URL}
          dir: migrations
          table: schema_migrations
          schema: ops

    >>> settings = load_settings("dbconfig.yml", "production")
    >>> settings.table_name
    'schema_migrations'

Tags:
    settings, configuration, pydantic, yaml, environment, sqlspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqlspine.core.errors import InvalidConfigError, MissingConfigError

DEFAULT_TABLE_NAME = "sqlspine_migrations"
DEFAULT_CONFIG_FILE = "dbconfig.yml"
DEFAULT_ENVIRONMENT = "development"

# dbconfig.yml key -> settings field
_FILE_KEYS = {
    "url": "database_url",
    "datasource": "database_url",
    "dir": "migrations_dir",
    "dialect": "dialect",
    "table": "table_name",
    "schema": "schema_name",
    "ignore_unknown": "ignore_unknown",
    "disable_create_table": "disable_create_table",
}


class MigrateSettings(BaseSettings):
    """Migration settings.

    Fields
    ──────
    database_url         : Connection URL or SQLite path
    migrations_dir       : Directory of ``.sql`` migration files
    dialect              : Override the dialect derived from the URL
    table_name           : Ledger table name
    schema_name          : Optional schema holding the ledger table
    ignore_unknown       : Plan even when the ledger has unknown ids
    disable_create_table : Do not create the ledger table automatically
    log_level            : Structlog log level
    json_logs            : JSON log lines (None = auto-detect tty)
    """

    model_config = SettingsConfigDict(
        env_prefix="SQLSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str | None = None
    migrations_dir: Path = Field(
        default=Path("migrations"),
        description="Directory of .sql migration files",
    )
    dialect: str | None = None

    # ── Ledger ───────────────────────────────────────────────────
    table_name: str = DEFAULT_TABLE_NAME
    schema_name: str | None = None
    ignore_unknown: bool = False
    disable_create_table: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    json_logs: bool | None = None


def read_config_file(path: Path | str, environment: str = DEFAULT_ENVIRONMENT) -> dict[str, Any]:
    """Read one environment block of a ``dbconfig.yml`` as settings kwargs.

    String values go through ``os.path.expandvars`` so secrets can stay
    in the environment.

    Raises:
        MissingConfigError: File or environment block missing.
        InvalidConfigError: File is not a mapping of mappings.
    """
    path = Path(path)
    if not path.exists():
        raise MissingConfigError(str(path), f"Config file not found: {path}")

    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise InvalidConfigError(str(path), None, f"Cannot parse {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise InvalidConfigError(str(path), document, f"{path} must contain a mapping of environments")
    if environment not in document:
        raise MissingConfigError(environment, f"Environment {environment!r} not found in {path}")

    block = document[environment]
    if not isinstance(block, dict):
        raise InvalidConfigError(environment, block, f"Environment {environment!r} must be a mapping")

    values: dict[str, Any] = {}
    for key, raw in block.items():
        field_name = _FILE_KEYS.get(key)
        if field_name is None:
            raise InvalidConfigError(key, raw, f"Unknown key {key!r} in environment {environment!r}")
        values[field_name] = os.path.expandvars(raw) if isinstance(raw, str) else raw
    return values


def load_settings(
    config_file: Path | str | None = None,
    environment: str = DEFAULT_ENVIRONMENT,
    **overrides: Any,
) -> MigrateSettings:
    """Build settings from an optional YAML file, the environment and overrides.

    Environment variables win over file values; explicit ``overrides``
    (e.g. CLI flags) win over both.
    """
    file_values = read_config_file(config_file, environment) if config_file else {}
    env_values = MigrateSettings().model_dump(exclude_unset=True)
    merged = {**file_values, **env_values}
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return MigrateSettings(**merged)


__all__ = [
    "DEFAULT_TABLE_NAME",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_ENVIRONMENT",
    "MigrateSettings",
    "read_config_file",
    "load_settings",
]
