"""
Migration sources.

Manifesto:
    A source answers one question: which migrations exist?  Where they
    live (a Python list, a directory, files bundled inside a package, an
    HTTP server) is the source's business; the planner only ever sees a
    sorted list of :class:`Migration` objects.

    Every source returns its migrations sorted by version-aware identifier
    ordering and rejects duplicate ids.  File-backed sources use the file
    name as the migration id and parse the body with
    :func:`sqlspine.migrate.parser.migration_from_text`.

Architecture:
    ::

        MigrationSource (protocol: find_migrations)
        ├── MemoryMigrationSource    in-process list
        ├── FileMigrationSource      *.sql in a directory
        ├── PackageMigrationSource   *.sql resources in an importable package
        └── HttpMigrationSource      *.sql fetched with httpx

Examples:
    >>> source = FileMigrationSource("db/migrations")
    >>> [m.id for m in source.find_migrations()]
    ['1_initial.sql', '2_record.sql']

Tags:
    migrations, sources, httpx, importlib.resources, sqlspine

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterable
from importlib import resources
from pathlib import Path
from typing import Any

import httpx

from sqlspine.core.errors import SourceError, SourceNotFoundError, SourceUnavailableError
from sqlspine.core.logging import get_logger
from sqlspine.migrate import ordering
from sqlspine.migrate.models import Migration
from sqlspine.migrate.parser import migration_from_text

logger = get_logger(__name__)

SQL_SUFFIX = ".sql"
HTTP_INDEX_FILE = "index.txt"


def _read_text(entry: Any, source: str) -> str:
    """Read a migration file as UTF-8."""
    try:
        return entry.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SourceError(
            f"Migration file {entry.name} in {source} is not valid UTF-8: {e}", cause=e
        ).with_context(migration_id=entry.name, source=source)


def _finalize(migrations: Iterable[Migration], source: str) -> list[Migration]:
    """Sort by identifier ordering and reject duplicate ids."""
    result = sorted(migrations, key=lambda m: ordering.sort_key(m.id))
    seen: set[str] = set()
    for migration in result:
        if migration.id in seen:
            raise SourceError(f"Duplicate migration id {migration.id!r} in {source}").with_context(
                migration_id=migration.id, source=source
            )
        seen.add(migration.id)
    return result


# ── In-memory ────────────────────────────────────────────────────────────


class MemoryMigrationSource:
    """Migrations held in a Python list."""

    def __init__(self, migrations: Iterable[Migration] = ()):
        self.migrations = list(migrations)

    def find_migrations(self) -> list[Migration]:
        return _finalize(self.migrations, "memory")


# ── Directory ────────────────────────────────────────────────────────────


class FileMigrationSource:
    """Every ``*.sql`` file directly inside ``directory``.

    Subdirectories are not searched.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def find_migrations(self) -> list[Migration]:
        if not self.directory.is_dir():
            raise SourceNotFoundError(
                f"Migration directory not found: {self.directory}"
            ).with_context(source=str(self.directory))

        migrations = []
        for path in self.directory.iterdir():
            if path.suffix != SQL_SUFFIX or not path.is_file():
                continue
            migrations.append(migration_from_text(path.name, _read_text(path, str(self.directory))))

        logger.debug("migration.source.loaded", source=str(self.directory), count=len(migrations))
        return _finalize(migrations, str(self.directory))


# ── Package resources ────────────────────────────────────────────────────


class PackageMigrationSource:
    """``*.sql`` resources shipped inside an importable package.

    Args:
        package: Dotted package name, e.g. ``"myapp"``.
        directory: Resource subdirectory inside the package, e.g.
            ``"migrations"``.  Empty means the package root.
    """

    def __init__(self, package: str, directory: str = ""):
        self.package = package
        self.directory = directory

    def _label(self) -> str:
        return f"{self.package}:{self.directory}" if self.directory else self.package

    def find_migrations(self) -> list[Migration]:
        try:
            root = resources.files(self.package)
        except ModuleNotFoundError as e:
            raise SourceNotFoundError(
                f"Package not found: {self.package}", cause=e
            ).with_context(source=self._label())

        folder = root
        for part in filter(None, self.directory.split("/")):
            folder = folder / part
        if not folder.is_dir():
            raise SourceNotFoundError(
                f"Migration directory not found in package: {self._label()}"
            ).with_context(source=self._label())

        migrations = [
            migration_from_text(entry.name, _read_text(entry, self._label()))
            for entry in folder.iterdir()
            if entry.is_file() and entry.name.endswith(SQL_SUFFIX)
        ]
        logger.debug("migration.source.loaded", source=self._label(), count=len(migrations))
        return _finalize(migrations, self._label())


# ── HTTP ─────────────────────────────────────────────────────────────────


class HttpMigrationSource:
    """Migration files served over HTTP.

    File names come from ``names`` or, when omitted, from an ``index.txt``
    at ``base_url`` listing one file name per line (blank lines and ``#``
    comments ignored).

    Args:
        base_url: URL of the directory holding the files.
        names: Explicit list of file names to fetch.
        client: Optional ``httpx.Client``; one is created per call otherwise.
        timeout: Request timeout in seconds for the internal client.
    """

    def __init__(
        self,
        base_url: str,
        names: Iterable[str] | None = None,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.names = list(names) if names is not None else None
        self.client = client
        self.timeout = timeout

    def _get(self, client: httpx.Client, name: str) -> str:
        url = self.base_url + name
        try:
            resp = client.get(url)
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"Failed to fetch {url}: {e}", cause=e).with_context(source=url)
        if resp.status_code == 404:
            raise SourceNotFoundError(f"Not found: {url}").with_context(source=url)
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SourceUnavailableError(
                f"Failed to fetch {url}: HTTP {resp.status_code}", cause=e
            ).with_context(source=url)
        return resp.text

    def _list_names(self, client: httpx.Client) -> list[str]:
        if self.names is not None:
            return self.names
        index = self._get(client, HTTP_INDEX_FILE)
        names = []
        for line in index.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                names.append(line)
        return names

    def _fetch_all(self, client: httpx.Client) -> list[Migration]:
        return [
            migration_from_text(name, self._get(client, name))
            for name in self._list_names(client)
            if name.endswith(SQL_SUFFIX)
        ]

    def find_migrations(self) -> list[Migration]:
        if self.client is not None:
            migrations = self._fetch_all(self.client)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                migrations = self._fetch_all(client)
        logger.debug("migration.source.loaded", source=self.base_url, count=len(migrations))
        return _finalize(migrations, self.base_url)


__all__ = [
    "MemoryMigrationSource",
    "FileMigrationSource",
    "PackageMigrationSource",
    "HttpMigrationSource",
]
