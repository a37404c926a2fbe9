"""Connection factory: create database connections from URL strings.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/my.db`` or ``/tmp/app.db``          SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``postgres``        ``postgres://user:pw@host:port/db``          PostgreSQL
``mysql``           ``mysql+pymysql://user:pw@host/db``          MySQL
==================  ==========================================  ============

Usage
-----
::

    from sqlspine.core.connection import create_connection

    conn, info = create_connection("sqlite:///app.db")
    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/app.db')

Unlike a general-purpose factory there is no silent fallback: a
migration run against the wrong database is worse than no run, so an
unreachable server raises :class:`~sqlspine.core.errors.DatabaseError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlspine.core.errors import DatabaseError, InvalidConfigError
from sqlspine.core.logging import get_logger

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"``, ``"postgresql"``, ``"mysql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite_memory() -> tuple[Any, ConnectionInfo]:
    from sqlspine.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Any, ConnectionInfo]:
    from sqlspine.core.sqlite_conn import SqliteConnection

    path = Path(path_str)
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())

    conn = SqliteConnection(resolved)
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


def _create_sqlalchemy(url: str, backend: str) -> tuple[Any, ConnectionInfo]:
    """Create a server connection via the SQLAlchemy bridge."""
    from sqlalchemy.exc import SQLAlchemyError
    from sqlalchemy.orm import Session

    from sqlspine.core.sa_bridge import SAConnectionBridge, create_sqlspine_engine

    try:
        engine = create_sqlspine_engine(url)
        session = Session(bind=engine)
        # Fail fast on bad credentials / unreachable host
        session.connection()
    except SQLAlchemyError as exc:
        raise DatabaseError(f"Cannot connect to {backend}: {exc}", cause=exc) from exc

    logger.debug("connection.opened", backend=backend)
    return SAConnectionBridge(session), ConnectionInfo(backend=backend, persistent=True, url=url)


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into (scheme, target).

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"postgresql"``,
    ``"mysql"``, ``"file"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    if db.startswith("sqlite://"):
        path = db[len("sqlite:///"):] if db.startswith("sqlite:///") else db[len("sqlite://"):]
        if not path or path == ":memory:":
            return "memory", ":memory:"
        return "sqlite", path

    if db.startswith(("postgresql://", "postgres://", "postgresql+", "postgres+")):
        # SQLAlchemy only accepts the long scheme name
        if db.startswith("postgres:") or db.startswith("postgres+"):
            db = "postgresql" + db[len("postgres"):]
        return "postgresql", db

    if db.startswith(("mysql://", "mysql+", "mariadb://", "mariadb+")):
        return "mysql", db

    if "://" in db:
        return db.split("://", 1)[0], db

    # Bare file path is a SQLite file
    return "file", db


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(db: str | None = None) -> tuple[Any, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Returns
    -------
    tuple[Connection, ConnectionInfo]
        The connection object (satisfies ``Connection`` protocol)
        and metadata about it.  ``info.backend`` doubles as the dialect
        name for :func:`sqlspine.core.dialect.get_dialect`.

    Raises
    ------
    InvalidConfigError
        For an unsupported URL scheme.
    DatabaseError
        When a server backend cannot be reached.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        return _create_sqlite_memory()
    if scheme in ("sqlite", "file"):
        return _create_sqlite_file(target)
    if scheme in ("postgresql", "mysql"):
        return _create_sqlalchemy(target, scheme)

    raise InvalidConfigError("database_url", db, f"Unsupported database URL scheme {scheme!r}")
