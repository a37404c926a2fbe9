"""SQLAlchemy engine factory and Connection bridge.

Manifesto:
    PostgreSQL and MySQL are reached through SQLAlchemy so sqlspine does
    not carry a driver-specific code path per backend.
    ``SAConnectionBridge`` wraps a ``Session`` to satisfy the
    :class:`sqlspine.core.protocols.Connection` protocol.

Migration statements are sent with ``exec_driver_sql`` and
``no_parameters=True``: the text reaches the driver untouched, so
``::text`` casts, ``%`` operators and ``:name`` tokens inside a migration
are not mistaken for bind parameters.  Only ledger queries, which carry
parameters, go through ``text()`` with ``?`` rewritten to named binds.

Tags:
    sqlspine, sqlalchemy, session, engine, bridge, connection

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session


def create_sqlspine_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int | None = None,
    pool_timeout: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine.

    Parameters
    ----------
    url:
        Database URL (``postgresql://…``, ``mysql+pymysql://…``).
    echo:
        If ``True``, log all SQL to stdout.
    pool_size, pool_timeout:
        Connection pool parameters.
    """
    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if pool_timeout is not None:
        pool_kwargs["pool_timeout"] = pool_timeout

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


_QUOTES = frozenset("\"'`")


def _rewrite_qmarks(sql: str, parameters: Sequence[Any]) -> tuple[str, dict[str, Any]]:
    """Convert positional ``?`` placeholders to ``:p0, :p1`` binds.

    ``?`` and ``:`` inside ``"..."``, ``'...'`` or `` `...` `` spans are
    literal text (a quoted ledger table name), so they are left alone
    and escaped for ``text()`` respectively.
    """
    rewritten, idx = [], 0
    quote: str | None = None
    for ch in sql:
        if quote is not None:
            if ch == quote:
                quote = None
            rewritten.append("\\:" if ch == ":" else ch)
        elif ch in _QUOTES:
            quote = ch
            rewritten.append(ch)
        elif ch == "?":
            rewritten.append(f":p{idx}")
            idx += 1
        else:
            rewritten.append(ch)
    mapping = {f"p{i}": v for i, v in enumerate(parameters)}
    return "".join(rewritten), mapping


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` look like ``Connection``.

    Implements: ``execute``, ``fetchone``, ``fetchall``, ``begin``,
    ``commit``, ``rollback``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._last_result: Any = None

    def execute(self, sql: str, parameters: Sequence[Any] = ()) -> SAConnectionBridge:
        if parameters:
            rewritten, mapping = _rewrite_qmarks(sql, parameters)
            self._last_result = self._session.execute(text(rewritten), mapping)
        else:
            self._last_result = self._session.connection().exec_driver_sql(
                sql, execution_options={"no_parameters": True}
            )
        return self

    # --- fetch ---

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_result is None or not self._last_result.returns_rows:
            return None
        row = self._last_result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if self._last_result is None or not self._last_result.returns_rows:
            return []
        return [tuple(r) for r in self._last_result.fetchall()]

    # --- transaction ---

    def begin(self) -> None:
        if not self._session.in_transaction():
            self._session.begin()

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        self._session.close()

    @property
    def dialect_name(self) -> str:
        """SQLAlchemy dialect name of the bound engine (``postgresql``, ``mysql``)."""
        return self._session.get_bind().dialect.name

    @property
    def session(self) -> Session:
        """Access the underlying SA session."""
        return self._session
