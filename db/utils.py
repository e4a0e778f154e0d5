"""Shared helpers for working with the games catalog database."""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Any, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool
from urllib.parse import unquote, urlparse

db_lock = Lock()
"""Module-level lock to guard write access to the catalog database."""


class DatabaseEngine:
    """Wrapper exposing context-managed SQLAlchemy connections."""

    def __init__(self, engine: Engine):
        self._engine = engine

    @property
    def engine(self) -> Engine:
        """Return the underlying SQLAlchemy :class:`~sqlalchemy.engine.Engine`."""

        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @contextmanager
    def sa_connection(self) -> Iterator[Connection]:
        """Yield a read-only style :class:`~sqlalchemy.engine.Connection`."""

        with self._engine.connect() as conn:
            yield conn

    @contextmanager
    def begin(self) -> Iterator[Connection]:
        """Yield a connection inside a transaction committed on success."""

        with self._engine.begin() as conn:
            yield conn

    def dispose(self) -> None:
        """Dispose the underlying engine's connection pool."""

        self._engine.dispose()


def normalize_dsn(dsn: str) -> str:
    """Return ``dsn`` with hosting-provider aliases mapped to SQLAlchemy names."""

    text = (dsn or "").strip()
    if text.startswith("postgres://"):
        return "postgresql://" + text[len("postgres://"):]
    return text


def dsn_scheme(dsn: str) -> str:
    return urlparse(normalize_dsn(dsn)).scheme.split("+", 1)[0].lower()


def _configure_sqlite_connection(conn: Any, *, busy_timeout: float | None = None) -> Any:
    """Apply timeout tuning to SQLite connections when available."""

    if not isinstance(conn, sqlite3.Connection):
        return conn

    busy_timeout_ms = None
    if busy_timeout is not None:
        busy_timeout_ms = int(max(busy_timeout, 0) * 1000)
        if busy_timeout_ms <= 0:
            busy_timeout_ms = None

    pragmas: tuple[tuple[str, str | int | None, bool], ...] = (
        ("busy_timeout", busy_timeout_ms, False),
        ("journal_mode", "WAL", True),
        ("foreign_keys", "ON", False),
    )

    for name, value, fetch_result in pragmas:
        if value is None:
            continue
        try:
            cursor = conn.execute(f"PRAGMA {name}={value}")
            if fetch_result:
                cursor.fetchone()
        except sqlite3.OperationalError:  # pragma: no cover - best effort only
            continue

    return conn


def _resolve_sqlite_path_from_dsn(dsn: str) -> str:
    """Extract a filesystem path from a ``sqlite:///`` DSN string."""

    parsed = urlparse(dsn)
    if parsed.scheme != "sqlite":
        raise ValueError(f"Unsupported DSN scheme for SQLite resolver: {parsed.scheme}")

    path = unquote(parsed.path or "")
    if parsed.netloc and parsed.netloc not in {"", "localhost"}:
        # Support UNC-like hosts by prefixing them to the path component.
        path = f"//{parsed.netloc}{path}"

    if not path:
        raise ValueError("SQLite DSN must include a filesystem path")
    if path == "/:memory:":
        return ":memory:"

    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = candidate.resolve()
    candidate.parent.mkdir(parents=True, exist_ok=True)
    return os.fspath(candidate)


def build_engine_from_dsn(
    dsn: str,
    *,
    timeout: float | None = None,
    sslmode: str | None = None,
    pool_size: int = 5,
    pool_recycle: int = 1_800,
    pool_pre_ping: bool = True,
) -> DatabaseEngine:
    """Return a :class:`DatabaseEngine` configured from ``dsn``.

    SQLite DSNs get a thread-shareable connection and WAL tuning; PostgreSQL
    DSNs (including the ``postgres://`` alias used by hosting providers) get a
    pooled engine with an optional ``sslmode``.
    """

    normalized = normalize_dsn(dsn)
    scheme = dsn_scheme(normalized)
    effective_timeout = timeout if timeout is not None else 5.0
    connect_args: dict[str, object] = {}

    if scheme == "sqlite":
        sqlite_path = _resolve_sqlite_path_from_dsn(normalized)
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = effective_timeout
        if sqlite_path == ":memory:":
            engine = create_engine(
                "sqlite://",
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                f"sqlite:///{sqlite_path}",
                pool_pre_ping=pool_pre_ping,
                connect_args=connect_args,
            )

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, connection_record):  # type: ignore[override]
            _configure_sqlite_connection(dbapi_conn, busy_timeout=effective_timeout)

    elif scheme == "postgresql":
        connect_args["connect_timeout"] = max(int(effective_timeout), 1)
        if sslmode:
            connect_args["sslmode"] = sslmode
        engine = create_engine(
            normalized,
            pool_size=pool_size,
            pool_recycle=pool_recycle,
            pool_pre_ping=pool_pre_ping,
            connect_args=connect_args,
        )
    else:
        raise ValueError(f"Unsupported database DSN scheme: {scheme or dsn!r}")

    return DatabaseEngine(engine)

