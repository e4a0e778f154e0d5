"""Catalog storage backends and the DSN-based backend selector."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from db import utils as db_utils
from helpers import coerce_game_id, now_utc_iso

from .models import FLAG_COLUMNS, GameEntry

logger = logging.getLogger(__name__)

GAMES_TABLE = "games"


class StoreError(RuntimeError):
    """Raised when a storage backend cannot complete an operation."""


class DuplicateSteamIdError(StoreError):
    """Raised by ``add_game`` when the Steam app is already stored."""

    def __init__(self, steam_id: str):
        super().__init__(f"Steam app {steam_id} is already in catalog")
        self.steam_id = steam_id


class GameStore:
    """Interface shared by the SQL and JSON flat-file backends."""

    backend_name = "abstract"

    def init_schema(self) -> None:
        raise NotImplementedError

    def list_games(
        self, *, visible_only: bool = False, featured_only: bool = False
    ) -> list[GameEntry]:
        raise NotImplementedError

    def get_game(self, game_id: int) -> GameEntry | None:
        raise NotImplementedError

    def find_by_steam_id(self, steam_id: str) -> GameEntry | None:
        raise NotImplementedError

    def add_game(self, entry: GameEntry) -> int:
        raise NotImplementedError

    def delete_game(self, game_id: int) -> bool:
        raise NotImplementedError

    def set_featured(self, game_ids: Iterable[int]) -> int:
        raise NotImplementedError

    def set_flag(self, game_id: int, flag: str, value: bool) -> bool:
        raise NotImplementedError

    def toggle_flag(self, game_id: int, flag: str) -> bool | None:
        """Flip ``flag`` on ``game_id``; return the new value or ``None`` if missing."""
        raise NotImplementedError

    def count_games(self) -> int:
        return len(self.list_games())

    def close(self) -> None:
        return None


def _sorted_newest_first(entries: Iterable[GameEntry]) -> list[GameEntry]:
    return sorted(entries, key=lambda e: (e.created_at, e.id or 0), reverse=True)


def _normalize_ids(game_ids: Iterable[Any]) -> list[int]:
    normalized: list[int] = []
    seen: set[int] = set()
    for value in game_ids:
        game_id = coerce_game_id(value)
        if game_id is None or game_id in seen:
            continue
        seen.add(game_id)
        normalized.append(game_id)
    return normalized


def _check_flag(flag: str) -> str:
    if flag not in FLAG_COLUMNS:
        raise ValueError(f"unknown game flag: {flag}")
    return flag


class SqlGameStore(GameStore):
    """SQLAlchemy-backed store for SQLite and PostgreSQL."""

    def __init__(self, engine: db_utils.DatabaseEngine):
        self._db = engine
        self.backend_name = engine.dialect_name

    @property
    def engine(self) -> db_utils.DatabaseEngine:
        return self._db

    def _schema_sql(self) -> str:
        if self._db.dialect_name == "postgresql":
            id_column = "id SERIAL PRIMARY KEY"
        else:
            id_column = "id INTEGER PRIMARY KEY AUTOINCREMENT"
        return f"""
            CREATE TABLE IF NOT EXISTS {GAMES_TABLE} (
                {id_column},
                title TEXT NOT NULL,
                source TEXT NOT NULL,
                steam_id TEXT,
                link TEXT,
                image_url TEXT,
                genres TEXT,
                badge TEXT DEFAULT 'FREE',
                featured INTEGER NOT NULL DEFAULT 0,
                visible INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
        """

    def init_schema(self) -> None:
        with db_utils.db_lock, self._db.begin() as conn:
            conn.execute(text(self._schema_sql()))
            conn.execute(
                text(
                    f"CREATE INDEX IF NOT EXISTS idx_{GAMES_TABLE}_steam_id "
                    f"ON {GAMES_TABLE} (steam_id)"
                )
            )
        logger.info("Catalog schema ready (%s)", self.backend_name)

    def list_games(
        self, *, visible_only: bool = False, featured_only: bool = False
    ) -> list[GameEntry]:
        clauses: list[str] = []
        if visible_only:
            clauses.append("visible = 1")
        if featured_only:
            clauses.append("featured = 1")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = text(
            f"SELECT * FROM {GAMES_TABLE}{where} ORDER BY created_at DESC, id DESC"
        )
        with self._db.sa_connection() as conn:
            rows = conn.execute(sql).mappings().all()
        return [GameEntry.from_mapping(row) for row in rows]

    def get_game(self, game_id: int) -> GameEntry | None:
        with self._db.sa_connection() as conn:
            row = conn.execute(
                text(f"SELECT * FROM {GAMES_TABLE} WHERE id = :id"),
                {"id": game_id},
            ).mappings().first()
        return GameEntry.from_mapping(row) if row is not None else None

    def find_by_steam_id(self, steam_id: str) -> GameEntry | None:
        with self._db.sa_connection() as conn:
            row = conn.execute(
                text(
                    f"SELECT * FROM {GAMES_TABLE} WHERE steam_id = :steam_id "
                    "ORDER BY id LIMIT 1"
                ),
                {"steam_id": steam_id},
            ).mappings().first()
        return GameEntry.from_mapping(row) if row is not None else None

    def add_game(self, entry: GameEntry) -> int:
        record = entry.to_record()
        record.pop("id", None)
        record["created_at"] = record.get("created_at") or now_utc_iso()
        columns = ", ".join(record)
        placeholders = ", ".join(f":{name}" for name in record)
        sql = f"INSERT INTO {GAMES_TABLE} ({columns}) VALUES ({placeholders})"
        try:
            with db_utils.db_lock, self._db.begin() as conn:
                # Re-checked under the write lock; the caller's lookup may be stale.
                if entry.steam_id and conn.execute(
                    text(f"SELECT 1 FROM {GAMES_TABLE} WHERE steam_id = :steam_id LIMIT 1"),
                    {"steam_id": entry.steam_id},
                ).first() is not None:
                    raise DuplicateSteamIdError(entry.steam_id)
                if self._db.dialect_name == "postgresql":
                    new_id = conn.execute(text(f"{sql} RETURNING id"), record).scalar_one()
                else:
                    new_id = conn.execute(text(sql), record).lastrowid
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to insert game {entry.title!r}") from exc
        return int(new_id)

    def delete_game(self, game_id: int) -> bool:
        with db_utils.db_lock, self._db.begin() as conn:
            result = conn.execute(
                text(f"DELETE FROM {GAMES_TABLE} WHERE id = :id"), {"id": game_id}
            )
            deleted = result.rowcount
        return deleted > 0

    def set_featured(self, game_ids: Iterable[int]) -> int:
        ids = _normalize_ids(game_ids)
        with db_utils.db_lock, self._db.begin() as conn:
            conn.execute(text(f"UPDATE {GAMES_TABLE} SET featured = 0"))
            if not ids:
                return 0
            statement = text(
                f"UPDATE {GAMES_TABLE} SET featured = 1 WHERE id IN :ids"
            ).bindparams(bindparam("ids", expanding=True))
            result = conn.execute(statement, {"ids": ids})
            updated = result.rowcount
        return updated

    def set_flag(self, game_id: int, flag: str, value: bool) -> bool:
        column = _check_flag(flag)
        with db_utils.db_lock, self._db.begin() as conn:
            result = conn.execute(
                text(f"UPDATE {GAMES_TABLE} SET {column} = :value WHERE id = :id"),
                {"value": 1 if value else 0, "id": game_id},
            )
            updated = result.rowcount
        return updated > 0

    def toggle_flag(self, game_id: int, flag: str) -> bool | None:
        column = _check_flag(flag)
        with db_utils.db_lock, self._db.begin() as conn:
            conn.execute(
                text(
                    f"UPDATE {GAMES_TABLE} SET {column} = 1 - {column} WHERE id = :id"
                ),
                {"id": game_id},
            )
            value = conn.execute(
                text(f"SELECT {column} FROM {GAMES_TABLE} WHERE id = :id"),
                {"id": game_id},
            ).scalar_one_or_none()
        return None if value is None else bool(value)

    def count_games(self) -> int:
        with self._db.sa_connection() as conn:
            return int(conn.execute(text(f"SELECT COUNT(*) FROM {GAMES_TABLE}")).scalar_one())

    def close(self) -> None:
        self._db.dispose()


def build_store(
    dsn: str,
    *,
    timeout: float | None = None,
    sslmode: str | None = None,
) -> GameStore:
    """Return the storage backend selected by ``dsn``.

    ``json://<path>`` selects the flat-file store; ``sqlite:///`` and
    ``postgresql://`` (or ``postgres://``) select the SQL store.
    """

    scheme = db_utils.dsn_scheme(dsn)
    if scheme == "json":
        from .json_store import JsonGameStore

        return JsonGameStore.from_dsn(dsn)
    engine = db_utils.build_engine_from_dsn(dsn, timeout=timeout, sslmode=sslmode)
    return SqlGameStore(engine)


__all__ = [
    "DuplicateSteamIdError",
    "GAMES_TABLE",
    "GameStore",
    "SqlGameStore",
    "StoreError",
    "build_store",
]
