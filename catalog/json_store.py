"""JSON flat-file catalog backend."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Any, Iterable
from urllib.parse import unquote, urlparse

from helpers import _normalize_text, coerce_bool, now_utc_iso

from .models import GameEntry
from .store import (
    DuplicateSteamIdError,
    GameStore,
    StoreError,
    _check_flag,
    _normalize_ids,
    _sorted_newest_first,
)

logger = logging.getLogger(__name__)


def _resolve_json_path_from_dsn(dsn: str) -> Path:
    """Return the file path of a ``json://`` DSN (``json:///abs`` or ``json://rel``)."""

    parsed = urlparse(dsn)
    if parsed.scheme != "json":
        raise ValueError(f"Unsupported DSN scheme for JSON store: {parsed.scheme}")
    path = unquote(f"{parsed.netloc}{parsed.path}")
    if not path:
        raise ValueError("JSON DSN must include a filesystem path")
    return Path(path).expanduser()


class JsonGameStore(GameStore):
    """Keep the whole catalog in one JSON document.

    The file holds ``{"next_id": <int>, "games": [<record>, ...]}``. Every
    write rewrites the document through a temporary file and ``os.replace``
    so readers never observe a half-written catalog.
    """

    backend_name = "json"

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = Lock()

    @classmethod
    def from_dsn(cls, dsn: str) -> "JsonGameStore":
        return cls(_resolve_json_path_from_dsn(dsn))

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"next_id": 1, "games": []}
        try:
            data = json.loads(self.path.read_text("utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise StoreError(f"failed to read catalog file {self.path}") from exc
        if isinstance(data, list):
            # Older flat files stored a bare list of games.
            data = {"games": data}
        games = [g for g in data.get("games", []) if isinstance(g, dict)]
        highest = max((int(g.get("id") or 0) for g in games), default=0)
        next_id = max(int(data.get("next_id") or 1), highest + 1)
        return {"next_id": next_id, "games": games}

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StoreError(f"failed to write catalog file {self.path}") from exc

    def _entries(self) -> list[GameEntry]:
        return [GameEntry.from_mapping(record) for record in self._load()["games"]]

    def init_schema(self) -> None:
        with self._lock:
            if not self.path.exists():
                self._save({"next_id": 1, "games": []})
        logger.info("Catalog file ready at %s", self.path)

    def list_games(
        self, *, visible_only: bool = False, featured_only: bool = False
    ) -> list[GameEntry]:
        entries = self._entries()
        if visible_only:
            entries = [e for e in entries if e.visible]
        if featured_only:
            entries = [e for e in entries if e.featured]
        return _sorted_newest_first(entries)

    def get_game(self, game_id: int) -> GameEntry | None:
        return next((e for e in self._entries() if e.id == game_id), None)

    def find_by_steam_id(self, steam_id: str) -> GameEntry | None:
        matches = [e for e in self._entries() if e.steam_id == steam_id]
        return min(matches, key=lambda e: e.id or 0) if matches else None

    def add_game(self, entry: GameEntry) -> int:
        with self._lock:
            data = self._load()
            if entry.steam_id and any(
                _normalize_text(g.get("steam_id")) == entry.steam_id for g in data["games"]
            ):
                raise DuplicateSteamIdError(entry.steam_id)
            new_id = data["next_id"]
            record = entry.to_record()
            record["id"] = new_id
            record["created_at"] = record.get("created_at") or now_utc_iso()
            data["games"].append(record)
            data["next_id"] = new_id + 1
            self._save(data)
        return new_id

    def delete_game(self, game_id: int) -> bool:
        with self._lock:
            data = self._load()
            remaining = [g for g in data["games"] if int(g.get("id") or 0) != game_id]
            if len(remaining) == len(data["games"]):
                return False
            data["games"] = remaining
            self._save(data)
        return True

    def set_featured(self, game_ids: Iterable[int]) -> int:
        wanted = set(_normalize_ids(game_ids))
        updated = 0
        with self._lock:
            data = self._load()
            for record in data["games"]:
                is_featured = int(record.get("id") or 0) in wanted
                record["featured"] = 1 if is_featured else 0
                updated += int(is_featured)
            self._save(data)
        return updated

    def set_flag(self, game_id: int, flag: str, value: bool) -> bool:
        column = _check_flag(flag)
        with self._lock:
            data = self._load()
            for record in data["games"]:
                if int(record.get("id") or 0) == game_id:
                    record[column] = 1 if value else 0
                    self._save(data)
                    return True
        return False

    def toggle_flag(self, game_id: int, flag: str) -> bool | None:
        column = _check_flag(flag)
        default = column == "visible"
        with self._lock:
            data = self._load()
            for record in data["games"]:
                if int(record.get("id") or 0) == game_id:
                    value = not coerce_bool(record.get(column, default))
                    record[column] = 1 if value else 0
                    self._save(data)
                    return value
        return None


__all__ = ["JsonGameStore"]
