"""Game entry record shared by every storage backend."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping

from helpers import _normalize_text, coerce_bool, coerce_game_id, split_genres
from steam.client import DEFAULT_STORE_BASE, steam_store_url

SOURCE_STEAM = "steam"
SOURCE_ITCH = "itch"
SOURCE_MANUAL = "manual"
GAME_SOURCES: tuple[str, ...] = (SOURCE_STEAM, SOURCE_ITCH, SOURCE_MANUAL)

DEFAULT_BADGE = "FREE"

FLAG_COLUMNS: frozenset[str] = frozenset({"featured", "visible"})


@dataclass
class GameEntry:
    title: str
    source: str
    link: str = ""
    image_url: str = ""
    genres: str = ""
    steam_id: str | None = None
    badge: str = DEFAULT_BADGE
    featured: bool = False
    visible: bool = True
    created_at: str = ""
    id: int | None = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "GameEntry":
        """Build an entry from a database row or JSON object."""

        steam_id = _normalize_text(row.get("steam_id")) or None
        return cls(
            id=coerce_game_id(row.get("id")),
            title=_normalize_text(row.get("title")),
            source=_normalize_text(row.get("source")).lower() or SOURCE_MANUAL,
            steam_id=steam_id,
            link=_normalize_text(row.get("link")),
            image_url=_normalize_text(row.get("image_url")),
            genres=_normalize_text(row.get("genres")),
            badge=_normalize_text(row.get("badge")) or DEFAULT_BADGE,
            featured=coerce_bool(row.get("featured")),
            visible=coerce_bool(row.get("visible", True)),
            created_at=_normalize_text(row.get("created_at")),
        )

    @property
    def genre_list(self) -> list[str]:
        return split_genres(self.genres)

    def play_url(self, store_base: str | None = None) -> str:
        """Return the Steam store page for Steam entries, else the stored link."""

        if self.source == SOURCE_STEAM and self.steam_id:
            url = steam_store_url(self.steam_id, store_base or DEFAULT_STORE_BASE)
            if url:
                return url
        return self.link

    def with_id(self, game_id: int) -> "GameEntry":
        return replace(self, id=game_id)

    def to_record(self) -> dict[str, Any]:
        """Return the persisted columns (flags stored as integers)."""

        record = asdict(self)
        record["featured"] = 1 if self.featured else 0
        record["visible"] = 1 if self.visible else 0
        return record

    def to_dict(self, store_base: str | None = None) -> dict[str, Any]:
        """Return a JSON/template friendly representation."""

        data = asdict(self)
        data["genre_list"] = self.genre_list
        data["play_url"] = self.play_url(store_base)
        return data


__all__ = [
    "DEFAULT_BADGE",
    "FLAG_COLUMNS",
    "GAME_SOURCES",
    "GameEntry",
    "SOURCE_ITCH",
    "SOURCE_MANUAL",
    "SOURCE_STEAM",
]
