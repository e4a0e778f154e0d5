"""Add-game normalization and featured-rotation operations."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from helpers import (
    _format_genre_list,
    _normalize_text,
    coerce_game_id,
    host_matches,
    is_http_url,
)
from steam.client import (
    DEFAULT_STORE_BASE,
    InvalidSteamIdError,
    SteamAppDetails,
    coerce_steam_id,
)

from .models import (
    DEFAULT_BADGE,
    GAME_SOURCES,
    SOURCE_ITCH,
    SOURCE_STEAM,
    GameEntry,
)
from .store import DuplicateSteamIdError, GameStore

ITCH_DOMAIN = "itch.io"

SteamLookup = Callable[[str], SteamAppDetails]


class GameValidationError(ValueError):
    """Raised when an add-game submission cannot be turned into an entry."""


class GameNotFoundError(LookupError):
    """Raised when an operation targets an id the store does not hold."""

    def __init__(self, game_id: Any):
        super().__init__(f"game {game_id} not found")
        self.game_id = game_id


class DuplicateGameError(GameValidationError):
    """Raised when a Steam app is already part of the catalog."""


def _form_value(form: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = _normalize_text(form.get(key))
        if value:
            return value
    return ""


def _badge(form: Mapping[str, Any]) -> str:
    return _form_value(form, "badge").upper() or DEFAULT_BADGE


def _checked_image_url(form: Mapping[str, Any]) -> str:
    image_url = _form_value(form, "image_url", "imageUrl")
    if image_url and not is_http_url(image_url):
        raise GameValidationError("Image URL must start with http:// or https://")
    return image_url


def build_game_entry(
    form: Mapping[str, Any],
    *,
    steam_lookup: SteamLookup,
) -> GameEntry:
    """Turn an admin submission into a :class:`GameEntry`.

    Steam submissions only need the app id; title, header image, genres and
    the store link come from ``steam_lookup``. Itch.io and manual submissions
    must provide a title and a valid link themselves.
    """

    source = _form_value(form, "source").lower()
    if source not in GAME_SOURCES:
        raise GameValidationError(f"Unknown game source: {source or '(empty)'}")

    if source == SOURCE_STEAM:
        steam_id = coerce_steam_id(_form_value(form, "steam_id", "steamId"))
        if not steam_id:
            raise InvalidSteamIdError()
        details = steam_lookup(steam_id)
        if not details.title:
            raise GameValidationError(f"Steam app {steam_id} has no title")
        return GameEntry(
            title=details.title,
            source=SOURCE_STEAM,
            steam_id=steam_id,
            link=details.link,
            image_url=details.image_url,
            genres=details.genres,
            badge=_badge(form),
        )

    title = _form_value(form, "title")
    if not title:
        raise GameValidationError("Title is required")

    link = _form_value(form, "link", "itch_link", "itchLink")
    if not link:
        raise GameValidationError("Link is required")
    if not is_http_url(link):
        raise GameValidationError("Link must start with http:// or https://")
    if source == SOURCE_ITCH and not host_matches(link, ITCH_DOMAIN):
        raise GameValidationError("itch.io games must link to an itch.io page")

    return GameEntry(
        title=title,
        source=source,
        link=link,
        image_url=_checked_image_url(form),
        genres=_format_genre_list(_form_value(form, "genres")),
        badge=_badge(form),
    )


@dataclass
class CatalogService:
    """Operations behind the public listing and the admin panel."""

    store: GameStore
    steam_lookup: SteamLookup
    store_base: str = DEFAULT_STORE_BASE
    logger: logging.Logger | None = None
    rng: random.Random = field(default_factory=random.Random)

    def _log(self) -> logging.Logger:
        return self.logger or logging.getLogger(__name__)

    def list_all_games(self) -> list[GameEntry]:
        return self.store.list_games()

    def list_public_games(self) -> list[GameEntry]:
        return self.store.list_games(visible_only=True)

    def list_featured_games(self) -> list[GameEntry]:
        return self.store.list_games(visible_only=True, featured_only=True)

    def pick_random_game(self) -> GameEntry | None:
        games = self.list_public_games()
        if not games:
            return None
        return self.rng.choice(games)

    def count_games(self) -> int:
        return self.store.count_games()

    def serialize(self, entries: Iterable[GameEntry]) -> list[dict[str, Any]]:
        return [entry.to_dict(self.store_base) for entry in entries]

    def preview_steam(self, app_id: Any) -> SteamAppDetails:
        normalized = coerce_steam_id(app_id)
        if not normalized:
            raise InvalidSteamIdError()
        return self.steam_lookup(normalized)

    def add_game(self, form: Mapping[str, Any]) -> GameEntry:
        """Validate ``form``, persist the entry and return it with its new id."""

        source = _form_value(form, "source").lower()
        if source == SOURCE_STEAM:
            steam_id = coerce_steam_id(_form_value(form, "steam_id", "steamId"))
            if steam_id and self.store.find_by_steam_id(steam_id) is not None:
                raise DuplicateGameError(f"Steam app {steam_id} is already in catalog")

        entry = build_game_entry(form, steam_lookup=self.steam_lookup)
        try:
            new_id = self.store.add_game(entry)
        except DuplicateSteamIdError as exc:
            raise DuplicateGameError(str(exc)) from exc
        self._log().info("Added %s game %r as #%s", entry.source, entry.title, new_id)
        stored = self.store.get_game(new_id)
        return stored if stored is not None else entry.with_id(new_id)

    def delete_game(self, game_id: Any) -> None:
        normalized = coerce_game_id(game_id)
        if normalized is None or not self.store.delete_game(normalized):
            raise GameNotFoundError(game_id)
        self._log().info("Deleted game #%s", normalized)

    def set_featured(self, game_ids: Iterable[Any]) -> int:
        """Replace the featured rotation with exactly ``game_ids``."""

        ids = [gid for gid in (coerce_game_id(v) for v in game_ids) if gid is not None]
        updated = self.store.set_featured(ids)
        self._log().info("Featured rotation now holds %s game(s)", updated)
        return updated

    def _toggle(self, game_id: Any, flag: str) -> GameEntry:
        normalized = coerce_game_id(game_id)
        new_value = self.store.toggle_flag(normalized, flag) if normalized is not None else None
        if new_value is None:
            raise GameNotFoundError(game_id)
        self._log().info("Set %s=%s on game #%s", flag, new_value, normalized)
        updated = self.store.get_game(normalized)
        if updated is None:
            raise GameNotFoundError(game_id)
        return updated

    def toggle_featured(self, game_id: Any) -> GameEntry:
        return self._toggle(game_id, "featured")

    def toggle_visible(self, game_id: Any) -> GameEntry:
        return self._toggle(game_id, "visible")


__all__ = [
    "CatalogService",
    "DuplicateGameError",
    "GameNotFoundError",
    "GameValidationError",
    "ITCH_DOMAIN",
    "build_game_entry",
]
