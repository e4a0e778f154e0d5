"""Demo catalog used by fresh local installs."""

from __future__ import annotations

import logging

from .models import GameEntry
from .store import GameStore

logger = logging.getLogger(__name__)

DEMO_GAMES: tuple[GameEntry, ...] = (
    GameEntry(
        title="Counter-Strike 2",
        source="steam",
        steam_id="730",
        link="https://store.steampowered.com/app/730",
        image_url="https://cdn.cloudflare.steamstatic.com/steam/apps/730/header.jpg",
        genres="FPS, Shooter, Multiplayer",
        badge="FREE",
        featured=True,
    ),
    GameEntry(
        title="Hollow Knight",
        source="steam",
        steam_id="367520",
        link="https://store.steampowered.com/app/367520",
        image_url="https://cdn.cloudflare.steamstatic.com/steam/apps/367520/header.jpg",
        genres="Indie, Metroidvania",
        badge="PAID",
    ),
    GameEntry(
        title="ROBLOX",
        source="manual",
        link="https://www.roblox.com",
        image_url="https://tr.rbxcdn.com/723cd33e78c3f2e78abfc9b29fac1c34/768/432/Image/Png",
        genres="Sandbox, Multiplayer",
        badge="FREE",
    ),
)


def seed_demo_games(store: GameStore) -> int:
    """Insert :data:`DEMO_GAMES` when the catalog is empty; return rows added."""

    if store.count_games() > 0:
        return 0
    for entry in DEMO_GAMES:
        store.add_game(entry)
    logger.info("Seeded %s demo games", len(DEMO_GAMES))
    return len(DEMO_GAMES)


__all__ = ["DEMO_GAMES", "seed_demo_games"]
