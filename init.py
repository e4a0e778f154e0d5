"""Application startup orchestration helpers."""

from __future__ import annotations

import logging
from typing import Callable

from catalog.seed import seed_demo_games
from catalog.store import GameStore
from config import SEED_DEMO_GAMES

logger = logging.getLogger(__name__)


def initialize_app(
    *,
    ensure_dirs: Callable[[], None],
    build_store: Callable[[], GameStore],
    seed_demo: bool = SEED_DEMO_GAMES,
) -> GameStore:
    """Perform the core startup tasks required for the application.

    The initializer ensures filesystem directories exist, opens the configured
    storage backend, creates its schema, and optionally seeds the demo
    catalog into an empty store.
    """

    ensure_dirs()

    store = build_store()
    try:
        store.init_schema()
    except Exception:
        logger.exception("Failed to prepare %s catalog storage", store.backend_name)
        raise

    if seed_demo:
        seed_demo_games(store)

    logger.info(
        "Catalog ready: %s backend, %s game(s)", store.backend_name, store.count_games()
    )
    return store


__all__ = ["initialize_app"]
