#!/usr/bin/env python3
"""Bulk-load game entries from a CSV, XLSX or JSON file into the catalog."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from catalog.models import GAME_SOURCES, SOURCE_MANUAL, SOURCE_STEAM, GameEntry
from catalog.store import GameStore, build_store
from helpers import _format_genre_list, _normalize_text, coerce_bool, is_http_url
from steam.client import coerce_steam_id, steam_store_url

logger = logging.getLogger("import_games")

# Spreadsheet headers people actually use, mapped to entry fields.
COLUMN_ALIASES: dict[str, str] = {
    "name": "title",
    "game": "title",
    "steamid": "steam_id",
    "appid": "steam_id",
    "app_id": "steam_id",
    "url": "link",
    "itchlink": "link",
    "imageurl": "image_url",
    "image": "image_url",
    "cover": "image_url",
    "genre": "genres",
    "tags": "genres",
}


def _canonical_column(name: Any) -> str:
    key = "".join(ch for ch in str(name).strip().lower() if ch.isalnum() or ch == "_")
    return COLUMN_ALIASES.get(key.replace("_", ""), COLUMN_ALIASES.get(key, key))


def read_games_frame(path: Path) -> pd.DataFrame:
    """Load ``path`` into a DataFrame with canonical column names."""

    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str)
    elif suffix in {".xlsx", ".xls"}:
        df = pd.read_excel(path, dtype=str)
    elif suffix == ".json":
        raw = json.loads(path.read_text("utf-8"))
        # Catalog exports wrap the rows in {"next_id": n, "games": [...]}.
        records = raw.get("games", []) if isinstance(raw, dict) else raw
        df = pd.json_normalize(records)
    else:
        raise ValueError(f"unsupported import format: {path.suffix or path.name}")
    df = df.rename(columns=_canonical_column)
    return df.fillna("")


def _http_url(row: pd.Series, column: str, title: str) -> str:
    value = _normalize_text(row.get(column))
    if value and not is_http_url(value):
        logger.warning("Dropping non-http %s %r for %r", column, value, title)
        return ""
    return value


def row_to_entry(row: pd.Series) -> GameEntry | None:
    """Return a :class:`GameEntry` for ``row`` or ``None`` when it has no title."""

    title = _normalize_text(row.get("title"))
    if not title:
        return None
    steam_id = coerce_steam_id(row.get("steam_id")) or None
    source = _normalize_text(row.get("source")).lower()
    if source not in GAME_SOURCES:
        source = SOURCE_STEAM if steam_id else SOURCE_MANUAL
    link = _http_url(row, "link", title)
    if source == SOURCE_STEAM and steam_id and not link:
        link = steam_store_url(steam_id)
    featured_raw = row.get("featured")
    visible_raw = row.get("visible")
    return GameEntry(
        title=title,
        source=source,
        steam_id=steam_id if source == SOURCE_STEAM else None,
        link=link,
        image_url=_http_url(row, "image_url", title),
        genres=_format_genre_list(_normalize_text(row.get("genres"))),
        badge=_normalize_text(row.get("badge")).upper() or "FREE",
        featured=coerce_bool(featured_raw) if _normalize_text(featured_raw) else False,
        visible=coerce_bool(visible_raw) if _normalize_text(visible_raw) else True,
    )


def import_games(store: GameStore, df: pd.DataFrame) -> dict[str, int]:
    """Insert rows of ``df`` into ``store``; Steam ids already present are skipped."""

    summary = {"inserted": 0, "skipped": 0, "duplicates": 0}
    seen_steam_ids: set[str] = set()
    for _, row in df.iterrows():
        entry = row_to_entry(row)
        if entry is None:
            summary["skipped"] += 1
            continue
        if entry.steam_id:
            if entry.steam_id in seen_steam_ids or store.find_by_steam_id(entry.steam_id):
                summary["duplicates"] += 1
                continue
            seen_steam_ids.add(entry.steam_id)
        store.add_game(entry)
        summary["inserted"] += 1
    return summary


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", type=Path, help="CSV, XLSX or JSON file to import")
    parser.add_argument(
        "--dsn",
        default=None,
        help="target catalog DSN (defaults to the configured database)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if args.dsn is None:
        from config import DB_DSN

        args.dsn = DB_DSN

    if not args.source.exists():
        logger.error("%s not found.", args.source)
        return 1

    store = build_store(args.dsn)
    store.init_schema()
    try:
        summary = import_games(store, read_games_frame(args.source))
    finally:
        store.close()
    logger.info(
        "Import complete: %(inserted)s inserted, %(duplicates)s duplicate(s), "
        "%(skipped)s row(s) without a title",
        summary,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
