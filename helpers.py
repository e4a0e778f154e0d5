"""General-purpose helper utilities shared across the application."""

from __future__ import annotations

import numbers
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping
from urllib.parse import urlparse

import pandas as pd


__all__ = [
    "_dedupe_preserve_order",
    "_format_genre_list",
    "_normalize_text",
    "_parse_iterable",
    "coerce_bool",
    "coerce_game_id",
    "host_matches",
    "is_http_url",
    "now_utc_iso",
    "split_genres",
]


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _normalize_text(value: Any) -> str:
    """Return ``value`` as stripped text, mapping ``None``/NaN to ``""``."""

    if value is None:
        return ""
    if isinstance(value, str):
        text = value.strip()
    else:
        try:
            if pd.isna(value):
                return ""
        except (TypeError, ValueError):
            pass
        text = str(value).strip()
    if text.lower() == "nan":
        return ""
    return text


def _dedupe_preserve_order(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = str(value).strip()
        if not text:
            continue
        key = text.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


def _parse_iterable(value: Any) -> list[str]:
    """Return a list of names from comma-separated text or API payload lists."""

    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Mapping):
        value = [value]
    if isinstance(value, (list, tuple, set)):
        for entry in value:
            if isinstance(entry, Mapping):
                candidate = entry.get("description") or entry.get("name")
            else:
                candidate = entry
            text = _normalize_text(candidate)
            if text:
                items.append(text)
        return items
    text = _normalize_text(value)
    return [text] if text else []


def split_genres(value: Any) -> list[str]:
    return _dedupe_preserve_order(_parse_iterable(value))


def _format_genre_list(value: Any) -> str:
    return ", ".join(split_genres(value))


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, numbers.Number):
        return bool(value)
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def coerce_game_id(value: Any) -> int | None:
    """Return a positive integer game id or ``None`` when ``value`` is unusable."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Integral):
        numeric = int(value)
    else:
        text = _normalize_text(value)
        if not text:
            return None
        try:
            numeric = int(float(text))
        except (TypeError, ValueError):
            return None
    return numeric if numeric > 0 else None


def is_http_url(value: Any) -> bool:
    text = _normalize_text(value)
    if not text:
        return False
    parsed = urlparse(text)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def host_matches(url: str, domain: str) -> bool:
    """Return ``True`` when ``url`` is hosted on ``domain`` or one of its subdomains."""

    host = (urlparse(url).hostname or "").lower()
    domain = domain.lower().lstrip(".")
    return host == domain or host.endswith(f".{domain}")
