"""Application-wide configuration helpers and constants."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

BASE_DIR: Final[Path] = Path(__file__).resolve().parent

load_dotenv(BASE_DIR / ".env")


logger = logging.getLogger(__name__)


def _clean_text(value: str | None) -> str:
    """Return ``value`` stripped of surrounding whitespace."""

    if value is None:
        return ""
    return value.strip()


def _path_from(env_value: str | None, default: str | Path) -> Path:
    """Resolve a filesystem path using an environment override when provided."""

    text = _clean_text(env_value)
    candidate = Path(text) if text else Path(default)
    candidate = candidate.expanduser()
    if candidate.is_absolute():
        try:
            return candidate.resolve()
        except (OSError, RuntimeError):  # pragma: no cover - fallback for exotic paths
            return candidate
    return candidate


def _coerce_positive_float(value: str | None, default: float) -> float:
    """Return ``value`` coerced to a positive float or ``default`` when invalid."""

    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = float(text)
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_positive_int(value: str | None, default: int) -> int:
    """Return ``value`` coerced to a positive integer or ``default`` when invalid."""

    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = int(float(text))
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_truthy_env(value: str | None) -> bool:
    """Return ``True`` when ``value`` represents an affirmative flag."""

    if value is None:
        return False
    text = value.strip().lower()
    return text in {"1", "true", "yes", "on"}


def _split_csv(value: str | None) -> tuple[str, ...]:
    text = _clean_text(value)
    if not text:
        return ()
    return tuple(part.strip() for part in text.split(",") if part.strip())


PORT: Final[int] = _coerce_positive_int(os.environ.get("PORT"), 8080)
BIND: Final[str] = _clean_text(os.environ.get("BIND")) or "127.0.0.1"

LOG_DIR_PATH: Final[Path] = _path_from(os.environ.get("LOG_DIR"), BASE_DIR / "logs")
LOG_DIR: Final[str] = os.fspath(LOG_DIR_PATH)
LOG_FILE_PATH: Final[Path] = _path_from(
    os.environ.get("LOG_FILE"), LOG_DIR_PATH / "app.log"
)
LOG_FILE: Final[str] = os.fspath(LOG_FILE_PATH)

DATA_DIR_PATH: Final[Path] = _path_from(os.environ.get("DATA_DIR"), BASE_DIR)
DATA_DIR: Final[str] = os.fspath(DATA_DIR_PATH)


def _build_db_dsn() -> str:
    """Return the catalog DSN: explicit override, hosted Postgres, or local SQLite."""

    explicit = _clean_text(os.environ.get("GAMES_DB_DSN"))
    if explicit:
        return explicit

    database_url = _clean_text(os.environ.get("DATABASE_URL"))
    if database_url:
        return database_url

    sqlite_path = _path_from(None, DATA_DIR_PATH / "local.db").resolve()
    return f"sqlite:///{sqlite_path.as_posix()}"


DB_DSN: Final[str] = _build_db_dsn()
DB_CONNECT_TIMEOUT_SECONDS: Final[float] = _coerce_positive_float(
    os.environ.get("DB_CONNECT_TIMEOUT"), 10.0
)
DB_SSLMODE: Final[str] = _clean_text(os.environ.get("DB_SSLMODE"))
SEED_DEMO_GAMES: Final[bool] = _coerce_truthy_env(os.environ.get("SEED_DEMO_GAMES"))

APP_SECRET_KEY: Final[str] = _clean_text(os.environ.get("APP_SECRET_KEY")) or "dev-secret"
ADMIN_PASSWORD_HASH: Final[str] = _clean_text(os.environ.get("ADMIN_PASSWORD_HASH"))
ADMIN_TOKEN: Final[str] = _clean_text(os.environ.get("ADMIN_TOKEN"))
# A fresh checkout without any admin credential falls back to a development password.
ADMIN_PASSWORD: Final[str] = _clean_text(os.environ.get("ADMIN_PASSWORD")) or (
    "" if (ADMIN_PASSWORD_HASH or ADMIN_TOKEN) else "password"
)
ADMIN_ALLOWED_IPS: Final[tuple[str, ...]] = _split_csv(
    os.environ.get("ADMIN_ALLOWED_IPS")
)
TRUST_PROXY_HEADERS: Final[bool] = _coerce_truthy_env(os.environ.get("TRUST_PROXY_HEADERS"))

DEFAULT_STEAM_API_BASE: Final[str] = "https://store.steampowered.com/api"
DEFAULT_STEAM_STORE_BASE: Final[str] = "https://store.steampowered.com"
DEFAULT_STEAM_USER_AGENT: Final[str] = "GameShowcase/1.0 (admin@example.com)"

STEAM_API_BASE: Final[str] = (
    _clean_text(os.environ.get("STEAM_API_BASE")) or DEFAULT_STEAM_API_BASE
).rstrip("/")
STEAM_STORE_BASE: Final[str] = (
    _clean_text(os.environ.get("STEAM_STORE_BASE")) or DEFAULT_STEAM_STORE_BASE
).rstrip("/")
STEAM_LANGUAGE: Final[str] = _clean_text(os.environ.get("STEAM_LANGUAGE"))
STEAM_COUNTRY: Final[str] = _clean_text(os.environ.get("STEAM_COUNTRY"))
STEAM_USER_AGENT: Final[str] = (
    _clean_text(os.environ.get("STEAM_USER_AGENT")) or DEFAULT_STEAM_USER_AGENT
)
STEAM_TIMEOUT_SECONDS: Final[float] = _coerce_positive_float(
    os.environ.get("STEAM_TIMEOUT"), 15.0
)
STEAM_MAX_RETRIES: Final[int] = _coerce_positive_int(
    os.environ.get("STEAM_MAX_RETRIES"), 3
)


def _validate_settings() -> None:
    """Sanity-check critical configuration values."""

    if not APP_SECRET_KEY:
        raise RuntimeError("APP_SECRET_KEY must not be empty")
    if not (ADMIN_PASSWORD or ADMIN_PASSWORD_HASH or ADMIN_TOKEN):
        raise RuntimeError(
            "Set ADMIN_PASSWORD, ADMIN_PASSWORD_HASH or ADMIN_TOKEN to protect the admin panel"
        )


_validate_settings()


__all__ = [
    "ADMIN_ALLOWED_IPS",
    "ADMIN_PASSWORD",
    "ADMIN_PASSWORD_HASH",
    "ADMIN_TOKEN",
    "APP_SECRET_KEY",
    "BASE_DIR",
    "BIND",
    "DATA_DIR",
    "DATA_DIR_PATH",
    "DB_CONNECT_TIMEOUT_SECONDS",
    "DB_DSN",
    "DB_SSLMODE",
    "DEFAULT_STEAM_API_BASE",
    "DEFAULT_STEAM_STORE_BASE",
    "DEFAULT_STEAM_USER_AGENT",
    "LOG_DIR",
    "LOG_DIR_PATH",
    "LOG_FILE",
    "LOG_FILE_PATH",
    "PORT",
    "SEED_DEMO_GAMES",
    "STEAM_API_BASE",
    "STEAM_COUNTRY",
    "STEAM_LANGUAGE",
    "STEAM_MAX_RETRIES",
    "STEAM_STORE_BASE",
    "STEAM_TIMEOUT_SECONDS",
    "STEAM_USER_AGENT",
    "TRUST_PROXY_HEADERS",
]
