"""Shared testing helpers for loading the Flask app without live Steam calls."""

from __future__ import annotations

import importlib
import importlib.util
import os
import sys
import uuid
from pathlib import Path
from typing import Any, Mapping

import config
from steam.client import InvalidSteamIdError, SteamAppDetails, steam_store_url

APP_PATH = Path(__file__).resolve().parents[1] / "app.py"

ADMIN_PASSWORD = "letmein"

_MANAGED_ENV = (
    "GAMES_DB_DSN",
    "DATABASE_URL",
    "DATA_DIR",
    "LOG_DIR",
    "LOG_FILE",
    "SEED_DEMO_GAMES",
    "ADMIN_PASSWORD",
    "ADMIN_PASSWORD_HASH",
    "ADMIN_TOKEN",
    "ADMIN_ALLOWED_IPS",
    "TRUST_PROXY_HEADERS",
    "APP_SECRET_KEY",
)


class FakeSteam:
    """Stand-in for the Steam lookup that serves canned app details."""

    def __init__(self, apps: Mapping[str, Mapping[str, Any]] | None = None):
        self.apps = dict(apps or {})
        self.calls: list[str] = []

    def __call__(self, app_id: str) -> SteamAppDetails:
        self.calls.append(app_id)
        data = self.apps.get(app_id)
        if data is None:
            raise InvalidSteamIdError()
        return SteamAppDetails(
            app_id=app_id,
            title=data.get("name", ""),
            image_url=data.get("header_image", ""),
            genres=data.get("genres", ""),
            link=steam_store_url(app_id),
        )


DEFAULT_STEAM_APPS = {
    "730": {
        "name": "Counter-Strike 2",
        "header_image": "https://cdn.example.com/730/header.jpg",
        "genres": "Action, Free To Play",
    },
    "367520": {
        "name": "Hollow Knight",
        "header_image": "https://cdn.example.com/367520/header.jpg",
        "genres": "Action, Adventure, Indie",
    },
}


def load_app(
    tmp_path: Path,
    *,
    dsn: str | None = None,
    seed: bool = False,
    env: Mapping[str, str] | None = None,
    steam_apps: Mapping[str, Mapping[str, Any]] | None = None,
) -> Any:
    """Import a fresh application module backed by a catalog under ``tmp_path``."""

    os.chdir(tmp_path)
    module_name = f"app_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(module_name, APP_PATH)
    if spec is None or spec.loader is None:
        raise RuntimeError("Unable to load app module specification")
    module = importlib.util.module_from_spec(spec)

    saved = {key: os.environ.get(key) for key in _MANAGED_ENV}
    for key in _MANAGED_ENV:
        os.environ.pop(key, None)

    os.environ["GAMES_DB_DSN"] = dsn or f"sqlite:///{(tmp_path / 'games.db').as_posix()}"
    os.environ["DATA_DIR"] = os.fspath(tmp_path)
    os.environ["LOG_DIR"] = os.fspath(tmp_path / "logs")
    os.environ["SEED_DEMO_GAMES"] = "1" if seed else "0"
    os.environ["ADMIN_PASSWORD"] = ADMIN_PASSWORD
    os.environ["APP_SECRET_KEY"] = "test-secret"
    for key, value in (env or {}).items():
        os.environ[key] = value

    try:
        importlib.reload(config)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    module.app.config['TESTING'] = True
    module.app.testing = True

    fake_steam = FakeSteam(DEFAULT_STEAM_APPS if steam_apps is None else steam_apps)
    module.catalog_service.steam_lookup = fake_steam
    module.fake_steam = fake_steam
    return module


def login(client) -> None:
    """Mark the test client's session as an authenticated admin."""

    with client.session_transaction() as sess:
        sess['admin'] = True
