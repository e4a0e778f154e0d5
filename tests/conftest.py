"""Pytest fixtures shared across the test suite."""

import os

import pytest

from catalog.json_store import JsonGameStore
from catalog.store import build_store
from routes import auth as routes_auth
from routes import games as routes_games
from routes import web as routes_web

from tests.app_helpers import load_app


@pytest.fixture(autouse=True)
def restore_cwd():
    """``load_app`` switches into the temporary directory; switch back afterwards."""

    cwd = os.getcwd()
    yield
    os.chdir(cwd)


@pytest.fixture(autouse=True)
def reset_route_context():
    """Drop collaborators wired into the blueprints by a previous app instance."""

    for module in (routes_auth, routes_games, routes_web):
        module._context.clear()
    yield
    for module in (routes_auth, routes_games, routes_web):
        module._context.clear()


@pytest.fixture
def app_module(tmp_path):
    return load_app(tmp_path)


@pytest.fixture
def client(app_module):
    return app_module.app.test_client()


@pytest.fixture(params=["sqlite", "json"])
def store(request, tmp_path):
    """An initialized empty store for each local backend."""

    if request.param == "json":
        game_store = JsonGameStore(tmp_path / "games.json")
    else:
        game_store = build_store(f"sqlite:///{(tmp_path / 'games.db').as_posix()}")
    game_store.init_schema()
    yield game_store
    game_store.close()
