"""Game catalog JSON API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, jsonify, request

from catalog.service import CatalogService
from routes.api_utils import BadRequestError, NotFoundError, handle_api_errors
from routes.auth import admin_api_required

games_blueprint = Blueprint("games", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the catalog endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"games routes missing context value: {key}")
    return _context[key]


def _get_service() -> CatalogService:
    getter: Callable[[], CatalogService] = _ctx("get_service")
    return getter()


@games_blueprint.route("/api/games", methods=["GET"])
@handle_api_errors
def api_list_games():
    service = _get_service()
    games = service.serialize(service.list_public_games())
    return jsonify({"games": games, "total": len(games)})


@games_blueprint.route("/api/games/featured", methods=["GET"])
@handle_api_errors
def api_featured_games():
    service = _get_service()
    games = service.serialize(service.list_featured_games())
    return jsonify({"games": games, "total": len(games)})


@games_blueprint.route("/api/games/random", methods=["GET"])
@handle_api_errors
def api_random_game():
    service = _get_service()
    game = service.pick_random_game()
    if game is None:
        raise NotFoundError("no games available")
    return jsonify({"game": game.to_dict(service.store_base)})


@games_blueprint.route("/api/games", methods=["POST"])
@handle_api_errors
@admin_api_required
def api_add_game():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form
    if not isinstance(payload, Mapping):
        raise BadRequestError("expected a JSON object")
    service = _get_service()
    game = service.add_game(payload)
    return jsonify({"game": game.to_dict(service.store_base)}), 201


@games_blueprint.route("/api/games/<int:game_id>", methods=["DELETE"])
@handle_api_errors
@admin_api_required
def api_delete_game(game_id: int):
    _get_service().delete_game(game_id)
    return jsonify({"deleted": game_id})


@games_blueprint.route("/api/games/featured", methods=["PUT"])
@handle_api_errors
@admin_api_required
def api_set_featured():
    payload = request.get_json(silent=True)
    ids = payload.get("ids") if isinstance(payload, Mapping) else None
    if not isinstance(ids, list):
        raise BadRequestError("ids must be a list")
    updated = _get_service().set_featured(ids)
    return jsonify({"featured": updated})


@games_blueprint.route("/api/steam/<app_id>", methods=["GET"])
@handle_api_errors
@admin_api_required
def api_steam_preview(app_id: str):
    details = _get_service().preview_steam(app_id)
    return jsonify({"app": details.to_dict()})


@games_blueprint.route("/healthz")
def healthz():
    return jsonify({"status": "ok", "games": _get_service().count_games()})
