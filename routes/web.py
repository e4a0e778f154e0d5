"""HTML-facing Flask routes: public showcase and admin panel."""
from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import (
    Blueprint,
    abort,
    current_app,
    redirect,
    render_template,
    request,
    url_for,
)

from catalog.service import CatalogService, GameNotFoundError, GameValidationError
from routes.auth import (
    admin_page_required,
    close_admin_session,
    get_auth,
    is_admin,
    open_admin_session,
)
from steam.client import SteamAPIError, SteamError

web_blueprint = Blueprint("web", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the HTML routes."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"web routes missing context value: {key}")
    return _context[key]


def _get_service() -> CatalogService:
    getter: Callable[[], CatalogService] = _ctx("get_service")
    return getter()


def _render_admin(error: str | None = None, status: int = 200):
    service = _get_service()
    return (
        render_template(
            "admin.html",
            games=service.serialize(service.list_all_games()),
            error=error,
        ),
        status,
    )


@web_blueprint.route("/")
def index():
    service = _get_service()
    return render_template(
        "index.html",
        games=service.serialize(service.list_public_games()),
        featured_games=service.serialize(service.list_featured_games()),
        is_admin=is_admin(),
    )


@web_blueprint.route("/admin", methods=["GET"])
@admin_page_required
def admin():
    return _render_admin()


@web_blueprint.route("/admin", methods=["POST"])
def admin_login():
    auth = get_auth()
    if not auth.ip_allowed(request.remote_addr):
        abort(403)
    if auth.verify_password(request.form.get("password")):
        open_admin_session()
        current_app.logger.info("Admin login from %s", request.remote_addr)
        return redirect(url_for("web.admin"))
    current_app.logger.warning("Failed admin login from %s", request.remote_addr)
    return render_template("admin_login.html", error="Invalid password"), 401


@web_blueprint.route("/logout")
def logout():
    close_admin_session()
    return redirect(url_for("web.index"))


@web_blueprint.route("/addGame", methods=["POST"])
@admin_page_required
def add_game():
    try:
        _get_service().add_game(request.form)
    except SteamAPIError as exc:
        current_app.logger.error("Steam lookup failed while adding game: %s", exc)
        return _render_admin(str(exc), 502)
    except (GameValidationError, SteamError) as exc:
        return _render_admin(str(exc), 400)
    return redirect(url_for("web.admin"))


@web_blueprint.route("/deleteGame/<int:game_id>", methods=["POST"])
@admin_page_required
def delete_game(game_id: int):
    try:
        _get_service().delete_game(game_id)
    except GameNotFoundError as exc:
        return _render_admin(str(exc), 404)
    return redirect(url_for("web.admin"))


@web_blueprint.route("/updateFeatured", methods=["POST"])
@admin_page_required
def update_featured():
    _get_service().set_featured(request.form.getlist("featured"))
    return redirect(url_for("web.admin"))


@web_blueprint.route("/toggleFeatured/<int:game_id>", methods=["POST"])
@admin_page_required
def toggle_featured(game_id: int):
    try:
        _get_service().toggle_featured(game_id)
    except GameNotFoundError as exc:
        return _render_admin(str(exc), 404)
    return redirect(url_for("web.admin"))


@web_blueprint.route("/toggleVisible/<int:game_id>", methods=["POST"])
@admin_page_required
def toggle_visible(game_id: int):
    try:
        _get_service().toggle_visible(game_id)
    except GameNotFoundError as exc:
        return _render_admin(str(exc), 404)
    return redirect(url_for("web.admin"))
