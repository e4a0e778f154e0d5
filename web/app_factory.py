"""Flask application factory: proxy handling and blueprint wiring."""
from __future__ import annotations

from typing import Callable

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def create_app(
    flask_app: Flask | None = None,
    *,
    configure_blueprints: Callable[[Flask], None] | None = None,
    trust_proxy_headers: bool = False,
) -> Flask:
    """Return a configured Flask application instance.

    With ``trust_proxy_headers`` the app honours one hop of
    ``X-Forwarded-For``/``X-Forwarded-Proto`` so the admin IP allow-list sees
    the real client address behind a hosting proxy.
    """
    if flask_app is None or configure_blueprints is None:
        from app import app as default_app, configure_blueprints as default_configure

        if flask_app is None:
            flask_app = default_app
        if configure_blueprints is None:
            configure_blueprints = default_configure

    if trust_proxy_headers and not isinstance(flask_app.wsgi_app, ProxyFix):
        flask_app.wsgi_app = ProxyFix(flask_app.wsgi_app, x_for=1, x_proto=1)  # type: ignore[method-assign]

    configure_blueprints(flask_app)
    return flask_app
