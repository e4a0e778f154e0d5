import os
import logging
import logging.config
from datetime import timedelta
from pathlib import Path
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from config import (
    ADMIN_ALLOWED_IPS,
    ADMIN_PASSWORD,
    ADMIN_PASSWORD_HASH,
    ADMIN_TOKEN,
    APP_SECRET_KEY,
    BASE_DIR,
    BIND,
    DATA_DIR_PATH,
    DB_CONNECT_TIMEOUT_SECONDS,
    DB_DSN,
    DB_SSLMODE,
    LOG_FILE,
    PORT,
    SEED_DEMO_GAMES,
    STEAM_API_BASE,
    STEAM_COUNTRY,
    STEAM_LANGUAGE,
    STEAM_MAX_RETRIES,
    STEAM_STORE_BASE,
    STEAM_TIMEOUT_SECONDS,
    STEAM_USER_AGENT,
    TRUST_PROXY_HEADERS,
)
from catalog import store as catalog_store
from catalog.service import CatalogService
from init import initialize_app
from routes import auth as routes_auth
from routes import games as routes_games
from routes import web as routes_web
from steam.client import SteamAppDetails, SteamClient
from web import app_factory as web_app_factory

logger = logging.getLogger(__name__)


def _determine_log_level(flask_app: Flask) -> int:
    if flask_app.debug:
        return logging.DEBUG
    if os.environ.get('FLASK_DEBUG', '').lower() in {'1', 'true', 'yes', 'on'}:
        return logging.DEBUG
    return logging.INFO


def _configure_logging(flask_app: Flask) -> None:
    log_level = _determine_log_level(flask_app)
    log_path = Path(LOG_FILE)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass

    for handler in list(flask_app.logger.handlers):
        flask_app.logger.removeHandler(handler)

    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'standard': {
                    'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
                    'datefmt': '%Y-%m-%d %H:%M:%S',
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'standard',
                    'level': log_level,
                    'stream': 'ext://sys.stdout',
                },
                'file': {
                    'class': 'logging.handlers.RotatingFileHandler',
                    'formatter': 'standard',
                    'level': logging.DEBUG,
                    'filename': os.fspath(log_path),
                    'maxBytes': 5 * 1024 * 1024,
                    'backupCount': 5,
                    'encoding': 'utf-8',
                },
            },
            'root': {
                'level': log_level,
                'handlers': ['console', 'file'],
            },
        }
    )

    flask_app.logger = logging.getLogger(flask_app.import_name)
    flask_app.logger.setLevel(log_level)
    logger.setLevel(log_level)


app = Flask(__name__, root_path=os.fspath(BASE_DIR))
app.secret_key = APP_SECRET_KEY
app.config.update(
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SAMESITE='Lax',
    PERMANENT_SESSION_LIFETIME=timedelta(hours=12),
)

_configure_logging(app)


def ensure_dirs() -> None:
    DATA_DIR_PATH.mkdir(parents=True, exist_ok=True)


def _build_store() -> catalog_store.GameStore:
    return catalog_store.build_store(
        DB_DSN, timeout=DB_CONNECT_TIMEOUT_SECONDS, sslmode=DB_SSLMODE or None
    )


steam_client = SteamClient(
    api_base=STEAM_API_BASE,
    store_base=STEAM_STORE_BASE,
    language=STEAM_LANGUAGE,
    country=STEAM_COUNTRY,
    user_agent=STEAM_USER_AGENT,
    timeout=STEAM_TIMEOUT_SECONDS,
    max_retries=STEAM_MAX_RETRIES,
)


def fetch_steam_details(app_id: str) -> SteamAppDetails:
    return steam_client.fetch_app_details(app_id)


store = initialize_app(
    ensure_dirs=ensure_dirs,
    build_store=_build_store,
    seed_demo=SEED_DEMO_GAMES,
)

catalog_service = CatalogService(
    store=store,
    steam_lookup=fetch_steam_details,
    store_base=STEAM_STORE_BASE,
    logger=logger,
)

admin_auth = routes_auth.AdminAuth(
    password=ADMIN_PASSWORD,
    password_hash=ADMIN_PASSWORD_HASH,
    token=ADMIN_TOKEN,
    allowed_ips=ADMIN_ALLOWED_IPS,
)


@app.errorhandler(Exception)
def handle_exception(e: Exception) -> Any:
    if isinstance(e, HTTPException):
        return e
    app.logger.exception("Unhandled exception")
    if request.path.startswith('/api/'):
        return jsonify({'error': 'internal server error'}), 500
    return "Internal Server Error", 500


_blueprints_configured = False


def configure_blueprints(flask_app: Flask) -> None:
    global _blueprints_configured
    if _blueprints_configured:
        return

    routes_auth.configure({
        'auth': admin_auth,
    })

    routes_games.configure({
        'get_service': lambda: catalog_service,
    })

    routes_web.configure({
        'get_service': lambda: catalog_service,
    })

    if 'games' not in flask_app.blueprints:
        flask_app.register_blueprint(routes_games.games_blueprint)
    if 'web' not in flask_app.blueprints:
        flask_app.register_blueprint(routes_web.web_blueprint)

    _blueprints_configured = True


app = web_app_factory.create_app(
    app,
    configure_blueprints=configure_blueprints,
    trust_proxy_headers=TRUST_PROXY_HEADERS,
)

logger.info("Game showcase configured (%s catalog)", store.backend_name)


if __name__ == '__main__':
    app.run(host=BIND, port=PORT, debug=False)
