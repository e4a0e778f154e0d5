"""Error translation and logging shared by the JSON API routes."""

from __future__ import annotations

import json
from functools import wraps
from typing import Any, Callable, ParamSpec, TypeVar

from flask import current_app, jsonify, request, session
from werkzeug.exceptions import HTTPException

from catalog.service import DuplicateGameError, GameNotFoundError, GameValidationError
from catalog.store import StoreError
from steam.client import SteamAPIError, SteamError

P = ParamSpec("P")
R = TypeVar("R")

# Request fields never written to the log.
REDACTED_FIELDS = frozenset({"password", "token"})


class APIError(Exception):
    """An error carrying the HTTP status and message returned to the client."""

    status_code: int = 500
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class BadRequestError(APIError):
    status_code = 400
    message = "Invalid request."


class UnauthorizedError(APIError):
    status_code = 401
    message = "Unauthorized."


class ForbiddenError(APIError):
    status_code = 403
    message = "Forbidden."


class NotFoundError(APIError):
    status_code = 404
    message = "Resource not found."


class ConflictError(APIError):
    status_code = 409
    message = "Conflict detected."


class UpstreamServiceError(APIError):
    status_code = 502
    message = "Upstream service unavailable."


# Checked in order; subclasses must precede their bases.
DOMAIN_ERRORS: tuple[tuple[type[Exception], type[APIError]], ...] = (
    (DuplicateGameError, ConflictError),
    (GameNotFoundError, NotFoundError),
    (SteamAPIError, UpstreamServiceError),
    (GameValidationError, BadRequestError),
    (SteamError, BadRequestError),
)


def to_api_error(exc: Exception) -> APIError | None:
    """Return the :class:`APIError` matching a catalog or Steam exception."""

    if isinstance(exc, APIError):
        return exc
    if isinstance(exc, HTTPException):
        return APIError(exc.description or str(exc), status_code=exc.code or 500)
    for domain_type, api_type in DOMAIN_ERRORS:
        if isinstance(exc, domain_type):
            return api_type(str(exc))
    return None


def _redact(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if key not in REDACTED_FIELDS}


def _collect_request_context() -> dict[str, Any]:
    context: dict[str, Any] = {
        "route": request.path,
        "endpoint": request.endpoint,
        "method": request.method,
        "remote_addr": request.remote_addr,
        "admin": bool(session.get("admin")),
        "view_args": dict(request.view_args or {}),
        "args": _redact(request.args.to_dict(flat=False)),
    }
    if request.form:
        context["form"] = _redact(request.form.to_dict(flat=False))
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        context["json"] = _redact(payload)
    elif payload is not None:
        context["json"] = payload
    return context


def _log_api_error(exc: Exception, status_code: int) -> None:
    context = _collect_request_context()
    try:
        context_str = json.dumps(context, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        context_str = repr(context)
    if status_code < 500:
        current_app.logger.warning(
            "API error (%s): %s | context=%s", status_code, exc, context_str
        )
    elif status_code == 502:
        current_app.logger.error(
            "Upstream failure (%s): %s | context=%s", status_code, exc, context_str
        )
    else:
        current_app.logger.exception(
            "API failure (%s): %s | context=%s", status_code, exc, context_str
        )


def handle_api_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Turn API, HTTP, catalog and Steam exceptions into JSON error responses."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        try:
            return func(*args, **kwargs)
        except StoreError as exc:
            _log_api_error(exc, 500)
            return jsonify({"error": "catalog storage unavailable"}), 500
        except Exception as exc:
            api_error = to_api_error(exc)
            if api_error is None:
                _log_api_error(exc, 500)
                return jsonify({"error": "Internal server error"}), 500
            _log_api_error(exc, api_error.status_code)
            return jsonify(api_error.to_dict()), api_error.status_code

    return wrapper


__all__ = [
    "APIError",
    "BadRequestError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "UnauthorizedError",
    "UpstreamServiceError",
    "handle_api_errors",
    "to_api_error",
]
