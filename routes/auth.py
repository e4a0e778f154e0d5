"""Admin session handling: password, token and IP allow-list checks."""

from __future__ import annotations

import hmac
import ipaddress
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Mapping, ParamSpec, TypeVar

from flask import abort, current_app, render_template, request, session
from werkzeug.security import check_password_hash

from routes.api_utils import ForbiddenError, UnauthorizedError

P = ParamSpec("P")
R = TypeVar("R")

logger = logging.getLogger(__name__)

SESSION_KEY = "admin"
TOKEN_HEADER = "X-Admin-Token"

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide the :class:`AdminAuth` instance used by every admin route."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"auth missing context value: {key}")
    return _context[key]


@dataclass(frozen=True)
class AdminAuth:
    password: str = ""
    password_hash: str = ""
    token: str = ""
    allowed_ips: tuple[str, ...] = ()

    def verify_password(self, candidate: str | None) -> bool:
        if not candidate:
            return False
        if self.password_hash:
            return check_password_hash(self.password_hash, candidate)
        if self.password:
            return hmac.compare_digest(candidate.encode("utf-8"), self.password.encode("utf-8"))
        return False

    def verify_token(self, candidate: str | None) -> bool:
        if not candidate or not self.token:
            return False
        return hmac.compare_digest(candidate.encode("utf-8"), self.token.encode("utf-8"))

    def ip_allowed(self, remote_addr: str | None) -> bool:
        """Return ``True`` when no allow-list is set or ``remote_addr`` matches it.

        Entries may be single addresses or CIDR networks.
        """

        if not self.allowed_ips:
            return True
        if not remote_addr:
            return False
        try:
            address = ipaddress.ip_address(remote_addr)
        except ValueError:
            return False
        for entry in self.allowed_ips:
            try:
                if address in ipaddress.ip_network(entry, strict=False):
                    return True
            except ValueError:
                logger.warning("Ignoring invalid ADMIN_ALLOWED_IPS entry %r", entry)
        return False


def get_auth() -> AdminAuth:
    return _ctx("auth")


def is_admin() -> bool:
    return bool(session.get(SESSION_KEY))


def open_admin_session() -> None:
    session.clear()
    session[SESSION_KEY] = True
    session.permanent = True


def close_admin_session() -> None:
    session.clear()


def _request_token() -> str | None:
    return request.args.get("token") or request.headers.get(TOKEN_HEADER)


def _authorize_request() -> tuple[bool, bool]:
    """Return ``(ip_ok, authenticated)`` for the current request.

    A valid token opens the admin session so follow-up requests only need the
    cookie.
    """

    auth = get_auth()
    if not auth.ip_allowed(request.remote_addr):
        current_app.logger.warning(
            "Rejected admin request from %s (not in allow-list)", request.remote_addr
        )
        return False, False
    if is_admin():
        return True, True
    if auth.verify_token(_request_token()):
        open_admin_session()
        current_app.logger.info("Admin session opened by token from %s", request.remote_addr)
        return True, True
    return True, False


def admin_page_required(view: Callable[P, R]) -> Callable[P, R]:
    """Gate an HTML view; anonymous visitors get the login page."""

    @wraps(view)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        ip_ok, authenticated = _authorize_request()
        if not ip_ok:
            abort(403)
        if not authenticated:
            return render_template("admin_login.html", error=None), 401
        return view(*args, **kwargs)

    return wrapper


def admin_api_required(view: Callable[P, R]) -> Callable[P, R]:
    """Gate a JSON view; wrap it with ``handle_api_errors`` outside this decorator."""

    @wraps(view)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        ip_ok, authenticated = _authorize_request()
        if not ip_ok:
            raise ForbiddenError("admin access is not allowed from this address")
        if not authenticated:
            raise UnauthorizedError("admin login required")
        return view(*args, **kwargs)

    return wrapper


__all__ = [
    "AdminAuth",
    "SESSION_KEY",
    "TOKEN_HEADER",
    "admin_api_required",
    "admin_page_required",
    "close_admin_session",
    "configure",
    "get_auth",
    "is_admin",
    "open_admin_session",
]
