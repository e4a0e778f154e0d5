"""Steam store client and metadata normalization helpers."""

from __future__ import annotations

import json
import logging
import numbers
import re
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Mapping

from urllib.error import HTTPError
from urllib.parse import urlencode, urlparse
from urllib.request import Request, urlopen

from helpers import _format_genre_list, _normalize_text, host_matches

logger = logging.getLogger(__name__)


__all__ = [
    "InvalidSteamIdError",
    "SteamAPIError",
    "SteamAppDetails",
    "SteamClient",
    "SteamError",
    "coerce_steam_id",
    "steam_store_url",
]


DEFAULT_API_BASE = "https://store.steampowered.com/api"
DEFAULT_STORE_BASE = "https://store.steampowered.com"
DEFAULT_USER_AGENT = "GameShowcase/1.0 (admin@example.com)"
STEAM_STORE_DOMAIN = "steampowered.com"

_STORE_PATH_RE = re.compile(r"/app/(\d+)")


class SteamError(RuntimeError):
    """Base class for Steam lookup failures."""


class InvalidSteamIdError(SteamError):
    """Raised when an app id is malformed or unknown to the store."""

    def __init__(self, message: str = "Steam ID invalid!") -> None:
        super().__init__(message)


class SteamAPIError(SteamError):
    """Raised when the store API cannot be reached or returns garbage."""


@dataclass(frozen=True)
class SteamAppDetails:
    app_id: str
    title: str
    image_url: str
    genres: str
    link: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def coerce_steam_id(value: Any) -> str:
    """Normalize potential Steam app ids, including store URLs, to digits."""

    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, numbers.Integral):
        return str(int(value)) if int(value) > 0 else ""
    if isinstance(value, numbers.Real):
        if float(value).is_integer() and value > 0:
            return str(int(value))
        return ""
    text = _normalize_text(value)
    if not text:
        return ""
    if "://" in text:
        if not host_matches(text, STEAM_STORE_DOMAIN):
            return ""
        match = _STORE_PATH_RE.search(urlparse(text).path)
        return match.group(1) if match else ""
    if text.endswith(".0") and text[:-2].isdigit():
        text = text[:-2]
    if text.isdigit() and int(text) > 0:
        return str(int(text))
    return ""


def steam_store_url(app_id: Any, store_base: str = DEFAULT_STORE_BASE) -> str:
    """Return the canonical store page for ``app_id`` or ``""``."""

    normalized = coerce_steam_id(app_id)
    if not normalized:
        return ""
    return f"{store_base.rstrip('/')}/app/{normalized}"


class SteamClient:
    """Fetch and normalize app details from the Steam store API."""

    def __init__(
        self,
        *,
        api_base: str | None = None,
        store_base: str | None = None,
        language: str | None = None,
        country: str | None = None,
        user_agent: str | None = None,
        timeout: float = 15.0,
        max_retries: int = 3,
        rate_limit_wait: float = 1.0,
        request_factory: Callable[..., Any] | None = None,
        opener: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.api_base = (api_base or DEFAULT_API_BASE).rstrip("/")
        self.store_base = (store_base or DEFAULT_STORE_BASE).rstrip("/")
        self._language = (language or "").strip()
        self._country = (country or "").strip()
        self._user_agent = (user_agent or "").strip() or DEFAULT_USER_AGENT
        self._timeout = timeout if timeout and timeout > 0 else 15.0
        self._max_retries = max(1, int(max_retries)) if max_retries else 3
        self._rate_limit_wait = rate_limit_wait if rate_limit_wait and rate_limit_wait > 0 else 1.0
        self._request_factory = request_factory
        self._opener = opener
        self._sleep = sleep or time.sleep

    @property
    def user_agent(self) -> str:
        return self._user_agent

    def store_url(self, app_id: Any) -> str:
        return steam_store_url(app_id, self.store_base)

    def app_details_url(self, app_id: str) -> str:
        params = {"appids": app_id}
        if self._language:
            params["l"] = self._language
        if self._country:
            params["cc"] = self._country
        return f"{self.api_base}/appdetails?{urlencode(params)}"

    def fetch_app_details(self, app_id: Any) -> SteamAppDetails:
        """Return normalized metadata for ``app_id``.

        Raises :class:`InvalidSteamIdError` when the id is malformed or the
        store reports ``success: false`` (or omits the entry), and
        :class:`SteamAPIError` for transport and decoding failures.
        """

        normalized_id = coerce_steam_id(app_id)
        if not normalized_id:
            raise InvalidSteamIdError()

        build_request = self._request_factory or Request
        open_request = self._opener or urlopen
        request = build_request(self.app_details_url(normalized_id), method="GET")
        request.add_header("Accept", "application/json")
        request.add_header("User-Agent", self.user_agent)

        payload = self._request_json(request, open_request)
        details = self.normalize_app_details(normalized_id, payload)
        logger.info("Fetched Steam metadata for app %s: %s", normalized_id, details.title)
        return details

    def normalize_app_details(self, app_id: str, payload: Any) -> SteamAppDetails:
        """Extract title, header image and genres from an ``appdetails`` payload."""

        entry = payload.get(app_id) if isinstance(payload, Mapping) else None
        if not isinstance(entry, Mapping) or not entry.get("success"):
            raise InvalidSteamIdError()

        data = entry.get("data")
        if not isinstance(data, Mapping):
            data = {}

        return SteamAppDetails(
            app_id=app_id,
            title=_normalize_text(data.get("name")),
            image_url=_normalize_text(data.get("header_image")),
            genres=_format_genre_list(data.get("genres") or []),
            link=self.store_url(app_id),
        )

    def _request_json(self, request: Any, opener: Callable[..., Any]) -> Any:
        for attempt in range(self._max_retries):
            try:
                with opener(request, timeout=self._timeout) as response:
                    body = response.read()
            except HTTPError as exc:
                if exc.code == 429 and attempt + 1 < self._max_retries:
                    delay = self._retry_delay(exc)
                    logger.warning(
                        "Steam API rate limited; retrying in %.1fs (attempt %s/%s)",
                        delay,
                        attempt + 1,
                        self._max_retries,
                    )
                    self._sleep(delay)
                    continue
                raise SteamAPIError(_format_http_error("Steam API request failed", exc)) from exc
            except OSError as exc:
                raise SteamAPIError(f"failed to reach Steam API: {exc}") from exc
            text = body.decode("utf-8", errors="replace") if body else ""
            if not text.strip():
                # The store answers unknown ids on some regions with an empty body.
                return None
            try:
                return json.loads(text)
            except ValueError as exc:
                raise SteamAPIError("invalid JSON response from Steam API") from exc
        raise SteamAPIError("Steam API rate limit exceeded")

    def _retry_delay(self, error: HTTPError) -> float:
        headers = getattr(error, "headers", None)
        if headers is not None:
            value = headers.get("Retry-After")
            if value:
                try:
                    delay = float(value)
                    if delay > 0:
                        return delay
                except (TypeError, ValueError):
                    pass
        return self._rate_limit_wait


def _format_http_error(prefix: str, error: HTTPError) -> str:
    message = f"{prefix}: {error.code}"
    error_message = ""
    try:
        error_body = error.read()
    except OSError:  # pragma: no cover - best effort to capture error body
        error_body = b""
    if error_body:
        error_message = error_body.decode("utf-8", errors="replace").strip()
    if not error_message and error.reason:
        error_message = str(error.reason)
    if error_message:
        message = f"{message} {error_message}"
    return message
