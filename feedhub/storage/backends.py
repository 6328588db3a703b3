"""Persistence backends for favorites and the manual content order.

Both backends expose the same methods and speak the read wire shape
``{id, content_id, content_type, content_data, created_at}`` for favorites,
so the stores above them do not care whether they talk to sqlite directly or
to the HTTP API.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Protocol

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from feedhub.errors import AlreadyFavorited, AuthRejected, FeedError, NotFound
from feedhub.storage.database import Database

logger = logging.getLogger(__name__)


class PersistenceBackend(Protocol):
    def list_favorites(self) -> list[dict]: ...

    def add_favorite(self, payload: dict[str, Any]) -> dict: ...

    def remove_favorite(self, favorite_id: str) -> None: ...

    def get_content_order(self) -> list[str]: ...

    def save_content_order(self, content_order: list[str]) -> None: ...


def validate_favorite_payload(payload: Any) -> tuple[str, str, dict[str, Any]]:
    """Check the write shape ``{contentId, contentType, contentData}``."""
    if not isinstance(payload, dict):
        raise ValueError("Favorite payload must be an object")
    content_id = payload.get("contentId")
    content_type = payload.get("contentType")
    content_data = payload.get("contentData")
    if not content_id or not content_type or not content_data:
        raise ValueError("Content ID, type, and data are required")
    if not isinstance(content_data, dict):
        raise ValueError("Content data must be an object")
    return str(content_id), str(content_type), content_data


class LocalBackend:
    """Per-user view over the sqlite Database."""

    def __init__(self, database: Database, user_id: str) -> None:
        self._db = database
        self._user_id = user_id

    def list_favorites(self) -> list[dict]:
        try:
            return self._db.list_favorites(self._user_id)
        except sqlite3.Error as exc:
            raise FeedError(f"Could not list favorites: {exc}") from exc

    def add_favorite(self, payload: dict[str, Any]) -> dict:
        content_id, content_type, content_data = validate_favorite_payload(payload)
        try:
            row = self._db.add_favorite(self._user_id, content_id, content_type, content_data)
        except sqlite3.Error as exc:
            raise FeedError(f"Could not add favorite: {exc}") from exc
        if row is None:
            raise AlreadyFavorited(content_id)
        return row

    def remove_favorite(self, favorite_id: str) -> None:
        try:
            removed = self._db.remove_favorite(self._user_id, favorite_id)
        except sqlite3.Error as exc:
            raise FeedError(f"Could not remove favorite: {exc}") from exc
        if not removed:
            raise NotFound(favorite_id)

    def get_content_order(self) -> list[str]:
        try:
            return self._db.get_content_order(self._user_id)
        except sqlite3.Error as exc:
            raise FeedError(f"Could not load content order: {exc}") from exc

    def save_content_order(self, content_order: list[str]) -> None:
        try:
            self._db.save_content_order(self._user_id, content_order)
        except sqlite3.Error as exc:
            raise FeedError(f"Could not save content order: {exc}") from exc


class ApiBackend:
    """Talks to the feedhub HTTP API with a bearer token."""

    def __init__(
        self,
        base_url: str,
        token: str,
        session: requests.Session | None = None,
        timeout: float = 10,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {token}"})
        self._timeout = timeout

    @retry(
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        reraise=True,
    )
    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        return self._session.request(
            method, f"{self._base_url}{path}", timeout=self._timeout, **kwargs
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._send(method, path, **kwargs)
        except requests.RequestException as exc:
            raise FeedError(f"{method} {path} failed: {exc}") from exc

        if response.status_code in (401, 403):
            logger.error("API rejected the session token for %s %s", method, path)
            raise AuthRejected(f"{method} {path} returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise self._error_for(response, path)
        try:
            return response.json()
        except ValueError as exc:
            raise FeedError(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _error_for(response: requests.Response, path: str) -> FeedError:
        try:
            message = response.json().get("error", "")
        except (ValueError, AttributeError):
            message = response.text
        if response.status_code == 404 and path.startswith("/user/favorites/"):
            return NotFound(path.rsplit("/", 1)[-1])
        if response.status_code == 409:
            return AlreadyFavorited(message)
        return FeedError(f"HTTP {response.status_code}: {message}")

    def list_favorites(self) -> list[dict]:
        data = self._request("GET", "/user/favorites")
        if not isinstance(data, list):
            raise FeedError("GET /user/favorites returned a non-list body")
        rows = [row for row in data if isinstance(row, dict)]
        if len(rows) != len(data):
            logger.warning("Dropped %d malformed favorite rows", len(data) - len(rows))
        return rows

    def add_favorite(self, payload: dict[str, Any]) -> dict:
        content_id, _, _ = validate_favorite_payload(payload)
        try:
            row = self._request("POST", "/user/favorites", json=payload)
        except AlreadyFavorited as exc:
            raise AlreadyFavorited(content_id) from exc
        if not isinstance(row, dict):
            raise FeedError("POST /user/favorites returned a non-object body")
        return row

    def remove_favorite(self, favorite_id: str) -> None:
        self._request("DELETE", f"/user/favorites/{favorite_id}")

    def get_content_order(self) -> list[str]:
        data = self._request("GET", "/user/content-order")
        order = data.get("contentOrder") if isinstance(data, dict) else None
        return order if isinstance(order, list) else []

    def save_content_order(self, content_order: list[str]) -> None:
        self._request("PUT", "/user/content-order", json={"contentOrder": list(content_order)})
