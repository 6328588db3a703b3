from __future__ import annotations

import logging
from typing import Any

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from feedhub.errors import AuthRejected, InvalidPage, SourceUnavailable
from feedhub.models.types import ContentItem, PageParams, PageResult

logger = logging.getLogger(__name__)

_HTTP_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; FeedHubFetcher/1.0)"}


class SourceAdapter:
    """Fetches one page from a provider and normalizes it into ContentItems.

    Subclasses describe their provider: how to build the request, where the
    items live in the response, how continuation is reported, and how one raw
    item maps onto the canonical model. When the provider has no configured
    credential the adapter serves a deterministic mock dataset instead.
    """

    kind: str = ""

    def __init__(self, settings: "Settings", session: requests.Session | None = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.update(_HTTP_HEADERS)

    @property
    def is_mock(self) -> bool:
        return not self._has_credential()

    @property
    def page_size(self) -> int:
        return self._settings.page_size

    def fetch_page(self, params: PageParams) -> PageResult:
        if not isinstance(params.page, int) or params.page < 1:
            raise InvalidPage(params.page)

        if self.is_mock:
            logger.debug("No credential for %s, serving mock page %d", self.kind, params.page)
            payload = self._mock_payload(params)
        else:
            logger.info("Fetching %s page %d", self.kind, params.page)
            payload = self._request_payload(params)

        if not isinstance(payload, dict):
            logger.warning("%s provider returned a non-object payload, ignoring it", self.kind)
            payload = {}

        raw_items = payload.get(self._items_key)
        if not isinstance(raw_items, list):
            raw_items = []

        items: list[ContentItem] = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                logger.debug("Malformed %s entry normalized as empty: %r", self.kind, raw)
                raw = {}
            items.append(self.normalize(raw))

        has_more = self._provider_has_more(payload, params) if raw_items else False
        logger.info(
            "%s adapter returning %d items for page %d (has_more=%s)",
            self.kind, len(items), params.page, has_more,
        )
        return PageResult(kind=self.kind, items=items, has_more=has_more)

    def _get_json(
        self,
        url: str,
        query: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            return self._get_with_retry(url, query, headers)
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            if status in (401, 403):
                logger.error("%s provider rejected the credential (HTTP %s)", self.kind, status)
                raise AuthRejected(f"{self.kind} provider returned HTTP {status}") from exc
            logger.warning("%s provider returned HTTP %s", self.kind, status)
            raise SourceUnavailable(self.kind, f"HTTP {status}") from exc
        except (requests.RequestException, ValueError) as exc:
            logger.warning("%s provider request failed: %s", self.kind, exc)
            raise SourceUnavailable(self.kind, str(exc)) from exc

    @retry(
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        reraise=True,
    )
    def _get_with_retry(
        self,
        url: str,
        query: dict[str, Any],
        headers: dict[str, str] | None,
    ) -> Any:
        response = self._session.get(
            url,
            params=query,
            headers=headers,
            timeout=self._settings.request_timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    # Provider description, overridden per kind.

    _items_key: str = "items"

    def _has_credential(self) -> bool:
        raise NotImplementedError

    def _request_payload(self, params: PageParams) -> Any:
        raise NotImplementedError

    def _mock_payload(self, params: PageParams) -> dict[str, Any]:
        raise NotImplementedError

    def _provider_has_more(self, payload: dict[str, Any], params: PageParams) -> bool:
        raise NotImplementedError

    def normalize(self, raw: dict[str, Any]) -> ContentItem:
        raise NotImplementedError


def text_or_empty(value: Any) -> str:
    """Coerce a provider field into a string, ``""`` when absent."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def optional_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)
