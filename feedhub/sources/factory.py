from __future__ import annotations

import logging

import requests

from feedhub.models.types import MOVIE, NEWS, SOCIAL
from feedhub.sources.base import SourceAdapter
from feedhub.sources.movies import MovieAdapter
from feedhub.sources.news import NewsAdapter
from feedhub.sources.social import SocialAdapter

logger = logging.getLogger(__name__)

ADAPTER_TYPES: dict[str, type[SourceAdapter]] = {
    NEWS: NewsAdapter,
    MOVIE: MovieAdapter,
    SOCIAL: SocialAdapter,
}


def build_adapters(
    settings: "Settings", session: requests.Session | None = None
) -> dict[str, SourceAdapter]:
    """Create one adapter per content kind, sharing an HTTP session."""
    session = session or requests.Session()
    adapters = {kind: adapter_cls(settings, session) for kind, adapter_cls in ADAPTER_TYPES.items()}
    mocked = [kind for kind, adapter in adapters.items() if adapter.is_mock]
    if mocked:
        logger.info("No provider credential for %s, using mock datasets", ", ".join(mocked))
    return adapters
