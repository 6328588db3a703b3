from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from feedhub.models.types import NewsItem, PageParams
from feedhub.sources.base import SourceAdapter, optional_text, text_or_empty

logger = logging.getLogger(__name__)

TOP_HEADLINES_URL = "https://newsapi.org/v2/top-headlines"
EVERYTHING_URL = "https://newsapi.org/v2/everything"

MOCK_TOTAL_RESULTS = 100
MOCK_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def normalize_article(article: dict[str, Any]) -> NewsItem:
    url = optional_text(article.get("url"))
    return NewsItem(
        id=f"news-{url or uuid.uuid4()}",
        title=text_or_empty(article.get("title")),
        description=text_or_empty(article.get("description")),
        image=optional_text(article.get("urlToImage")),
        url=url,
        author=optional_text(article.get("author")),
        published_at=optional_text(article.get("publishedAt")),
        category="news",
        raw=article,
    )


class NewsAdapter(SourceAdapter):
    """NewsAPI articles; ``params.filter`` is the headline category."""

    kind = "news"
    _items_key = "articles"

    def _has_credential(self) -> bool:
        return bool(self._settings.news_api_key)

    def _category(self, params: PageParams) -> str:
        return params.filter or self._settings.news_category

    def _request_payload(self, params: PageParams) -> Any:
        query: dict[str, Any] = {"page": params.page, "pageSize": self.page_size}
        if params.query:
            url = EVERYTHING_URL
            query.update(q=params.query, sortBy="publishedAt")
        else:
            url = TOP_HEADLINES_URL
            query.update(country="us", category=self._category(params))
        return self._get_json(url, query, headers={"X-Api-Key": self._settings.news_api_key})

    def _mock_payload(self, params: PageParams) -> dict[str, Any]:
        category = self._category(params)
        prefix = f"{params.query} - " if params.query else ""
        offset = (params.page - 1) * self.page_size
        articles = []
        for i in range(self.page_size):
            n = offset + i + 1
            articles.append(
                {
                    "source": {"id": None, "name": "Mock News"},
                    "author": f"Author {n}",
                    "title": f"{prefix}Breaking News Story {n} - {category}",
                    "description": (
                        f"This is a mock news article about {category}. "
                        "Lorem ipsum dolor sit amet, consectetur adipiscing elit."
                    ),
                    "url": f"https://example.com/news/{n}",
                    "urlToImage": f"https://picsum.photos/400/300?random={n}",
                    "publishedAt": (MOCK_EPOCH - timedelta(hours=n)).isoformat(),
                    "content": "Mock content for testing purposes.",
                    "mock": True,
                }
            )
        return {"status": "ok", "totalResults": MOCK_TOTAL_RESULTS, "articles": articles}

    def _provider_has_more(self, payload: dict[str, Any], params: PageParams) -> bool:
        total = payload.get("totalResults")
        if not isinstance(total, int):
            return False
        return params.page * self.page_size < total

    def normalize(self, raw: dict[str, Any]) -> NewsItem:
        return normalize_article(raw)
