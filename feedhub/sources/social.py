from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from feedhub.models.types import PageParams, SocialItem
from feedhub.sources.base import SourceAdapter, optional_text, text_or_empty

logger = logging.getLogger(__name__)

MOCK_PAGE_LIMIT = 10
MOCK_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def normalize_post(post: dict[str, Any]) -> SocialItem:
    provider_id = post.get("id")
    if provider_id is None or provider_id == "":
        provider_id = uuid.uuid4()
    username = text_or_empty(post.get("username"))
    return SocialItem(
        id=f"social-{provider_id}",
        title=f"@{username}",
        description=text_or_empty(post.get("content")),
        image=optional_text(post.get("image")),
        author=username or None,
        published_at=optional_text(post.get("timestamp")),
        category="social",
        raw=post,
    )


class SocialAdapter(SourceAdapter):
    """Posts for one hashtag; ``params.filter`` is the hashtag."""

    kind = "social"
    _items_key = "posts"

    def _has_credential(self) -> bool:
        return bool(self._settings.social_api_url and self._settings.social_api_key)

    def _hashtag(self, params: PageParams) -> str:
        return (params.filter or self._settings.social_hashtag).lstrip("#")

    def _request_payload(self, params: PageParams) -> Any:
        url = f"{self._settings.social_api_url.rstrip('/')}/posts"
        query = {"hashtag": self._hashtag(params), "page": params.page}
        headers = {"Authorization": f"Bearer {self._settings.social_api_key}"}
        return self._get_json(url, query, headers=headers)

    def _mock_payload(self, params: PageParams) -> dict[str, Any]:
        hashtag = self._hashtag(params)
        posts = []
        for i in range(self.page_size):
            n = (params.page - 1) * self.page_size + i
            posts.append(
                {
                    "id": f"post_{params.page}_{i}",
                    "username": f"user{(n * 37) % 1000}",
                    "content": (
                        f"Amazing post about #{hashtag}! This is post {i + 1} on page "
                        f"{params.page}. Lorem ipsum dolor sit amet. #trending #viral"
                    ),
                    "hashtags": [hashtag, "trending", "viral"],
                    "likes": (n * 53) % 1000,
                    "comments": (n * 11) % 100,
                    "shares": (n * 7) % 50,
                    "timestamp": (MOCK_EPOCH - timedelta(minutes=n * 45)).isoformat(),
                    "image": f"https://picsum.photos/400/300?random={n}" if n % 2 == 0 else None,
                    "verified": n % 3 == 0,
                    "mock": True,
                }
            )
        return {"posts": posts, "hasMore": params.page < MOCK_PAGE_LIMIT}

    def _provider_has_more(self, payload: dict[str, Any], params: PageParams) -> bool:
        return payload.get("hasMore") is True

    def normalize(self, raw: dict[str, Any]) -> SocialItem:
        return normalize_post(raw)
