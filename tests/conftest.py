from __future__ import annotations

import os
import threading
from typing import Callable

import pytest

from feedhub.config.settings import Settings
from feedhub.errors import AlreadyFavorited, FeedError, NotFound
from feedhub.models.types import (
    MovieItem,
    NewsItem,
    PageParams,
    PageResult,
    SocialItem,
)
from feedhub.storage.database import Database


class FakeAdapter:
    """Stands in for a SourceAdapter, serving canned pages or raising."""

    def __init__(
        self,
        kind: str,
        pages: dict[int, list] | None = None,
        has_more: bool = False,
        error: Exception | None = None,
        barrier: threading.Barrier | None = None,
    ) -> None:
        self.kind = kind
        self.pages = pages or {}
        self.has_more = has_more
        self.error = error
        self.barrier = barrier
        self.calls: list[PageParams] = []

    def fetch_page(self, params: PageParams) -> PageResult:
        self.calls.append(params)
        if self.barrier is not None:
            self.barrier.wait()
        if self.error is not None:
            raise self.error
        return PageResult(
            kind=self.kind,
            items=list(self.pages.get(params.page, [])),
            has_more=self.has_more,
        )


class MemoryBackend:
    """In-memory persistence backend with the same surface as LocalBackend."""

    def __init__(self, order: list[str] | None = None) -> None:
        self.favorites: list[dict] = []
        self.order: list[str] = list(order or [])
        self.saved_orders: list[list[str]] = []
        self.fail_saves = False
        self.save_error: Exception | None = None
        self.fail_removals: set[str] = set()
        self._next_id = 0

    def list_favorites(self) -> list[dict]:
        return [dict(row) for row in self.favorites]

    def add_favorite(self, payload: dict) -> dict:
        if any(row["content_id"] == payload["contentId"] for row in self.favorites):
            raise AlreadyFavorited(payload["contentId"])
        self._next_id += 1
        row = {
            "id": f"fav-{self._next_id}",
            "content_id": payload["contentId"],
            "content_type": payload["contentType"],
            "content_data": payload["contentData"],
            "created_at": f"2025-01-01T00:00:{self._next_id:02d}Z",
        }
        self.favorites.insert(0, row)
        return dict(row)

    def remove_favorite(self, favorite_id: str) -> None:
        if favorite_id in self.fail_removals:
            raise FeedError(f"backend refused to remove {favorite_id}")
        before = len(self.favorites)
        self.favorites = [row for row in self.favorites if row["id"] != favorite_id]
        if len(self.favorites) == before:
            raise NotFound(favorite_id)

    def get_content_order(self) -> list[str]:
        return list(self.order)

    def save_content_order(self, content_order: list[str]) -> None:
        if self.save_error is not None:
            raise self.save_error
        if self.fail_saves:
            raise FeedError("order service unavailable")
        self.order = list(content_order)
        self.saved_orders.append(list(content_order))


@pytest.fixture
def sample_content_item() -> NewsItem:
    """A fully-populated news item for use in tests."""
    return NewsItem(
        id="news-https://example.com/news/summit",
        title="Major Summit Announced",
        description="World leaders gather to discuss trade at the summit.",
        image="https://example.com/summit.jpg",
        url="https://example.com/news/summit",
        author="Jane Reporter",
        published_at="2025-06-15T12:00:00Z",
        category="news",
        raw={"source": {"id": "reuters", "name": "Reuters"}, "url": "https://example.com/news/summit"},
    )


@pytest.fixture
def sample_settings() -> Settings:
    """Settings with no provider credentials, so adapters serve mock data."""
    return Settings(
        secret_key="test-secret",
        page_size=20,
        max_pages=5,
        search_debounce_ms=10,
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def make_items() -> Callable[..., list]:
    """Factory for one item per id, typed by the id's kind prefix."""
    types = {"news": NewsItem, "movie": MovieItem, "social": SocialItem}

    def _make(*ids: str, titles: dict[str, str] | None = None) -> list:
        titles = titles or {}
        items = []
        for item_id in ids:
            item_cls = types[item_id.split("-", 1)[0]]
            items.append(
                item_cls(
                    id=item_id,
                    title=titles.get(item_id, f"Title of {item_id}"),
                    description=f"Description of {item_id}",
                )
            )
        return items

    return _make


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def fake_adapter_cls() -> type[FakeAdapter]:
    return FakeAdapter


@pytest.fixture
def temp_database(tmp_path):
    """A Database backed by a temporary SQLite file, cleaned up after the test."""
    db_file = str(tmp_path / "test_feedhub.db")
    db = Database(db_path=db_file)
    yield db
    db.close()
    if os.path.exists(db_file):
        os.remove(db_file)
