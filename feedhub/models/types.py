from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

NEWS = "news"
MOVIE = "movie"
SOCIAL = "social"

KINDS: tuple[str, ...] = (NEWS, MOVIE, SOCIAL)


@dataclass
class ContentItem:
    """A normalized piece of content from any source kind.

    Concrete kinds are the subclasses below; ``kind`` is the tag that
    serialization and rendering dispatch on.
    """

    kind: ClassVar[str] = ""

    id: str
    title: str = ""
    description: str = ""
    image: str | None = None
    url: str | None = None
    author: str | None = None
    published_at: str | None = None
    category: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title and description."""
        if not query:
            return True
        needle = query.lower()
        return needle in self.title.lower() or needle in self.description.lower()

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "title": self.title,
            "description": self.description,
            "image": self.image,
            "url": self.url,
            "author": self.author,
            "publishedAt": self.published_at,
            "category": self.category,
            "data": self.raw,
        }


@dataclass
class NewsItem(ContentItem):
    """A news article."""

    kind: ClassVar[str] = NEWS

    @property
    def source_name(self) -> str:
        source = self.raw.get("source")
        if isinstance(source, dict):
            return source.get("name") or ""
        return ""


@dataclass
class MovieItem(ContentItem):
    """A movie or show listing."""

    kind: ClassVar[str] = MOVIE

    @property
    def rating(self) -> float | None:
        value = self.raw.get("vote_average")
        return float(value) if isinstance(value, (int, float)) else None


@dataclass
class SocialItem(ContentItem):
    """A social media post."""

    kind: ClassVar[str] = SOCIAL

    @property
    def likes(self) -> int:
        value = self.raw.get("likes")
        return value if isinstance(value, int) else 0

    @property
    def hashtags(self) -> list[str]:
        value = self.raw.get("hashtags")
        return list(value) if isinstance(value, list) else []


ITEM_TYPES: dict[str, type[ContentItem]] = {
    NEWS: NewsItem,
    MOVIE: MovieItem,
    SOCIAL: SocialItem,
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def item_from_snapshot(content_type: str, data: dict[str, Any]) -> ContentItem:
    """Rebuild a ContentItem from a stored favorite snapshot.

    Snapshots written by older clients may hold the bare provider payload
    instead of the item projection, so ``data`` falls back to the whole dict.
    """
    item_cls = ITEM_TYPES.get(content_type, ContentItem)
    raw = data.get("data")
    return item_cls(
        id=_text(data.get("id")),
        title=_text(data.get("title")),
        description=_text(data.get("description")),
        image=data.get("image"),
        url=data.get("url"),
        author=data.get("author"),
        published_at=data.get("publishedAt"),
        category=data.get("category"),
        raw=raw if isinstance(raw, dict) else dict(data),
    )


@dataclass
class FavoriteRecord:
    """A persisted snapshot of a pinned ContentItem."""

    id: str
    content_id: str
    content_type: str
    content_snapshot: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> FavoriteRecord:
        """Map the read wire shape ``{id, content_id, content_type,
        content_data, created_at}`` into a record."""
        snapshot = row.get("content_data") or {}
        if isinstance(snapshot, str):
            try:
                snapshot = json.loads(snapshot)
            except ValueError:
                logger.warning("Favorite %s has an unreadable snapshot", row.get("id"))
                snapshot = {}
        if not isinstance(snapshot, dict):
            snapshot = {}
        return cls(
            id=_text(row.get("id")),
            content_id=_text(row.get("content_id")),
            content_type=_text(row.get("content_type")),
            content_snapshot=snapshot,
            created_at=_text(row.get("created_at")),
        )

    @property
    def item(self) -> ContentItem:
        item = item_from_snapshot(self.content_type, self.content_snapshot)
        if not item.id:
            item.id = self.content_id
        return item


@dataclass
class PageParams:
    """Request parameters for one provider page.

    ``filter`` is the per-kind narrowing value: news category, movie list
    type, or social hashtag. ``query`` is the search text forwarded to
    providers that support searching.
    """

    page: int = 1
    filter: str | None = None
    query: str = ""


@dataclass
class PageCursor:
    page: int = 1
    has_more: bool = True


@dataclass
class PageResult:
    kind: str
    items: list[ContentItem] = field(default_factory=list)
    has_more: bool = False


@dataclass
class AggregateResult:
    items: list[ContentItem] = field(default_factory=list)
    has_more: bool = False
    failures: dict[str, str] = field(default_factory=dict)
