from __future__ import annotations

import logging
from dataclasses import dataclass, field

from feedhub.errors import AlreadyFavorited, FeedError
from feedhub.models.types import ContentItem, FavoriteRecord

logger = logging.getLogger(__name__)


@dataclass
class ClearResult:
    removed: int = 0
    failed: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)


class FavoritesStore:
    """The user's pinned items, kept as snapshots newest first.

    The backend is the source of truth; the local list mirrors it so that
    membership checks during rendering need no round trip.
    """

    def __init__(self, backend: "PersistenceBackend") -> None:
        self._backend = backend
        self._records: list[FavoriteRecord] = []

    def refresh(self) -> list[FavoriteRecord]:
        rows = self._backend.list_favorites()
        self._records = [FavoriteRecord.from_row(row) for row in rows if isinstance(row, dict)]
        logger.info("Loaded %d favorites", len(self._records))
        return self.list()

    def list(self) -> list[FavoriteRecord]:
        return list(self._records)

    def items(self) -> list[ContentItem]:
        return [record.item for record in self._records]

    def find(self, content_id: str) -> FavoriteRecord | None:
        for record in self._records:
            if record.content_id == content_id:
                return record
        return None

    def is_favorite(self, content_id: str) -> bool:
        return self.find(content_id) is not None

    def add(self, item: ContentItem) -> FavoriteRecord:
        if self.is_favorite(item.id):
            raise AlreadyFavorited(item.id)

        row = self._backend.add_favorite(
            {
                "contentId": item.id,
                "contentType": item.kind,
                "contentData": item.to_snapshot(),
            }
        )
        record = FavoriteRecord.from_row(row)
        self._records.insert(0, record)
        logger.info("Added %s to favorites as %s", item.id, record.id)
        return record

    def remove(self, record_id: str) -> None:
        """Delete one record; the local copy goes first and is not restored on failure."""
        self._records = [record for record in self._records if record.id != record_id]
        self._backend.remove_favorite(record_id)
        logger.info("Removed favorite %s", record_id)

    def toggle(self, item: ContentItem) -> bool:
        """Favorite *item* or un-favorite it; returns the new membership."""
        record = self.find(item.id)
        if record is None:
            self.add(item)
            return True
        self.remove(record.id)
        return False

    def clear_all(self) -> ClearResult:
        result = ClearResult()
        for record in self.refresh():
            try:
                self.remove(record.id)
            except FeedError as exc:
                logger.warning("Failed to remove favorite %s: %s", record.id, exc)
                result.failed += 1
                result.errors.append((record.id, str(exc)))
            else:
                result.removed += 1
        if result.failed:
            logger.error(
                "Cleared %d favorites, %d could not be removed", result.removed, result.failed
            )
        return result
