from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from feedhub.aggregation.aggregator import apply_order
from feedhub.errors import AuthRejected, FeedError, OrderPersistFailure
from feedhub.models.types import ContentItem

logger = logging.getLogger(__name__)

CLEAN = "clean"
DIRTY = "dirty"


class OrderReconciler:
    """Owns the user's manual item order.

    A drag replaces the whole order immediately and marks it dirty; saving
    happens in a background task. A failed save keeps the local order and is
    reported through ``last_error``, while a rejected credential is kept apart
    in ``auth_error``. The state returns to clean only once the latest revision
    has been acknowledged by the backend.
    """

    def __init__(self, backend: "PersistenceBackend") -> None:
        self._backend = backend
        self._order: list[str] = []
        self._state = CLEAN
        self._revision = 0
        self._saved_revision = 0
        self._in_flight: asyncio.Task | None = None
        self.last_error: OrderPersistFailure | None = None
        self.auth_error: AuthRejected | None = None

    @property
    def order(self) -> list[str]:
        return list(self._order)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_dirty(self) -> bool:
        return self._state == DIRTY

    async def load(self) -> list[str]:
        """Read the stored order once at session start; failures leave it empty."""
        loop = asyncio.get_running_loop()
        try:
            stored = await loop.run_in_executor(None, self._backend.get_content_order)
        except AuthRejected:
            raise
        except FeedError as exc:
            logger.warning("Could not load content order, starting empty: %s", exc)
            stored = []
        self._order = [item_id for item_id in stored if isinstance(item_id, str)]
        self._state = CLEAN
        logger.info("Loaded content order with %d ids", len(self._order))
        return self.order

    def reconcile(self, items: Sequence[ContentItem]) -> list[ContentItem]:
        return apply_order(items, self._order)

    def move(
        self,
        rendered: Sequence[ContentItem],
        source_index: int,
        destination_index: int | None,
    ) -> list[ContentItem]:
        """Move one item within the rendered list and adopt the result as the order.

        A drop outside the list (``destination_index`` of None) changes nothing.
        """
        items = list(rendered)
        if destination_index is None:
            return items
        if not 0 <= source_index < len(items):
            raise IndexError(f"source index {source_index} out of range")
        if not 0 <= destination_index < len(items):
            raise IndexError(f"destination index {destination_index} out of range")

        moved = items.pop(source_index)
        items.insert(destination_index, moved)
        self.replace([item.id for item in items])
        return items

    def replace(self, order: Sequence[str]) -> None:
        self._order = list(order)
        self._revision += 1
        self._state = DIRTY
        self._schedule_save()

    def _schedule_save(self) -> None:
        if self._in_flight is not None and not self._in_flight.done():
            # the running save loop picks up the newest revision when it finishes
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, order revision %d saved on flush()", self._revision)
            return
        self._in_flight = loop.create_task(self._save_latest())

    async def _save_latest(self) -> None:
        loop = asyncio.get_running_loop()
        while self._saved_revision < self._revision:
            revision = self._revision
            order = list(self._order)
            try:
                await loop.run_in_executor(None, self._backend.save_content_order, order)
            except AuthRejected as exc:
                self.auth_error = exc
                logger.error("Content order revision %d rejected by backend: %s", revision, exc)
                return
            except Exception as exc:
                failure = OrderPersistFailure(f"Could not save content order: {exc}")
                failure.__cause__ = exc
                self.last_error = failure
                logger.error("Failed to persist content order revision %d: %s", revision, exc)
                return
            self._saved_revision = revision
            logger.debug("Persisted content order revision %d (%d ids)", revision, len(order))

        self._state = CLEAN
        self.last_error = None
        self.auth_error = None

    async def flush(self) -> None:
        """Wait for pending saves, starting one if the order is still dirty."""
        if self._in_flight is not None and not self._in_flight.done():
            await self._in_flight
        if self._saved_revision < self._revision:
            self._in_flight = asyncio.get_running_loop().create_task(self._save_latest())
            await self._in_flight
