from __future__ import annotations

import asyncio
import logging
from typing import Mapping

from feedhub.aggregation.aggregator import aggregate
from feedhub.aggregation.debounce import Debouncer
from feedhub.aggregation.fetch import fetch_pages
from feedhub.aggregation.ordering import OrderReconciler
from feedhub.errors import AuthRejected, FeedError
from feedhub.favorites.store import FavoritesStore
from feedhub.models.types import (
    MOVIE,
    NEWS,
    SOCIAL,
    ContentItem,
    FavoriteRecord,
    PageCursor,
    PageParams,
)

logger = logging.getLogger(__name__)


class FeedSession:
    """One user's view of the merged feed.

    Pages are fetched from all adapters at once and accumulated per kind.
    Every change (new page, new query, drag) re-runs the aggregation over the
    accumulated items. Results of a fetch that was superseded by a newer query
    or refresh are dropped using a generation counter.
    """

    def __init__(
        self,
        adapters: Mapping[str, "SourceAdapter"],
        favorites: FavoritesStore,
        reconciler: OrderReconciler,
        settings: "Settings",
        filters: Mapping[str, str | None] | None = None,
    ) -> None:
        self._adapters = dict(adapters)
        self.favorites = favorites
        self.reconciler = reconciler
        self._settings = settings
        self._filters: dict[str, str | None] = {
            NEWS: settings.news_category,
            MOVIE: settings.movie_list_type,
            SOCIAL: settings.social_hashtag,
        }
        self._filters.update(filters or {})
        self._debouncer = Debouncer(settings.search_debounce_seconds, self._apply_query)

        self._query = ""
        self._generation = 0
        self._loading_generation: int | None = None
        self._reset_pages()
        self._auth_error: AuthRejected | None = None

    def _reset_pages(self) -> None:
        self._page = 0
        self._cursors = {kind: PageCursor() for kind in self._adapters}
        self._loaded: dict[str, list[ContentItem]] = {kind: [] for kind in self._adapters}
        self._items: list[ContentItem] = []
        self._has_more = True
        self.failures: dict[str, str] = {}

    @property
    def items(self) -> list[ContentItem]:
        return list(self._items)

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def query(self) -> str:
        return self._query

    @property
    def page(self) -> int:
        return self._page

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def cursors(self) -> dict[str, PageCursor]:
        return {kind: PageCursor(c.page, c.has_more) for kind, c in self._cursors.items()}

    @property
    def is_loading(self) -> bool:
        return self._loading_generation == self._generation

    @property
    def auth_error(self) -> AuthRejected | None:
        """The last credential rejection seen by any collaborator, if any."""
        return self._auth_error or self.reconciler.auth_error

    async def start(self) -> None:
        """Load the stored order and favorites, then the first page."""
        try:
            await self.reconciler.load()
        except AuthRejected as exc:
            self._auth_error = exc
        await self.refresh_favorites()
        await self.load_more()

    async def refresh_favorites(self) -> list[FavoriteRecord]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.favorites.refresh)
        except AuthRejected as exc:
            self._auth_error = exc
            logger.error("Favorites could not be loaded: %s", exc)
        except FeedError as exc:
            logger.warning("Favorites could not be loaded: %s", exc)
        return self.favorites.list()

    async def load_more(self) -> bool:
        """Fetch the next page from every kind that still has one.

        Returns True when at least one kind delivered a page. A round in which
        every kind failed records the failures but does not count against
        ``max_pages``.
        """
        if not self._has_more or self.is_loading:
            return False

        generation = self._generation
        self._loading_generation = generation
        params = {
            kind: PageParams(page=cursor.page, filter=self._filters.get(kind), query=self._query)
            for kind, cursor in self._cursors.items()
            if cursor.has_more
        }
        try:
            outcome = await fetch_pages(self._adapters, params)
        finally:
            if self._loading_generation == generation:
                self._loading_generation = None

        if generation != self._generation:
            logger.debug("Discarding results from superseded generation %d", generation)
            return False

        for kind, items in outcome.pages.items():
            self._loaded[kind].extend(items)
            cursor = self._cursors[kind]
            cursor.page += 1
            cursor.has_more = outcome.has_more.get(kind, False)

        self.failures = dict(outcome.failures)
        if outcome.auth_error is not None:
            self._auth_error = outcome.auth_error
        if not outcome.pages:
            logger.warning("No source delivered page %d, page count unchanged", self._page + 1)
            self._render()
            return False
        self._page += 1
        self._render()
        return True

    def _render(self) -> None:
        result = aggregate(
            self._loaded,
            self.reconciler.order,
            self._query,
            page=self._page,
            max_pages=self._settings.max_pages,
            kind_has_more={kind: cursor.has_more for kind, cursor in self._cursors.items()},
            failures=self.failures,
        )
        self._items = result.items
        # once exhausted, stays exhausted until the feed is reset
        self._has_more = self._has_more and result.has_more

    def set_query(self, query: str) -> None:
        """Debounced search; the feed is rebuilt once typing pauses."""
        self._debouncer.trigger(query)

    async def settle(self) -> None:
        """Wait until pending debounced work has been applied."""
        await self._debouncer.wait()

    async def _apply_query(self, query: str) -> None:
        query = (query or "").strip()
        if query == self._query:
            return
        logger.info("Search query changed to %r", query)
        self._query = query
        await self.refresh()

    async def refresh(self) -> None:
        """Drop accumulated pages and start again from page 1."""
        self._generation += 1
        self._loading_generation = None
        self._reset_pages()
        await self.load_more()

    def move(self, source_index: int, destination_index: int | None) -> list[ContentItem]:
        """Apply a drag within the rendered list; saving happens in the background."""
        self._items = self.reconciler.move(self._items, source_index, destination_index)
        return self.items

    def is_favorite(self, content_id: str) -> bool:
        return self.favorites.is_favorite(content_id)

    def favorite_items(self) -> list[ContentItem]:
        return self.favorites.items()

    async def toggle_favorite(self, item: ContentItem) -> bool:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.favorites.toggle, item)
        except AuthRejected as exc:
            self._auth_error = exc
            raise

    async def close(self) -> None:
        self._debouncer.cancel()
        await self.reconciler.flush()
