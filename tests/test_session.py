"""Tests for feedhub.aggregation.session.FeedSession."""
from __future__ import annotations

import asyncio
import threading
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from feedhub.aggregation.ordering import CLEAN, OrderReconciler
from feedhub.aggregation.session import FeedSession
from feedhub.errors import AuthRejected, SourceUnavailable
from feedhub.favorites.store import FavoritesStore
from feedhub.models.types import PageResult
from feedhub.sources.factory import build_adapters


def _session(adapters, backend, settings) -> FeedSession:
    return FeedSession(adapters, FavoritesStore(backend), OrderReconciler(backend), settings)


def _ids(items) -> list[str]:
    return [item.id for item in items]


class GatedAdapter:
    """Blocks its first fetch until released; later fetches return at once."""

    def __init__(self, kind: str, first: list, later: list) -> None:
        self.kind = kind
        self.first = first
        self.later = later
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def fetch_page(self, params):
        self.calls += 1
        if self.calls == 1:
            self.started.set()
            self.release.wait(5)
            return PageResult(self.kind, list(self.first), has_more=True)
        return PageResult(self.kind, list(self.later), has_more=True)


class TestStartAndPaging:
    @pytest.mark.asyncio
    async def test_mock_sources_fill_first_page(self, sample_settings, memory_backend):
        adapters = build_adapters(sample_settings, session=MagicMock(headers={}))
        session = _session(adapters, memory_backend, sample_settings)

        await session.start()

        assert len(session.items) == 3 * sample_settings.page_size
        assert session.page == 1
        assert session.has_more is True
        assert session.failures == {}

    @pytest.mark.asyncio
    async def test_pages_accumulate_until_bound(self, sample_settings, memory_backend):
        settings = replace(sample_settings, max_pages=3)
        adapters = build_adapters(settings, session=MagicMock(headers={}))
        session = _session(adapters, memory_backend, settings)

        await session.start()
        assert await session.load_more() is True
        assert await session.load_more() is True

        assert session.page == 3
        assert len(session.items) == 3 * 3 * settings.page_size
        assert session.has_more is False
        assert await session.load_more() is False
        assert session.page == 3

    @pytest.mark.asyncio
    async def test_exhausted_sources_stop_paging(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        adapter = fake_adapter_cls("news", {1: make_items("news-1")}, has_more=False)
        session = _session({"news": adapter}, memory_backend, sample_settings)

        await session.start()

        assert session.has_more is False
        assert await session.load_more() is False
        assert len(adapter.calls) == 1

    @pytest.mark.asyncio
    async def test_stored_order_applied_on_start(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        memory_backend.order = ["social-1", "news-1"]
        adapters = {
            kind: fake_adapter_cls(kind, {1: make_items(f"{kind}-1")})
            for kind in ("news", "movie", "social")
        }
        session = _session(adapters, memory_backend, sample_settings)

        await session.start()

        assert _ids(session.items) == ["social-1", "news-1", "movie-1"]


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_kind_is_retried_on_next_page(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        news = fake_adapter_cls("news", error=SourceUnavailable("news", "timed out"))
        movie = fake_adapter_cls("movie", {1: make_items("movie-1")}, has_more=False)
        session = _session({"news": news, "movie": movie}, memory_backend, sample_settings)

        await session.start()
        assert _ids(session.items) == ["movie-1"]
        assert "news" in session.failures
        assert session.cursors["news"].page == 1

        news.error = None
        news.pages = {1: make_items("news-1")}
        await session.load_more()

        assert [p.page for p in news.calls] == [1, 1]
        assert len(movie.calls) == 1
        assert _ids(session.items) == ["news-1", "movie-1"]
        assert session.failures == {}

    @pytest.mark.asyncio
    async def test_round_with_no_pages_does_not_use_page_budget(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        settings = replace(sample_settings, max_pages=1)
        news = fake_adapter_cls("news", error=SourceUnavailable("news", "timed out"))
        movie = fake_adapter_cls("movie", error=SourceUnavailable("movie", "timed out"))
        session = _session({"news": news, "movie": movie}, memory_backend, settings)

        await session.start()

        assert session.page == 0
        assert session.has_more is True
        assert set(session.failures) == {"news", "movie"}

        news.error = None
        news.pages = {1: make_items("news-1")}
        assert await session.load_more() is True
        assert session.page == 1
        assert _ids(session.items) == ["news-1"]
        assert session.has_more is False


class TestSearch:
    @pytest.mark.asyncio
    async def test_rapid_queries_trigger_one_refresh(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        items = make_items("news-1", "news-2", titles={"news-2": "Foo fighters"})
        adapter = fake_adapter_cls("news", {1: items}, has_more=True)
        session = _session({"news": adapter}, memory_backend, sample_settings)
        await session.start()

        for partial in ("f", "fo", "foo"):
            session.set_query(partial)
        await session.settle()

        assert session.query == "foo"
        assert len(adapter.calls) == 2
        assert adapter.calls[-1].query == "foo"
        assert _ids(session.items) == ["news-2"]

    @pytest.mark.asyncio
    async def test_whitespace_only_change_is_ignored(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        adapter = fake_adapter_cls("news", {1: make_items("news-1")}, has_more=True)
        session = _session({"news": adapter}, memory_backend, sample_settings)
        await session.start()

        session.set_query("   ")
        await session.settle()

        assert session.generation == 0
        assert len(adapter.calls) == 1

    @pytest.mark.asyncio
    async def test_superseded_results_are_discarded(
        self, sample_settings, memory_backend, make_items
    ):
        adapter = GatedAdapter("news", make_items("news-old"), make_items("news-new"))
        session = _session({"news": adapter}, memory_backend, sample_settings)
        loop = asyncio.get_running_loop()

        stale = asyncio.create_task(session.load_more())
        await loop.run_in_executor(None, adapter.started.wait, 5)
        await session.refresh()
        adapter.release.set()

        assert await stale is False
        assert session.generation == 1
        assert _ids(session.items) == ["news-new"]
        assert session.page == 1


class TestMoveAndFavorites:
    @pytest.mark.asyncio
    async def test_move_is_persisted_on_close(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        adapters = {
            kind: fake_adapter_cls(kind, {1: make_items(f"{kind}-1")})
            for kind in ("news", "movie", "social")
        }
        session = _session(adapters, memory_backend, sample_settings)
        await session.start()

        moved = session.move(2, 0)
        await session.close()

        assert _ids(moved) == ["social-1", "news-1", "movie-1"]
        assert memory_backend.order == _ids(moved)
        assert session.reconciler.state == CLEAN

    @pytest.mark.asyncio
    async def test_toggle_favorite(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        adapter = fake_adapter_cls("movie", {1: make_items("movie-1")})
        session = _session({"movie": adapter}, memory_backend, sample_settings)
        await session.start()
        item = session.items[0]

        assert await session.toggle_favorite(item) is True
        assert session.is_favorite("movie-1")
        assert _ids(session.favorite_items()) == ["movie-1"]

        assert await session.toggle_favorite(item) is False
        assert not session.is_favorite("movie-1")

    @pytest.mark.asyncio
    async def test_rejected_order_save_surfaces_as_auth_error(
        self, sample_settings, memory_backend, make_items, fake_adapter_cls
    ):
        adapters = {
            kind: fake_adapter_cls(kind, {1: make_items(f"{kind}-1")})
            for kind in ("news", "movie", "social")
        }
        session = _session(adapters, memory_backend, sample_settings)
        await session.start()
        memory_backend.save_error = AuthRejected("PUT /user/content-order returned HTTP 401")

        moved = session.move(0, 2)
        await session.reconciler.flush()

        assert isinstance(session.auth_error, AuthRejected)
        assert session.reconciler.last_error is None
        assert _ids(session.items) == _ids(moved) == ["movie-1", "social-1", "news-1"]
