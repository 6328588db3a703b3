"""Tests for feedhub.favorites.store.FavoritesStore."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from feedhub.errors import AlreadyFavorited, NotFound
from feedhub.favorites.store import FavoritesStore
from feedhub.storage.backends import LocalBackend


@pytest.fixture
def store(memory_backend) -> FavoritesStore:
    return FavoritesStore(memory_backend)


class TestAdd:
    def test_round_trip_through_sqlite(self, temp_database, sample_content_item):
        store = FavoritesStore(LocalBackend(temp_database, "user-1"))
        store.add(sample_content_item)

        # a fresh store sees the same snapshot after refresh
        reloaded = FavoritesStore(LocalBackend(temp_database, "user-1"))
        items = [record.item for record in reloaded.refresh()]
        assert items == [sample_content_item]

    def test_adding_twice_keeps_one_record(self, store, memory_backend, sample_content_item):
        store.add(sample_content_item)
        with pytest.raises(AlreadyFavorited):
            store.add(sample_content_item)

        assert len(store.list()) == 1
        assert len(memory_backend.favorites) == 1

    def test_duplicate_detected_by_backend(self, memory_backend, sample_content_item):
        FavoritesStore(memory_backend).add(sample_content_item)

        # a second store with a stale cache still cannot add a duplicate
        stale = FavoritesStore(memory_backend)
        with pytest.raises(AlreadyFavorited):
            stale.add(sample_content_item)
        assert len(memory_backend.favorites) == 1

    def test_newest_first(self, store, make_items):
        for item in make_items("news-1", "movie-1", "social-1"):
            store.add(item)
        assert [record.content_id for record in store.list()] == [
            "social-1",
            "movie-1",
            "news-1",
        ]


class TestRemove:
    def test_remove_drops_record(self, store, sample_content_item):
        record = store.add(sample_content_item)
        store.remove(record.id)
        assert not store.is_favorite(sample_content_item.id)

    def test_remove_missing_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.remove("fav-404")

    def test_toggle_adds_then_removes(self, store, memory_backend, sample_content_item):
        assert store.toggle(sample_content_item) is True
        assert store.is_favorite(sample_content_item.id)

        assert store.toggle(sample_content_item) is False
        assert not store.is_favorite(sample_content_item.id)
        assert memory_backend.favorites == []


class TestClearAll:
    def test_clear_all_removes_everything(self, store, make_items):
        for item in make_items("news-1", "movie-1"):
            store.add(item)

        result = store.clear_all()

        assert result.removed == 2
        assert result.failed == 0
        assert store.list() == []

    def test_partial_failure_is_counted(self, store, memory_backend, make_items):
        for item in make_items("news-1", "movie-1", "social-1"):
            store.add(item)
        stuck = store.find("movie-1").id
        memory_backend.fail_removals.add(stuck)

        result = store.clear_all()

        assert result.removed == 2
        assert result.failed == 1
        assert result.errors[0][0] == stuck
        assert [row["id"] for row in memory_backend.favorites] == [stuck]


class TestRefresh:
    def test_malformed_rows_are_skipped(self, sample_content_item):
        backend = MagicMock()
        backend.list_favorites.return_value = [
            1,
            {
                "id": "fav-1",
                "content_id": sample_content_item.id,
                "content_type": "news",
                "content_data": sample_content_item.to_snapshot(),
            },
        ]
        store = FavoritesStore(backend)

        assert [record.id for record in store.refresh()] == ["fav-1"]
        assert store.is_favorite(sample_content_item.id)
