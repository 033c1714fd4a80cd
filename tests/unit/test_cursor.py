"""
Unit тесты для Cursor Store (watermark).
"""

from datetime import datetime, timedelta

import pytest

from catalog_relay.poller.cursor import CursorStore, Watermark

T0 = datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture
def store():
    store = CursorStore()
    store.initialize("movies", Watermark(T0, 10))
    return store


@pytest.mark.unit
class TestWatermark:

    def test_empty_watermark(self):
        assert Watermark().is_empty
        assert not Watermark(T0, 1).is_empty

    def test_anything_is_newer_than_empty(self):
        assert Watermark(T0, 1).is_newer_than(Watermark())
        assert not Watermark().is_newer_than(Watermark(T0, 1))

    def test_id_breaks_timestamp_ties(self):
        assert Watermark(T0, 11).is_newer_than(Watermark(T0, 10))
        assert not Watermark(T0, 10).is_newer_than(Watermark(T0, 10))


@pytest.mark.unit
class TestCursorStore:

    def test_initialize_is_ignored_when_already_set(self, store):
        store.initialize("movies", Watermark(T0 + timedelta(days=1), 99))

        assert store.get("movies") == Watermark(T0, 10)

    def test_advance_forward(self, store):
        later = Watermark(T0 + timedelta(milliseconds=1), 11)

        assert store.advance("movies", later) is True
        assert store.get("movies") == later

    def test_never_moves_backwards(self, store):
        assert store.advance("movies", Watermark(T0 - timedelta(seconds=1), 50)) is False
        assert store.advance("movies", Watermark(T0, 10)) is False
        assert store.get("movies") == Watermark(T0, 10)

    def test_advance_requires_initialization(self, store):
        with pytest.raises(KeyError):
            store.advance("movie_items", Watermark(T0, 1))

    def test_snapshot_is_a_copy(self, store):
        snapshot = store.snapshot()
        snapshot["movie_items"] = Watermark()

        assert not store.is_initialized("movie_items")
