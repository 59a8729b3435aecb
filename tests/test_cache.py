"""Tests for the staleness-aware LRU cache."""

import pytest

from discuz_miner.cache import CacheEntry, PageCaches, StalenessCache, is_stale
from discuz_miner.config import Settings


class TestIsStale:
    def test_window_boundary(self):
        entry = CacheEntry(value="x", stored_at=100.0)
        assert not is_stale(entry, 45.0, 144.9)
        assert is_stale(entry, 45.0, 145.0)


class TestStalenessCache:
    def test_put_and_get(self, clock):
        cache = StalenessCache(capacity=2, window=45.0, clock=clock)
        cache.put("a", 1)

        entry = cache.get("a")
        assert entry.value == 1
        assert entry.stored_at == clock.now
        assert cache.get("missing") is None

    def test_stale_entries_are_still_returned(self, clock):
        cache = StalenessCache(capacity=2, window=45.0, clock=clock)
        cache.put("a", 1)
        clock.advance(60)

        entry = cache.get("a")
        assert entry is not None
        assert cache.is_stale(entry)

    def test_put_replaces_and_refreshes(self, clock):
        cache = StalenessCache(capacity=2, window=45.0, clock=clock)
        cache.put("a", 1)
        clock.advance(60)
        cache.put("a", 2)

        entry = cache.get("a")
        assert entry.value == 2
        assert not cache.is_stale(entry)
        assert len(cache) == 1

    def test_least_recently_used_is_evicted(self, clock):
        cache = StalenessCache(capacity=2, window=45.0, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert len(cache) == 2

    def test_invalidate_and_clear(self, clock):
        cache = StalenessCache(capacity=2, window=45.0, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.invalidate("a")
        assert "a" not in cache
        cache.clear()
        assert len(cache) == 0

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            StalenessCache(capacity=0, window=1.0)


class TestPageCaches:
    def test_defaults(self, clock):
        caches = PageCaches(clock=clock)

        assert caches.listings.window == 45.0
        assert caches.threads.window == 60.0
        assert caches.documents.window == 60.0
        assert caches.listings.capacity == 20

    def test_sized_from_settings(self, clock):
        caches = PageCaches(Settings(thread_cache_size=5, listing_ttl=10.0), clock=clock)

        assert caches.threads.capacity == 5
        assert caches.listings.window == 10.0
