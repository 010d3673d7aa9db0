"""Tests for the bounded memo cache."""

import pytest

from agency.progression.cache import BoundedCache, NullCache, make_cache


class TestBoundedCache:
    """Tests for capacity and eviction."""

    def test_get_set(self):
        cache = BoundedCache(capacity=5)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert cache.get("missing") is None
        assert cache.get("missing", 42) == 42
        assert "a" in cache

    def test_evicts_oldest_fifth(self):
        cache = BoundedCache(capacity=10)
        for i in range(11):
            cache.set(i, i)

        # ceil(10 * 0.2) = 2 oldest dropped when key 10 arrives
        assert len(cache) == 9
        assert cache.keys() == list(range(2, 11))
        assert cache.stats().evictions == 2

    def test_never_exceeds_capacity(self):
        cache = BoundedCache(capacity=7, evict_fraction=0.2)
        for i in range(100):
            cache.set(i, i)
            assert len(cache) <= 7

    def test_overwrite_does_not_evict(self):
        cache = BoundedCache(capacity=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)
        assert len(cache) == 2
        assert cache.get("a") == 3
        assert cache.stats().evictions == 0

    def test_reads_do_not_refresh_position(self):
        cache = BoundedCache(capacity=3, evict_fraction=0.3)
        for key in "abc":
            cache.set(key, key)
        cache.get("a")
        cache.set("d", "d")
        assert "a" not in cache
        assert cache.keys() == ["b", "c", "d"]

    def test_get_or_compute(self):
        cache = BoundedCache(capacity=4)
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("k", compute) == "value"
        assert cache.get_or_compute("k", compute) == "value"
        assert len(calls) == 1

    def test_stats(self):
        cache = BoundedCache(capacity=4)
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")
        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(50.0)

    def test_clear(self):
        cache = BoundedCache(capacity=4)
        cache.set("a", 1)
        cache.get("a")
        cache.clear()
        assert len(cache) == 0
        assert cache.stats().hits == 1
        cache.clear(reset_stats=True)
        assert cache.stats().hits == 0

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            BoundedCache(capacity=0)
        with pytest.raises(ValueError):
            BoundedCache(capacity=5, evict_fraction=0)
        with pytest.raises(ValueError):
            BoundedCache(capacity=5, evict_fraction=1.5)


class TestNullCache:

    def test_stores_nothing(self):
        cache = NullCache()
        cache.set("a", 1)
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_make_cache(self):
        assert isinstance(make_cache(False), NullCache)
        cache = make_cache(True, capacity=12)
        assert not isinstance(cache, NullCache)
        assert cache.capacity == 12
