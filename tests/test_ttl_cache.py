"""Tests for the TTL cache."""

from unittest.mock import patch

from versioning.cache import TTLCache


class TestTTLCache:
    """Expiry, eviction and stats."""

    def test_set_and_get(self):
        cache = TTLCache()
        cache.set("k", [1, 2])
        assert cache.get("k") == [1, 2]
        assert cache.get("missing") is None

    def test_expired_entry_is_dropped(self):
        cache = TTLCache(default_ttl=10)
        with patch("versioning.cache.time.time", return_value=1000.0):
            cache.set("k", "v")
        with patch("versioning.cache.time.time", return_value=1011.0):
            assert cache.get("k") is None
        assert cache.stats()["total_entries"] == 0

    def test_per_entry_ttl_override(self):
        cache = TTLCache(default_ttl=10)
        with patch("versioning.cache.time.time", return_value=1000.0):
            cache.set("k", "v", ttl=100)
        with patch("versioning.cache.time.time", return_value=1050.0):
            assert cache.get("k") == "v"

    def test_eviction_keeps_size_bounded(self):
        cache = TTLCache(max_entries=10)
        for i in range(11):
            cache.set(f"k{i}", i)
        assert cache.stats()["total_entries"] == 10

    def test_invalidate_and_clear(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.get("a") is None
        cache.clear()
        assert cache.get("b") is None
