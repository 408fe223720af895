"""Tests for the TTL cache."""

from gallery.services.cache import CacheStore


class TestCacheStore:
    """Tests for CacheStore."""

    def test_get_missing_key(self, cache: CacheStore):
        assert cache.get("missing") is None

    def test_set_then_get(self, cache: CacheStore):
        cache.set("folder:abc", ["a", "b"], ttl=120)
        assert cache.get("folder:abc") == ["a", "b"]

    def test_empty_value_is_a_hit(self, cache: CacheStore):
        """An empty listing is cached like any other value."""
        cache.set("folder:empty", [], ttl=120)
        assert cache.get("folder:empty") == []
        assert "folder:empty" in cache

    def test_entry_valid_until_ttl(self, cache: CacheStore, clock):
        cache.set("k", "v", ttl=60)
        clock.advance(60)
        assert cache.get("k") == "v"

    def test_expired_entry_is_deleted_on_read(self, cache: CacheStore, clock):
        cache.set("k", "v", ttl=60)
        clock.advance(61)

        assert "k" in cache._entries
        assert cache.get("k") is None
        assert "k" not in cache._entries

    def test_set_overwrites_and_resets_ttl(self, cache: CacheStore, clock):
        cache.set("k", "old", ttl=10)
        clock.advance(8)
        cache.set("k", "new", ttl=10)
        clock.advance(8)
        assert cache.get("k") == "new"

    def test_clear(self, cache: CacheStore):
        cache.set("a", 1, ttl=10)
        cache.set("b", 2, ttl=10)

        cache.clear()

        assert "a" not in cache
        assert "b" not in cache
