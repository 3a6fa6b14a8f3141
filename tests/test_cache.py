"""
Tests for cache.py - in-process and Redis cache backends.
"""

import json
import threading
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import redis

from facultyrank import cache as cache_module
from facultyrank.cache import MemoryCacheStore, RedisCacheStore, create_cache_store
from facultyrank.env import Settings
from facultyrank.retry import CircuitBreaker


class TestMemoryCacheStore:
    """Test the bounded in-process backend."""

    def test_round_trip(self, clock):
        """A value set is returned by get until it expires."""
        cache = MemoryCacheStore(clock=clock)
        cache.set("req:/ml/performance", {"total_predictions": 3}, ttl=60)

        assert cache.get("req:/ml/performance") == {"total_predictions": 3}

    def test_missing_key(self):
        cache = MemoryCacheStore()
        assert cache.get("nope") is None

    def test_values_are_copies(self):
        """Mutating a stored or returned value leaves the entry untouched."""
        cache = MemoryCacheStore()
        page = [{"id": 1, "nirf_score10": 9.9}]
        cache.set("k", page)

        page.append({"id": 2})
        fetched = cache.get("k")
        fetched[0]["nirf_score10"] = None

        assert cache.get("k") == [{"id": 1, "nirf_score10": 9.9}]

    def test_values_are_json_shaped(self):
        """Stored values come back the same way the Redis backend returns them."""
        cache = MemoryCacheStore()
        cache.set("k", {"ids": (1, 2), "when": date(2024, 1, 5)})

        assert cache.get("k") == {"ids": [1, 2], "when": "2024-01-05"}

    def test_ttl_expiry(self, clock):
        """Entries are readable before the TTL and gone once it elapses."""
        cache = MemoryCacheStore(clock=clock)
        cache.set("k", "v", ttl=60)

        clock.advance(59)
        assert cache.get("k") == "v"

        clock.advance(1)
        assert cache.get("k") is None
        assert "k" not in cache

    def test_default_ttl(self, clock):
        cache = MemoryCacheStore(default_ttl=10, clock=clock)
        cache.set("k", "v")

        clock.advance(10)
        assert cache.get("k") is None

    def test_evicts_oldest_insert_at_capacity(self):
        """capacity + 1 distinct keys leave exactly capacity resident, first one gone."""
        cache = MemoryCacheStore(capacity=3)
        for i in range(4):
            cache.set(f"k{i}", i)

        assert len(cache) == 3
        assert cache.get("k0") is None
        assert [cache.get(f"k{i}") for i in (1, 2, 3)] == [1, 2, 3]

    def test_default_capacity_is_100(self):
        cache = MemoryCacheStore()
        for i in range(101):
            cache.set(f"k{i}", i)

        assert len(cache) == 100
        assert "k0" not in cache
        assert "k100" in cache

    def test_overwrite_does_not_evict(self):
        """Re-setting a resident key at capacity keeps every other key."""
        cache = MemoryCacheStore(capacity=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)

        assert len(cache) == 2
        assert cache.get("a") == 10
        assert cache.get("b") == 2

    def test_overwrite_keeps_insertion_slot(self):
        """An overwritten key is still evicted first if it was inserted first."""
        cache = MemoryCacheStore(capacity=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)

        assert "a" not in cache
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_delete(self):
        cache = MemoryCacheStore()
        cache.set("k", "v")
        cache.delete("k")
        cache.delete("never-set")

        assert cache.get("k") is None

    def test_delete_pattern(self):
        """Glob patterns remove every matching key and report the count."""
        cache = MemoryCacheStore()
        cache.set("req:/applications/rankings/top?limit=10", [])
        cache.set("req:/applications/rankings/top?limit=20", [])
        cache.set("req:/ml/performance", {})
        cache.set("req:/scopus/author/57190000001", {})

        removed = cache.delete_pattern("req:/applications*")

        assert removed == 2
        assert len(cache) == 2
        assert "req:/scopus/author/57190000001" in cache

    def test_delete_pattern_no_match(self):
        cache = MemoryCacheStore()
        cache.set("a", 1)
        assert cache.delete_pattern("req:*") == 0
        assert len(cache) == 1

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            MemoryCacheStore(capacity=0)

    def test_stats(self):
        cache = MemoryCacheStore(capacity=5)
        cache.set("a", 1)
        assert cache.stats() == {"backend": "memory", "size": 1, "capacity": 5}

    def test_concurrent_writers_respect_capacity(self):
        """Parallel writers never push the cache past its capacity."""
        cache = MemoryCacheStore(capacity=100)

        def writer(n):
            for i in range(200):
                cache.set(f"t{n}:{i}", i)
                cache.get(f"t{n}:{i // 2}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 100


class TestRedisCacheStore:
    """Test the Redis backend against a mocked client."""

    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def redis_cache(self, client, clock):
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=30, clock=clock)
        return RedisCacheStore(client, breaker=breaker)

    def test_set_uses_setex_with_json(self, redis_cache, client):
        redis_cache.set("req:/ml/performance", {"total_predictions": 2}, ttl=60)

        client.setex.assert_called_once_with(
            "req:/ml/performance", 60, json.dumps({"total_predictions": 2})
        )

    def test_get_decodes_json(self, redis_cache, client):
        client.get.return_value = '[{"id": 1, "nirf_score10": 9.9}]'

        assert redis_cache.get("k") == [{"id": 1, "nirf_score10": 9.9}]
        client.get.assert_called_once_with("k")

    def test_get_missing(self, redis_cache, client):
        client.get.return_value = None
        assert redis_cache.get("k") is None

    def test_undecodable_value_is_a_miss(self, redis_cache, client):
        client.get.return_value = "{not json"
        assert redis_cache.get("k") is None

    def test_get_error_is_swallowed(self, redis_cache, client):
        """Backend failures read as misses and are counted."""
        client.get.side_effect = redis.exceptions.ConnectionError("Connection refused")
        before = cache_module.logger.get_metrics()["cache_errors"]

        assert redis_cache.get("k") is None
        assert cache_module.logger.get_metrics()["cache_errors"] == before + 1

    def test_set_error_is_swallowed(self, redis_cache, client):
        client.setex.side_effect = redis.exceptions.TimeoutError("Timeout reading from socket")
        redis_cache.set("k", {"a": 1})  # Should not raise

    def test_delete_pattern_scans_then_deletes(self, redis_cache, client):
        client.scan_iter.return_value = iter(["req:/applications/a", "req:/applications/b"])
        client.delete.return_value = 2

        assert redis_cache.delete_pattern("req:/applications*") == 2
        client.scan_iter.assert_called_once_with(match="req:/applications*")
        client.delete.assert_called_once_with("req:/applications/a", "req:/applications/b")

    def test_delete_pattern_without_matches(self, redis_cache, client):
        client.scan_iter.return_value = iter([])

        assert redis_cache.delete_pattern("req:/ml*") == 0
        client.delete.assert_not_called()

    def test_delete_pattern_error_returns_zero(self, redis_cache, client):
        client.scan_iter.side_effect = redis.exceptions.ConnectionError("down")
        assert redis_cache.delete_pattern("req:*") == 0

    def test_open_circuit_skips_backend(self, redis_cache, client, clock):
        """After repeated failures the client is not called until recovery."""
        client.get.side_effect = redis.exceptions.ConnectionError("down")
        for _ in range(3):
            assert redis_cache.get("k") is None
        assert redis_cache.stats()["circuit"] == CircuitBreaker.OPEN

        assert redis_cache.get("k") is None
        assert client.get.call_count == 3

        clock.advance(30)
        client.get.side_effect = None
        client.get.return_value = '"back"'
        assert redis_cache.get("k") == "back"
        assert redis_cache.stats()["circuit"] == CircuitBreaker.CLOSED


class TestCreateCacheStore:
    """Test backend selection from settings."""

    def test_memory_without_redis_url(self):
        store = create_cache_store(Settings(cache_capacity=7, cache_ttl=42))

        assert isinstance(store, MemoryCacheStore)
        assert store.capacity == 7
        assert store.default_ttl == 42

    def test_redis_with_url(self):
        with patch("facultyrank.cache.redis.Redis.from_url") as from_url:
            store = create_cache_store(Settings(redis_url="redis://localhost:6379/0"))

        assert isinstance(store, RedisCacheStore)
        assert store.client is from_url.return_value
        args, kwargs = from_url.call_args
        assert args == ("redis://localhost:6379/0",)
        assert kwargs["decode_responses"] is True
