"""
Key/value cache with TTL expiry and pattern invalidation.

Two interchangeable backends:
- RedisCacheStore: remote, shared between processes; Redis owns expiry.
- MemoryCacheStore: bounded in-process map with FIFO eviction.

The cache is best effort. Backend failures are logged and swallowed, so
a broken cache only ever costs performance, never correctness.
"""

import fnmatch
import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis

from .env import Settings
from .logger import get_logger
from .retry import CircuitBreaker, CircuitOpenError

logger = get_logger()

DEFAULT_TTL = 300
MEMORY_CACHE_MAX_SIZE = 100


class CacheStore:
    """Interface shared by every cache backend."""

    backend = "abstract"

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern such as ``req:/applications*``."""
        raise NotImplementedError

    def stats(self) -> Dict[str, Any]:
        return {"backend": self.backend}


class MemoryCacheStore(CacheStore):
    """
    Bounded in-process cache.

    Entries are evicted oldest-inserted first once ``capacity`` is reached,
    whatever their remaining TTL. Expired entries are dropped lazily on read.
    Values are held as JSON text, so callers always get their own copy.
    """

    backend = "memory"

    def __init__(
        self,
        capacity: int = MEMORY_CACHE_MAX_SIZE,
        default_ttl: int = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expiry = entry
            if self._clock() >= expiry:
                del self._entries[key]
                return None
        return json.loads(value)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        payload = json.dumps(value, default=str)
        with self._lock:
            # dicts keep insertion order, so the first key is the oldest insert
            if key not in self._entries and len(self._entries) >= self.capacity:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug("Evicted cache entry", key=oldest)
            self._entries[key] = (payload, self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for key in doomed:
                del self._entries[key]
        logger.debug("Deleted cache keys by pattern", pattern=pattern, count=len(doomed))
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> Dict[str, Any]:
        return {"backend": self.backend, "size": len(self), "capacity": self.capacity}


class RedisCacheStore(CacheStore):
    """
    Redis-backed cache. Values are stored as JSON with SETEX.

    ``delete_pattern`` scans then deletes in two round trips; keys written
    between the scan and the delete can survive an invalidation.
    """

    backend = "redis"

    def __init__(self, client: "redis.Redis", breaker: Optional[CircuitBreaker] = None):
        self.client = client
        self.breaker = breaker or CircuitBreaker(failure_threshold=3, recovery_timeout=30)

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client)

    def _failed(self, op: str, key: str, error: Exception) -> None:
        logger.record_cache_error(type(error).__name__)
        if isinstance(error, CircuitOpenError):
            logger.debug(f"Cache {op} skipped, circuit open", key=key)
        else:
            logger.warning(f"Cache {op} error", key=key, error=str(error))

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.breaker.call(self.client.get, key)
        except Exception as e:
            self._failed("get", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable cache value", key=key)
            return None

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
        try:
            payload = json.dumps(value, default=str)
            self.breaker.call(self.client.setex, key, ttl, payload)
        except Exception as e:
            self._failed("set", key, e)

    def delete(self, key: str) -> None:
        try:
            self.breaker.call(self.client.delete, key)
        except Exception as e:
            self._failed("delete", key, e)

    def delete_pattern(self, pattern: str) -> int:
        try:
            keys = self.breaker.call(lambda: list(self.client.scan_iter(match=pattern)))
            if not keys:
                return 0
            deleted = self.breaker.call(self.client.delete, *keys)
        except Exception as e:
            self._failed("delete_pattern", pattern, e)
            return 0
        logger.debug("Deleted cache keys by pattern", pattern=pattern, count=deleted)
        return int(deleted or 0)

    def stats(self) -> Dict[str, Any]:
        return {"backend": self.backend, "circuit": self.breaker.state}


def create_cache_store(settings: Settings) -> CacheStore:
    """
    Pick the cache backend once, at startup.

    Redis when REDIS_URL is configured, otherwise the bounded in-process map.
    """
    if settings.redis_url:
        logger.info("Using Redis cache backend")
        return RedisCacheStore.from_url(settings.redis_url)

    logger.warning(
        "REDIS_URL not configured, using in-process cache "
        "(not shared between processes)"
    )
    return MemoryCacheStore(capacity=settings.cache_capacity, default_ttl=settings.cache_ttl)
