"""
Read-through memoization of query results.

Reads are wrapped with ``ResponseMemoizer.wrap``; writes never read the
memoizer and call ``invalidate`` with the key patterns they affect once
they have succeeded. A value may be stale for up to its TTL when data
changes outside an invalidating write.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlencode

from .cache import CacheStore
from .logger import get_logger

logger = get_logger()


def build_request_key(path: str, params: Optional[Mapping[str, Any]] = None, prefix: str = "req") -> str:
    """
    Build a deterministic cache key from a logical request.

    The path is lowercased without a trailing slash; parameters set to None
    are dropped and the rest are sorted, so ``?b=2&a=1`` and ``?a=1&b=2``
    share a key.

    Example:
        >>> build_request_key("/applications/rankings/top/", {"limit": 10, "department": "CSE"})
        'req:/applications/rankings/top?department=CSE&limit=10'
    """
    normalized_path = path.strip().lower().rstrip("/") or "/"
    key = f"{prefix}:{normalized_path}"
    if params:
        items = sorted((str(k), str(v)) for k, v in params.items() if v is not None)
        if items:
            key = f"{key}?{urlencode(items)}"
    return key


@dataclass(frozen=True)
class MemoizedResponse:
    """A value plus whether it was served from cache."""

    value: Any
    cache_hit: bool

    @property
    def cache_status(self) -> str:
        return "HIT" if self.cache_hit else "MISS"


class ResponseMemoizer:
    """Turns an idempotent read into a cache-checked read."""

    def __init__(self, cache: CacheStore):
        self.cache = cache

    def wrap(self, request_key: str, ttl_seconds: int, compute_fn: Callable[[], Any]) -> MemoizedResponse:
        cached = self.cache.get(request_key)
        if cached is not None:
            logger.record_cache_hit()
            logger.debug("Cache hit", key=request_key)
            return MemoizedResponse(cached, cache_hit=True)

        logger.record_cache_miss()
        value = compute_fn()
        self.cache.set(request_key, value, ttl_seconds)
        return MemoizedResponse(value, cache_hit=False)

    def invalidate(self, *patterns: str) -> int:
        """Best-effort removal of every cached read matching the patterns."""
        removed = 0
        for pattern in patterns:
            removed += self.cache.delete_pattern(pattern)
        logger.info("Invalidated cached reads", patterns=list(patterns), removed=removed)
        return removed
