"""
Cache orchestration: check the api_cache table, fetch on a miss, write back.
"""
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from wfn24.errors import DataAccessError
from wfn24.utils.helpers import utcnow

from .core import CacheMeta, CacheSource, DataCategory
from .store import CacheStore
from .ttl_policies import get_category_for_endpoint, get_ttl_for_category

logger = logging.getLogger("cache.manager")

Clock = Callable[[], datetime]


class CacheManager:
    """
    Per-request cache flow:
    - valid row in api_cache -> return it
    - otherwise call fetch_fn and store the result with the category TTL

    Storage failures never fail the request: a failed read is a miss and a
    failed write is skipped. Errors raised by fetch_fn propagate and nothing
    is cached.
    """

    def __init__(self, store: CacheStore, clock: Optional[Clock] = None, config=None):
        """
        Args:
            store: Table-backed store
            clock: Returns the current naive-UTC time (injectable for tests)
            config: Settings object for TTLs (defaults to the process settings)
        """
        self.store = store
        self.clock = clock or utcnow
        self.config = config
        self._stats_lock = threading.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "read_errors": 0,
            "write_errors": 0,
        }

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self._stats[name] += 1

    def get(
        self,
        cache_key: str,
        fetch_fn: Callable[[], Any],
        endpoint: str,
        params: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Any, CacheMeta]:
        """
        Get data from cache or fetch from upstream.

        Args:
            cache_key: Unique cache key
            fetch_fn: Function to fetch data on a miss
            endpoint: API endpoint for category determination
            params: API parameters for category determination
            context: Additional context (e.g., fixture status)

        Returns:
            (data, cache_meta) tuple
        """
        category = get_category_for_endpoint(endpoint, params, context)
        ttl = get_ttl_for_category(category, self.config)
        now = self.clock()

        try:
            entry = self.store.get(cache_key, now)
        except (DataAccessError, ValueError) as e:
            # ValueError covers an undecodable payload
            logger.warning(f"Cache read failed for {cache_key}: {e}")
            self._count("read_errors")
            entry = None

        if entry is not None:
            logger.debug(f"CACHE HIT: {cache_key} [{entry.ttl_remaining(now):.0f}s left]")
            self._count("hits")
            return entry.value, self._make_meta(CacheSource.FRESH, category, ttl, now)

        logger.info(f"CACHE MISS: {cache_key}")
        self._count("misses")
        data = fetch_fn()

        try:
            self.store.put(cache_key, data, ttl, now)
            self._count("writes")
        except (DataAccessError, TypeError, ValueError) as e:
            logger.warning(f"Cache write failed for {cache_key}: {e}")
            self._count("write_errors")

        return data, self._make_meta(CacheSource.UPSTREAM, category, ttl, now)

    def _make_meta(
        self,
        source: CacheSource,
        category: DataCategory,
        ttl: int,
        now: datetime,
    ) -> CacheMeta:
        """Create cache metadata for response."""
        return CacheMeta(
            last_updated=now.isoformat() + "Z",
            cache_source=source.value,
            category=category.value,
            ttl_seconds=ttl,
        )

    def invalidate(self, cache_key: str) -> bool:
        """
        Invalidate a specific cache entry.

        Returns:
            True if entry was found and removed
        """
        removed = self.store.delete(cache_key)
        if removed:
            logger.info(f"Invalidated cache: {cache_key}")
        return removed

    def sweep_expired(self) -> int:
        return self.store.sweep_expired(self.clock())

    def clear(self) -> int:
        """
        Clear all cache entries.

        Returns:
            Number of entries cleared
        """
        return self.store.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._stats_lock:
            stats = dict(self._stats)

        total_requests = stats["hits"] + stats["misses"]
        stats["hit_rate_percent"] = round(stats["hits"] / total_requests * 100, 1) if total_requests else 0

        try:
            stats["entries"] = self.store.count()
        except DataAccessError as e:
            logger.warning(f"Could not count cache entries: {e}")
            stats["entries"] = None
        return stats
