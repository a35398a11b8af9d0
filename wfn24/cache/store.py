"""
Database-backed cache store (the api_cache table).
"""
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, select

from wfn24.db import Executor
from wfn24.errors import QueryError
from wfn24.models import ApiCacheEntry

from .core import CacheEntry

logger = logging.getLogger("cache.store")

api_cache = ApiCacheEntry.__table__


class CacheStore:
    """
    Key/value rows with an expiry time.

    Expired rows are never returned but stay in the table until
    sweep_expired() deletes them.
    """

    def __init__(self, db: Executor):
        self.db = db

    def get(self, key: str, now: datetime) -> Optional[CacheEntry]:
        """Valid entry for `key`, or None when missing or expired."""
        row = self.db.execute(
            select(api_cache.c.cache_key, api_cache.c.data, api_cache.c.expires_at)
            .where(api_cache.c.cache_key == key, api_cache.c.expires_at > now)
        ).first()
        if row is None:
            return None
        return CacheEntry(key=row["cache_key"], value=json.loads(row["data"]), expires_at=row["expires_at"])

    def put(self, key: str, value: Any, ttl: int, now: datetime) -> CacheEntry:
        """
        Store `value` under `key` until now + ttl. Last write wins.

        Raises:
            TypeError: value is not JSON-serializable
        """
        payload = json.dumps(value)
        expires_at = now + timedelta(seconds=ttl)
        values = {"data": payload, "expires_at": expires_at, "created_at": now}

        if not self._update(key, values):
            self._insert(key, values)

        return CacheEntry(key=key, value=value, expires_at=expires_at)

    def _update(self, key: str, values: dict) -> bool:
        result = self.db.execute(
            api_cache.update().where(api_cache.c.cache_key == key).values(**values)
        )
        return result.rowcount > 0

    def _insert(self, key: str, values: dict) -> None:
        try:
            self.db.execute(api_cache.insert().values(cache_key=key, **values))
        except QueryError as e:
            if not e.is_integrity_error:
                raise
            # Another writer inserted the key first
            logger.debug(f"Concurrent cache insert for {key}, overwriting")
            self._update(key, values)

    def delete(self, key: str) -> bool:
        return self.db.execute(api_cache.delete().where(api_cache.c.cache_key == key)).rowcount > 0

    def sweep_expired(self, now: datetime) -> int:
        """Delete rows with expires_at <= now. Returns the number removed."""
        removed = self.db.execute(api_cache.delete().where(api_cache.c.expires_at <= now)).rowcount
        logger.info(f"Swept {removed} expired cache entries")
        return removed

    def clear(self) -> int:
        removed = self.db.execute(api_cache.delete()).rowcount
        logger.info(f"Cleared {removed} cache entries")
        return removed

    def count(self) -> int:
        return int(self.db.execute(select(func.count()).select_from(api_cache)).scalar() or 0)
