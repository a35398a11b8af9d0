"""
Tests for the api_cache table store, the TTL policies and the cache manager.
"""
from datetime import datetime, timedelta

import pytest

from wfn24.cache import (
    CacheEntry,
    CacheManager,
    CacheSource,
    CacheStore,
    DataCategory,
    get_category_for_endpoint,
    get_ttl_for_category,
)
from wfn24.errors import QueryError, UpstreamUnavailable

from conftest import FakeClock

NOW = datetime(2024, 9, 14, 15, 0, 0)


# =============================================================================
# Store
# =============================================================================

class TestCacheStore:

    def test_put_and_get(self, db):
        store = CacheStore(db)
        store.put("standings:[('league', 39)]", [{"rank": 1}], 60, NOW)
        entry = store.get("standings:[('league', 39)]", NOW + timedelta(seconds=59))
        assert entry.value == [{"rank": 1}]
        assert entry.expires_at == NOW + timedelta(seconds=60)

    def test_expired_entry_not_returned(self, db):
        store = CacheStore(db)
        store.put("k", {"a": 1}, 60, NOW)
        assert store.get("k", NOW + timedelta(seconds=60)) is None
        # Still in the table until swept
        assert store.count() == 1

    def test_put_overwrites(self, db):
        store = CacheStore(db)
        store.put("k", {"v": 1}, 60, NOW)
        store.put("k", {"v": 2}, 120, NOW + timedelta(seconds=10))
        assert store.count() == 1
        entry = store.get("k", NOW + timedelta(seconds=100))
        assert entry.value == {"v": 2}

    def test_unserializable_value_rejected(self, db):
        with pytest.raises(TypeError):
            CacheStore(db).put("k", {"when": object()}, 60, NOW)

    def test_sweep_expired(self, db):
        store = CacheStore(db)
        store.put("short", 1, 60, NOW)
        store.put("long", 2, 3600, NOW)
        assert store.sweep_expired(NOW + timedelta(seconds=60)) == 1
        assert store.get("long", NOW + timedelta(seconds=60)).value == 2

    def test_delete_and_clear(self, db):
        store = CacheStore(db)
        store.put("a", 1, 60, NOW)
        store.put("b", 2, 60, NOW)
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.clear() == 1
        assert store.count() == 0

    def test_entry_validity_boundary(self):
        entry = CacheEntry(key="k", value=None, expires_at=NOW)
        assert entry.is_valid(NOW - timedelta(microseconds=1))
        assert not entry.is_valid(NOW)
        assert entry.ttl_remaining(NOW + timedelta(seconds=5)) == 0.0


# =============================================================================
# TTL policies
# =============================================================================

class TestTtlPolicies:

    @pytest.mark.parametrize("endpoint,params,context,expected", [
        ("standings", {"league": 39}, None, DataCategory.STANDINGS),
        ("players/topscorers", {"league": 39}, None, DataCategory.TOP_SCORERS),
        ("teams", {"league": 39}, None, DataCategory.METADATA),
        ("fixtures", {"live": "all"}, None, DataCategory.LIVE),
        ("fixtures", {"league": 39, "season": 2024}, None, DataCategory.FIXTURES),
        ("fixtures", {"id": 1035037}, None, DataCategory.MATCH_DETAIL),
        ("fixtures", {"id": 1035037}, {"fixture_status": "1H"}, DataCategory.LIVE),
        ("fixtures/lineups", {"fixture": 1}, {"fixture_status": "FT"}, DataCategory.MATCH_DETAIL),
    ])
    def test_category_for_endpoint(self, endpoint, params, context, expected):
        assert get_category_for_endpoint(endpoint, params, context) == expected

    def test_ttls_come_from_settings(self):
        assert get_ttl_for_category(DataCategory.LIVE) == 60
        assert get_ttl_for_category(DataCategory.STANDINGS) == 3600
        assert get_ttl_for_category(DataCategory.METADATA) == 7200


# =============================================================================
# Manager
# =============================================================================

class BrokenStore:
    """Store whose table is unreachable."""

    def get(self, key, now):
        raise QueryError("no such table: api_cache")

    def put(self, key, value, ttl, now):
        raise QueryError("no such table: api_cache")

    def count(self):
        raise QueryError("no such table: api_cache")


class TestCacheManager:

    def test_miss_then_hit(self, db):
        manager = CacheManager(CacheStore(db), clock=FakeClock(NOW))
        calls = []

        def fetch():
            calls.append(1)
            return [{"rank": 1}]

        data, meta = manager.get("standings:39", fetch, "standings", {"league": 39})
        assert meta.cache_source == CacheSource.UPSTREAM.value
        data_again, meta_again = manager.get("standings:39", fetch, "standings", {"league": 39})
        assert meta_again.cache_source == CacheSource.FRESH.value
        assert data == data_again
        assert len(calls) == 1
        assert meta.to_dict()["ttl"] == 3600

    def test_fetch_errors_propagate_and_nothing_is_cached(self, db):
        store = CacheStore(db)
        manager = CacheManager(store, clock=FakeClock(NOW))

        def fetch():
            raise UpstreamUnavailable("standings", "HTTP 502", status_code=502)

        with pytest.raises(UpstreamUnavailable):
            manager.get("standings:39", fetch, "standings", {"league": 39})
        assert store.count() == 0

    def test_storage_failures_do_not_fail_the_request(self):
        manager = CacheManager(BrokenStore(), clock=FakeClock(NOW))
        data, meta = manager.get("k", lambda: {"ok": True}, "standings", {})
        assert data == {"ok": True}
        assert meta.cache_source == CacheSource.UPSTREAM.value

        stats = manager.get_stats()
        assert stats["read_errors"] == 1
        assert stats["write_errors"] == 1
        assert stats["entries"] is None

    def test_invalidate(self, db):
        manager = CacheManager(CacheStore(db), clock=FakeClock(NOW))
        manager.get("k", lambda: 1, "standings", {})
        assert manager.invalidate("k") is True
        assert manager.invalidate("k") is False

    def test_hit_rate(self, db):
        manager = CacheManager(CacheStore(db), clock=FakeClock(NOW))
        for _ in range(4):
            manager.get("k", lambda: 1, "standings", {})
        assert manager.get_stats()["hit_rate_percent"] == 75.0
