"""
Database-backed cache for API-Football responses with per-category TTLs.
"""
from .core import CacheEntry, CacheMeta, CacheSource, DataCategory
from .ttl_policies import (
    LIVE_STATUSES,
    TTL_SETTINGS,
    get_category_for_endpoint,
    get_ttl_for_category,
    is_live_status,
)
from .store import CacheStore
from .manager import CacheManager

__all__ = [
    # Core types
    "CacheEntry",
    "CacheMeta",
    "CacheSource",
    "DataCategory",
    # TTL policies
    "LIVE_STATUSES",
    "TTL_SETTINGS",
    "get_ttl_for_category",
    "get_category_for_endpoint",
    "is_live_status",
    # Storage
    "CacheStore",
    # Manager
    "CacheManager",
]
