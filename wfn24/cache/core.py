"""
Core cache data structures.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class DataCategory(Enum):
    """Categories of upstream data, each with its own TTL."""
    LIVE = "live"                    # 60 seconds
    MATCH_DETAIL = "match_detail"    # 5 minutes
    FIXTURES = "fixtures"            # 30 minutes
    STANDINGS = "standings"          # 1 hour
    TOP_SCORERS = "top_scorers"      # 1 hour
    METADATA = "metadata"            # 2 hours (leagues, teams, players)


class CacheSource(Enum):
    """Where a response came from."""
    FRESH = "fresh"              # Valid api_cache row
    UPSTREAM = "upstream"        # Fetched from API-Football
    UNAVAILABLE = "unavailable"  # Upstream failed and nothing was cached


@dataclass
class CacheEntry:
    """
    One api_cache row with its payload decoded.
    """
    key: str
    value: Any
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        """Entries are served only strictly before expires_at."""
        return now < self.expires_at

    def ttl_remaining(self, now: datetime) -> float:
        return max((self.expires_at - now).total_seconds(), 0.0)


@dataclass
class CacheMeta:
    """
    Metadata about a cache access, included in API responses.
    """
    last_updated: str  # ISO timestamp
    cache_source: str  # "fresh", "upstream" or "unavailable"
    category: Optional[str] = None
    ttl_seconds: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        result = {
            "lastUpdated": self.last_updated,
            "cacheSource": self.cache_source,
        }
        if self.category:
            result["category"] = self.category
            result["ttl"] = self.ttl_seconds
        return result
