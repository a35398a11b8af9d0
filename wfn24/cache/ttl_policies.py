"""
TTL configuration and endpoint-to-category mapping.
"""
from typing import Any, Dict, Optional

from config.settings import settings

from .core import DataCategory

# API-Football short status codes for matches in play
LIVE_STATUSES = ("1H", "2H", "HT", "ET", "P", "LIVE", "BT", "INT")
FINISHED_STATUSES = ("FT", "AET", "PEN")

# Settings attribute holding the TTL (seconds) for each category
TTL_SETTINGS: Dict[DataCategory, str] = {
    DataCategory.LIVE: "cache_ttl_live",
    DataCategory.MATCH_DETAIL: "cache_ttl_match_detail",
    DataCategory.FIXTURES: "cache_ttl_fixtures",
    DataCategory.STANDINGS: "cache_ttl_standings",
    DataCategory.TOP_SCORERS: "cache_ttl_top_scorers",
    DataCategory.METADATA: "cache_ttl_metadata",
}


def get_ttl_for_category(category: DataCategory, config=None) -> int:
    """
    TTL in seconds for a data category.

    Args:
        category: The data category
        config: Settings object (defaults to the process settings)
    """
    config = config or settings
    return int(getattr(config, TTL_SETTINGS[category]))


def is_live_status(status: Optional[str]) -> bool:
    return (status or "").upper() in LIVE_STATUSES


def get_category_for_endpoint(
    endpoint: str,
    params: Dict[str, Any],
    context: Optional[Dict[str, Any]] = None,
) -> DataCategory:
    """
    Determine the data category for an endpoint + params combination.

    Args:
        endpoint: API endpoint path (e.g., "standings", "fixtures")
        params: Query parameters
        context: Additional context (fixture_status for match detail endpoints)

    Returns:
        DataCategory for caching behavior
    """
    context = context or {}

    if endpoint == "standings":
        return DataCategory.STANDINGS

    if endpoint in ("players/topscorers", "players/topassists"):
        return DataCategory.TOP_SCORERS

    if endpoint in ("leagues", "teams", "players"):
        return DataCategory.METADATA

    if endpoint == "fixtures":
        if params.get("live"):
            return DataCategory.LIVE
        if params.get("id"):
            return _get_match_data_category(context)
        return DataCategory.FIXTURES

    # Events, lineups, statistics
    if endpoint.startswith("fixtures/"):
        return _get_match_data_category(context)

    return DataCategory.FIXTURES


def _get_match_data_category(context: Dict[str, Any]) -> DataCategory:
    """Live matches refresh every minute; everything else is match detail."""
    if is_live_status(context.get("fixture_status")):
        return DataCategory.LIVE
    return DataCategory.MATCH_DETAIL
