"""
API client for API-Football v3
Responses are cached in the api_cache table with per-category TTLs.
Upstream failures degrade to empty results and never reach the caller.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from wfn24.cache import CacheManager, CacheMeta, CacheSource, CacheStore, is_live_status
from wfn24.cache.ttl_policies import FINISHED_STATUSES
from wfn24.db import Executor, get_database
from wfn24.errors import ConfigurationError, RateLimitedError, UpstreamUnavailable
from wfn24.utils.helpers import safe_int, utcnow

logger = logging.getLogger("api_client")

USER_AGENT = "WFN24/1.0"

# Top 5 European Leagues
PREMIER_LEAGUE_ID = settings.premier_league_id
LA_LIGA_ID = 140
BUNDESLIGA_ID = 78
SERIE_A_ID = 135
LIGUE_1_ID = 61

# European Competitions
CHAMPIONS_LEAGUE_ID = 2

# Leagues shown on the home page, with their display priority
MAJOR_LEAGUES = {
    PREMIER_LEAGUE_ID: ("Premier League", 100),
    LA_LIGA_ID: ("La Liga", 90),
    BUNDESLIGA_ID: ("Bundesliga", 80),
    SERIE_A_ID: ("Serie A", 70),
    LIGUE_1_ID: ("Ligue 1", 60),
    CHAMPIONS_LEAGUE_ID: ("Champions League", 95),
}

# API-Football short status -> local matches.status
_STATUS_MAP = {
    "TBD": "scheduled",
    "NS": "scheduled",
    "FT": "finished",
    "AET": "finished",
    "PEN": "finished",
    "PST": "postponed",
    "CANC": "cancelled",
    "ABD": "cancelled",
    "AWD": "finished",
    "WO": "finished",
}


def to_local_status(status_short: Optional[str]) -> str:
    """Map an API-Football status code onto the local match status."""
    status_short = (status_short or "").upper()
    if is_live_status(status_short) or status_short == "SUSP":
        return "live"
    return _STATUS_MAP.get(status_short, "scheduled")


def _cache_key(endpoint: str, params: dict) -> str:
    """Generate cache key from endpoint and params."""
    sorted_params = sorted((k, v) for k, v in params.items() if v is not None)
    return f"{endpoint}:{sorted_params}"


@dataclass
class UpstreamResult:
    """
    Outcome of one logical request.

    `data` is the API-Football `response` list, or None when the upstream
    failed and nothing valid was cached.
    """
    data: Optional[Any]
    meta: CacheMeta
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def items(self) -> List[Any]:
        return self.data if isinstance(self.data, list) else []


# ===== TRANSFORMS =====

def _transform_team(team: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": team.get("id"),
        "name": team.get("name"),
        "logo": team.get("logo"),
    }


def _transform_fixture(fixture: Dict[str, Any]) -> Dict[str, Any]:
    fixture_info = fixture.get("fixture") or {}
    teams = fixture.get("teams") or {}
    goals = fixture.get("goals") or {}
    league = fixture.get("league") or {}
    status = fixture_info.get("status") or {}
    status_short = status.get("short") or ""

    return {
        "api_match_id": fixture_info.get("id"),
        "date": fixture_info.get("date"),
        "venue": (fixture_info.get("venue") or {}).get("name"),
        "referee": fixture_info.get("referee"),
        "status": to_local_status(status_short),
        "status_short": status_short,
        "status_long": status.get("long"),
        "elapsed": status.get("elapsed"),
        "is_live": is_live_status(status_short),
        "is_finished": status_short in FINISHED_STATUSES,
        "home_team": _transform_team(teams.get("home") or {}),
        "away_team": _transform_team(teams.get("away") or {}),
        "home_score": goals.get("home"),
        "away_score": goals.get("away"),
        "league": {
            "id": league.get("id"),
            "name": league.get("name"),
            "country": league.get("country"),
            "logo": league.get("logo"),
            "season": league.get("season"),
            "round": league.get("round"),
        },
    }


def _transform_standing(team: Dict[str, Any]) -> Dict[str, Any]:
    all_stats = team.get("all") or {}
    goals = all_stats.get("goals") or {}
    return {
        "position": team.get("rank"),
        "team": _transform_team(team.get("team") or {}),
        "played": safe_int(all_stats.get("played")),
        "won": safe_int(all_stats.get("win")),
        "drawn": safe_int(all_stats.get("draw")),
        "lost": safe_int(all_stats.get("lose")),
        "goals_for": safe_int(goals.get("for")),
        "goals_against": safe_int(goals.get("against")),
        "goal_difference": safe_int(team.get("goalsDiff")),
        "points": safe_int(team.get("points")),
        "form": team.get("form"),
    }


def _transform_scorer(item: Dict[str, Any]) -> Dict[str, Any]:
    player = item.get("player") or {}
    stats = (item.get("statistics") or [{}])[0]
    games = stats.get("games") or {}
    goals = stats.get("goals") or {}
    return {
        "player_id": player.get("id"),
        "name": player.get("name"),
        "photo": player.get("photo"),
        "nationality": player.get("nationality"),
        "team": _transform_team(stats.get("team") or {}),
        "position": games.get("position"),
        "appearances": safe_int(games.get("appearences")),
        "goals": safe_int(goals.get("total")),
        "assists": safe_int(goals.get("assists")),
    }


def _transform_team_info(item: Dict[str, Any]) -> Dict[str, Any]:
    team = item.get("team") or {}
    venue = item.get("venue") or {}
    return {
        "api_team_id": team.get("id"),
        "name": team.get("name"),
        "short_name": team.get("code"),
        "country": team.get("country"),
        "founded_year": team.get("founded"),
        "logo_url": team.get("logo"),
        "stadium": venue.get("name"),
        "capacity": venue.get("capacity"),
    }


def _transform_player_info(item: Dict[str, Any]) -> Dict[str, Any]:
    player = item.get("player") or {}
    stats = (item.get("statistics") or [{}])[0]
    return {
        "api_player_id": player.get("id"),
        "name": player.get("name"),
        "first_name": player.get("firstname"),
        "last_name": player.get("lastname"),
        "age": player.get("age"),
        "nationality": player.get("nationality"),
        "height": player.get("height"),
        "weight": player.get("weight"),
        "photo_url": player.get("photo"),
        "position": (stats.get("games") or {}).get("position"),
        "team": _transform_team(stats.get("team") or {}),
    }


def _transform_league(item: Dict[str, Any]) -> Dict[str, Any]:
    league = item.get("league") or {}
    country = item.get("country") or {}
    seasons = item.get("seasons") or []
    current = next((s for s in seasons if s.get("current")), seasons[-1] if seasons else {})
    _, priority = MAJOR_LEAGUES.get(league.get("id"), (None, 0))
    return {
        "api_league_id": league.get("id"),
        "name": league.get("name"),
        "country": country.get("name"),
        "logo_url": league.get("logo"),
        "type": league.get("type"),
        "season": current.get("year"),
        "priority": priority,
    }


# ===== CLIENT =====

class FootballApiClient:
    """
    API-Football client with a table-backed cache.

    Every public method returns plain data; an unavailable upstream yields
    [] or None (logged once per failure).
    """

    def __init__(
        self,
        config=None,
        db: Optional[Executor] = None,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], datetime]] = None,
        retry_wait=None,
    ):
        """
        Args:
            config: Settings object (defaults to the process settings)
            db: Gateway holding the api_cache table (defaults to get_database())
            session: requests session (injectable for tests)
            clock: Returns the current naive-UTC time
            retry_wait: tenacity wait strategy for 429 backoff

        Raises:
            ConfigurationError: FOOTBALL_API_KEY is not set
        """
        self.config = config or settings
        if not self.config.football_api_key:
            raise ConfigurationError("FOOTBALL_API_KEY is not configured")

        self.base_url = self.config.football_api_base_url.rstrip("/")
        self.timeout = self.config.football_api_timeout
        self.session = session or requests.Session()
        self.clock = clock or utcnow
        self.cache = CacheManager(CacheStore(db or get_database()), clock=self.clock, config=self.config)
        self.upstream_calls = 0
        self.upstream_failures = 0

        self._retrying = Retrying(
            stop=stop_after_attempt(self.config.football_api_max_attempts),
            wait=retry_wait or wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(RateLimitedError),
            reraise=True,
        )

    def _get_headers(self) -> dict:
        """Get API authentication headers."""
        return {
            "x-rapidapi-key": self.config.football_api_key,
            "x-rapidapi-host": self.config.football_api_host,
            "User-Agent": USER_AGENT,
        }

    def _fetch_once(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        One HTTP round trip.

        Raises:
            RateLimitedError: HTTP 429 (retried by the caller)
            UpstreamUnavailable: transport error, non-2xx, bad JSON or API-level errors
        """
        self.upstream_calls += 1
        try:
            response = self.session.get(
                f"{self.base_url}/{endpoint}",
                headers=self._get_headers(),
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamUnavailable(endpoint, f"transport error: {e}") from e

        if response.status_code == 429:
            logger.warning(f"API-Football rate limit hit on {endpoint}")
            raise RateLimitedError(endpoint, "rate limited", status_code=429)

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise UpstreamUnavailable(
                endpoint, f"HTTP {response.status_code}", status_code=response.status_code
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(endpoint, "response is not valid JSON") from e

        if not isinstance(payload, dict) or "response" not in payload:
            raise UpstreamUnavailable(endpoint, "payload has no 'response' field")
        # API-Football reports bad keys, quota and parameter errors with HTTP 200
        if payload.get("errors"):
            raise UpstreamUnavailable(endpoint, f"API errors: {payload['errors']}")
        return payload

    def _make_request(
        self,
        endpoint: str,
        params: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> UpstreamResult:
        """
        Cache check -> upstream fetch -> cache write.

        Args:
            endpoint: API endpoint path
            params: Query parameters (None values are dropped)
            context: Additional context for TTL calculation (e.g., fixture_status)
        """
        params = {k: v for k, v in params.items() if v is not None}
        cache_key = _cache_key(endpoint, params)

        def fetch():
            payload = self._retrying.copy()(self._fetch_once, endpoint, params)
            return payload["response"]

        try:
            data, meta = self.cache.get(cache_key, fetch, endpoint, params, context)
        except UpstreamUnavailable as e:
            self.upstream_failures += 1
            logger.error(f"API-Football {e.endpoint} unavailable: {e.reason}")
            meta = CacheMeta(
                last_updated=self.clock().isoformat() + "Z",
                cache_source=CacheSource.UNAVAILABLE.value,
            )
            return UpstreamResult(data=None, meta=meta, error=str(e))

        return UpstreamResult(data=data, meta=meta)

    def _season(self, season: Optional[int]) -> int:
        return season or self.config.current_season

    # ===== LEAGUES =====

    def get_major_leagues(self, season: Optional[int] = None) -> List[Dict[str, Any]]:
        """Major leagues (top 5 + Champions League) for a season, highest priority first."""
        result = self._make_request("leagues", {"season": self._season(season)})
        leagues = [
            _transform_league(item)
            for item in result.items()
            if (item.get("league") or {}).get("id") in MAJOR_LEAGUES
        ]
        leagues.sort(key=lambda league: -league["priority"])
        return leagues

    def get_standings(self, league_id: int, season: Optional[int] = None) -> List[Dict[str, Any]]:
        result = self._make_request("standings", {"league": league_id, "season": self._season(season)})
        response = result.items()
        if not response:
            return []
        groups = (response[0].get("league") or {}).get("standings") or [[]]
        return [_transform_standing(team) for team in groups[0]]

    def get_top_scorers(
        self, league_id: int, season: Optional[int] = None, limit: int = 20
    ) -> List[Dict[str, Any]]:
        result = self._make_request(
            "players/topscorers", {"league": league_id, "season": self._season(season)}
        )
        return [_transform_scorer(item) for item in result.items()[:limit]]

    # ===== MATCHES / FIXTURES =====

    def get_live_matches(self) -> List[Dict[str, Any]]:
        result = self._make_request("fixtures", {"live": "all"})
        return [_transform_fixture(fixture) for fixture in result.items()]

    def get_upcoming_matches(self, limit: int = 10, date: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Not-started fixtures in the major leagues for one day.

        Args:
            limit: Max matches to return
            date: YYYY-MM-DD (defaults to today, UTC)
        """
        date = date or self.clock().date().isoformat()
        result = self._make_request("fixtures", {"date": date, "status": "NS"})
        matches = [
            _transform_fixture(fixture)
            for fixture in result.items()
            if (fixture.get("league") or {}).get("id") in MAJOR_LEAGUES
        ]
        matches.sort(key=lambda match: match["date"] or "")
        return matches[:limit]

    def get_fixtures(
        self,
        league_id: Optional[int] = None,
        season: Optional[int] = None,
        team_id: Optional[int] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fixtures for a league and/or team in a season, oldest first.

        Args:
            league_id: League ID (at least one of league_id/team_id is needed)
            team_id: Optional team ID filter
            from_date: Optional start date (YYYY-MM-DD)
            to_date: Optional end date (YYYY-MM-DD)
        """
        if league_id is None and team_id is None:
            raise ValueError("get_fixtures needs a league_id or a team_id")
        result = self._make_request(
            "fixtures",
            {
                "league": league_id,
                "season": self._season(season),
                "team": team_id,
                "from": from_date,
                "to": to_date,
            },
        )
        matches = [_transform_fixture(fixture) for fixture in result.items()]
        matches.sort(key=lambda match: match["date"] or "")
        return matches

    def get_match(self, match_id: int) -> Optional[Dict[str, Any]]:
        result = self._make_request("fixtures", {"id": match_id})
        response = result.items()
        if not response:
            return None
        return _transform_fixture(response[0])

    def get_match_events(self, match_id: int, fixture_status: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Goals, cards and substitutions for a fixture.

        Args:
            fixture_status: API status code, live codes shorten the cache TTL
        """
        context = {"fixture_status": fixture_status} if fixture_status else {}
        result = self._make_request("fixtures/events", {"fixture": match_id}, context)

        events = []
        for event in result.items():
            time_data = event.get("time") or {}
            team_data = event.get("team") or {}
            player_data = event.get("player") or {}
            assist_data = event.get("assist") or {}
            events.append({
                "minute": time_data.get("elapsed"),
                "extra_time": time_data.get("extra"),
                "team_id": team_data.get("id"),
                "team_name": team_data.get("name"),
                "player_id": player_data.get("id"),
                "player_name": player_data.get("name"),
                "assist_id": assist_data.get("id"),
                "assist_name": assist_data.get("name"),
                "event_type": event.get("type"),  # Goal, Card, subst, Var
                "detail": event.get("detail"),
            })
        return events

    def get_match_lineups(self, match_id: int, fixture_status: Optional[str] = None) -> List[Dict[str, Any]]:
        context = {"fixture_status": fixture_status} if fixture_status else {}
        result = self._make_request("fixtures/lineups", {"fixture": match_id}, context)

        def players(entries):
            return [
                {
                    "id": (entry.get("player") or {}).get("id"),
                    "name": (entry.get("player") or {}).get("name"),
                    "number": (entry.get("player") or {}).get("number"),
                    "position": (entry.get("player") or {}).get("pos"),
                }
                for entry in entries or []
            ]

        lineups = []
        for team_lineup in result.items():
            team_data = team_lineup.get("team") or {}
            coach = team_lineup.get("coach") or {}
            lineups.append({
                "team_id": team_data.get("id"),
                "team_name": team_data.get("name"),
                "formation": team_lineup.get("formation"),
                "coach_name": coach.get("name"),
                "starting_xi": players(team_lineup.get("startXI")),
                "substitutes": players(team_lineup.get("substitutes")),
            })
        return lineups

    def get_match_statistics(self, match_id: int, fixture_status: Optional[str] = None) -> List[Dict[str, Any]]:
        context = {"fixture_status": fixture_status} if fixture_status else {}
        result = self._make_request("fixtures/statistics", {"fixture": match_id}, context)

        team_stats = []
        for team_data in result.items():
            team_info = team_data.get("team") or {}
            # Convert statistics list to dict for easier access
            stats = {
                stat.get("type"): stat.get("value")
                for stat in team_data.get("statistics") or []
                if stat.get("type")
            }
            team_stats.append({
                "team_id": team_info.get("id"),
                "team_name": team_info.get("name"),
                "statistics": stats,
            })
        return team_stats

    # ===== TEAMS / PLAYERS =====

    def get_teams(self, league_id: int, season: Optional[int] = None) -> List[Dict[str, Any]]:
        result = self._make_request("teams", {"league": league_id, "season": self._season(season)})
        return [_transform_team_info(item) for item in result.items()]

    def get_team_info(self, team_id: int) -> Optional[Dict[str, Any]]:
        result = self._make_request("teams", {"id": team_id})
        response = result.items()
        return _transform_team_info(response[0]) if response else None

    def get_player_info(self, player_id: int, season: Optional[int] = None) -> Optional[Dict[str, Any]]:
        result = self._make_request("players", {"id": player_id, "season": self._season(season)})
        response = result.items()
        return _transform_player_info(response[0]) if response else None

    # ===== CACHE =====

    def clear_expired_cache(self) -> int:
        """Delete expired api_cache rows. Returns the number removed."""
        return self.cache.sweep_expired()

    def cache_stats(self) -> Dict[str, Any]:
        stats = self.cache.get_stats()
        stats["upstream_calls"] = self.upstream_calls
        stats["upstream_failures"] = self.upstream_failures
        return stats
