"""
Command line tools.

    python -m wfn24.cli init-db
    python -m wfn24.cli create-admin --email admin@wfn24.com --password ... --username admin
    python -m wfn24.cli sync-league --league 39 --season 2024
    python -m wfn24.cli sweep-cache
"""
import argparse
import logging
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

from wfn24.api_client import FootballApiClient
from wfn24.cache import CacheStore
from wfn24.db import Database, Executor, get_database
from wfn24.errors import ConfigurationError, DataAccessError
from wfn24.logging_config import configure_logging
from wfn24.records import LeagueModel, MatchModel, RecordModel, TeamModel, UserModel
from wfn24.utils.helpers import parse_datetime, utcnow

logger = logging.getLogger("cli")


def _upsert(model: RecordModel, existing: Optional[Dict[str, Any]], fields: Dict[str, Any]) -> Tuple[int, bool]:
    """Update `existing` or create a new record. Returns (id, created)."""
    if existing:
        model.update(existing["id"], fields)
        return existing["id"], False
    return model.create(fields), True


# ===== COMMANDS =====

def cmd_init_db(args: argparse.Namespace, db: Database) -> int:
    db.create_all()
    print(f"Database ready at {db.safe_url}")
    return 0


def cmd_create_admin(args: argparse.Namespace, db: Database) -> int:
    """Create an admin, or promote and reset the password of an existing account."""
    users = UserModel(db)
    existing = users.get_by_email(args.email)
    if existing:
        users.update(existing["id"], {"password": args.password, "role": "admin", "is_active": True})
        print(f"Updated existing user #{existing['id']} ({args.email}) to admin")
        return 0

    user_id = users.create({
        "username": args.username,
        "email": args.email,
        "password": args.password,
        "first_name": args.first_name,
        "last_name": args.last_name,
        "role": "admin",
        "email_verified": True,
    })
    print(f"Created admin user #{user_id} ({args.email})")
    return 0


def sync_league(
    tx: Executor,
    league_info: Dict[str, Any],
    teams: List[Dict[str, Any]],
    fixtures: List[Dict[str, Any]],
    season: int,
) -> Dict[str, int]:
    """
    Upsert one league, its teams and its fixtures, matched on API-Football ids.

    Returns:
        Counters for created/updated rows
    """
    leagues, team_model, matches = LeagueModel(tx), TeamModel(tx), MatchModel(tx)
    counts = {"teams_created": 0, "teams_updated": 0, "matches_created": 0, "matches_updated": 0}

    league_id, _ = _upsert(
        leagues,
        leagues.get_by_api_id(league_info["api_league_id"]),
        {key: value for key, value in league_info.items() if value is not None},
    )

    team_ids: Dict[int, int] = {}

    def local_team(api_team: Dict[str, Any]) -> Optional[int]:
        api_id = api_team.get("api_team_id") or api_team.get("id")
        if api_id is None:
            return None
        if api_id not in team_ids:
            fields = {
                "api_team_id": api_id,
                "name": api_team.get("name"),
                "logo_url": api_team.get("logo_url") or api_team.get("logo"),
                "league_id": league_id,
            }
            for key in ("short_name", "country", "founded_year", "stadium", "capacity"):
                if api_team.get(key) is not None:
                    fields[key] = api_team[key]
            team_id, created = _upsert(team_model, team_model.get_by_api_id(api_id), fields)
            counts["teams_created" if created else "teams_updated"] += 1
            team_ids[api_id] = team_id
        return team_ids[api_id]

    for team in teams:
        local_team(team)

    for fixture in fixtures:
        match_date = parse_datetime(fixture.get("date"))
        if fixture.get("api_match_id") is None or match_date is None:
            continue
        fields = {
            "api_match_id": fixture["api_match_id"],
            "home_team_id": local_team(fixture["home_team"]),
            "away_team_id": local_team(fixture["away_team"]),
            "league_id": league_id,
            "season": str(season),
            "round": (fixture.get("league") or {}).get("round"),
            "match_date": match_date,
            "status": fixture["status"],
            "home_score": fixture.get("home_score") or 0,
            "away_score": fixture.get("away_score") or 0,
            "venue": fixture.get("venue"),
            "referee": fixture.get("referee"),
        }
        _, created = _upsert(matches, matches.get_by_api_id(fixture["api_match_id"]), fields)
        counts["matches_created" if created else "matches_updated"] += 1

    return counts


def cmd_sync_league(args: argparse.Namespace, db: Database) -> int:
    try:
        client = FootballApiClient(db=db)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    season = args.season or client.config.current_season
    teams = client.get_teams(args.league, season)
    fixtures = client.get_fixtures(league_id=args.league, season=season)
    if not teams and not fixtures:
        print(f"No data returned for league {args.league} season {season}", file=sys.stderr)
        return 1

    league_info = next(
        (league for league in client.get_major_leagues(season) if league["api_league_id"] == args.league),
        None,
    )
    if league_info is None:
        upstream_league = fixtures[0]["league"] if fixtures else {}
        league_info = {
            "api_league_id": args.league,
            "name": upstream_league.get("name") or f"League {args.league}",
            "country": upstream_league.get("country"),
            "logo_url": upstream_league.get("logo"),
        }
    league_info["season"] = str(season)

    with db.transaction() as tx:
        counts = sync_league(tx, league_info, teams, fixtures, season)

    print(
        f"Synced {league_info['name']} {season}: "
        f"{counts['teams_created']} teams created, {counts['teams_updated']} updated; "
        f"{counts['matches_created']} matches created, {counts['matches_updated']} updated"
    )
    return 0


def cmd_sweep_cache(args: argparse.Namespace, db: Database) -> int:
    removed = CacheStore(db).sweep_expired(utcnow())
    print(f"Removed {removed} expired cache entries")
    return 0


COMMANDS: Dict[str, Callable[[argparse.Namespace, Database], int]] = {
    "init-db": cmd_init_db,
    "create-admin": cmd_create_admin,
    "sync-league": cmd_sync_league,
    "sweep-cache": cmd_sweep_cache,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wfn24", description="WFN24 maintenance commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create all tables")

    admin = subparsers.add_parser("create-admin", help="Create or promote an admin user")
    admin.add_argument("--email", required=True)
    admin.add_argument("--password", required=True)
    admin.add_argument("--username", default="admin")
    admin.add_argument("--first-name", dest="first_name", default="Admin")
    admin.add_argument("--last-name", dest="last_name", default="User")

    sync = subparsers.add_parser("sync-league", help="Import a league's teams and fixtures from API-Football")
    sync.add_argument("--league", type=int, required=True, help="API-Football league id (39 = Premier League)")
    sync.add_argument("--season", type=int, default=None, help="Season start year (defaults to current)")

    subparsers.add_parser("sweep-cache", help="Delete expired api_cache rows")
    return parser


def main(argv: Optional[List[str]] = None, db: Optional[Database] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    db = db or get_database()
    try:
        return COMMANDS[args.command](args, db)
    except DataAccessError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
