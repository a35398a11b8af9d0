"""
Leagues, plus the league table and scorer charts computed from local match data.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, or_, select

from wfn24.models import League, Match, MatchEvent, Player, Team
from wfn24.records.base import Record, RecordModel, RecordSchema

leagues = League.__table__
teams = Team.__table__
matches = Match.__table__
match_events = MatchEvent.__table__
players = Player.__table__

# Points per result
WIN_POINTS = 3
DRAW_POINTS = 1


class LeagueModel(RecordModel):
    schema = RecordSchema(
        table=leagues,
        writable_fields=(
            "api_league_id", "name", "country", "logo_url", "type",
            "season", "priority", "is_active",
        ),
        searchable_fields=("name", "country"),
    )

    def default_order(self) -> List[Any]:
        return [leagues.c.priority.desc(), leagues.c.name.asc(), leagues.c.id.asc()]

    def active(self) -> List[Record]:
        stmt = select(leagues).where(leagues.c.is_active.is_(True)).order_by(*self.default_order())
        return self._fetch(stmt)

    def by_country(self, country: str) -> List[Record]:
        stmt = (
            select(leagues)
            .where(leagues.c.country == country, leagues.c.is_active.is_(True))
            .order_by(*self.default_order())
        )
        return self._fetch(stmt)

    def major(self) -> List[Record]:
        """Active leagues with a positive priority."""
        stmt = (
            select(leagues)
            .where(leagues.c.priority > 0, leagues.c.is_active.is_(True))
            .order_by(*self.default_order())
        )
        return self._fetch(stmt)

    def get_by_api_id(self, api_league_id: int) -> Optional[Record]:
        return self.find_by("api_league_id", api_league_id)

    def with_details(self, league_id: int) -> Optional[Record]:
        """League with its team and match counts."""
        team_count = (
            select(func.count(teams.c.id)).where(teams.c.league_id == leagues.c.id).scalar_subquery()
        )
        match_count = (
            select(func.count(matches.c.id)).where(matches.c.league_id == leagues.c.id).scalar_subquery()
        )
        stmt = select(
            leagues,
            team_count.label("team_count"),
            match_count.label("match_count"),
        ).where(leagues.c.id == league_id)
        return self._fetch_one(stmt)

    # ===== STANDINGS =====

    def standings(self, league_id: int) -> List[Record]:
        """
        League table from finished matches.

        Teams registered in the league appear even before they have played.
        Ordered by points, goal difference, goals for, then name.

        Returns:
            Rows with position, team_id, team_name, team_logo, played, won,
            drawn, lost, goals_for, goals_against, goal_difference, points
        """
        team_rows = self.db.execute(
            select(teams.c.id, teams.c.name, teams.c.logo_url).where(teams.c.league_id == league_id)
        ).rows
        results = self.db.execute(
            select(
                matches.c.home_team_id,
                matches.c.away_team_id,
                matches.c.home_score,
                matches.c.away_score,
            ).where(matches.c.league_id == league_id, matches.c.status == "finished")
        ).rows

        table: Dict[int, Record] = {}

        def row_for(team_id: int) -> Record:
            if team_id not in table:
                table[team_id] = {
                    "team_id": team_id,
                    "team_name": None,
                    "team_logo": None,
                    "played": 0, "won": 0, "drawn": 0, "lost": 0,
                    "goals_for": 0, "goals_against": 0,
                }
            return table[team_id]

        for team in team_rows:
            entry = row_for(team["id"])
            entry["team_name"] = team["name"]
            entry["team_logo"] = team["logo_url"]

        for result in results:
            home_id, away_id = result["home_team_id"], result["away_team_id"]
            if home_id is None or away_id is None:
                continue
            home_goals = result["home_score"] or 0
            away_goals = result["away_score"] or 0
            for team_id, scored, conceded in (
                (home_id, home_goals, away_goals),
                (away_id, away_goals, home_goals),
            ):
                entry = row_for(team_id)
                entry["played"] += 1
                entry["goals_for"] += scored
                entry["goals_against"] += conceded
                if scored > conceded:
                    entry["won"] += 1
                elif scored == conceded:
                    entry["drawn"] += 1
                else:
                    entry["lost"] += 1

        # Teams that played here but belong to another league
        missing = [team_id for team_id, entry in table.items() if entry["team_name"] is None]
        if missing:
            for team in self.db.execute(
                select(teams.c.id, teams.c.name, teams.c.logo_url).where(teams.c.id.in_(missing))
            ).rows:
                table[team["id"]]["team_name"] = team["name"]
                table[team["id"]]["team_logo"] = team["logo_url"]

        for entry in table.values():
            entry["goal_difference"] = entry["goals_for"] - entry["goals_against"]
            entry["points"] = entry["won"] * WIN_POINTS + entry["drawn"] * DRAW_POINTS

        ordered = sorted(
            table.values(),
            key=lambda e: (-e["points"], -e["goal_difference"], -e["goals_for"], e["team_name"] or ""),
        )
        for position, entry in enumerate(ordered, start=1):
            entry["position"] = position
        return ordered

    # ===== TOP SCORERS =====

    def top_scorers(self, league_id: int, limit: int = 10) -> List[Record]:
        """Players ranked by goals (then assists) in this league's matches."""
        goals = func.sum(case((match_events.c.event_type == "goal", 1), else_=0))
        assists = func.sum(case((match_events.c.event_type == "assist", 1), else_=0))

        stmt = (
            select(
                players.c.id,
                players.c.name,
                players.c.position,
                players.c.team_id,
                teams.c.name.label("team_name"),
                teams.c.logo_url.label("team_logo"),
                goals.label("goals"),
                assists.label("assists"),
            )
            .select_from(
                match_events
                .join(matches, match_events.c.match_id == matches.c.id)
                .join(players, match_events.c.player_id == players.c.id)
                .outerjoin(teams, players.c.team_id == teams.c.id)
            )
            .where(
                matches.c.league_id == league_id,
                or_(match_events.c.event_type == "goal", match_events.c.event_type == "assist"),
            )
            .group_by(
                players.c.id, players.c.name, players.c.position, players.c.team_id,
                teams.c.name, teams.c.logo_url,
            )
            .having(goals > 0)
            .order_by(goals.desc(), assists.desc(), players.c.name.asc())
            .limit(limit)
        )
        return self._fetch(stmt)
