"""Matches and their events."""
from typing import Any, List, Optional

from sqlalchemy import or_, select

from wfn24.models import MATCH_STATUSES, League, Match, MatchEvent, Player, Team
from wfn24.records.base import PageResult, Record, RecordModel, RecordSchema
from wfn24.utils.helpers import utcnow

matches = Match.__table__
teams = Team.__table__
leagues = League.__table__
match_events = MatchEvent.__table__
players = Player.__table__


class MatchModel(RecordModel):
    schema = RecordSchema(
        table=matches,
        writable_fields=(
            "api_match_id", "home_team_id", "away_team_id", "league_id", "season", "round",
            "match_date", "status", "home_score", "away_score", "home_possession",
            "away_possession", "venue", "referee", "attendance", "statistics", "is_live",
        ),
        searchable_fields=("venue", "referee", "round"),
    )

    def default_order(self) -> List[Any]:
        return [matches.c.match_date.desc(), matches.c.id.desc()]

    def _normalize_status(self, fields: Record) -> None:
        """Lowercase the status and keep is_live in step with it."""
        if fields.get("status") is None:
            return
        status = str(fields["status"]).lower()
        if status not in MATCH_STATUSES:
            raise ValueError(f"Invalid match status '{fields['status']}'")
        fields["status"] = status
        fields["is_live"] = status == "live"

    def before_create(self, fields: Record) -> Record:
        fields.setdefault("status", "scheduled")
        self._normalize_status(fields)
        return fields

    def before_update(self, record_id: Any, fields: Record) -> Record:
        self._normalize_status(fields)
        return fields

    def _detail_select(self):
        """Matches joined with both teams and the league."""
        home = teams.alias("home_team")
        away = teams.alias("away_team")
        return (
            select(
                matches,
                home.c.name.label("home_team_name"),
                home.c.logo_url.label("home_team_logo"),
                away.c.name.label("away_team_name"),
                away.c.logo_url.label("away_team_logo"),
                leagues.c.name.label("league_name"),
                leagues.c.logo_url.label("league_logo"),
            )
            .select_from(
                matches
                .outerjoin(home, matches.c.home_team_id == home.c.id)
                .outerjoin(away, matches.c.away_team_id == away.c.id)
                .outerjoin(leagues, matches.c.league_id == leagues.c.id)
            )
        )

    # ===== QUERIES =====

    def live(self) -> List[Record]:
        stmt = (
            self._detail_select()
            .where(matches.c.status == "live", matches.c.is_live.is_(True))
            .order_by(matches.c.match_date.asc())
        )
        return self._fetch(stmt)

    def upcoming(self, limit: int = 10) -> List[Record]:
        stmt = (
            self._detail_select()
            .where(matches.c.status == "scheduled", matches.c.match_date >= utcnow())
            .order_by(matches.c.match_date.asc())
            .limit(limit)
        )
        return self._fetch(stmt)

    def recent(self, limit: int = 10) -> List[Record]:
        stmt = (
            self._detail_select()
            .where(matches.c.status == "finished", matches.c.match_date <= utcnow())
            .order_by(*self.default_order())
            .limit(limit)
        )
        return self._fetch(stmt)

    def with_details(self, match_id: int) -> Optional[Record]:
        return self._fetch_one(self._detail_select().where(matches.c.id == match_id))

    def by_team(self, team_id: int, limit: int = 10) -> List[Record]:
        stmt = (
            self._detail_select()
            .where(or_(matches.c.home_team_id == team_id, matches.c.away_team_id == team_id))
            .order_by(*self.default_order())
            .limit(limit)
        )
        return self._fetch(stmt)

    def by_league(self, league_id: int, page: Any = 1, per_page: Optional[int] = None) -> PageResult:
        stmt = self._detail_select().where(matches.c.league_id == league_id)
        return self._paginate_select(stmt, page, per_page)

    def get_by_api_id(self, api_match_id: int) -> Optional[Record]:
        return self.find_by("api_match_id", api_match_id)

    # ===== LIVE DATA =====

    def update_live_score(self, match_id: int, home_score: int, away_score: int) -> bool:
        result = self.db.execute(
            matches.update()
            .where(matches.c.id == match_id)
            .values(home_score=home_score, away_score=away_score)
        )
        return result.rowcount > 0

    def statistics(self, match_id: int) -> Optional[Record]:
        """Possession plus the free-form statistics document, or None for an unknown match."""
        row = self.db.execute(
            select(
                matches.c.home_possession,
                matches.c.away_possession,
                matches.c.statistics,
            ).where(matches.c.id == match_id)
        ).first()
        if row is None:
            return None
        stats = dict(row["statistics"] or {})
        stats["home_possession"] = row["home_possession"]
        stats["away_possession"] = row["away_possession"]
        return stats

    def events(self, match_id: int) -> List[Record]:
        stmt = (
            select(
                match_events,
                players.c.name.label("player_name"),
                teams.c.name.label("team_name"),
            )
            .select_from(
                match_events
                .outerjoin(players, match_events.c.player_id == players.c.id)
                .outerjoin(teams, match_events.c.team_id == teams.c.id)
            )
            .where(match_events.c.match_id == match_id)
            .order_by(match_events.c.minute.asc(), match_events.c.id.asc())
        )
        return self._fetch(stmt)

    def add_event(self, match_id: int, event_type: str, minute: Optional[int] = None,
                  player_id: Optional[int] = None, team_id: Optional[int] = None,
                  detail: Optional[str] = None) -> int:
        result = self.db.execute(
            match_events.insert().values(
                match_id=match_id,
                event_type=event_type,
                minute=minute,
                player_id=player_id,
                team_id=team_id,
                detail=detail,
            )
        )
        return result.inserted_id
