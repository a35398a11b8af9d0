"""Teams."""
from typing import Any, List, Optional

from sqlalchemy import select

from wfn24.models import League, Team
from wfn24.records.base import Record, RecordModel, RecordSchema

teams = Team.__table__
leagues = League.__table__


class TeamModel(RecordModel):
    schema = RecordSchema(
        table=teams,
        writable_fields=(
            "api_team_id", "name", "short_name", "country", "founded_year",
            "logo_url", "stadium", "capacity", "league_id", "is_active",
        ),
        searchable_fields=("name", "short_name", "country"),
    )

    def default_order(self) -> List[Any]:
        return [teams.c.name.asc(), teams.c.id.asc()]

    def active(self) -> List[Record]:
        return self._fetch(select(teams).where(teams.c.is_active.is_(True)).order_by(teams.c.name))

    def by_league(self, league_id: int) -> List[Record]:
        stmt = (
            select(teams)
            .where(teams.c.league_id == league_id, teams.c.is_active.is_(True))
            .order_by(teams.c.name)
        )
        return self._fetch(stmt)

    def with_details(self, team_id: int) -> Optional[Record]:
        stmt = (
            select(
                teams,
                leagues.c.name.label("league_name"),
                leagues.c.country.label("league_country"),
            )
            .select_from(teams.outerjoin(leagues, teams.c.league_id == leagues.c.id))
            .where(teams.c.id == team_id)
        )
        return self._fetch_one(stmt)

    def get_by_api_id(self, api_team_id: int) -> Optional[Record]:
        return self.find_by("api_team_id", api_team_id)
