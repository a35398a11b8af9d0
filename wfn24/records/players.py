"""Players."""
from typing import Any, List, Optional

from sqlalchemy import select

from wfn24.models import Player, Team
from wfn24.records.base import Record, RecordModel, RecordSchema

players = Player.__table__
teams = Team.__table__


class PlayerModel(RecordModel):
    schema = RecordSchema(
        table=players,
        writable_fields=(
            "api_player_id", "name", "first_name", "last_name", "age", "nationality",
            "position", "height", "weight", "photo_url", "team_id", "jersey_number",
            "is_active",
        ),
        searchable_fields=("name", "first_name", "last_name", "nationality"),
    )

    def default_order(self) -> List[Any]:
        return [players.c.name.asc(), players.c.id.asc()]

    def _with_team(self, *extra_columns):
        return select(
            players,
            teams.c.name.label("team_name"),
            teams.c.logo_url.label("team_logo"),
            *extra_columns,
        ).select_from(players.outerjoin(teams, players.c.team_id == teams.c.id))

    def active(self) -> List[Record]:
        stmt = self._with_team().where(players.c.is_active.is_(True)).order_by(players.c.name)
        return self._fetch(stmt)

    def by_team(self, team_id: int) -> List[Record]:
        stmt = (
            self._with_team()
            .where(players.c.team_id == team_id, players.c.is_active.is_(True))
            .order_by(players.c.position, players.c.jersey_number)
        )
        return self._fetch(stmt)

    def by_position(self, position: str) -> List[Record]:
        stmt = (
            self._with_team()
            .where(players.c.position == position, players.c.is_active.is_(True))
            .order_by(players.c.name)
        )
        return self._fetch(stmt)

    def by_nationality(self, nationality: str) -> List[Record]:
        stmt = (
            self._with_team()
            .where(players.c.nationality == nationality, players.c.is_active.is_(True))
            .order_by(players.c.name)
        )
        return self._fetch(stmt)

    def with_details(self, player_id: int) -> Optional[Record]:
        stmt = self._with_team(teams.c.stadium.label("team_stadium")).where(players.c.id == player_id)
        return self._fetch_one(stmt)

    def get_by_api_id(self, api_player_id: int) -> Optional[Record]:
        return self.find_by("api_player_id", api_player_id)
