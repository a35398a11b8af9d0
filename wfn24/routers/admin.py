"""
Admin CMS API (role 'admin' only).

Every resource gets list/detail/create/update/delete; responses use the
{success, data?, error?, message?} envelope.
"""
import logging
from typing import Optional, Type

from fastapi import APIRouter, Depends, Query

from wfn24.auth import require_admin
from wfn24.db import Database
from wfn24.deps import get_db, get_publisher
from wfn24.live import RelayPublisher, channel_for
from wfn24.records import (
    ArticleModel,
    CategoryModel,
    LeagueModel,
    MatchModel,
    PlayerModel,
    Record,
    RecordModel,
    TeamModel,
    UserModel,
)
from wfn24.responses import fail, not_found, ok
from wfn24.schemas import (
    ArticleCreate,
    ArticleUpdate,
    CategoryCreate,
    CategoryUpdate,
    InputModel,
    LeagueCreate,
    LeagueUpdate,
    MatchCreate,
    MatchUpdate,
    PlayerCreate,
    PlayerUpdate,
    ScoreUpdate,
    TeamCreate,
    TeamUpdate,
    UserCreate,
    UserStatusUpdate,
    UserUpdate,
)

logger = logging.getLogger("admin")

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ===== DASHBOARD =====

@router.get("/dashboard")
def dashboard(db: Database = Depends(get_db)):
    """Counts, latest articles and users, and matches in play."""
    matches = MatchModel(db)
    return ok({
        "stats": {
            "articles": ArticleModel(db).count(),
            "users": UserModel(db).count(),
            "matches": matches.count(),
            "teams": TeamModel(db).count(),
            "leagues": LeagueModel(db).count(),
            "players": PlayerModel(db).count(),
            "categories": CategoryModel(db).count(),
        },
        "recent_articles": ArticleModel(db).recent(5),
        "recent_users": UserModel(db).paginate(1, 5).items,
        "live_matches": matches.live(),
    })


# ===== GENERIC CRUD =====

def _register_crud(
    path: str,
    label: str,
    model_cls: Type[RecordModel],
    create_schema: Type[InputModel],
    update_schema: Type[InputModel],
    protect_own_account: bool = False,
) -> None:
    """Add list/detail/create/update/delete routes for one resource."""

    @router.get(f"/{path}", name=f"list_{path}")
    def list_records(
        page: int = Query(default=1, ge=1),
        per_page: Optional[int] = Query(default=None, ge=1),
        search: str = Query(default=""),
        db: Database = Depends(get_db),
    ):
        return ok(model_cls(db).search(search, page, per_page).to_dict())

    @router.get(f"/{path}/{{record_id}}", name=f"get_{path}")
    def get_record(record_id: int, db: Database = Depends(get_db)):
        record = _detail(model_cls(db), record_id)
        if record is None:
            return not_found(label)
        return ok(record)

    @router.post(f"/{path}", name=f"create_{path}")
    def create_record(body: create_schema, db: Database = Depends(get_db)):
        model = model_cls(db)
        record_id = model.create(body.to_fields())
        logger.info(f"Created {label} #{record_id}")
        return ok(_detail(model, record_id), message=f"{label} created", status_code=201)

    @router.put(f"/{path}/{{record_id}}", name=f"update_{path}")
    def update_record(
        record_id: int,
        body: update_schema,
        db: Database = Depends(get_db),
        admin: Record = Depends(require_admin),
    ):
        model = model_cls(db)
        if model.find(record_id) is None:
            return not_found(label)
        fields = body.to_fields()
        if protect_own_account and record_id == admin["id"]:
            error = _own_account_error(fields)
            if error:
                return fail(error)
        changed = model.update(record_id, fields)
        message = f"{label} updated" if changed else "No changes"
        return ok(_detail(model, record_id), message=message)

    @router.delete(f"/{path}/{{record_id}}", name=f"delete_{path}")
    def delete_record(
        record_id: int,
        db: Database = Depends(get_db),
        admin: Record = Depends(require_admin),
    ):
        if protect_own_account and record_id == admin["id"]:
            return fail("You cannot delete your own account")
        if not model_cls(db).delete(record_id):
            return not_found(label)
        logger.info(f"Deleted {label} #{record_id}")
        return ok(message=f"{label} deleted")


def _own_account_error(fields: dict) -> Optional[str]:
    """Changes an admin may not make to their own account."""
    if "is_active" in fields and not fields["is_active"]:
        return "You cannot deactivate your own account"
    if "role" in fields and fields["role"] != "admin":
        return "You cannot remove your own admin role"
    return None


def _detail(model: RecordModel, record_id: int) -> Optional[Record]:
    """Joined detail view where the entity has one."""
    with_details = getattr(model, "with_details", None)
    if with_details is not None:
        return with_details(record_id)
    return model.find(record_id)


_register_crud("articles", "Article", ArticleModel, ArticleCreate, ArticleUpdate)
_register_crud("categories", "Category", CategoryModel, CategoryCreate, CategoryUpdate)
_register_crud("leagues", "League", LeagueModel, LeagueCreate, LeagueUpdate)
_register_crud("teams", "Team", TeamModel, TeamCreate, TeamUpdate)
_register_crud("players", "Player", PlayerModel, PlayerCreate, PlayerUpdate)
_register_crud("matches", "Match", MatchModel, MatchCreate, MatchUpdate)
_register_crud("users", "User", UserModel, UserCreate, UserUpdate, protect_own_account=True)


# ===== USERS =====

@router.patch("/users/{user_id}/status")
def set_user_status(
    user_id: int,
    body: UserStatusUpdate,
    db: Database = Depends(get_db),
    admin: Record = Depends(require_admin),
):
    """Activate or deactivate an account."""
    users = UserModel(db)
    if users.find(user_id) is None:
        return not_found("User")
    if user_id == admin["id"] and not body.is_active:
        return fail("You cannot deactivate your own account")

    users.set_active(user_id, body.is_active)
    state = "activated" if body.is_active else "deactivated"
    logger.info(f"Admin #{admin['id']} {state} user #{user_id}")
    return ok(users.find(user_id), message=f"User {state}")


# ===== LIVE SCORES =====

@router.post("/matches/{match_id}/score")
def update_score(
    match_id: int,
    body: ScoreUpdate,
    db: Database = Depends(get_db),
    publisher: RelayPublisher = Depends(get_publisher),
):
    """Record a score change and push it to relay subscribers."""
    matches = MatchModel(db)
    if matches.find(match_id) is None:
        return not_found("Match")

    with db.transaction() as tx:
        in_tx = MatchModel(tx)
        in_tx.update_live_score(match_id, body.home_score, body.away_score)
        if body.status:
            in_tx.update(match_id, {"status": body.status})

    match = matches.with_details(match_id)
    event = {
        "type": "score_update",
        "match_id": match_id,
        "home_score": match["home_score"],
        "away_score": match["away_score"],
        "status": match["status"],
        "minute": body.minute,
    }
    published = publisher.publish(channel_for("match", match_id), event)
    if match.get("league_id"):
        publisher.publish(channel_for("league", match["league_id"]), event)

    return ok(match, message="Score updated" if published else "Score updated (relay offline)")
