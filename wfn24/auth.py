"""
Authentication dependencies and the sign-up / profile endpoints.

Credentials travel as HTTP Basic (email + password) and are checked against
the users table on every request.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from wfn24.db import Database
from wfn24.deps import get_db
from wfn24.records import Record, UserModel
from wfn24.responses import fail, ok
from wfn24.schemas import PasswordChange, ProfileUpdate, RegisterRequest

logger = logging.getLogger("auth")

security = HTTPBasic(auto_error=False)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_current_user(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
    db: Database = Depends(get_db),
) -> Optional[Record]:
    """The authenticated user, or None for anonymous/invalid credentials."""
    if credentials is None:
        return None
    return UserModel(db).authenticate(credentials.username, credentials.password)


def require_user(user: Optional[Record] = Depends(get_current_user)) -> Record:
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Basic"},
        )
    return user


def require_admin(user: Record = Depends(require_user)) -> Record:
    if user.get("role") != "admin":
        logger.warning(f"User #{user['id']} denied admin access")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


@router.post("/register")
def register(body: RegisterRequest, db: Database = Depends(get_db)):
    """Create a reader account (role 'user')."""
    users = UserModel(db)
    if users.get_by_email(body.email):
        return fail("Email is already registered", status_code=409)
    if users.find_by("username", body.username):
        return fail("Username is already taken", status_code=409)

    fields = body.to_fields()
    fields["role"] = "user"
    user_id = users.create(fields)
    return ok(users.find(user_id), message="Account created", status_code=201)


@router.get("/me")
def me(user: Record = Depends(require_user)):
    return ok(user)


@router.put("/me")
def update_profile(
    body: ProfileUpdate,
    user: Record = Depends(require_user),
    db: Database = Depends(get_db),
):
    users = UserModel(db)
    changed = users.update(user["id"], body.to_fields())
    return ok(users.find(user["id"]), message="Profile updated" if changed else "No changes")


@router.post("/password")
def change_password(
    body: PasswordChange,
    user: Record = Depends(require_user),
    db: Database = Depends(get_db),
):
    """Set a new password; the current one must be supplied."""
    if not UserModel(db).change_password(user["id"], body.current_password, body.new_password):
        return fail("Current password is incorrect")
    logger.info(f"User #{user['id']} changed their password")
    return ok(message="Password changed")
