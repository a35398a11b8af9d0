"""
Users and credentials.

Passwords arrive as `password` and are stored only as a bcrypt hash in
`password_hash`, which never leaves the model.
"""
import logging
from typing import Any, List, Optional

import bcrypt
from sqlalchemy import select

from config.settings import settings
from wfn24.models import USER_ROLES, User
from wfn24.records.base import Record, RecordModel, RecordSchema
from wfn24.utils.helpers import utcnow

logger = logging.getLogger("records.users")

users = User.__table__


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the table
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


class UserModel(RecordModel):
    schema = RecordSchema(
        table=users,
        writable_fields=(
            "username", "email", "password_hash", "first_name", "last_name", "role",
            "avatar_url", "bio", "preferences", "email_verified", "last_login", "is_active",
        ),
        sensitive_fields=frozenset({"password_hash"}),
        searchable_fields=("username", "email", "first_name", "last_name"),
    )

    def _prepare(self, fields: Record) -> Record:
        password = fields.pop("password", None)
        if password:
            fields["password_hash"] = hash_password(password)
        role = fields.get("role")
        if role is not None and role not in USER_ROLES:
            raise ValueError(f"Invalid role '{role}'")
        if fields.get("email"):
            fields["email"] = str(fields["email"]).strip().lower()
        return fields

    def before_create(self, fields: Record) -> Record:
        fields = self._prepare(fields)
        fields.setdefault("role", "user")
        fields.setdefault("is_active", True)
        return fields

    def before_update(self, record_id: Any, fields: Record) -> Record:
        return self._prepare(fields)

    def authenticate(self, email: str, password: str) -> Optional[Record]:
        """
        Check credentials.

        Returns:
            The user record (without password_hash) on success, None for an
            unknown email, wrong password or inactive account
        """
        row = self.db.execute(
            select(users).where(users.c.email == email.strip().lower()).limit(1)
        ).first()
        if row is None or not verify_password(password, row["password_hash"]):
            return None
        if not row["is_active"]:
            logger.info(f"Rejected login for inactive user #{row['id']}")
            return None

        self.update_last_login(row["id"])
        return self.find(row["id"])

    def update_last_login(self, user_id: int) -> bool:
        return self.update(user_id, {"last_login": utcnow()})

    def get_by_email(self, email: str) -> Optional[Record]:
        return self.find_by("email", email.strip().lower())

    def admins(self) -> List[Record]:
        stmt = select(users).where(users.c.role == "admin").order_by(users.c.created_at.desc())
        return self._fetch(stmt)

    def active(self) -> List[Record]:
        stmt = select(users).where(users.c.is_active.is_(True)).order_by(users.c.created_at.desc())
        return self._fetch(stmt)

    def set_active(self, user_id: int, is_active: bool) -> bool:
        return self.update(user_id, {"is_active": is_active})

    def change_password(self, user_id: int, current_password: str, new_password: str) -> bool:
        """
        Replace the password after checking the current one.

        Returns:
            False when the user is unknown or current_password does not match
        """
        row = self.db.execute(
            select(users.c.password_hash).where(users.c.id == user_id).limit(1)
        ).first()
        if row is None or not verify_password(current_password, row["password_hash"]):
            return False
        return self.update(user_id, {"password": new_password})
