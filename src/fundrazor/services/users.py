from __future__ import annotations

from uuid import uuid4

import structlog

from fundrazor.domain import rules
from fundrazor.domain.models import User
from fundrazor.domain.stages import UserRole
from fundrazor.services.utils import utc_now_iso
from fundrazor.store.sqlite import SqliteStore

logger = structlog.get_logger(__name__)


def add_user(
    store: SqliteStore,
    email: str | None,
    first_name: str | None,
    last_name: str | None,
    role: str = UserRole.MGO.value,
) -> User:
    rules.validate_enum(role, [r.value for r in UserRole], "role")
    rules.validate_email(email)

    now = utc_now_iso()
    user_id = str(uuid4())
    with store.session() as session:
        if email and session.fetch_one("SELECT user_id FROM users WHERE email = ?", (email,)):
            raise rules.ValidationError(f"A user with email {email} already exists.")
        session.insert(
            "users",
            {
                "user_id": user_id,
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "role": role,
                "created_at": now,
                "updated_at": now,
            },
        )
    logger.info("user_created", user_id=user_id, role=role)
    return get_user(store, user_id)


def get_user(store: SqliteStore, user_id: str) -> User:
    row = store.fetch_one("SELECT * FROM users WHERE user_id = ?", (user_id,))
    if row is None:
        raise rules.NotFoundError("User", user_id)
    return User.from_row(row)


def list_users(store: SqliteStore, role: str | None = None) -> list[User]:
    if role:
        rules.validate_enum(role, [r.value for r in UserRole], "role")
        rows = store.fetch_all(
            "SELECT * FROM users WHERE role = ? ORDER BY created_at, rowid", (role,)
        )
    else:
        rows = store.fetch_all("SELECT * FROM users ORDER BY created_at, rowid")
    return [User.from_row(row) for row in rows]
