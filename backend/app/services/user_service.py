"""Helpers for working with users."""
from __future__ import annotations

from sqlalchemy.orm import Session

from app.db.models.user import User
from app.db.upsert import dialect_insert


def ensure_user(db: Session, user_id: str) -> None:
    """Insert the user row if it does not exist yet; safe under concurrent callers."""
    stmt = dialect_insert(db, User).values(id=user_id).on_conflict_do_nothing(index_elements=[User.id])
    db.execute(stmt)
    db.flush()
