"""Read and upsert the single preferences row owned by a user."""
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.schemas.preferences import PreferencesPayload
from app.db.models.preferences import Preferences
from app.db.upsert import dialect_insert

PREFERENCE_COLUMNS = (
    "wake_time",
    "sleep_time",
    "peak_focus",
    "city",
    "break_style",
    "break_interval_minutes",
    "max_work_hours",
    "commute_mode",
)


def get_preferences(db: Session, user_id: str) -> Optional[Preferences]:
    return db.execute(select(Preferences).where(Preferences.user_id == user_id)).scalar_one_or_none()


def preferences_to_dict(preferences: Preferences) -> Dict[str, Any]:
    return {column: getattr(preferences, column) for column in PREFERENCE_COLUMNS}


def to_payload(preferences: Preferences) -> PreferencesPayload:
    return PreferencesPayload(
        wake_time=preferences.wake_time,
        sleep_time=preferences.sleep_time,
        peak_focus=preferences.peak_focus,
        city=preferences.city,
        break_style=preferences.break_style,
        break_interval=preferences.break_interval_minutes,
        max_work_hours=preferences.max_work_hours,
        commute_mode=preferences.commute_mode,
    )


def upsert_preferences(db: Session, user_id: str, payload: PreferencesPayload) -> None:
    """Insert or replace every preference field for ``user_id`` in one statement."""
    values = {
        "wake_time": payload.wake_time,
        "sleep_time": payload.sleep_time,
        "peak_focus": payload.peak_focus,
        "city": payload.city,
        "break_style": payload.break_style,
        "break_interval_minutes": payload.break_interval,
        "max_work_hours": payload.max_work_hours,
        "commute_mode": payload.commute_mode,
    }
    stmt = dialect_insert(db, Preferences).values(user_id=user_id, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Preferences.user_id],
        set_={**{column: stmt.excluded[column] for column in values}, "updated_at": func.now()},
    )
    db.execute(stmt)
