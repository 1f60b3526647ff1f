"""Preferences ORM model (one row per user)."""
from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from app.db.base import Base

PEAK_FOCUS_VALUES = ("morning", "afternoon", "evening")
COMMUTE_MODES = ("none", "walk", "bike", "public", "car")


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class Preferences(Base):
    __tablename__ = "preferences"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_preferences_user_id"),
        CheckConstraint(_in_list("peak_focus", PEAK_FOCUS_VALUES), name="ck_preferences_peak_focus"),
        CheckConstraint(_in_list("commute_mode", COMMUTE_MODES), name="ck_preferences_commute_mode"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    wake_time = Column(String(length=5), nullable=False)
    sleep_time = Column(String(length=5), nullable=False)
    peak_focus = Column(String(length=20), nullable=False)
    city = Column(Text, nullable=False)
    break_style = Column(Text, nullable=False)
    break_interval_minutes = Column(Integer, nullable=False)
    max_work_hours = Column(Float, nullable=False)
    commute_mode = Column(String(length=20), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
