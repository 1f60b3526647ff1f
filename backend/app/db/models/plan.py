"""Daily plan ORM model (one row per user and day)."""
from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Text, UniqueConstraint, func

from app.db.base import Base
from app.db.types import PortableJSON


class Plan(Base):
    __tablename__ = "plans"
    __table_args__ = (UniqueConstraint("user_id", "plan_date", name="uq_plans_user_id_plan_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plan_date = Column(Date, nullable=False)
    plan_json = Column(PortableJSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
