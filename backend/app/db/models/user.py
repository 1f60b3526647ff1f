"""User ORM model."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Text, func

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    # Subject claim of the identity provider's session token.
    id = Column(Text, primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
