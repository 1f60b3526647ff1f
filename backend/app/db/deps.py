"""FastAPI dependencies for database access."""
from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from app.db.session import SessionLocal


def get_db() -> Iterator[Session]:
    """Open one session per request and always close it, whatever the handler did."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
