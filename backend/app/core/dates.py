"""Calendar helpers: every per-day query keys on the configured timezone's date."""
from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from app.core.config import settings


def today() -> date:
    return datetime.now(ZoneInfo(settings.timezone)).date()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
