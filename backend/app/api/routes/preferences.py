"""Preferences API routes."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.schemas.common import OkResponse
from app.api.schemas.preferences import PreferencesPayload, PreferencesResponse
from app.core.auth import get_current_user_id
from app.core.errors import db_error_detail
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.preferences_service import get_preferences, to_payload, upsert_preferences
from app.services.user_service import ensure_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/preferences", response_model=OkResponse, tags=["preferences"])
def save_preferences(
    payload: PreferencesPayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> OkResponse:
    """Create or replace the caller's preferences."""
    metadata = {
        "route": "/api/preferences",
        "peak_focus": payload.peak_focus,
        "commute_mode": payload.commute_mode,
    }
    with trace("preferences.save", metadata=metadata):
        try:
            ensure_user(db, user_id)
            upsert_preferences(db, user_id, payload)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Database error saving preferences")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=db_error_detail("Failed to save preferences", exc),
            ) from exc

    log_metric("preferences.save.success", 1)
    return OkResponse(message="Preferences saved successfully")


@router.get("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def read_preferences(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> PreferencesResponse:
    with trace("preferences.get", metadata={"route": "/api/preferences"}):
        try:
            preferences = get_preferences(db, user_id)
        except SQLAlchemyError as exc:
            logger.exception("Database error reading preferences")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=db_error_detail("Failed to retrieve preferences", exc),
            ) from exc

    if preferences is None:
        return PreferencesResponse(preferences=None, message="No preferences found")
    return PreferencesResponse(preferences=to_payload(preferences))
