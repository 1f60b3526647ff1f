"""Weather and astronomy-picture API routes."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.api.schemas.plan import WeatherSummary
from app.core.auth import get_current_user_id
from app.core.errors import DayPlannerError, db_error_detail
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.apod import ApodEntry, fetch_apod
from app.services.preferences_service import get_preferences
from app.services.weather import fetch_weather

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/weather", response_model=WeatherSummary, tags=["weather"])
async def read_weather(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> WeatherSummary:
    """Current weather for the city stored in the caller's preferences."""
    try:
        preferences = await run_in_threadpool(get_preferences, db, user_id)
    except SQLAlchemyError as exc:
        logger.exception("Database error looking up city")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=db_error_detail("Failed to get weather", exc),
        ) from exc

    if preferences is None or not preferences.city:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="City not found in user preferences. Please set up your preferences first.",
        )

    with trace("weather.get", metadata={"route": "/api/weather"}):
        try:
            report = await fetch_weather(preferences.city)
        except DayPlannerError as exc:
            log_metric("weather.get.failure", 1)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to fetch weather data: {exc}",
            ) from exc

    log_metric("weather.get.success", 1)
    return WeatherSummary(**report.to_summary())


@router.get("/apod", response_model=ApodEntry, tags=["apod"])
async def read_apod() -> ApodEntry:
    """NASA's astronomy picture of the day. No authentication required."""
    with trace("apod.get", metadata={"route": "/api/apod"}):
        try:
            entry = await fetch_apod()
        except DayPlannerError as exc:
            log_metric("apod.get.failure", 1)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to fetch NASA APOD data: {exc}",
            ) from exc

    log_metric("apod.get.success", 1)
    return entry
