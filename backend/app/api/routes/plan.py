"""Daily plan API routes."""
from __future__ import annotations

import logging
from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.schemas.plan import GeneratedPlanResponse, PlanResponse, WeatherSummary
from app.core.auth import get_current_user_id
from app.core.dates import today
from app.core.errors import db_error_detail
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.daily_planner import generate_daily_plan, load_plan

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/plan", response_model=GeneratedPlanResponse, tags=["plan"])
async def create_plan(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> GeneratedPlanResponse:
    """Generate today's plan from stored preferences, tasks and live weather."""
    start = perf_counter()
    with trace("plan.create", metadata={"route": "/api/plan"}):
        result = await generate_daily_plan(db, user_id)

    log_metric("plan.create.latency_ms", (perf_counter() - start) * 1000)
    schedule = result.plan.get("schedule")
    log_metric("plan.create.items", len(schedule) if isinstance(schedule, list) else 0)
    return GeneratedPlanResponse(
        plan=result.plan,
        apod=result.apod,
        weather=WeatherSummary(**result.weather.to_summary()),
    )


@router.get("/plan", response_model=PlanResponse, tags=["plan"])
def read_plan(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> PlanResponse:
    """Return the stored plan for today, if one was generated."""
    with trace("plan.get", metadata={"route": "/api/plan"}):
        try:
            plan = load_plan(db, user_id, today())
        except SQLAlchemyError as exc:
            logger.exception("Database error reading plan")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=db_error_detail("Failed to retrieve plan", exc),
            ) from exc

    if plan is None:
        return PlanResponse(plan=None, message="No plan found for today")
    return PlanResponse(plan=plan)
