"""Daily plan generation: stored inputs + live context -> model completion -> stored plan."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.dates import today
from app.core.errors import (
    DayPlannerError,
    PlanGenerationError,
    PlanPrerequisiteError,
)
from app.db.models.plan import Plan
from app.db.models.task import Task
from app.db.upsert import dialect_insert
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.ai_response_parser import parse_ai_response_with_stage
from app.services.apod import ApodEntry, fetch_apod
from app.services.completion_client import request_completion
from app.services.preferences_service import get_preferences, preferences_to_dict
from app.services.prompt_builder import build_plan_prompt
from app.services.user_service import ensure_user
from app.services.weather import FALLBACK_WEATHER, WeatherReport, fetch_weather

logger = logging.getLogger(__name__)

MISSING_PREFERENCES = "User preferences not found. Please set up your preferences first."
MISSING_TASKS = "No tasks found for today. Please add some tasks first."


@dataclass
class GeneratedPlan:
    plan: Dict[str, Any]
    weather: WeatherReport
    apod: Optional[ApodEntry]
    repair_stage: int
    persisted: bool


def list_tasks_for_day(db: Session, user_id: str, day: date) -> List[Task]:
    return list(
        db.execute(
            select(Task).where(Task.user_id == user_id, Task.task_date == day).order_by(Task.id)
        ).scalars()
    )


def load_plan(db: Session, user_id: str, day: date) -> Optional[Dict[str, Any]]:
    return db.execute(
        select(Plan.plan_json).where(Plan.user_id == user_id, Plan.plan_date == day)
    ).scalar_one_or_none()


def _load_planning_inputs(db: Session, user_id: str, day: date) -> Tuple[Optional[Dict[str, Any]], List[Task]]:
    ensure_user(db, user_id)
    db.commit()
    preferences = get_preferences(db, user_id)
    tasks = list_tasks_for_day(db, user_id, day)
    return (preferences_to_dict(preferences) if preferences else None), tasks


def _save_plan(db: Session, user_id: str, day: date, plan: Dict[str, Any]) -> bool:
    try:
        stmt = dialect_insert(db, Plan).values(user_id=user_id, plan_date=day, plan_json=plan)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Plan.user_id, Plan.plan_date],
            set_={"plan_json": stmt.excluded.plan_json, "updated_at": func.now()},
        )
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to save plan for %s", day.isoformat())
        return False
    return True


async def _weather_or_fallback(city: Optional[str]) -> WeatherReport:
    if not city:
        return FALLBACK_WEATHER
    try:
        return await fetch_weather(city)
    except DayPlannerError as exc:
        logger.warning("Weather lookup failed, using fallback: %s", exc)
        return FALLBACK_WEATHER


async def _apod_or_none() -> Optional[ApodEntry]:
    try:
        return await fetch_apod()
    except DayPlannerError as exc:
        logger.warning("APOD lookup failed, continuing without it: %s", exc)
        return None


async def generate_daily_plan(db: Session, user_id: str) -> GeneratedPlan:
    """
    Generate, persist and return today's plan for ``user_id``.

    Raises PlanPrerequisiteError before any external call when preferences or tasks
    are missing, and PlanGenerationError when the model call or parsing fails. Weather
    and APOD failures degrade to fallbacks; a failed save is logged and ignored.
    """
    plan_date = today()
    preferences, tasks = await run_in_threadpool(_load_planning_inputs, db, user_id, plan_date)

    if preferences is None:
        raise PlanPrerequisiteError(MISSING_PREFERENCES)
    if not tasks:
        raise PlanPrerequisiteError(MISSING_TASKS)

    weather, apod = await asyncio.gather(_weather_or_fallback(preferences.get("city")), _apod_or_none())

    with trace("plan.generate", metadata={"task_count": len(tasks), "plan_date": plan_date.isoformat()}):
        try:
            prompt = build_plan_prompt(preferences, tasks, weather)
            raw_content = await request_completion(prompt)
            plan, stage = parse_ai_response_with_stage(raw_content)
        # ValueError covers an empty task list and UnrecoverableAIResponseError.
        except (DayPlannerError, ValueError) as exc:
            log_metric("plan.generate.failure", 1, metadata={"error": type(exc).__name__})
            raise PlanGenerationError(f"Failed to generate plan: {exc}") from exc

    log_metric("plan.generate.repair_stage", stage)
    persisted = await run_in_threadpool(_save_plan, db, user_id, plan_date, plan)
    log_metric("plan.persist.success", 1 if persisted else 0)

    return GeneratedPlan(plan=plan, weather=weather, apod=apod, repair_stage=stage, persisted=persisted)
