"""Task API routes (today's tasks for the authenticated user)."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.schemas.common import OkResponse
from app.api.schemas.task import TaskCreateRequest, TaskItem, TaskListResponse
from app.core.auth import get_current_user_id
from app.core.dates import today
from app.core.errors import db_error_detail
from app.db.deps import get_db
from app.db.models.task import Task
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.user_service import ensure_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/tasks", response_model=OkResponse, tags=["tasks"])
def create_task(
    payload: TaskCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> OkResponse:
    """Add a task to today's list."""
    with trace("task.create", metadata={"route": "/api/tasks", "duration": payload.duration}):
        try:
            ensure_user(db, user_id)
            db.add(
                Task(
                    user_id=user_id,
                    title=payload.title,
                    duration_minutes=payload.duration,
                    importance=payload.importance,
                    task_date=today(),
                )
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Database error creating task")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=db_error_detail("Failed to create task", exc),
            ) from exc

    log_metric("task.create.success", 1)
    return OkResponse(message="Task created successfully")


@router.get("/tasks", response_model=TaskListResponse, tags=["tasks"])
def list_tasks(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TaskListResponse:
    """List today's tasks, newest first."""
    with trace("task.list", metadata={"route": "/api/tasks"}):
        try:
            tasks = db.execute(
                select(Task)
                .where(Task.user_id == user_id, Task.task_date == today())
                .order_by(Task.id.desc())
            ).scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Database error listing tasks")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=db_error_detail("Failed to retrieve tasks", exc),
            ) from exc

    log_metric("task.list.count", len(tasks))
    return TaskListResponse(tasks=[_serialize_task(task) for task in tasks])


@router.delete("/tasks/{task_id}", response_model=OkResponse, tags=["tasks"])
def delete_task(
    task_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> OkResponse:
    """Delete one of the caller's tasks; other users' tasks are reported as missing."""
    with trace("task.delete", metadata={"route": "/api/tasks/{task_id}", "task_id": task_id}):
        try:
            ensure_user(db, user_id)
            result = db.execute(delete(Task).where(Task.id == task_id, Task.user_id == user_id))
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Database error deleting task %s", task_id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=db_error_detail("Failed to delete task", exc),
            ) from exc

    if result.rowcount == 0:
        log_metric("task.delete.not_found", 1)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found or not authorized to delete",
        )

    log_metric("task.delete.success", 1)
    return OkResponse(message="Task deleted successfully")


def _serialize_task(task: Task) -> TaskItem:
    return TaskItem(
        id=str(task.id),
        title=task.title,
        duration=task.duration_minutes,
        importance=task.importance,
    )
