"""Schemas for task creation and listing."""
from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, field_validator

from app.api.schemas.common import positive_whole_number


class TaskCreateRequest(BaseModel):
    title: str
    duration: int
    importance: str

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Title is required and must be a non-empty string")
        return trimmed

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_positive(cls, value: Any) -> int:
        return positive_whole_number(value, "Duration is required and must be a positive number of minutes")

    @field_validator("importance")
    @classmethod
    def _importance_present(cls, value: str) -> str:
        if not value:
            raise ValueError("Importance is required and must be a string")
        return value


class TaskItem(BaseModel):
    id: str
    title: str
    duration: int
    importance: str


class TaskListResponse(BaseModel):
    tasks: List[TaskItem]
