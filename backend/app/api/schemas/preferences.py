"""Schemas for user scheduling preferences (camelCase on the wire)."""
from __future__ import annotations

import math
import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from app.api.schemas.common import positive_whole_number
from app.db.models.preferences import COMMUTE_MODES, PEAK_FOCUS_VALUES

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

PeakFocus = Literal["morning", "afternoon", "evening"]
CommuteMode = Literal["none", "walk", "bike", "public", "car"]


class PreferencesPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    wake_time: str = Field(..., alias="wakeTime")
    sleep_time: str = Field(..., alias="sleepTime")
    peak_focus: PeakFocus = Field(..., alias="peakFocus")
    city: str
    break_style: str = Field(..., alias="breakStyle")
    break_interval: int = Field(..., alias="breakInterval")
    max_work_hours: float = Field(..., alias="maxWorkHours")
    commute_mode: CommuteMode = Field(..., alias="commuteMode")

    @field_validator("wake_time", "sleep_time")
    @classmethod
    def _clock_time(cls, value: str, info: ValidationInfo) -> str:
        if not TIME_PATTERN.match(value):
            label = "Wake time" if info.field_name == "wake_time" else "Sleep time"
            raise ValueError(f"{label} must be in HH:MM format")
        return value

    @field_validator("peak_focus", mode="before")
    @classmethod
    def _known_peak_focus(cls, value: Any) -> Any:
        if value not in PEAK_FOCUS_VALUES:
            raise ValueError(f"Invalid peak focus. Must be one of: {', '.join(PEAK_FOCUS_VALUES)}")
        return value

    @field_validator("commute_mode", mode="before")
    @classmethod
    def _known_commute_mode(cls, value: Any) -> Any:
        if value not in COMMUTE_MODES:
            raise ValueError(f"Invalid commute mode. Must be one of: {', '.join(COMMUTE_MODES)}")
        return value

    @field_validator("city", "break_style")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("must not be empty")
        return trimmed

    @field_validator("break_interval", mode="before")
    @classmethod
    def _break_interval_positive(cls, value: Any) -> int:
        return positive_whole_number(value, "Break interval must be a positive number")

    @field_validator("max_work_hours", mode="before")
    @classmethod
    def _work_hours_in_day(cls, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError("Max work hours must be a number")
        if not 0 < value <= 24:
            raise ValueError("Max work hours must be greater than 0 and at most 24")
        return float(value)


class PreferencesResponse(BaseModel):
    preferences: Optional[PreferencesPayload]
    message: Optional[str] = None
