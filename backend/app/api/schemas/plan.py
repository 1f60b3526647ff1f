"""Schemas for daily plans and weather payloads."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.apod import ApodEntry


class WeatherSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: Optional[str] = None
    condition: str
    location: Optional[str] = None
    icon: Optional[str] = None
    humidity: Optional[float] = None
    wind_speed: float = Field(default=0, alias="windSpeed")


class PlanResponse(BaseModel):
    # Stored payload is returned as-is: {"schedule": [{time, activity, duration, type}], "summary": ...}
    plan: Optional[Dict[str, Any]]
    message: Optional[str] = None


class GeneratedPlanResponse(BaseModel):
    plan: Dict[str, Any]
    apod: Optional[ApodEntry]
    weather: WeatherSummary
