"""NASA Astronomy Picture of the Day client."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings
from app.core.errors import ApodServiceError, ProviderConfigurationError


class ApodEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    date: Optional[str] = None
    media_type: Optional[str] = Field(default=None, alias="mediaType")

    @classmethod
    def from_nasa(cls, data: Dict[str, Any]) -> "ApodEntry":
        return cls(
            title=data.get("title"),
            description=data.get("explanation"),
            image_url=data.get("url"),
            date=data.get("date"),
            media_type=data.get("media_type"),
        )


async def fetch_apod(*, client: Optional[httpx.AsyncClient] = None) -> ApodEntry:
    if not settings.nasa_key:
        raise ProviderConfigurationError("NASA_KEY is not configured")

    params = {"api_key": settings.nasa_key}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as owned_client:
                response = await owned_client.get(settings.nasa_apod_url, params=params)
        else:
            response = await client.get(settings.nasa_apod_url, params=params)
    except httpx.HTTPError as exc:
        raise ApodServiceError(f"NASA APOD request failed: {exc}") from exc

    if response.status_code != 200:
        raise ApodServiceError(f"NASA APOD API error: {response.status_code}")

    try:
        payload = response.json()
    except ValueError as exc:
        raise ApodServiceError("NASA APOD returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise ApodServiceError("NASA APOD returned an unexpected payload")

    try:
        return ApodEntry.from_nasa(payload)
    except (ValueError, TypeError, AttributeError) as exc:
        raise ApodServiceError(f"NASA APOD returned an unexpected payload: {exc}") from exc
