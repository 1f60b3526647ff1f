"""Current-weather lookups against OpenWeather."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.errors import ProviderConfigurationError, WeatherServiceError


@dataclass(frozen=True)
class WeatherReport:
    description: str
    temperature_c: Optional[float]
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    icon: Optional[str] = None
    city_name: Optional[str] = None
    country: Optional[str] = None

    @staticmethod
    def from_openweather(data: Dict[str, Any]) -> "WeatherReport":
        conditions = data.get("weather") or [{}]
        main = data.get("main") or {}
        wind = data.get("wind") or {}
        return WeatherReport(
            description=str(conditions[0].get("description") or "unknown"),
            temperature_c=_optional_number(main.get("temp")),
            humidity=_optional_number(main.get("humidity")),
            wind_speed=_optional_number(wind.get("speed")),
            icon=conditions[0].get("icon"),
            city_name=data.get("name"),
            country=(data.get("sys") or {}).get("country"),
        )

    def to_summary(self) -> Dict[str, Any]:
        """Shape returned by the weather endpoint and embedded in generated plans."""
        location = ", ".join(part for part in (self.city_name, self.country) if part) or None
        return {
            "temperature": f"{round(self.temperature_c)}°C" if self.temperature_c is not None else None,
            "condition": self.description,
            "location": location,
            "icon": self.icon,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed or 0,
        }


# Substituted whenever the city is unknown or the provider fails during planning.
FALLBACK_WEATHER = WeatherReport(description="unknown", temperature_c=20.0)


def _optional_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


async def fetch_weather(city: str, *, client: Optional[httpx.AsyncClient] = None) -> WeatherReport:
    """Fetch current conditions for ``city`` in metric units."""
    if not settings.openweather_key:
        raise ProviderConfigurationError("OPENWEATHER_KEY is not configured")

    params = {"q": city, "units": "metric", "appid": settings.openweather_key}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as owned_client:
                response = await owned_client.get(settings.openweather_url, params=params)
        else:
            response = await client.get(settings.openweather_url, params=params)
    except httpx.HTTPError as exc:
        raise WeatherServiceError(f"Weather API request failed: {exc}") from exc

    if response.status_code != 200:
        raise WeatherServiceError(f"Weather API error: {response.status_code}")

    try:
        payload = response.json()
    except ValueError as exc:
        raise WeatherServiceError("Weather API returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise WeatherServiceError("Weather API returned an unexpected payload")

    try:
        return WeatherReport.from_openweather(payload)
    except (ValueError, TypeError, AttributeError, IndexError) as exc:
        raise WeatherServiceError(f"Weather API returned an unexpected payload: {exc}") from exc
