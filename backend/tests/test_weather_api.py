from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.routes import weather as weather_routes
from app.core.auth import get_current_user_id
from app.core.config import settings
from app.core.errors import (
    ApodServiceError,
    ProviderConfigurationError,
    WeatherServiceError,
)
from app.db.deps import get_db
from app.db.models.preferences import Preferences
from app.db.models.user import User
from app.main import app
from app.services.apod import ApodEntry, fetch_apod
from app.services.weather import WeatherReport, fetch_weather

USER_ID = "user_weather"

OPENWEATHER_BODY = {
    "weather": [{"description": "broken clouds", "icon": "04d"}],
    "main": {"temp": 0.4, "humidity": 81},
    "wind": {"speed": 5.1},
    "name": "Oslo",
    "sys": {"country": "NO"},
}

APOD_BODY = {
    "title": "Pillars of Creation",
    "explanation": "Star-forming columns.",
    "url": "https://apod.nasa.gov/image.jpg",
    "date": "2026-10-18",
    "media_type": "image",
}


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def _fetch_weather_with(handler, city: str = "Oslo") -> WeatherReport:
    async with _mock_client(handler) as client:
        return await fetch_weather(city, client=client)


async def _fetch_apod_with(handler) -> ApodEntry:
    async with _mock_client(handler) as client:
        return await fetch_apod(client=client)


@pytest.fixture()
def provider_keys(monkeypatch):
    monkeypatch.setattr(settings, "openweather_key", "weather-key")
    monkeypatch.setattr(settings, "nasa_key", "nasa-key")


def test_fetch_weather_sends_metric_query_and_parses_report(provider_keys):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json=OPENWEATHER_BODY)

    report = asyncio.run(_fetch_weather_with(handler))

    assert seen == {"q": "Oslo", "units": "metric", "appid": "weather-key"}
    assert report.description == "broken clouds"
    assert report.to_summary() == {
        "temperature": "0°C",
        "condition": "broken clouds",
        "location": "Oslo, NO",
        "icon": "04d",
        "humidity": 81.0,
        "windSpeed": 5.1,
    }


def test_fetch_weather_reports_upstream_status(provider_keys):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "city not found"})

    with pytest.raises(WeatherServiceError, match="Weather API error: 404"):
        asyncio.run(_fetch_weather_with(handler, city="Atlantis"))


def test_fetch_weather_wraps_transport_errors(provider_keys):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(WeatherServiceError, match="Weather API request failed"):
        asyncio.run(_fetch_weather_with(handler))


def test_fetch_weather_rejects_non_object_payload(provider_keys):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["unexpected"])

    with pytest.raises(WeatherServiceError, match="unexpected payload"):
        asyncio.run(_fetch_weather_with(handler))


def test_fetch_weather_rejects_malformed_conditions(provider_keys):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"weather": "rain", "main": {"temp": 12}})

    with pytest.raises(WeatherServiceError, match="unexpected payload"):
        asyncio.run(_fetch_weather_with(handler))


def test_fetch_weather_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "openweather_key", None)

    with pytest.raises(ProviderConfigurationError, match="OPENWEATHER_KEY is not configured"):
        asyncio.run(fetch_weather("Oslo"))


def test_fetch_apod_maps_nasa_fields(provider_keys):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json=APOD_BODY)

    entry = asyncio.run(_fetch_apod_with(handler))

    assert seen == {"api_key": "nasa-key"}
    assert entry.model_dump(by_alias=True) == {
        "title": "Pillars of Creation",
        "description": "Star-forming columns.",
        "imageUrl": "https://apod.nasa.gov/image.jpg",
        "date": "2026-10-18",
        "mediaType": "image",
    }


def test_fetch_apod_reports_upstream_status(provider_keys):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(ApodServiceError, match="NASA APOD API error: 503"):
        asyncio.run(_fetch_apod_with(handler))


def test_fetch_apod_rejects_non_object_payload(provider_keys):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["unexpected"])

    with pytest.raises(ApodServiceError, match="unexpected payload"):
        asyncio.run(_fetch_apod_with(handler))


def test_fetch_apod_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "nasa_key", None)

    with pytest.raises(ProviderConfigurationError, match="NASA_KEY is not configured"):
        asyncio.run(fetch_apod())


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Preferences.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _save_city(session_factory, city: str = "Oslo") -> None:
    with session_factory() as db:
        db.add(User(id=USER_ID))
        db.flush()
        db.add(
            Preferences(
                user_id=USER_ID,
                wake_time="07:00",
                sleep_time="23:00",
                peak_focus="evening",
                city=city,
                break_style="stretch",
                break_interval_minutes=30,
                max_work_hours=8,
                commute_mode="none",
            )
        )
        db.commit()


def test_weather_requires_city_in_preferences(client):
    test_client, _ = client

    resp = test_client.get("/api/weather")

    assert resp.status_code == 400
    assert resp.json() == {
        "detail": "City not found in user preferences. Please set up your preferences first."
    }


def test_weather_uses_stored_city(client, monkeypatch):
    test_client, session_factory = client
    _save_city(session_factory)
    cities = []

    async def fake_fetch_weather(city: str) -> WeatherReport:
        cities.append(city)
        return WeatherReport.from_openweather(OPENWEATHER_BODY)

    monkeypatch.setattr(weather_routes, "fetch_weather", fake_fetch_weather)

    resp = test_client.get("/api/weather")

    assert resp.status_code == 200
    assert cities == ["Oslo"]
    assert resp.json()["location"] == "Oslo, NO"
    assert resp.json()["temperature"] == "0°C"


def test_weather_provider_failure_is_server_error(client, monkeypatch):
    test_client, session_factory = client
    _save_city(session_factory)

    async def failing_fetch_weather(city: str) -> WeatherReport:
        raise WeatherServiceError("Weather API error: 401")

    monkeypatch.setattr(weather_routes, "fetch_weather", failing_fetch_weather)

    resp = test_client.get("/api/weather")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to fetch weather data: Weather API error: 401"}


def test_apod_is_public(client, monkeypatch):
    test_client, _ = client
    app.dependency_overrides.pop(get_current_user_id)

    async def fake_fetch_apod() -> ApodEntry:
        return ApodEntry.from_nasa(APOD_BODY)

    monkeypatch.setattr(weather_routes, "fetch_apod", fake_fetch_apod)

    resp = test_client.get("/api/apod")

    assert resp.status_code == 200
    assert resp.json()["imageUrl"] == "https://apod.nasa.gov/image.jpg"
    assert resp.json()["mediaType"] == "image"


def test_apod_provider_failure_is_server_error(client, monkeypatch):
    test_client, _ = client

    async def failing_fetch_apod() -> ApodEntry:
        raise ApodServiceError("NASA APOD API error: 500")

    monkeypatch.setattr(weather_routes, "fetch_apod", failing_fetch_apod)

    resp = test_client.get("/api/apod")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to fetch NASA APOD data: NASA APOD API error: 500"}
