from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import get_current_user_id
from app.core.config import settings
from app.core.dates import today
from app.core.errors import ApodServiceError, CompletionError, WeatherServiceError
from app.db.deps import get_db
from app.db.models.plan import Plan
from app.db.models.preferences import Preferences
from app.db.models.task import Task
from app.db.models.user import User
from app.main import app
from app.services import daily_planner
from app.services.ai_response_parser import FALLBACK_SUMMARY
from app.services.apod import ApodEntry, fetch_apod
from app.services.weather import WeatherReport, fetch_weather

USER_ID = "user_planner"

PLAN = {
    "schedule": [
        {"time": "07:00", "activity": "Write report", "duration": "45", "type": "task"},
        {"time": "07:45", "activity": "Break", "duration": "10", "type": "break"},
    ],
    "summary": "Focused morning.",
}


class _Providers:
    """Records calls made to the external providers during a request."""

    def __init__(self) -> None:
        self.prompts: list[str] = []
        self.cities: list[str] = []
        self.apod_calls = 0
        self.completion = "```json\n" + json.dumps(PLAN) + "\n```"
        self.completion_error: Exception | None = None
        self.weather_error: Exception | None = None
        self.apod_error: Exception | None = None

    async def request_completion(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.completion_error:
            raise self.completion_error
        return self.completion

    async def fetch_weather(self, city: str) -> WeatherReport:
        self.cities.append(city)
        if self.weather_error:
            raise self.weather_error
        return WeatherReport(
            description="clear sky",
            temperature_c=21.4,
            humidity=40,
            wind_speed=3.5,
            icon="01d",
            city_name="Lisbon",
            country="PT",
        )

    async def fetch_apod(self) -> ApodEntry:
        self.apod_calls += 1
        if self.apod_error:
            raise self.apod_error
        return ApodEntry(title="Nebula", description="Gas", image_url="https://apod/img.jpg", date="2026-10-18")

    @property
    def external_calls(self) -> int:
        return len(self.prompts) + len(self.cities) + self.apod_calls


@pytest.fixture()
def client(monkeypatch):
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
    for model in (User, Task, Preferences, Plan):
        model.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    providers = _Providers()
    monkeypatch.setattr(daily_planner, "request_completion", providers.request_completion)
    monkeypatch.setattr(daily_planner, "fetch_weather", providers.fetch_weather)
    monkeypatch.setattr(daily_planner, "fetch_apod", providers.fetch_apod)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal, engine, providers
    app.dependency_overrides.clear()


def _seed(session_factory, *, preferences: bool = True, tasks: int = 2) -> None:
    with session_factory() as db:
        db.add(User(id=USER_ID))
        db.flush()
        if preferences:
            db.add(
                Preferences(
                    user_id=USER_ID,
                    wake_time="07:00",
                    sleep_time="22:30",
                    peak_focus="morning",
                    city="Lisbon",
                    break_style="short walks",
                    break_interval_minutes=45,
                    max_work_hours=7.5,
                    commute_mode="walk",
                )
            )
        titles = ["Write report", "Call bank", "Gym"][:tasks]
        for title in titles:
            db.add(Task(user_id=USER_ID, title=title, duration_minutes=45, importance="high", task_date=today()))
        db.commit()


def test_plan_requires_tasks_before_calling_providers(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory, tasks=0)

    resp = test_client.post("/api/plan")

    assert resp.status_code == 400
    assert resp.json() == {"detail": "No tasks found for today. Please add some tasks first."}
    assert providers.external_calls == 0


def test_plan_requires_preferences(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory, preferences=False)

    resp = test_client.post("/api/plan")

    assert resp.status_code == 400
    assert resp.json()["detail"] == "User preferences not found. Please set up your preferences first."
    assert providers.external_calls == 0


def test_plan_for_unknown_user_provisions_user_and_reports_missing_preferences(client):
    test_client, session_factory, _, _ = client

    resp = test_client.post("/api/plan")

    assert resp.status_code == 400
    with session_factory() as db:
        assert db.get(User, USER_ID) is not None


def test_generate_plan_returns_and_stores_recovered_schedule(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory)

    resp = test_client.post("/api/plan")

    assert resp.status_code == 200
    body = resp.json()
    assert body["plan"] == PLAN
    assert body["weather"] == {
        "temperature": "21°C",
        "condition": "clear sky",
        "location": "Lisbon, PT",
        "icon": "01d",
        "humidity": 40.0,
        "windSpeed": 3.5,
    }
    assert body["apod"]["title"] == "Nebula"
    assert body["apod"]["imageUrl"] == "https://apod/img.jpg"
    assert providers.cities == ["Lisbon"]

    stored = test_client.get("/api/plan")
    assert stored.status_code == 200
    assert stored.json()["plan"] == PLAN


def test_prompt_carries_preferences_weather_and_tasks_in_order(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory, tasks=3)

    assert test_client.post("/api/plan").status_code == 200

    (prompt,) = providers.prompts
    assert "Weather: clear sky, 21.4°C" in prompt
    assert "Write report – 45m – high\nCall bank – 45m – high\nGym – 45m – high" in prompt
    assert "Start with user's wake time (07:00)" in prompt
    assert "Include breaks every 45 minutes" in prompt
    assert "End before sleep time (22:30)" in prompt
    assert '"city": "Lisbon"' in prompt


def test_regenerating_replaces_todays_plan(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory)

    assert test_client.post("/api/plan").status_code == 200
    updated = {"schedule": [{"time": "08:00", "activity": "Gym", "duration": "60", "type": "task"}], "summary": "v2"}
    providers.completion = json.dumps(updated)
    assert test_client.post("/api/plan").status_code == 200

    with session_factory() as db:
        rows = db.query(Plan).all()
        assert len(rows) == 1
        assert rows[0].plan_json == updated
    assert test_client.get("/api/plan").json()["plan"] == updated


def test_weather_and_apod_failures_fall_back(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory)
    providers.weather_error = WeatherServiceError("Weather API error: 404")
    providers.apod_error = ApodServiceError("NASA APOD API error: 503")

    resp = test_client.post("/api/plan")

    assert resp.status_code == 200
    body = resp.json()
    assert body["apod"] is None
    assert body["weather"]["condition"] == "unknown"
    assert body["weather"]["temperature"] == "20°C"
    assert "Weather: unknown, 20.0°C" in providers.prompts[0]


def test_truncated_completion_is_repaired(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory)
    providers.completion = '{"schedule": [{"time": "07:00", "activity": "Write report", "duration": "45", "type": "task"},'

    resp = test_client.post("/api/plan")

    assert resp.status_code == 200
    assert resp.json()["plan"]["schedule"][0]["activity"] == "Write report"
    assert resp.json()["plan"]["summary"] == FALLBACK_SUMMARY


def test_unrecoverable_completion_is_server_error_and_not_stored(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory)
    providers.completion = "I'm sorry, I cannot help with planning today."

    resp = test_client.post("/api/plan")

    assert resp.status_code == 500
    assert resp.json()["detail"].startswith(
        "Failed to generate plan: Cannot extract valid JSON from AI response: I'm sorry"
    )
    with session_factory() as db:
        assert db.query(Plan).count() == 0
    assert test_client.get("/api/plan").json() == {"plan": None, "message": "No plan found for today"}


def test_completion_provider_failure_is_server_error(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory)
    providers.completion_error = CompletionError("Invalid response from completion model")

    resp = test_client.post("/api/plan")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to generate plan: Invalid response from completion model"}


def test_plan_is_returned_even_when_saving_fails(client):
    test_client, session_factory, engine, _ = client
    _seed(session_factory)
    Plan.__table__.drop(bind=engine)

    resp = test_client.post("/api/plan")

    assert resp.status_code == 200
    assert resp.json()["plan"] == PLAN


def test_read_plan_without_generation(client):
    test_client, _, _, _ = client

    resp = test_client.get("/api/plan")

    assert resp.status_code == 200
    assert resp.json() == {"plan": None, "message": "No plan found for today"}


def test_malformed_provider_payloads_fall_back(client, monkeypatch):
    test_client, session_factory, _, providers = client
    _seed(session_factory)
    monkeypatch.setattr(settings, "openweather_key", "weather-key")
    monkeypatch.setattr(settings, "nasa_key", "nasa-key")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["unexpected"])

    async def weather_from_list_payload(city: str) -> WeatherReport:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            return await fetch_weather(city, client=http_client)

    async def apod_from_list_payload() -> ApodEntry:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            return await fetch_apod(client=http_client)

    monkeypatch.setattr(daily_planner, "fetch_weather", weather_from_list_payload)
    monkeypatch.setattr(daily_planner, "fetch_apod", apod_from_list_payload)

    resp = test_client.post("/api/plan")

    assert resp.status_code == 200
    body = resp.json()
    assert body["plan"] == PLAN
    assert body["apod"] is None
    assert body["weather"]["condition"] == "unknown"
    assert body["weather"]["temperature"] == "20°C"


def test_plan_with_non_list_schedule_is_stored_and_returned(client):
    test_client, session_factory, _, providers = client
    _seed(session_factory)
    odd_plan = {"schedule": 5, "summary": "x"}
    providers.completion = json.dumps(odd_plan)

    resp = test_client.post("/api/plan")

    assert resp.status_code == 200
    assert resp.json()["plan"] == odd_plan
    assert test_client.get("/api/plan").json()["plan"] == odd_plan
