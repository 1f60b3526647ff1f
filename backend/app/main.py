"""Main FastAPI application for the DayPlanner backend."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes.plan import router as plan_router
from app.api.routes.preferences import router as preferences_router
from app.api.routes.tasks import router as tasks_router
from app.api.routes.weather import router as weather_router
from app.core.config import settings
from app.core.dates import utc_now_iso
from app.core.errors import register_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import RequestIDMiddleware
from app.observability.client import init_opik, shutdown_opik

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0", debug=settings.debug)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
    expose_headers=["X-Request-Id"],
    max_age=86400,
)
register_exception_handlers(app)
app.include_router(tasks_router, prefix="/api")
app.include_router(preferences_router, prefix="/api")
app.include_router(plan_router, prefix="/api")
app.include_router(weather_router, prefix="/api")


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.on_event("shutdown")
async def shutdown_observability() -> None:
    shutdown_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check() -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    return {"status": "ok", "timestamp": utc_now_iso()}


@app.get("/", tags=["health"], summary="Status banner")
async def root() -> dict[str, str]:
    return {
        "status": "Server Running",
        "message": "Can't access backend directly.",
        "timestamp": utc_now_iso(),
    }
