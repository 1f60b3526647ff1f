"""Domain exceptions and their HTTP translation."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DayPlannerError(Exception):
    """Base class for errors the API knows how to report."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ProviderConfigurationError(DayPlannerError):
    """A required provider credential or setting is missing."""


class UpstreamServiceError(DayPlannerError):
    """An external provider answered with an error or could not be reached."""


class WeatherServiceError(UpstreamServiceError):
    pass


class ApodServiceError(UpstreamServiceError):
    pass


class CompletionError(UpstreamServiceError):
    pass


class PlanPrerequisiteError(DayPlannerError):
    """Plan generation cannot start (no preferences or no tasks for today)."""

    status_code = status.HTTP_400_BAD_REQUEST


class PlanGenerationError(DayPlannerError):
    """The model call or the parsing of its answer failed."""


class UnrecoverableAIResponseError(ValueError):
    """The completion text holds nothing that looks like a schedule."""

    def __init__(self, raw_text: str, *, limit: int = 200) -> None:
        self.snippet = raw_text[:limit]
        super().__init__(f"Cannot extract valid JSON from AI response: {self.snippet}...")


def _format_validation_error(error: dict[str, Any]) -> str:
    if error.get("type") == "json_invalid":
        return "Invalid JSON in request body"
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = str(error.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = _format_validation_error(errors[0]) if errors else "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


async def _domain_error_handler(request: Request, exc: DayPlannerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc) or "Server error"})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc) or "Server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DayPlannerError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)


def db_error_detail(prefix: str, exc: Exception) -> str:
    """Short client-facing message for a failed database call (driver message, no SQL)."""
    return f"{prefix}: {getattr(exc, 'orig', None) or exc}"
