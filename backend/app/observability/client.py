"""Opik SDK client helpers."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from app.core.config import settings

try:
    from opik import Opik
except ImportError:  # pragma: no cover - opik is an optional runtime integration
    Opik = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_client: Optional["Opik"] = None
_client_lock = Lock()
_init_attempted = False


def _tracing_configured() -> bool:
    if not settings.opik_enabled:
        return False
    if not settings.opik_api_key:
        logger.warning("OPIK_ENABLED is true but OPIK_API_KEY is missing; tracing stays off.")
        return False
    return True


def init_opik() -> Optional["Opik"]:
    """Create the Opik client on first use; later calls return the cached result."""
    global _client, _init_attempted

    if Opik is None:
        return None

    with _client_lock:
        if _init_attempted:
            return _client
        _init_attempted = True

        if not _tracing_configured():
            return None

        try:
            _client = Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
        except Exception as exc:  # pragma: no cover - network/credential failures
            logger.warning("Opik initialisation failed, tracing disabled: %s", exc)
            return None

    logger.info("Opik tracing enabled for project %s", settings.opik_project)
    return _client


def get_opik_client() -> Optional["Opik"]:
    """Return the cached Opik client if tracing is enabled."""
    return _client if _client is not None else init_opik()


def shutdown_opik() -> None:
    """Flush buffered traces before the process exits."""
    client = _client
    if client is None:
        return
    try:
        client.flush()
    except Exception:  # pragma: no cover - best-effort on shutdown
        logger.debug("Opik flush failed", exc_info=True)
