"""Metric helpers recorded as Opik traces."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.observability.client import get_opik_client

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record ``value`` under ``metric:<name>``; a debug log line is always emitted."""
    logger.debug("metric %s=%s %s", name, value, metadata or {})

    client = get_opik_client()
    if not client:
        return

    try:
        client.trace(name=f"metric:{name}", metadata={**(metadata or {}), "value": value})
    except Exception as exc:  # pragma: no cover - tracing must never break a request
        logger.debug("Unable to record metric %s: %s", name, exc)
