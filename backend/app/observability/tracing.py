"""Tracing utilities wrapping Opik."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from app.core.context import get_request_id, get_user_id
from app.observability.client import get_opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def _start_trace(name: str, metadata: Dict[str, Any]) -> Optional["Trace"]:
    client = get_opik_client()
    if not client:
        return None
    try:
        return client.trace(name=name, metadata=metadata or None)
    except Exception as exc:  # pragma: no cover - tracing must never break a request
        logger.debug("Unable to start Opik trace %s: %s", name, exc)
        return None


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Wrap a unit of work in an Opik trace.

    User and request ids default to the ones bound to the current request. When Opik
    is disabled the block still runs and the yielded trace is None.
    """
    trace_metadata = dict(metadata or {})
    trace_metadata.setdefault("user_id", user_id or get_user_id())
    trace_metadata.setdefault("request_id", request_id or get_request_id())
    trace_metadata = {key: value for key, value in trace_metadata.items() if value is not None}

    opik_trace = _start_trace(name, trace_metadata)
    start = perf_counter()
    try:
        yield opik_trace
    except Exception as exc:
        logger.debug("Trace %s failed after %.1f ms: %s", name, (perf_counter() - start) * 1000, exc)
        if opik_trace:
            try:
                opik_trace.update(error_info={"exception_type": type(exc).__name__, "message": str(exc)})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if opik_trace:
            try:
                opik_trace.update(metadata={**trace_metadata, "latency_ms": (perf_counter() - start) * 1000})
                opik_trace.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)
