"""Shared request/response schemas and validators."""
from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel


class OkResponse(BaseModel):
    ok: bool = True
    message: str


def positive_whole_number(value: Any, message: str) -> int:
    """Accept JSON numbers that are positive whole values (``30`` or ``30.0``)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(message)
    if not math.isfinite(value) or value <= 0 or value != int(value):
        raise ValueError(message)
    return int(value)
