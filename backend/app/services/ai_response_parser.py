"""Recover a ``{schedule, summary}`` object from an unreliable model completion.

The completion is untrusted text: it may be valid JSON, JSON wrapped in a markdown
fence, JSON surrounded by prose, or a response cut off mid-array. ``parse_ai_response``
runs an ordered cascade of small pure stages and returns the first structured value
one of them produces. Only text with no trace of a schedule is rejected.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.core.errors import UnrecoverableAIResponseError

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Daily schedule generated based on your preferences and tasks."

FIELD_DEFAULTS: Dict[str, str] = {
    "time": "09:00",
    "activity": "Task",
    "duration": "30",
    "type": "task",
}

EXAMPLE_SCHEDULE: Tuple[Dict[str, str], ...] = (
    {"time": "09:00", "activity": "Morning Task", "duration": "60", "type": "task"},
    {"time": "10:00", "activity": "Break", "duration": "15", "type": "break"},
    {"time": "10:15", "activity": "Work Session", "duration": "90", "type": "task"},
    {"time": "11:45", "activity": "Lunch", "duration": "60", "type": "meal"},
)

_LEADING_JSON_FENCE = re.compile(r"^```json\s*", re.IGNORECASE)
_LEADING_FENCE = re.compile(r"^```\s*")
_TRAILING_FENCE = re.compile(r"\s*```$")
_BRACE_SPAN = re.compile(r"\{.*\}", re.DOTALL)
_SCHEDULE_OPENING = re.compile(r"\{.*\"schedule\":\s*\[.*", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*$")
_FIELD_PATTERNS: Dict[str, re.Pattern[str]] = {
    "time": re.compile(r'"time":\s*"([^"]*)"'),
    "activity": re.compile(r'"activity":\s*"([^"]*)"'),
    # Models sometimes emit the duration as a bare number.
    "duration": re.compile(r'"duration":\s*(?:"([^"]*)"|(\d+(?:\.\d+)?))'),
    "type": re.compile(r'"type":\s*"([^"]*)"'),
}


@dataclass(frozen=True)
class StageOutcome:
    """Result of one cascade stage: a recovered value, or the text to hand to the next stage."""

    text: str
    value: Optional[Dict[str, Any]] = None


Stage = Callable[[str], StageOutcome]


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def parse_json(text: str) -> StageOutcome:
    return StageOutcome(text=text, value=_loads_object(text))


def strip_markdown_fences(text: str) -> StageOutcome:
    cleaned = text.strip()
    cleaned = _LEADING_JSON_FENCE.sub("", cleaned)
    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)
    return StageOutcome(text=cleaned.strip())


def extract_brace_span(text: str) -> StageOutcome:
    match = _BRACE_SPAN.search(text)
    return StageOutcome(text=match.group(0) if match else text)


def repair_truncation(text: str) -> StageOutcome:
    """Close a schedule array and object that the model stopped emitting half way."""
    if '"schedule"' not in text or '"summary"' in text:
        return StageOutcome(text=text)

    match = _SCHEDULE_OPENING.search(text)
    if not match:
        return StageOutcome(text=text)

    repaired = _TRAILING_COMMA.sub("", match.group(0))
    repaired += "]" * max(0, repaired.count("[") - repaired.count("]"))
    if '"summary"' not in repaired:
        repaired += f', "summary": "{FALLBACK_SUMMARY}"'
    repaired += "}" * max(0, repaired.count("{") - repaired.count("}"))
    return StageOutcome(text=repaired)


def _field_values(text: str, field: str) -> List[str]:
    values: List[str] = []
    for match in _FIELD_PATTERNS[field].finditer(text):
        captured = next((group for group in match.groups() if group), None)
        values.append(captured or FIELD_DEFAULTS[field])
    return values


def scrape_schedule_fields(text: str) -> StageOutcome:
    """Pair up independently matched item fields by position, ignoring structure."""
    if '"schedule"' not in text:
        return StageOutcome(text=text)

    try:
        columns = {field: _field_values(text, field) for field in FIELD_DEFAULTS}
        count = min(len(values) for values in columns.values())
        schedule = [{field: columns[field][index] for field in FIELD_DEFAULTS} for index in range(count)]
    except Exception:
        logger.exception("Field scraping failed; returning the example schedule")
        schedule = [dict(item) for item in EXAMPLE_SCHEDULE]

    return StageOutcome(text=text, value={"schedule": schedule, "summary": FALLBACK_SUMMARY})


REPAIR_STAGES: Sequence[Stage] = (
    parse_json,
    strip_markdown_fences,
    extract_brace_span,
    repair_truncation,
    parse_json,
    scrape_schedule_fields,
)


def parse_ai_response(raw_content: str) -> Dict[str, Any]:
    """
    Return the schedule object carried by ``raw_content``.

    Raises UnrecoverableAIResponseError when every stage fails, which only happens
    when the text never mentions a ``"schedule"`` key.
    """
    value, _ = parse_ai_response_with_stage(raw_content)
    return value


def parse_ai_response_with_stage(raw_content: str) -> Tuple[Dict[str, Any], int]:
    """Like ``parse_ai_response`` but also return the 1-based number of the stage that succeeded."""
    text = raw_content
    for position, stage in enumerate(REPAIR_STAGES):
        outcome = stage(text)
        if outcome.value is not None:
            if position:
                logger.warning("Recovered AI response via %s (stage %d)", stage.__name__, position + 1)
            return outcome.value, position + 1
        text = outcome.text

    logger.error("Unrecoverable AI response: %r", raw_content[:200])
    raise UnrecoverableAIResponseError(raw_content)
