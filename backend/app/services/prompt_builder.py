"""Render preferences, tasks and weather into the planning instruction."""
from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Sequence

DEFAULT_WAKE_TIME = "09:00"
DEFAULT_SLEEP_TIME = "23:00"
DEFAULT_BREAK_INTERVAL = 30
DEFAULT_TASK_DURATION = 30
DEFAULT_IMPORTANCE = "medium"

RESPONSE_SCHEMA = """{
  "schedule": [
    {
      "time": "HH:MM",
      "activity": "task or break name",
      "duration": "minutes",
      "type": "task|break|meal"
    }
  ],
  "summary": "Brief summary of the day plan"
}"""


def _field(record: Any, name: str) -> Any:
    if record is None:
        return None
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _or_default(value: Any, default: Any) -> Any:
    return default if value is None or value == "" else value


def render_task_line(task: Any) -> str:
    title = _or_default(_field(task, "title"), "Untitled")
    duration = _or_default(_field(task, "duration_minutes"), DEFAULT_TASK_DURATION)
    importance = _or_default(_field(task, "importance"), DEFAULT_IMPORTANCE)
    return f"{title} – {duration}m – {importance}"


def build_plan_prompt(
    preferences: Optional[dict[str, Any]],
    tasks: Sequence[Any],
    weather: Optional[Any],
) -> str:
    """
    Build the instruction sent verbatim to the completion model.

    ``preferences`` and ``weather`` may be None; missing values fall back to fixed defaults.
    Raises ValueError when there are no tasks to plan.
    """
    if not tasks:
        raise ValueError("No tasks provided for planning")

    task_lines = "\n".join(render_task_line(task) for task in tasks)
    weather_desc = _or_default(_field(weather, "description"), "unknown")
    weather_temp = _or_default(_field(weather, "temperature_c"), "unknown")

    wake_time = _or_default(_field(preferences, "wake_time"), DEFAULT_WAKE_TIME)
    break_interval = _or_default(_field(preferences, "break_interval_minutes"), DEFAULT_BREAK_INTERVAL)
    sleep_time = _or_default(_field(preferences, "sleep_time"), DEFAULT_SLEEP_TIME)
    preferences_json = json.dumps(dict(preferences or {}), sort_keys=True, default=str)

    return (
        "You are a personal day planning assistant. Create an optimized daily schedule in JSON format.\n\n"
        f"User preferences: {preferences_json}\n"
        f"Weather: {weather_desc}, {weather_temp}°C\n"
        "Tasks to schedule:\n"
        f"{task_lines}\n\n"
        "IMPORTANT: You must respond with COMPLETE, VALID JSON only. No markdown, no explanations, no comments.\n\n"
        "Generate a JSON response with this EXACT structure:\n"
        f"{RESPONSE_SCHEMA}\n\n"
        "Requirements:\n"
        "- Include ALL closing brackets and braces\n"
        f"- Start with user's wake time ({wake_time})\n"
        f"- Include breaks every {break_interval} minutes\n"
        "- Schedule all provided tasks\n"
        f"- End before sleep time ({sleep_time})\n"
        "- Return ONLY the raw JSON object, nothing else (no ``` fences)\n\n"
        "Consider the weather, user preferences, task importance, and include appropriate breaks."
    )
