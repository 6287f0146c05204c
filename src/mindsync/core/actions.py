"""Pure coach-reply parsing - no I/O dependencies."""

import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time

from .tasks import (
    DEFAULT_DURATION,
    TaskType,
    classify_task_type,
    coerce_task_type,
    parse_iso_date,
)
from .temporal import format_hhmm, parse, parse_time_of_day

CREATE_TASK = "CREATE_TASK"

_THOUGHT = re.compile(r"<thought>(.*?)</thought>", re.DOTALL | re.IGNORECASE)
_STRAY_THOUGHT_TAG = re.compile(r"</?thought>", re.IGNORECASE)
_ACTION = re.compile(r"\[ACTION:\s*CREATE_TASK\s*\|([^\]]*)\]", re.IGNORECASE)
_SIGNED_INT = re.compile(r"^[+-]\d+$")
_BLANK_LINES = re.compile(r"\n{3,}")
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class SuggestedAction:
    """A task the coach proposes to create."""

    title: str
    task_type: TaskType
    duration: int = DEFAULT_DURATION
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    projected_score: int | None = None
    type: str = CREATE_TASK


@dataclass
class CoachResponse:
    cleaned_text: str
    thought: str | None = None
    actions: list[SuggestedAction] = field(default_factory=list)


def _parse_duration(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_DURATION
    return value if value > 0 else DEFAULT_DURATION


def _parse_action_date(raw: str) -> date | None:
    if raw.lower() == "any":
        return None
    return parse_iso_date(raw)


def _parse_action_time(raw: str) -> time | None:
    if raw.lower() == "any":
        return None
    return parse_time_of_day(raw)


def parse_action_fields(raw_fields: str) -> SuggestedAction | None:
    """
    Build an action from the pipe-separated part of a directive.

    Pure function - no I/O. Returns None for a malformed directive.
    """
    parts = [p.strip() for p in raw_fields.split("|")]
    if len(parts) < 4:
        return None

    projected_score = None
    if len(parts) > 4 and _SIGNED_INT.match(parts[-1]):
        projected_score = int(parts.pop())

    title, raw_type, raw_duration = parts[0], parts[1], parts[2]
    if not title:
        return None

    if len(parts) == 4:
        scheduled_date, scheduled_time = None, _parse_action_time(parts[3])
    else:
        scheduled_date = _parse_action_date(parts[3])
        scheduled_time = _parse_action_time(parts[4])

    return SuggestedAction(
        title=title,
        task_type=coerce_task_type(raw_type) or classify_task_type(title),
        duration=_parse_duration(raw_duration),
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        projected_score=projected_score,
    )


def parse_response(text: str) -> CoachResponse:
    """
    Split a completed coach reply into visible text, thought and actions.

    Pure function - no I/O. Directives are always removed from the visible
    text, even when malformed; actions keep their order of appearance.
    """
    thought = None
    match = _THOUGHT.search(text)
    if match:
        thought = match.group(1).strip() or None
        text = text[: match.start()] + text[match.end():]
    text = _STRAY_THOUGHT_TAG.sub("", text)

    actions = []
    for directive in _ACTION.finditer(text):
        action = parse_action_fields(directive.group(1))
        if action is not None:
            actions.append(action)
    text = _ACTION.sub("", text)

    cleaned = _BLANK_LINES.sub("\n\n", text).strip()
    return CoachResponse(cleaned_text=cleaned, thought=thought, actions=actions)


# ============== Schedule assist ==============


class ScheduleSuggestionError(ValueError):
    """Raised when a schedule_assist reply is not a JSON object."""

    pass


@dataclass
class ScheduleSuggestion:
    """Type, date, time and duration proposed for a new task."""

    suggested_type: TaskType
    suggested_date: date
    suggested_time: time | None = None
    duration: int = DEFAULT_DURATION
    source: str = "model"

    def to_dict(self) -> dict:
        return {
            "suggestedType": self.suggested_type.value,
            "suggestedDate": self.suggested_date.isoformat(),
            "suggestedTime": format_hhmm(self.suggested_time) if self.suggested_time else None,
            "duration": self.duration,
        }


def parse_schedule_suggestion(text: str, today: date, title: str = "") -> ScheduleSuggestion:
    """
    Decode a schedule_assist reply, tolerating Markdown code fences.

    Raises:
        ScheduleSuggestionError: If the reply is not a JSON object.
    """
    body = _CODE_FENCE.sub("", text.strip()).strip()
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ScheduleSuggestionError(f"Invalid schedule suggestion JSON: {e}") from e
    if not isinstance(data, dict):
        raise ScheduleSuggestionError("Schedule suggestion is not a JSON object")

    raw_type = str(data.get("suggestedType") or "")
    raw_time = str(data.get("suggestedTime") or "")
    try:
        duration = int(data.get("duration") or DEFAULT_DURATION)
    except (TypeError, ValueError):
        duration = DEFAULT_DURATION

    return ScheduleSuggestion(
        suggested_type=coerce_task_type(raw_type) or classify_task_type(title),
        suggested_date=parse_iso_date(str(data.get("suggestedDate") or "")) or today,
        suggested_time=_parse_action_time(raw_time) if raw_time else None,
        duration=duration if duration > 0 else DEFAULT_DURATION,
        source="model",
    )


def heuristic_suggestion(title: str, now: datetime) -> ScheduleSuggestion:
    """
    Local stand-in for schedule_assist: temporal parse plus keyword typing.

    Pure function - no I/O. Never raises.
    """
    parsed = parse(title, now)
    return ScheduleSuggestion(
        suggested_type=classify_task_type(title),
        suggested_date=parsed.date or now.date(),
        suggested_time=parsed.time,
        duration=parsed.duration or DEFAULT_DURATION,
        source="heuristic",
    )
