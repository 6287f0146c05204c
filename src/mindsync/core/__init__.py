"""Functional core - pure business logic with no I/O."""

from .tasks import Task, TaskType, TaskStatus, AppState, classify_task_type
from .temporal import ParsedTemporalExpression, parse, format_12h
from .slots import FreeInterval, find_free_intervals, free_slots
from .balance import Balance, DailyScore, compute_daily_score, generate_smart_insight
from .prompts import CoachMode, CoachRequest, build_prompt
from .actions import (
    CoachResponse,
    ScheduleSuggestion,
    ScheduleSuggestionError,
    SuggestedAction,
    heuristic_suggestion,
    parse_response,
    parse_schedule_suggestion,
)

__all__ = [
    # Tasks
    "Task",
    "TaskType",
    "TaskStatus",
    "AppState",
    "classify_task_type",
    # Temporal
    "ParsedTemporalExpression",
    "parse",
    "format_12h",
    # Slots
    "FreeInterval",
    "find_free_intervals",
    "free_slots",
    # Balance
    "Balance",
    "DailyScore",
    "compute_daily_score",
    "generate_smart_insight",
    # Prompts
    "CoachMode",
    "CoachRequest",
    "build_prompt",
    # Actions
    "CoachResponse",
    "ScheduleSuggestion",
    "ScheduleSuggestionError",
    "SuggestedAction",
    "heuristic_suggestion",
    "parse_response",
    "parse_schedule_suggestion",
]
