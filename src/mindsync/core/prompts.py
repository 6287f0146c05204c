"""Pure prompt assembly logic - no I/O dependencies."""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .slots import DEFAULT_SLEEP_END, DEFAULT_SLEEP_START, free_slots
from .tasks import (
    ConversationTurn,
    DailySnapshot,
    Goal,
    Preferences,
    Task,
    TaskType,
    count_completed_by_type,
    filter_scheduled_on,
)
from .temporal import format_hhmm

CONVERSATION_WINDOW = 6
HISTORY_WINDOW = 7


class CoachMode(str, Enum):
    """Selects the prompt template and the response contract."""

    ADVICE = "advice"
    CHAT = "chat"
    SUMMARY = "summary"
    PREDICT = "predict"
    SCHEDULE_ASSIST = "schedule_assist"


COACH_SYSTEM_PROMPT = """You are the "Ego" - a psychological coach within the MindSync productivity system.

The user's day is split between three kinds of tasks:
- ADULT: productivity, responsibility, outcomes.
- CHILD: fun and play with no long-term consequences.
- REST: recovery, including permission to do nothing at all.
Help the user balance them. Be specific and authoritative; validate feelings before solving.

**ACTIONABLE OUTPUTS**
To propose a task, output an action block on its own line:
[ACTION: CREATE_TASK | Title | Type (ADULT/CHILD/REST) | Duration in minutes | Date (YYYY-MM-DD) | ScheduledTime (HH:MM)]
You may append the projected score change as a signed integer field, e.g. "| +5".

**THOUGHT TRACING**
Before responding, analyze the user's state inside a single <thought>...</thought> tag.
Your public response follows immediately after the </thought> tag."""

ACTION_FORMAT_INSTRUCTIONS = """// ACTION BLOCK FORMAT:
// [ACTION: CREATE_TASK | Title | Type (ADULT/CHILD/REST) | Duration in minutes | ScheduledDate (YYYY-MM-DD) | ScheduledTime (HH:MM)]
// IMPORTANT: Use 24-hour format for ScheduledTime (e.g., "17:00"). Use YYYY-MM-DD for dates.
// In your conversational text, use 12-hour format (e.g., "5pm", "10:30am").
// If the user explicitly asks to schedule a task, ALWAYS output the action block for it."""

SCHEDULE_ASSIST_KEYS = ("suggestedType", "suggestedDate", "suggestedTime", "duration")
GENERIC_ADVICE = "Give me general advice about maintaining mental balance."


@dataclass
class CoachRequest:
    """Everything the coach is told about the user for one request."""

    mode: CoachMode | str
    local_date: date | None = None
    local_time: str | None = None
    tasks: list[Task] | None = None
    score: int | None = None
    balance: str | None = None
    question: str | None = None
    task_title: str | None = None
    history: list[DailySnapshot] = field(default_factory=list)
    goals: list[Goal] | None = None
    preferences: Preferences | None = None
    conversation_history: list[ConversationTurn] = field(default_factory=list)

    def to_payload(self) -> dict:
        """Serialize to the JSON body sent to the coach backend."""
        mode = self.mode.value if isinstance(self.mode, CoachMode) else self.mode
        payload: dict = {
            "mode": mode,
            "localDate": self.local_date.isoformat() if self.local_date else None,
            "localTime": self.local_time,
            "tasks": [
                {
                    "type": t.type.value,
                    "status": t.status.value,
                    "title": t.title,
                    "scheduledDate": t.scheduled_date.isoformat() if t.scheduled_date else None,
                    "scheduledTime": format_hhmm(t.scheduled_time) if t.scheduled_time else None,
                    "duration": t.duration,
                }
                for t in self.tasks or []
            ],
            "score": self.score,
            "balance": self.balance,
            "conversationHistory": [
                {"role": turn.role, "content": turn.content}
                for turn in self.conversation_history[-CONVERSATION_WINDOW:]
            ],
            "history": [
                {
                    "date": h.date.isoformat(),
                    "score": h.score,
                    "adultCompleted": h.adult_completed,
                    "childCompleted": h.child_completed,
                    "restCompleted": h.rest_completed,
                }
                for h in self.history
            ],
            "goals": [
                {
                    "title": g.title,
                    "targetDate": g.target_date.isoformat() if g.target_date else None,
                    "startTime": format_hhmm(g.start_time) if g.start_time else None,
                    "completed": g.completed,
                }
                for g in self.goals or []
            ],
            "preferences": _preferences_payload(self.preferences),
        }
        if self.question is not None:
            payload["question"] = self.question
        if self.task_title is not None:
            payload["taskTitle"] = self.task_title
        return payload

    @classmethod
    def from_payload(cls, data: dict) -> "CoachRequest":
        """Rebuild a request from its JSON body."""
        raw_date = data.get("localDate")
        prefs = data.get("preferences")
        return cls(
            mode=data.get("mode", CoachMode.ADVICE.value),
            local_date=date.fromisoformat(raw_date) if raw_date else None,
            local_time=data.get("localTime"),
            tasks=[Task.from_dict(t) for t in data["tasks"]] if "tasks" in data else None,
            score=data.get("score"),
            balance=data.get("balance"),
            question=data.get("question"),
            task_title=data.get("taskTitle"),
            history=[DailySnapshot.from_dict(h) for h in data.get("history") or []],
            goals=[Goal.from_dict(g) for g in data["goals"]] if "goals" in data else None,
            preferences=Preferences.from_dict(prefs) if prefs else None,
            conversation_history=[
                ConversationTurn(role=m.get("role", "user"), content=m.get("content", ""))
                for m in data.get("conversationHistory") or []
            ],
        )

    def cache_key(self) -> str:
        """Stable key for identical requests."""
        payload = self.to_payload()
        body = json.dumps(payload, sort_keys=True, default=str)
        digest = hashlib.sha256(body.encode("utf-8")).hexdigest()[:16]
        return f"{payload['mode']}:{digest}"


def _preferences_payload(prefs: Preferences | None) -> dict | None:
    if prefs is None:
        return None
    return {
        "hobbies": prefs.hobbies,
        "interests": prefs.interests,
        "passions": prefs.passions,
        "work": prefs.work,
        "sleepStartTime": format_hhmm(prefs.sleep_start_time),
        "sleepEndTime": format_hhmm(prefs.sleep_end_time),
    }


def coerce_mode(mode: CoachMode | str) -> CoachMode | None:
    """Map a raw mode tag to CoachMode, or None if unknown."""
    if isinstance(mode, CoachMode):
        return mode
    try:
        return CoachMode(mode)
    except ValueError:
        return None


def format_task_line(task: Task) -> str:
    """
    Format a task for the chat context.

    Pure function - no I/O.
    """
    at = f" at {format_hhmm(task.scheduled_time)}" if task.scheduled_time else ""
    return f"{task.title} ({task.type.value}{at})"


def format_history_line(snapshot: DailySnapshot) -> str:
    return (
        f"- {snapshot.date.isoformat()}: Score {snapshot.score}, "
        f"Adult {snapshot.adult_completed}, Child {snapshot.child_completed}, "
        f"Rest {snapshot.rest_completed}"
    )


def format_goal(goal: Goal) -> str:
    due = goal.target_date.isoformat() if goal.target_date else "no date"
    at = f" at {format_hhmm(goal.start_time)}" if goal.start_time else ""
    return f"{goal.title} (due {due}{at})"


def _join_or_none(values: list[str]) -> str:
    return ", ".join(values) or "None"


def build_common_context(request: CoachRequest, today: date, time_str: str) -> str:
    """
    Shared preamble: date, score, balance, free slots, completed counts, profile.

    Pure function - no I/O.
    """
    prefs = request.preferences
    sleep_start = prefs.sleep_start_time if prefs else DEFAULT_SLEEP_START
    sleep_end = prefs.sleep_end_time if prefs else DEFAULT_SLEEP_END
    available = free_slots(request.tasks, today, sleep_start, sleep_end)

    lines = [
        "Current Context:",
        f"- Date: {today.strftime('%A, %B %d, %Y')} ({today.isoformat()})",
        f"- Time: {time_str} (Local)",
        "- Current Status:",
        f"    - Ego Score: {request.score if request.score is not None else 50}/100",
        f"    - Balance State: {request.balance or 'neutral'}",
        f"    - Available Free Slots Today: {available}",
    ]
    if request.tasks is not None:
        done = count_completed_by_type(request.tasks)
        lines.append(
            f"    - Completed Today: {done[TaskType.ADULT]} Adult, "
            f"{done[TaskType.CHILD]} Child, {done[TaskType.REST]} Rest"
        )
    lines.append("User Profile:")
    if prefs:
        lines.append(f"- Hobbies: {_join_or_none(prefs.hobbies)}")
        lines.append(f"- Interests: {_join_or_none(prefs.interests)}")
        lines.append(f"- Passions: {_join_or_none(prefs.passions)}")
    return "\n".join(lines)


def _build_chat(request: CoachRequest, common: str, today: date) -> str:
    todays = filter_scheduled_on(request.tasks or [], today)
    if todays:
        tasks_str = f"Today's Tasks ({today.isoformat()}): " + ", ".join(format_task_line(t) for t in todays)
    else:
        tasks_str = "No tasks scheduled for today."

    sections = [common, tasks_str]

    history = request.history[-HISTORY_WINDOW:]
    if history:
        sections.append("\nPast 7 Days History:\n" + "\n".join(format_history_line(h) for h in history))

    active_goals = [g for g in request.goals or [] if not g.completed]
    if active_goals:
        sections.append("Active Goals: " + ", ".join(format_goal(g) for g in active_goals))

    turns = request.conversation_history[-CONVERSATION_WINDOW:]
    if turns:
        sections.append(
            "\nPrevious conversation:\n" + "\n".join(f"{t.speaker}: {t.content}" for t in turns)
        )

    sections.append(f"\nUser question: {request.question or ''}")
    sections.append('\nAnswer helpfully as the "Ego" coach using specific MindSync insights.')
    sections.append("\n" + ACTION_FORMAT_INSTRUCTIONS)
    return "\n".join(sections)


def _build_schedule_assist(request: CoachRequest, today: date, time_str: str, available: str) -> str:
    title = request.task_title or "Untitled Task"
    example = json.dumps(
        dict(zip(SCHEDULE_ASSIST_KEYS, ("ADULT", "YYYY-MM-DD", "HH:MM", 30)))
    )
    return f"""You are a scheduling assistant. Given the task title below, analyze it and return ONLY a JSON object (no markdown, no explanation) with your suggestions.

Task Title: "{title}"

Current Context:
- Date: {today.strftime('%A, %B %d, %Y')} ({today.isoformat()})
- Time: {time_str} (Local)
- Available Slots: {available}

Instructions:
1. Task type: ADULT (work, responsibilities), CHILD (fun, hobbies, play) or REST (relaxation, self-care).
2. Date: if mentioned ("tomorrow"), return the specific date. Else "{today.isoformat()}".
3. Time: if mentioned, use it. Else suggest an available slot. Use HH:MM (24-hour).
4. Duration: explicit or inferred (Gym=60, Call=30). Default 30.

Respond with ONLY this JSON format on a single line:
{example}"""


def build_prompt(request: CoachRequest, now: datetime | None = None) -> str:
    """
    Build the prompt text for one coach request.

    Pure function - no I/O. Always returns a string; an unknown mode falls
    back to a generic advice instruction.
    """
    now = now or datetime.now()
    today = request.local_date or now.date()
    time_str = request.local_time or now.strftime("%H:%M")

    mode = coerce_mode(request.mode)
    if mode is None:
        return GENERIC_ADVICE

    if mode == CoachMode.SCHEDULE_ASSIST:
        prefs = request.preferences
        available = free_slots(
            request.tasks,
            today,
            prefs.sleep_start_time if prefs else DEFAULT_SLEEP_START,
            prefs.sleep_end_time if prefs else DEFAULT_SLEEP_END,
        )
        return _build_schedule_assist(request, today, time_str, available)

    common = build_common_context(request, today, time_str)

    match mode:
        case CoachMode.ADVICE:
            return f"{common}\nGive me a 2-sentence personalized recommendation based on my current balance using MindSync terminology."
        case CoachMode.CHAT:
            return _build_chat(request, common, today)
        case CoachMode.SUMMARY:
            return f"{common}\nProvide a brief summary of my week's patterns and one key insight from the MindSync system."
        case CoachMode.PREDICT:
            return f"{common}\nPROPOSE A PERFECT PLAN for the next 24 hours. Identify 2-3 high-impact tasks and schedule them."

    return GENERIC_ADVICE
