"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum

DEFAULT_DURATION = 30


class TaskType(str, Enum):
    """Coarse task category used for scoring and suggestions."""

    ADULT = "ADULT"
    CHILD = "CHILD"
    REST = "REST"


class TaskStatus(str, Enum):
    TODO = "TODO"
    START = "START"
    DONE = "DONE"


# Checked in order: REST and CHILD win over the catch-all ADULT.
TYPE_KEYWORDS: dict[TaskType, tuple[str, ...]] = {
    TaskType.REST: (
        "sleep", "nap", "rest", "relax", "meditate", "break", "breathe",
        "chill", "recover", "gym", "yoga", "walk",
    ),
    TaskType.CHILD: (
        "game", "play", "fun", "movie", "hobby", "art", "music", "read",
        "draw", "paint", "video", "tv", "guitar",
    ),
    TaskType.ADULT: (
        "work", "meeting", "email", "call", "study", "clean", "chore", "pay",
        "bill", "cook", "laundry", "errand",
    ),
}


def parse_hhmm(value: str | None) -> time | None:
    """Parse a zero-padded 24h "HH:MM" string. Returns None if invalid."""
    if not value:
        return None
    try:
        hh, mm = value.strip().split(":")[:2]
        return time(int(hh), int(mm))
    except ValueError:
        return None


def parse_iso_date(value: str | None) -> date | None:
    """Parse YYYY-MM-DD (a trailing time part is ignored). Returns None if invalid."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip().split("T")[0])
    except ValueError:
        return None


def minute_of_day(t: time) -> int:
    return t.hour * 60 + t.minute


@dataclass
class Task:
    """A task as held by the surrounding store."""

    id: str
    title: str
    type: TaskType = TaskType.ADULT
    status: TaskStatus = TaskStatus.TODO
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    duration: int | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    def effective_duration(self) -> int:
        """Duration in minutes, falling back to the default when unset."""
        return self.duration or DEFAULT_DURATION

    def start_minute(self) -> int | None:
        if self.scheduled_time is None:
            return None
        return minute_of_day(self.scheduled_time)

    def end_minute(self) -> int | None:
        start = self.start_minute()
        if start is None:
            return None
        return start + self.effective_duration()

    def is_scheduled_on(self, target_date: date) -> bool:
        return self.scheduled_date == target_date

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create Task from the app's camelCase JSON export."""
        created = data.get("createdAt")
        completed = data.get("completedAt")
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            type=coerce_task_type(data.get("type")) or TaskType.ADULT,
            status=TaskStatus(data.get("status") or "TODO"),
            scheduled_date=parse_iso_date(data.get("scheduledDate")),
            scheduled_time=parse_hhmm(data.get("scheduledTime")),
            duration=data.get("duration") or None,
            created_at=datetime.fromisoformat(created.replace("Z", "+00:00")) if created else None,
            completed_at=datetime.fromisoformat(completed.replace("Z", "+00:00")) if completed else None,
        )


@dataclass
class Goal:
    """A longer-running goal with a due date."""

    title: str
    target_date: date | None
    start_time: time | None = None
    completed: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Goal":
        return cls(
            title=data.get("title", ""),
            target_date=parse_iso_date(data.get("targetDate") or data.get("titleDate")),
            start_time=parse_hhmm(data.get("startTime")),
            completed=bool(data.get("completed", False)),
        )


@dataclass
class DailySnapshot:
    """Per-day history entry."""

    date: date
    score: int
    adult_completed: int = 0
    child_completed: int = 0
    rest_completed: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "DailySnapshot":
        return cls(
            date=date.fromisoformat(data["date"]),
            score=int(data.get("score", 0)),
            adult_completed=int(data.get("adultCompleted", 0)),
            child_completed=int(data.get("childCompleted", 0)),
            rest_completed=int(data.get("restCompleted", 0)),
        )


@dataclass
class Preferences:
    """User profile and sleep window."""

    hobbies: list[str] = field(default_factory=list)
    interests: list[str] = field(default_factory=list)
    passions: list[str] = field(default_factory=list)
    work: list[str] = field(default_factory=list)
    sleep_start_time: time = field(default_factory=lambda: time(23, 0))
    sleep_end_time: time = field(default_factory=lambda: time(6, 0))

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        prefs = cls(
            hobbies=list(data.get("hobbies") or []),
            interests=list(data.get("interests") or []),
            passions=list(data.get("passions") or []),
            work=list(data.get("work") or []),
        )
        sleep_start = parse_hhmm(data.get("sleepStartTime"))
        sleep_end = parse_hhmm(data.get("sleepEndTime"))
        if sleep_start:
            prefs.sleep_start_time = sleep_start
        if sleep_end:
            prefs.sleep_end_time = sleep_end
        return prefs


@dataclass
class ConversationTurn:
    role: str
    content: str

    @property
    def speaker(self) -> str:
        return "User" if self.role == "user" else "Coach"


@dataclass
class AppState:
    """Application state handed to the coach."""

    tasks: list[Task] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)
    history: list[DailySnapshot] = field(default_factory=list)
    preferences: Preferences | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "AppState":
        prefs = data.get("preferences")
        return cls(
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
            goals=[Goal.from_dict(g) for g in data.get("goals") or []],
            history=[DailySnapshot.from_dict(h) for h in data.get("history") or []],
            preferences=Preferences.from_dict(prefs) if prefs else None,
        )


def coerce_task_type(value: str | None) -> TaskType | None:
    """Map a raw type string to TaskType, or None if unknown."""
    if not value:
        return None
    try:
        return TaskType(value.strip().upper())
    except ValueError:
        return None


def classify_task_type(title: str) -> TaskType:
    """
    Guess a task's type from keywords in its title.

    Pure function - no I/O. Never fails; ADULT is the catch-all.
    """
    lower = title.lower()
    for task_type, keywords in TYPE_KEYWORDS.items():
        if any(k in lower for k in keywords):
            return task_type
    return TaskType.ADULT


def filter_scheduled_on(tasks: list[Task], target_date: date) -> list[Task]:
    """Filter to tasks scheduled on a given date."""
    return [t for t in tasks if t.is_scheduled_on(target_date)]


def count_completed_by_type(tasks: list[Task]) -> dict[TaskType, int]:
    """Count DONE tasks per category."""
    counts = {t: 0 for t in TaskType}
    for task in tasks:
        if task.is_done:
            counts[task.type] += 1
    return counts


def sort_by_time(tasks: list[Task]) -> list[Task]:
    """Sort tasks by scheduled time; unscheduled tasks go last."""
    return sorted(tasks, key=lambda t: (t.scheduled_time is None, t.scheduled_time or time.min))
