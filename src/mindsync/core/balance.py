"""Pure balance scoring logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from .tasks import Task, TaskStatus, TaskType


class Balance(str, Enum):
    """Qualitative label for the Adult/Child distribution of a day."""

    OPTIMAL = "optimal"
    ANXIETY = "anxiety"
    DEPRESSION = "depression"
    NEUTRAL = "neutral"


@dataclass
class DailyScore:
    score: int
    balance: Balance


def _is_relevant(task: Task, today: date) -> bool:
    completed_today = (
        task.status == TaskStatus.DONE
        and task.completed_at is not None
        and task.completed_at.date() == today
    )
    return completed_today or task.scheduled_date == today


def relevant_today(tasks: list[Task], today: date) -> list[Task]:
    """Tasks scheduled today or completed today."""
    return [t for t in tasks if _is_relevant(t, today)]


def compute_daily_score(tasks: list[Task], today: date) -> DailyScore:
    """
    Score today's Adult/Child/Rest distribution (0-100).

    Considers tasks scheduled today or completed today.
    Pure function - no I/O.
    """
    relevant = relevant_today(tasks, today)
    adult = sum(1 for t in relevant if t.type == TaskType.ADULT)
    child = sum(1 for t in relevant if t.type == TaskType.CHILD)
    rest = sum(1 for t in relevant if t.type == TaskType.REST)
    total = adult + child + rest

    if total == 0:
        return DailyScore(score=50, balance=Balance.NEUTRAL)

    if adult and child:
        adult_ratio = adult / total
        child_ratio = child / total
        ratio = min(adult_ratio, child_ratio) / max(adult_ratio, child_ratio)
        score = round(60 + ratio * 40)
        if ratio > 0.4:
            balance = Balance.OPTIMAL
        elif adult_ratio > child_ratio:
            balance = Balance.ANXIETY
        else:
            balance = Balance.DEPRESSION
    elif adult:
        score = 40 + min(adult * 5, 20)
        balance = Balance.ANXIETY
    elif child:
        score = 40 + min(child * 5, 20)
        balance = Balance.DEPRESSION
    else:
        score = 50 + min(rest * 5, 30)
        balance = Balance.NEUTRAL

    return DailyScore(score=min(100, score), balance=balance)


def generate_smart_insight(
    balance: Balance,
    score: int,
    adult_count: int,
    child_count: int,
    rest_count: int,
) -> str:
    """Offline coaching line used when the model backend is unavailable."""
    if adult_count > 0 and child_count == 0 and rest_count == 0:
        return (
            "You are in pure Adult mode. High risk of burnout. "
            "You MUST schedule something fun or restful immediately."
        )
    if child_count > 0 and adult_count == 0:
        return (
            "You are in Child mode. While fun is good, avoiding responsibilities can lead "
            "to anxiety later. Try to tackle one small productive task."
        )

    match balance:
        case Balance.ANXIETY:
            return (
                f"Your Adult/Child balance is skewed ({adult_count} vs {child_count}). "
                "You are over-functioning, which feeds anxiety. Permission granted to stop working and rest."
            )
        case Balance.DEPRESSION:
            return (
                'Your activity level is low. Action is the antidote to despair. '
                '"How can I earn it?" -> Set a small goal to earn a small reward.'
            )
        case Balance.OPTIMAL:
            return (
                "Excellent balance! You are nurturing both your Adult (responsibility) "
                "and Child (creativity/rest) brains. Keep this rhythm."
            )
        case Balance.NEUTRAL:
            if score < 30:
                return "You haven't tracked much today. Start by logging just one thing you did."
            return "A fresh start. Remember: the goal isn't to be perfect, but to be balanced."

    return "Stay balanced."
