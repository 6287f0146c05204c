"""Pure free-slot logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, time

from .tasks import Task, minute_of_day
from .temporal import format_12h

MIN_GAP_MINUTES = 15
END_OF_DAY = 24 * 60 - 1
DEFAULT_SLEEP_START = time(23, 0)
DEFAULT_SLEEP_END = time(6, 0)


@dataclass
class FreeInterval:
    """A free stretch of the day, in minutes since midnight."""

    start_minute: int
    end_minute: int

    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    def format(self) -> str:
        return f"{format_12h(self.start_minute)} - {format_12h(self.end_minute)}"

    def to_dict(self) -> dict:
        return {
            "start": f"{self.start_minute // 60:02d}:{self.start_minute % 60:02d}",
            "end": f"{self.end_minute // 60:02d}:{self.end_minute % 60:02d}",
            "minutes": self.duration_minutes(),
        }


def _blocking_tasks(tasks: list[Task], target_date: date) -> list[Task]:
    """Tasks on the target date that have a time and are not done, sorted by time."""
    return sorted(
        (
            t
            for t in tasks
            if t.is_scheduled_on(target_date) and t.scheduled_time is not None and not t.is_done
        ),
        key=lambda t: t.scheduled_time,
    )


def find_free_intervals(
    tasks: list[Task],
    target_date: date,
    sleep_start: time = DEFAULT_SLEEP_START,
    sleep_end: time = DEFAULT_SLEEP_END,
) -> list[FreeInterval]:
    """
    Find free intervals between tasks during the awake window.

    Pure function - no I/O.

    Args:
        tasks: Tasks from the store (any date, any status)
        target_date: Day to compute slots for
        sleep_start: Bedtime; end of the awake window
        sleep_end: Wake time; start of the awake window

    Returns:
        Ascending, non-overlapping intervals, each longer than 15 minutes.
        When the awake window crosses midnight only the part up to the end
        of ``target_date`` is considered.
    """
    awake_start = minute_of_day(sleep_end)
    awake_end = minute_of_day(sleep_start)
    if awake_end <= awake_start:
        awake_end = END_OF_DAY

    intervals = []
    cursor = awake_start

    for task in _blocking_tasks(tasks, target_date):
        task_start = task.start_minute()
        task_end = task.end_minute()

        # Overlap: absorb it, never emit a negative gap.
        if task_start < cursor:
            cursor = max(cursor, task_end)
            continue

        if task_start > cursor + MIN_GAP_MINUTES:
            intervals.append(FreeInterval(cursor, task_start))

        cursor = max(cursor, task_end)

    if awake_end - cursor > MIN_GAP_MINUTES:
        intervals.append(FreeInterval(cursor, awake_end))

    return intervals


def free_slots(
    tasks: list[Task] | None,
    target_date: date | None,
    sleep_start: time = DEFAULT_SLEEP_START,
    sleep_end: time = DEFAULT_SLEEP_END,
) -> str:
    """
    Describe a day's free time as text for the coach prompt.

    Pure function - no I/O.
    Returns e.g. "6am - 9am, 10am - 12pm" or "None (Busy)".
    """
    if tasks is None or target_date is None:
        return "Unknown"

    awake_start = minute_of_day(sleep_end)
    awake_end = minute_of_day(sleep_start)

    if not _blocking_tasks(tasks, target_date):
        if awake_end > awake_start:
            return f"All day ({format_12h(awake_start)} - {format_12h(awake_end)})"
        return f"All day ({format_12h(awake_start)} - 11:59pm AND 12am - {format_12h(awake_end)})"

    intervals = find_free_intervals(tasks, target_date, sleep_start, sleep_end)
    if not intervals:
        return "None (Busy)"
    return ", ".join(interval.format() for interval in intervals)
