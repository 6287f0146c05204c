"""Pure natural-language date/time parsing - no I/O dependencies.

Each stage is an independent matcher returning ``(capture, residual_text)``.
``parse`` runs them in fixed precedence - duration, date, time, relative
time - feeding each stage the residual text of the previous one so a span
consumed by one stage can never be read by a later one.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

_WHITESPACE = re.compile(r"\s+")

_DURATION_UNITS = r"(mins?|minutes?|hrs?|hours?)"
_DURATION_FOR = re.compile(rf"\bfor\s+(\d+)\s*{_DURATION_UNITS}\b", re.IGNORECASE)
_DURATION_MINUTES = re.compile(r"(?:\bin\s+)?\b(\d+)\s*(mins?|minutes?)\b", re.IGNORECASE)
# "in 2 hours" belongs to the relative-time stage.
_DURATION_HOURS = re.compile(r"(?<!\bin )\b(\d+)\s*(hrs?|hours?)\b", re.IGNORECASE)

_NUMERIC_DATE = re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})\b")
_NAMED_DATE = re.compile(
    r"\b(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\.?"
    r"\s+(\d{1,2})(?:st|nd|rd|th)?\b",
    re.IGNORECASE,
)
_TOMORROW = re.compile(r"\btomorrow\b", re.IGNORECASE)
_TODAY = re.compile(r"\btoday\b", re.IGNORECASE)
_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_NEXT_WEEKDAY = re.compile(rf"\bnext\s+({'|'.join(_WEEKDAYS)})\b", re.IGNORECASE)
_MONTH_PREFIXES = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")

_TIME = re.compile(
    r"(?P<at>\bat\s+)?(?<![\d:])(?P<hour>\d{1,2})"
    r"(?:(?P<colon>:)(?P<minute>\d{2})|(?P<compact>\d{2})(?=\s*(?:am|pm|a|p)\b))?"
    r"\s*(?P<ampm>am|pm|a|p)?\b",
    re.IGNORECASE,
)
_RELATIVE_HOURS = re.compile(r"\bin\s+(\d+)\s*(?:hours?|hrs?)\b", re.IGNORECASE)

_LEADING_AT = re.compile(r"^\s*at\b", re.IGNORECASE)
_TRAILING_AT = re.compile(r"\bat\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedTemporalExpression:
    """
    Result of parsing free text.

    ``date`` is set only when it differs from the reference day, so callers
    can tell an explicitly stated date from the default.
    """

    date: date | None = None
    time: time | None = None
    duration: int | None = None
    remaining_text: str = ""

    def to_dict(self) -> dict:
        """Wire form: YYYY-MM-DD / HH:MM strings, unset fields omitted."""
        out: dict = {}
        if self.date is not None:
            out["date"] = self.date.isoformat()
        if self.time is not None:
            out["time"] = format_hhmm(self.time)
        if self.duration is not None:
            out["duration"] = self.duration
        return out


def _consume(text: str, match: re.Match) -> str:
    """Remove a matched span and normalize whitespace."""
    residual = f"{text[: match.start()]} {text[match.end():]}"
    return _WHITESPACE.sub(" ", residual).strip()


def format_hhmm(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def format_12h(value: time | int) -> str:
    """
    Compact 12-hour display ("9am", "12:30pm").

    Accepts a time or a minute-of-day count.
    """
    if isinstance(value, time):
        hours, minutes = value.hour, value.minute
    else:
        hours, minutes = divmod(value, 60)
    suffix = "pm" if hours >= 12 else "am"
    display_hour = hours % 12 or 12
    display_minutes = "" if minutes == 0 else f":{minutes:02d}"
    return f"{display_hour}{display_minutes}{suffix}"


# ============== Duration ==============


def match_duration(text: str) -> tuple[int | None, str]:
    """Find "<n> min(s)/hour(s)", preferring an explicit "for <n> ..."."""
    match = _DURATION_FOR.search(text)
    if not match:
        found = [m for m in (_DURATION_MINUTES.search(text), _DURATION_HOURS.search(text)) if m]
        match = min(found, key=lambda m: m.start(), default=None)
    if not match:
        return None, text

    value = int(match.group(1))
    if value <= 0:
        return None, text
    if match.group(2).lower().startswith("h"):
        value *= 60
    return value, _consume(text, match)


# ============== Date ==============


def _one_month_before(d: date) -> date:
    year, month = (d.year, d.month - 1) if d.month > 1 else (d.year - 1, 12)
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _match_numeric_date(text: str, today: date) -> tuple[date | None, str]:
    match = _NUMERIC_DATE.search(text)
    if not match:
        return None, text
    month, day, year = (int(g) for g in match.groups())
    if year < 100:
        year += 2000
    try:
        return date(year, month, day), _consume(text, match)
    except ValueError:
        return None, text


def _match_named_date(text: str, today: date) -> tuple[date | None, str]:
    match = _NAMED_DATE.search(text)
    if not match:
        return None, text
    month = _MONTH_PREFIXES.index(match.group(1)[:3].lower()) + 1
    day = int(match.group(2))
    try:
        target = date(today.year, month, day)
        if target < _one_month_before(today):
            target = target.replace(year=today.year + 1)
    except ValueError:
        return None, text
    return target, _consume(text, match)


def _match_tomorrow(text: str, today: date) -> tuple[date | None, str]:
    match = _TOMORROW.search(text)
    if not match:
        return None, text
    return today + timedelta(days=1), _consume(text, match)


def _match_today(text: str, today: date) -> tuple[date | None, str]:
    match = _TODAY.search(text)
    if not match:
        return None, text
    return today, _consume(text, match)


def _match_next_weekday(text: str, today: date) -> tuple[date | None, str]:
    match = _NEXT_WEEKDAY.search(text)
    if not match:
        return None, text
    offset = _WEEKDAYS.index(match.group(1).lower()) - today.weekday()
    if offset <= 0:
        offset += 7
    return today + timedelta(days=offset), _consume(text, match)


_DATE_MATCHERS = (
    _match_numeric_date,
    _match_named_date,
    _match_tomorrow,
    _match_today,
    _match_next_weekday,
)


def match_date(text: str, today: date) -> tuple[date | None, str]:
    """First date pattern that matches wins."""
    for matcher in _DATE_MATCHERS:
        found, residual = matcher(text, today)
        if found is not None:
            return found, residual
    return None, text


# ============== Time ==============


def match_time(text: str) -> tuple[time | None, str]:
    """
    Find the first unambiguous time of day.

    A candidate needs "at", an am/pm suffix, or a colon; "Task 2" is not
    02:00. Out-of-range candidates are skipped and scanning continues.
    """
    for match in _TIME.finditer(text):
        ampm = (match.group("ampm") or "").lower()
        if not (match.group("at") or ampm or match.group("colon")):
            continue

        hour = int(match.group("hour"))
        minute = int(match.group("minute") or match.group("compact") or 0)
        if ampm.startswith("p") and hour < 12:
            hour += 12
        elif ampm.startswith("a") and hour == 12:
            hour = 0

        if 0 <= hour <= 23 and 0 <= minute <= 59:
            return time(hour, minute), _consume(text, match)

    return None, text


def parse_time_of_day(text: str) -> time | None:
    """Time-only convenience wrapper around ``match_time``."""
    found, _ = match_time(text)
    return found


def match_relative_time(text: str, now: datetime) -> tuple[datetime | None, str]:
    """Resolve "in N hours" against ``now``."""
    match = _RELATIVE_HOURS.search(text)
    if not match:
        return None, text
    return now + timedelta(hours=int(match.group(1))), _consume(text, match)


# ============== Composition ==============


def _clean_title(text: str) -> str:
    text = _TRAILING_AT.sub("", text).strip()
    text = _LEADING_AT.sub("", text).strip()
    return _WHITESPACE.sub(" ", text)


def parse(text: str, reference_now: datetime | None = None) -> ParsedTemporalExpression:
    """
    Parse free text into date, time and duration.

    Pure function - deterministic given ``reference_now``.
    """
    reference_now = reference_now or datetime.now()
    today = reference_now.date()
    residual = text.strip()

    duration, residual = match_duration(residual)

    found_date, residual = match_date(residual, today)
    target_date = found_date or today

    found_time, residual = match_time(residual)
    if found_time is None:
        relative, residual = match_relative_time(residual, reference_now)
        if relative is not None:
            found_time = time(relative.hour, relative.minute)
            if target_date == today and relative.date() != today:
                target_date = relative.date()

    return ParsedTemporalExpression(
        date=target_date if target_date != today else None,
        time=found_time,
        duration=duration,
        remaining_text=_clean_title(residual),
    )
