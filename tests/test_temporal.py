"""Tests for natural-language date/time parsing."""

from datetime import date, datetime, time

import pytest

from mindsync.core.temporal import (
    ParsedTemporalExpression,
    format_12h,
    match_date,
    match_duration,
    match_time,
    parse,
    parse_time_of_day,
)


@pytest.fixture
def now():
    # Wednesday
    return datetime(2025, 1, 15, 10, 0)


@pytest.fixture
def today(now):
    return now.date()


class TestTimeOfDay:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Gym at 130p", time(13, 30)),
            ("Breakfast 9a", time(9, 0)),
            ("Lunch 12:30pm", time(12, 30)),
            ("Call at 22:00", time(22, 0)),
            ("Sleep at 11pm", time(23, 0)),
            ("Standup 9:15", time(9, 15)),
            ("Midnight snack 12am", time(0, 0)),
            ("Noon walk at 12", time(12, 0)),
        ],
    )
    def test_recognized_times(self, text, expected):
        assert parse_time_of_day(text) == expected

    def test_bare_number_is_not_a_time(self):
        assert parse_time_of_day("Task 2") is None

    def test_out_of_range_candidate_is_skipped(self):
        assert parse_time_of_day("Call at 25:00 then lunch at 1pm") == time(13, 0)

    def test_first_accepted_match_wins(self):
        assert parse_time_of_day("at 9am or at 3pm") == time(9, 0)

    def test_match_consumes_at(self):
        found, residual = match_time("Call mom at 6pm")
        assert found == time(18, 0)
        assert residual == "Call mom"


class TestDuration:
    def test_minutes(self):
        assert match_duration("Read 30 mins") == (30, "Read")

    def test_hours_are_converted(self):
        assert match_duration("Study for 2 hours") == (120, "Study")

    def test_for_phrase_is_preferred(self):
        value, _ = match_duration("Walk 5 min to park for 45 minutes")
        assert value == 45

    def test_in_n_hours_is_left_for_relative_time(self):
        value, residual = match_duration("Nap in 2 hours")
        assert value is None
        assert residual == "Nap in 2 hours"

    def test_in_n_minutes_is_a_duration(self):
        assert match_duration("Call mom in 20 minutes") == (20, "Call mom")

    def test_earliest_bare_duration_wins(self):
        assert match_duration("Run 2 hrs then stretch 10 min") == (120, "Run then stretch 10 min")


class TestDate:
    def test_numeric_date(self, today):
        assert match_date("Dentist 2/3/2026", today) == (date(2026, 2, 3), "Dentist")

    def test_two_digit_year(self, today):
        found, _ = match_date("Trip 3-14-26", today)
        assert found == date(2026, 3, 14)

    def test_invalid_calendar_date_is_no_match(self, today):
        found, residual = match_date("Party 2/30/2026", today)
        assert found is None
        assert residual == "Party 2/30/2026"

    def test_month_name_in_future(self, today):
        found, _ = match_date("Trip jan 26", today)
        assert found == date(2025, 1, 26)

    def test_month_name_with_suffix(self, today):
        found, _ = match_date("Concert March 3rd", today)
        assert found == date(2025, 3, 3)

    def test_month_name_long_past_rolls_forward(self):
        found, _ = match_date("Trip jan 26", date(2025, 3, 15))
        assert found == date(2026, 1, 26)

    def test_month_name_recent_past_does_not_roll(self):
        found, _ = match_date("Review mar 1", date(2025, 3, 15))
        assert found == date(2025, 3, 1)

    def test_tomorrow(self, today):
        assert match_date("Gym tomorrow", today) == (date(2025, 1, 16), "Gym")

    def test_next_weekday(self, today):
        found, _ = match_date("Call next monday", today)
        assert found == date(2025, 1, 20)

    def test_next_same_weekday_is_a_week_out(self, today):
        found, _ = match_date("Call next wednesday", today)
        assert found == date(2025, 1, 22)


class TestParse:
    def test_full_sentence(self, now):
        parsed = parse("Meeting tomorrow at 3pm for 1 hour", now)
        assert parsed == ParsedTemporalExpression(
            date=date(2025, 1, 16),
            time=time(15, 0),
            duration=60,
            remaining_text="Meeting",
        )

    def test_today_is_not_reported(self, now):
        parsed = parse("Gym today at 6pm", now)
        assert parsed.date is None
        assert parsed.time == time(18, 0)
        assert parsed.remaining_text == "Gym"

    def test_nothing_found(self, now):
        parsed = parse("Task 2", now)
        assert parsed.date is None
        assert parsed.time is None
        assert parsed.duration is None
        assert parsed.remaining_text == "Task 2"

    def test_relative_time(self, now):
        parsed = parse("Nap in 2 hours", now)
        assert parsed.time == time(12, 0)
        assert parsed.date is None
        assert parsed.duration is None
        assert parsed.remaining_text == "Nap"

    def test_in_n_minutes_is_duration_not_relative_time(self, now):
        parsed = parse("Call mom in 20 minutes", now)
        assert parsed.duration == 20
        assert parsed.time is None
        assert parsed.remaining_text == "Call mom"

    def test_relative_time_crossing_midnight_advances_date(self):
        parsed = parse("Party in 3 hours", datetime(2025, 1, 15, 22, 30))
        assert parsed.time == time(1, 30)
        assert parsed.date == date(2025, 1, 16)

    def test_absolute_time_beats_relative(self, now):
        parsed = parse("Call at 5pm in 2 hours", now)
        assert parsed.time == time(17, 0)

    def test_date_span_is_not_read_as_time(self, now):
        parsed = parse("Dentist 2/3/2026 at 9am", now)
        assert parsed.date == date(2026, 2, 3)
        assert parsed.time == time(9, 0)

    def test_idempotent(self, now):
        text = "Yoga next friday at 7:30am for 45 mins"
        assert parse(text, now) == parse(text, now)

    def test_to_dict(self, now):
        parsed = parse("Meeting tomorrow at 3pm for 1 hour", now)
        assert parsed.to_dict() == {"date": "2025-01-16", "time": "15:00", "duration": 60}

    def test_to_dict_omits_unset(self, now):
        assert parse("Breakfast 9a", now).to_dict() == {"time": "09:00"}


class TestFormat12h:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (time(9, 0), "9am"),
            (time(12, 30), "12:30pm"),
            (0, "12am"),
            (23 * 60 + 59, "11:59pm"),
            (13 * 60 + 5, "1:05pm"),
        ],
    )
    def test_formats(self, value, expected):
        assert format_12h(value) == expected
