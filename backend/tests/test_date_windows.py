"""Tests for dashboard period resolution."""

import pytest
from datetime import date, datetime, timedelta, timezone
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.date_windows import (
    UNBOUNDED,
    DateWindow,
    InvalidDateRangeError,
    parse_jira_datetime,
    resolve_previous_window,
    resolve_window,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestParseJiraDatetime:
    """Test Jira date parsing."""

    def test_offset_format(self):
        assert parse_jira_datetime("2024-10-31T12:11:56.289-0400") == utc(2024, 10, 31, 16, 11, 56, 289000)

    def test_zulu_format(self):
        assert parse_jira_datetime("2024-01-01T00:00:00Z") == utc(2024, 1, 1)

    def test_naive_is_utc(self):
        assert parse_jira_datetime("2024-01-01T08:30:00") == utc(2024, 1, 1, 8, 30)

    def test_date_only(self):
        assert parse_jira_datetime("2024-01-01") == utc(2024, 1, 1)

    def test_empty_and_garbage(self):
        assert parse_jira_datetime(None) is None
        assert parse_jira_datetime("") is None
        assert parse_jira_datetime("yesterday") is None


class TestDateWindow:
    """Test window containment."""

    def test_half_open(self):
        window = DateWindow(start=utc(2024, 1, 1), end=utc(2024, 1, 8))
        assert window.contains(utc(2024, 1, 1))
        assert window.contains(utc(2024, 1, 7, 23, 59))
        assert not window.contains(utc(2024, 1, 8))
        assert not window.contains(utc(2023, 12, 31))

    def test_missing_timestamp(self):
        """Only an unbounded window accepts a missing timestamp."""
        assert UNBOUNDED.contains(None)
        assert not DateWindow(start=utc(2024, 1, 1)).contains(None)

    def test_duration(self):
        assert DateWindow(start=utc(2024, 1, 1), end=utc(2024, 1, 8)).duration == timedelta(days=7)
        assert UNBOUNDED.duration is None


class TestResolveWindow:
    """Test named period resolution."""

    @pytest.mark.parametrize("period,days", [("week", 7), ("month", 28), ("quarter", 84)])
    def test_rolling_periods(self, now, period, days):
        window = resolve_window(period, now)
        assert window.end == now
        assert window.start == now - timedelta(days=days)

    def test_all_is_unbounded(self, now):
        assert resolve_window("all", now) == UNBOUNDED

    def test_custom_without_bounds_is_unbounded(self, now):
        assert resolve_window("custom", now) == UNBOUNDED

    def test_custom_date_only_end_is_inclusive(self, now):
        window = resolve_window("custom", now, "2024-01-01", "2024-01-10")
        assert window.start == utc(2024, 1, 1)
        assert window.end == utc(2024, 1, 11)
        assert window.contains(utc(2024, 1, 10, 23, 0))

    def test_custom_same_day(self, now):
        window = resolve_window("custom", now, date(2024, 1, 5), date(2024, 1, 5))
        assert window.duration == timedelta(days=1)

    def test_custom_start_only_runs_to_now(self, now):
        window = resolve_window("custom", now, "2024-01-01")
        assert window.end == now

    def test_custom_end_only_is_open_at_start(self, now):
        window = resolve_window("custom", now, None, "2024-01-10")
        assert window.start is None
        assert window.contains(utc(2020, 1, 1))

    def test_custom_start_after_end(self, now):
        with pytest.raises(InvalidDateRangeError):
            resolve_window("custom", now, "2024-01-11", "2024-01-10")

    def test_custom_start_time_within_date_only_end(self, now):
        """A start later on the end date is still inside that whole day."""
        window = resolve_window("custom", now, "2024-01-05T10:00:00", "2024-01-05")

        assert window.start == utc(2024, 1, 5, 10)
        assert window.end == utc(2024, 1, 6)

    def test_custom_start_equal_to_datetime_end(self, now):
        with pytest.raises(InvalidDateRangeError):
            resolve_window("custom", now, "2024-01-05T10:00:00", "2024-01-05T10:00:00")

    def test_custom_invalid_date(self, now):
        with pytest.raises(InvalidDateRangeError):
            resolve_window("custom", now, "01/10/2024")

    def test_unknown_period(self, now):
        with pytest.raises(InvalidDateRangeError):
            resolve_window("fortnight", now)


class TestResolvePreviousWindow:
    """Test comparison windows."""

    def test_previous_week_is_adjacent(self, now):
        current = resolve_window("week", now)
        previous = resolve_previous_window("week", now)
        assert previous.end == current.start
        assert previous.duration == current.duration

    def test_no_comparison_for_custom_and_all(self, now):
        assert resolve_previous_window("custom", now) is None
        assert resolve_previous_window("all", now) is None

    def test_unknown_period(self, now):
        with pytest.raises(InvalidDateRangeError):
            resolve_previous_window("year", now)
