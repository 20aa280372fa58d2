"""Time period resolution for dashboard metrics.

Turns a named dashboard period (week, month, quarter, custom, all) into a
concrete date window, plus the equal-length window immediately before it
used for period-over-period comparisons.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union


PERIOD_LENGTHS = {
    "week": timedelta(days=7),
    "month": timedelta(days=28),
    "quarter": timedelta(days=84),
}

TIME_PERIODS = ("week", "month", "quarter", "custom", "all")


class InvalidDateRangeError(ValueError):
    """Raised for an unknown period or a custom range that cannot be used."""


@dataclass(frozen=True)
class DateWindow:
    """Half-open window [start, end). A None bound leaves that side open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def unbounded(self) -> bool:
        return self.start is None and self.end is None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.start is None or self.end is None:
            return None
        return self.end - self.start

    def contains(self, timestamp: Optional[datetime]) -> bool:
        """Check whether a timestamp falls inside the window.

        A missing timestamp is only accepted by an unbounded window.
        """
        if timestamp is None:
            return self.unbounded
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp >= self.end:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


UNBOUNDED = DateWindow()


def parse_jira_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a Jira date string into a timezone-aware UTC datetime.

    Jira formats: "2024-10-31T12:11:56.289-0400", "2024-10-31T12:11:56.289+0000",
    "2024-01-01T00:00:00Z" or a bare "2024-01-01". Values without an offset
    are taken as UTC.
    """
    if not value:
        return None

    formats = [
        "%Y-%m-%dT%H:%M:%S.%f%z",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d",
    ]

    for fmt in formats:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    return None


def _coerce_bound(value: Union[str, date, datetime, None]) -> tuple:
    """Normalize a custom range bound.

    Returns:
        Tuple of (aware datetime or None, whether the bound was date-only)
    """
    if value is None or value == "":
        return None, False

    if isinstance(value, datetime):
        return (value if value.tzinfo else value.replace(tzinfo=timezone.utc)), False

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc), True

    parsed = parse_jira_datetime(value)
    if parsed is None:
        raise InvalidDateRangeError(f"Invalid date: {value}")

    return parsed, len(value) == 10


def resolve_window(period: str, now: datetime,
                   custom_start=None, custom_end=None) -> DateWindow:
    """Resolve a dashboard period into a concrete window ending at ``now``.

    Args:
        period: One of week, month, quarter, custom, all
        now: Reference time (aware)
        custom_start: Optional start for the custom period (ISO string or date)
        custom_end: Optional end for the custom period (ISO string or date)

    Returns:
        DateWindow. "all", and "custom" without bounds, are unbounded.

    Raises:
        InvalidDateRangeError: unknown period, unparseable bound, or a custom
            start after the custom end.
    """
    if period in PERIOD_LENGTHS:
        return DateWindow(start=now - PERIOD_LENGTHS[period], end=now)

    if period == "all":
        return UNBOUNDED

    if period != "custom":
        raise InvalidDateRangeError(f"Unknown time period: {period}")

    start, _ = _coerce_bound(custom_start)
    end, end_is_date = _coerce_bound(custom_end)

    if start is None and end is None:
        return UNBOUNDED

    # A date-only end covers that whole day; the window end is exclusive
    if end is not None and end_is_date:
        end += timedelta(days=1)

    if start is not None and end is not None and start >= end:
        raise InvalidDateRangeError(
            f"Custom start date {custom_start} is after end date {custom_end}"
        )

    # Start only runs up to now; end only stays open toward the earliest data
    if end is None:
        end = max(now, start)

    return DateWindow(start=start, end=end)


def resolve_previous_window(period: str, now: datetime) -> Optional[DateWindow]:
    """Get the equal-length window immediately before the current one.

    Returns None for custom and all periods, which have no comparison.
    """
    if period not in PERIOD_LENGTHS:
        if period in TIME_PERIODS:
            return None
        raise InvalidDateRangeError(f"Unknown time period: {period}")

    current = resolve_window(period, now)
    return DateWindow(start=current.start - PERIOD_LENGTHS[period], end=current.start)
