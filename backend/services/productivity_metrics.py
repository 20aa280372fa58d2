"""Productivity metrics calculation from fetched Jira issues.

All functions here are pure: they take the issues already fetched through the
proxy and never call Jira themselves.

Timestamp semantics:
    - created_count uses the creation date.
    - Tasks delivered, velocity and cycle time use the completion date:
      resolution date, or last update for issues in a Done status without a
      resolution.
    - Bug rate is bugs over every issue in scope for the window (created,
      updated or completed in it). Its change compares the bug share of
      completed issues between the two windows.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from services.dashboard_config import DashboardFilters, DashboardSettings
from services.date_windows import (
    UNBOUNDED,
    DateWindow,
    parse_jira_datetime,
    resolve_previous_window,
    resolve_window,
)
from services.status_classifier import completion_date, is_completed

DEFAULT_SETTINGS = DashboardSettings()

SECONDS_PER_DAY = 24 * 60 * 60


def round_half_away(value: float, digits: int = 0):
    """Round half away from zero (2.5 -> 3, -2.5 -> -3).

    Returns an int when ``digits`` is 0.
    """
    factor = 10 ** digits
    rounded = math.floor(abs(value) * factor + 0.5) / factor
    rounded = math.copysign(rounded, value) if rounded else 0.0
    return int(rounded) if digits == 0 else rounded


def percent_change(current: float, previous: float) -> int:
    """Signed percentage change from previous to current.

    A zero previous value yields 100 when there is any current value, else 0.
    """
    if previous == 0:
        return 100 if current > 0 else 0
    return round_half_away((current - previous) / previous * 100)


def find_story_points(issue: dict, field_ids=DEFAULT_SETTINGS.story_point_fields):
    """Check each story points field in order for the first positive number.

    Returns None when no field holds one.
    """
    fields = issue.get("fields", {})

    for field_id in field_ids:
        points = fields.get(field_id)
        # bool is an int subclass but never a point value
        if isinstance(points, bool) or not isinstance(points, (int, float)):
            continue
        if points > 0:
            return points

    return None


def get_story_points(issue: dict, field_ids=DEFAULT_SETTINGS.story_point_fields):
    """Story points for velocity; unpointed issues count as exactly one point."""
    points = find_story_points(issue, field_ids)
    return 1 if points is None else points


def get_cycle_time_days(issue: dict) -> Optional[int]:
    """Days from creation to resolution (or last update), at least 1.

    Returns None when the issue has no usable dates.
    """
    fields = issue.get("fields", {})
    created = parse_jira_datetime(fields.get("created"))
    finished = completion_date(issue)

    if created is None or finished is None:
        return None

    days = (finished - created).total_seconds() / SECONDS_PER_DAY
    return max(1, round_half_away(days))


def is_bug(issue: dict, keywords=DEFAULT_SETTINGS.bug_keywords) -> bool:
    """Check whether the issue type name contains a bug-like keyword."""
    issue_type = (issue.get("fields", {}).get("issuetype") or {}).get("name") or ""
    issue_type = issue_type.lower()
    return any(keyword in issue_type for keyword in keywords)


def matches_assignee(issue: dict, assignee: str) -> bool:
    person = issue.get("fields", {}).get("assignee") or {}
    return assignee in (
        person.get("displayName"),
        person.get("emailAddress"),
        person.get("accountId"),
    )


def filter_issues(issues: list, filters: Optional[DashboardFilters]) -> list:
    """Apply the assignee and issue type filters."""
    if filters is None:
        return list(issues)

    result = []
    for issue in issues:
        if filters.has_assignee and not matches_assignee(issue, filters.assignee):
            continue
        if filters.issue_types:
            issue_type = (issue.get("fields", {}).get("issuetype") or {}).get("name")
            if issue_type not in filters.issue_types:
                continue
        result.append(issue)
    return result


def completed_in_window(issues: list, window: DateWindow,
                        mapping: Optional[dict] = None,
                        settings: DashboardSettings = DEFAULT_SETTINGS) -> list:
    """Issues completed within the window, by completion date."""
    return [
        issue for issue in issues
        if is_completed(issue, mapping, settings.status_keywords)
        and window.contains(completion_date(issue))
    ]


def issues_in_window(issues: list, window: DateWindow) -> list:
    """Issues created, updated or completed within the window."""
    result = []
    for issue in issues:
        fields = issue.get("fields", {})
        timestamps = (
            parse_jira_datetime(fields.get("created")),
            parse_jira_datetime(fields.get("updated")),
            completion_date(issue),
        )
        if any(window.contains(ts) for ts in timestamps):
            result.append(issue)
    return result


def _ratio_percent(part: int, whole: int) -> int:
    return round_half_away(part / whole * 100) if whole else 0


def average_cycle_time(issues: list, digits: int = 1) -> float:
    """Mean cycle time in days over the given issues, 0 when there are none."""
    cycle_times = [t for t in (get_cycle_time_days(issue) for issue in issues) if t is not None]
    if not cycle_times:
        return 0
    return round_half_away(sum(cycle_times) / len(cycle_times), digits)


@dataclass(frozen=True)
class MetricsSnapshot:
    created_count: int = 0
    completed_count: int = 0
    velocity: float = 0
    cycle_time_days: float = 0
    scope_count: int = 0
    bug_count: int = 0
    bug_rate_percent: int = 0
    completed_bug_rate_percent: int = 0

    def to_dict(self) -> dict:
        return {
            "createdCount": self.created_count,
            "completedCount": self.completed_count,
            "velocity": self.velocity,
            "cycleTimeDays": self.cycle_time_days,
            "scopeCount": self.scope_count,
            "bugCount": self.bug_count,
            "bugRatePercent": self.bug_rate_percent,
            "completedBugRatePercent": self.completed_bug_rate_percent,
        }


def aggregate(issues: list, window: DateWindow = UNBOUNDED,
              filters: Optional[DashboardFilters] = None,
              mapping: Optional[dict] = None,
              settings: DashboardSettings = DEFAULT_SETTINGS) -> MetricsSnapshot:
    """Compute the metrics snapshot for one window.

    Args:
        issues: Raw Jira issues
        window: Date window to count in
        filters: Optional assignee / issue type filters
        mapping: Optional authoritative status mapping for the project
        settings: Story point fields, bug keywords and status keywords

    Returns:
        MetricsSnapshot, all zeros for an empty issue set
    """
    scoped = filter_issues(issues, filters)

    created_count = sum(
        1 for issue in scoped
        if window.contains(parse_jira_datetime(issue.get("fields", {}).get("created")))
    )

    completed = completed_in_window(scoped, window, mapping, settings)
    velocity = sum(get_story_points(issue, settings.story_point_fields) for issue in completed)

    in_scope = issues_in_window(scoped, window)
    bug_count = sum(1 for issue in in_scope if is_bug(issue, settings.bug_keywords))
    completed_bugs = sum(1 for issue in completed if is_bug(issue, settings.bug_keywords))

    return MetricsSnapshot(
        created_count=created_count,
        completed_count=len(completed),
        velocity=velocity,
        cycle_time_days=average_cycle_time(completed),
        scope_count=len(in_scope),
        bug_count=bug_count,
        bug_rate_percent=_ratio_percent(bug_count, len(in_scope)),
        completed_bug_rate_percent=_ratio_percent(completed_bugs, len(completed)),
    )


def calculate_productivity_metrics(issues: list, filters: DashboardFilters, now: datetime,
                                   mapping: Optional[dict] = None,
                                   settings: DashboardSettings = DEFAULT_SETTINGS) -> dict:
    """Headline dashboard metrics with changes against the previous period.

    Field names are the export contract shared with the CSV report and the
    frontend cards; do not rename them.

    Raises:
        InvalidDateRangeError: for an invalid custom range
    """
    window = resolve_window(filters.time_period, now, filters.start_date, filters.end_date)
    previous_window = resolve_previous_window(filters.time_period, now)

    current = aggregate(issues, window, filters, mapping, settings)
    previous = (
        aggregate(issues, previous_window, filters, mapping, settings)
        if previous_window is not None else None
    )

    def change(attr: str) -> int:
        if previous is None:
            return 0
        return percent_change(getattr(current, attr), getattr(previous, attr))

    return {
        "tasksDelivered": current.completed_count,
        "tasksDeliveredChange": change("completed_count"),
        "tasksCreated": current.created_count,
        "tasksCreatedChange": change("created_count"),
        "velocity": current.velocity,
        "velocityChange": change("velocity"),
        "cycleTime": current.cycle_time_days,
        "cycleTimeChange": change("cycle_time_days"),
        "bugRate": current.bug_rate_percent,
        "bugRateChange": change("completed_bug_rate_percent"),
        "totalIssues": len(filter_issues(issues, filters)),
        "timePeriod": filters.time_period,
        "hasComparison": previous is not None,
        "window": window.to_dict(),
    }
