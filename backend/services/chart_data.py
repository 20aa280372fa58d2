"""Chart and table datasets for the dashboard views."""

import calendar
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from services.dashboard_config import DashboardSettings
from services.date_windows import UNBOUNDED, DateWindow, parse_jira_datetime
from services.productivity_metrics import (
    average_cycle_time,
    completed_in_window,
    find_story_points,
    get_story_points,
    round_half_away,
)
from services.status_classifier import (
    StatusCategory,
    classify_issue,
    completion_date,
    group_issues_by_category,
)

DEFAULT_SETTINGS = DashboardSettings()

GRANULARITIES = ("day", "week", "month")

# Bucket count used when the window gives no start to count from
DEFAULT_BUCKETS = {"day": 30, "week": 12, "month": 12}


def _bucket_start(timestamp: datetime, granularity: str) -> datetime:
    day = timestamp.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    if granularity == "week":
        return day - timedelta(days=day.weekday())
    if granularity == "month":
        return day.replace(day=1)
    return day


def _next_bucket(start: datetime, granularity: str) -> datetime:
    if granularity == "day":
        return start + timedelta(days=1)
    if granularity == "week":
        return start + timedelta(days=7)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def _previous_bucket(start: datetime, granularity: str) -> datetime:
    if granularity == "day":
        return start - timedelta(days=1)
    if granularity == "week":
        return start - timedelta(days=7)
    if start.month == 1:
        return start.replace(year=start.year - 1, month=12)
    return start.replace(month=start.month - 1)


def _bucket_key(start: datetime, granularity: str) -> str:
    if granularity == "week":
        iso_year, iso_week, _ = start.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if granularity == "month":
        return start.strftime("%Y-%m")
    return start.strftime("%Y-%m-%d")


def _bucket_label(start: datetime, granularity: str) -> str:
    if granularity == "month":
        return f"{calendar.month_abbr[start.month]}/{start.strftime('%y')}"
    if granularity == "week":
        return _bucket_key(start, granularity)
    return start.strftime("%d/%m")


def bucket_range(granularity: str, now: datetime, window: DateWindow = UNBOUNDED) -> list:
    """Contiguous bucket start times covering the window.

    Without a window start, the last DEFAULT_BUCKETS buckets up to the window
    end (or now) are used.

    Raises:
        ValueError: for an unknown granularity
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity: {granularity}")

    end = window.end or now
    # Window end is exclusive
    last = _bucket_start(end - timedelta(microseconds=1), granularity)

    if window.start is not None:
        first = _bucket_start(window.start, granularity)
    else:
        first = last
        for _ in range(DEFAULT_BUCKETS[granularity] - 1):
            first = _previous_bucket(first, granularity)

    buckets = []
    current = first
    while current <= last:
        buckets.append(current)
        current = _next_bucket(current, granularity)
    return buckets


def completion_series(issues: list, granularity: str, now: datetime,
                      window: DateWindow = UNBOUNDED,
                      mapping: Optional[dict] = None,
                      settings: DashboardSettings = DEFAULT_SETTINGS) -> list:
    """Completed-issue counts per day, week (ISO, Monday start) or month.

    Every bucket in range is present; empty buckets carry a zero.
    """
    buckets = bucket_range(granularity, now, window)
    if not buckets:
        return []
    counts = {_bucket_key(start, granularity): 0 for start in buckets}

    range_window = DateWindow(start=window.start or buckets[0], end=window.end or now)
    for issue in completed_in_window(issues, range_window, mapping, settings):
        key = _bucket_key(_bucket_start(completion_date(issue), granularity), granularity)
        if key in counts:
            counts[key] += 1

    return [
        {
            "name": _bucket_label(start, granularity),
            "value": counts[_bucket_key(start, granularity)],
            "fullDate": _bucket_key(start, granularity),
        }
        for start in buckets
    ]


def developer_productivity(issues: list, window: DateWindow = UNBOUNDED,
                           mapping: Optional[dict] = None,
                           settings: DashboardSettings = DEFAULT_SETTINGS) -> list:
    """Per-assignee rollup of resolved issues, story points and cycle time.

    Sorted by issues resolved (descending), then name.
    """
    developers = {}

    for issue in issues:
        assignee = issue.get("fields", {}).get("assignee")
        if not assignee:
            continue

        key = assignee.get("accountId") or assignee.get("emailAddress") or assignee.get("displayName")
        if key not in developers:
            developers[key] = {
                "name": assignee.get("displayName", "Unknown"),
                "email": assignee.get("emailAddress"),
                "accountId": assignee.get("accountId"),
                "issues": [],
            }
        developers[key]["issues"].append(issue)

    rollup = []
    for dev in developers.values():
        resolved = completed_in_window(dev["issues"], window, mapping, settings)
        rollup.append({
            "name": dev["name"],
            "email": dev["email"],
            "accountId": dev["accountId"],
            "issuesAssigned": len(dev["issues"]),
            "issuesResolved": len(resolved),
            "storyPoints": sum(get_story_points(i, settings.story_point_fields) for i in resolved),
            "avgCycleTime": average_cycle_time(resolved),
        })

    rollup.sort(key=lambda d: (-d["issuesResolved"], d["name"] or ""))
    return rollup


def issue_type_distribution(issues: list) -> list:
    """Issue counts and percentages per issue type, largest first."""
    counts = Counter(
        (issue.get("fields", {}).get("issuetype") or {}).get("name") or "Unknown"
        for issue in issues
    )
    total = sum(counts.values())

    distribution = [
        {
            "name": name,
            "value": count,
            "percentage": round_half_away(count / total * 100) if total else 0,
        }
        for name, count in counts.items()
    ]
    distribution.sort(key=lambda d: (-d["value"], d["name"]))
    return distribution


def status_distribution(issues: list, mapping: Optional[dict] = None,
                        settings: DashboardSettings = DEFAULT_SETTINGS) -> list:
    """Issue counts per status bucket, including uncategorized."""
    columns = group_issues_by_category(issues, mapping, settings.status_keywords)
    return [
        {"name": category.value, "value": len(columns[category])}
        for category in StatusCategory
    ]


def _issue_card(issue: dict, settings: DashboardSettings) -> dict:
    fields = issue.get("fields", {})
    status = fields.get("status") or {}
    return {
        "key": issue.get("key"),
        "summary": fields.get("summary"),
        "issueType": (fields.get("issuetype") or {}).get("name"),
        "status": status.get("name"),
        "assignee": (fields.get("assignee") or {}).get("displayName"),
        "storyPoints": find_story_points(issue, settings.story_point_fields),
        "created": fields.get("created"),
        "updated": fields.get("updated"),
        "resolved": fields.get("resolutiondate"),
    }


def kanban_board(issues: list, mapping: Optional[dict] = None,
                 settings: DashboardSettings = DEFAULT_SETTINGS) -> list:
    """Kanban columns with issue cards; uncategorized issues get their own column."""
    columns = group_issues_by_category(issues, mapping, settings.status_keywords)
    return [
        {
            "id": category.name.lower(),
            "title": category.value,
            "count": len(columns[category]),
            "issues": [_issue_card(issue, settings) for issue in columns[category]],
        }
        for category in StatusCategory
    ]


def quick_stats(issues: list, mapping: Optional[dict] = None,
                settings: DashboardSettings = DEFAULT_SETTINGS) -> dict:
    active = sum(
        1 for issue in issues
        if classify_issue(issue, mapping, settings.status_keywords) != StatusCategory.DONE
    )
    members = {
        (issue.get("fields", {}).get("assignee") or {}).get("emailAddress")
        for issue in issues
    }
    members.discard(None)
    return {"activeIssues": active, "teamMembers": len(members)}


def recent_activity(issues: list, limit: int = 5) -> list:
    """Most recently updated resolved issues."""
    resolved = [i for i in issues if i.get("fields", {}).get("resolutiondate")]
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    resolved.sort(
        key=lambda i: parse_jira_datetime(i["fields"].get("updated")) or epoch,
        reverse=True,
    )
    return [
        {
            "key": issue.get("key"),
            "summary": issue["fields"].get("summary"),
            "assignee": (issue["fields"].get("assignee") or {}).get("displayName"),
            "resolved": issue["fields"].get("resolutiondate"),
        }
        for issue in resolved[:limit]
    ]
