"""Thin Jira Cloud REST client used by the proxy endpoints."""

import logging
from datetime import datetime, timedelta
from typing import Optional

import requests

from services.dashboard_config import DashboardFilters, DashboardSettings
from services.date_windows import resolve_previous_window, resolve_window

logger = logging.getLogger(__name__)

BASE_ISSUE_FIELDS = [
    "summary", "status", "assignee", "created", "updated",
    "resolutiondate", "issuetype",
]


class JiraAPIError(Exception):
    """Jira answered with an error status; carries Jira's own message."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _upstream_message(response) -> str:
    """Pull the first error message out of a Jira error response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        messages = data.get("errorMessages") or []
        if messages:
            return messages[0]
        errors = data.get("errors") or {}
        if errors:
            return next(iter(errors.values()))

    return f"Jira API error: {response.status_code}"


def quote_jql(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_jql(project_key: str, filters: Optional[DashboardFilters], now: datetime) -> str:
    """Build the issue search JQL for a project and dashboard filters.

    The date clause reaches back to the start of the previous comparison
    period so period-over-period changes see both windows.

    Raises:
        InvalidDateRangeError: for an invalid custom range
    """
    clauses = [f"project = {quote_jql(project_key)}"]

    if filters is not None:
        window = resolve_window(filters.time_period, now, filters.start_date, filters.end_date)
        previous = resolve_previous_window(filters.time_period, now)
        lower = previous.start if previous is not None else window.start

        if lower is not None:
            # One day of slack for the Jira user's timezone
            since = (lower - timedelta(days=1)).strftime("%Y-%m-%d")
            clauses.append(f'updated >= "{since}"')

        if filters.time_period == "custom" and window.end is not None:
            # JQL dates stop at minutes; round up so the last partial minute stays in
            until = window.end.replace(second=0, microsecond=0)
            if until < window.end:
                until += timedelta(minutes=1)
            until = until.strftime("%Y-%m-%d %H:%M")
            clauses.append(f'created < "{until}"')

        if filters.has_assignee:
            clauses.append(f"assignee = {quote_jql(filters.assignee)}")

        if filters.issue_types:
            types = ", ".join(quote_jql(t) for t in filters.issue_types)
            clauses.append(f"issuetype in ({types})")

    return " AND ".join(clauses) + " ORDER BY updated DESC"


class JiraClient:
    """Authenticated pass-through to the Jira Cloud REST API."""

    def __init__(self, server: str, email: str, token: str, timeout: int = 30):
        self.server = server.rstrip("/")
        self.email = email
        self.token = token
        self.timeout = timeout

    def _request(self, endpoint: str, params: Optional[dict] = None):
        """Make authenticated request to Jira API.

        Raises:
            JiraAPIError: on any non-2xx answer, with Jira's message preserved
            requests.exceptions.RequestException: on connection failures
        """
        response = requests.get(
            f"{self.server}{endpoint}",
            auth=(self.email, self.token),
            headers={"Accept": "application/json"},
            params=params,
            timeout=self.timeout
        )

        if response.status_code >= 400:
            message = _upstream_message(response)
            logger.warning(f"Jira {endpoint} failed with {response.status_code}: {message}")
            raise JiraAPIError(message, response.status_code)

        return response.json()

    def validate_credentials(self) -> dict:
        """Fetch the current user; fails with 401 for bad credentials."""
        user_info = self._request("/rest/api/3/myself")
        return {
            "accountId": user_info.get("accountId"),
            "displayName": user_info.get("displayName"),
            "emailAddress": user_info.get("emailAddress"),
            "avatarUrl": user_info.get("avatarUrls", {}).get("48x48")
        }

    def get_projects(self) -> list:
        projects = self._request("/rest/api/3/project")
        return [
            {
                "id": project.get("id"),
                "key": project.get("key"),
                "name": project.get("name"),
                "projectTypeKey": project.get("projectTypeKey"),
                "avatarUrl": project.get("avatarUrls", {}).get("48x48")
            }
            for project in projects
        ]

    def search_issues(self, project_key: str, filters: Optional[DashboardFilters],
                      now: datetime, settings: DashboardSettings = DashboardSettings()) -> dict:
        """Fetch a project's issues in a single request capped at max_results.

        Returns:
            Dict with "issues", "total" and "isLast" (False when the cap cut
            the result short)
        """
        fields = list(BASE_ISSUE_FIELDS)
        for sp_field in settings.story_point_fields:
            if sp_field not in fields:
                fields.append(sp_field)

        jql = build_jql(project_key, filters, now)
        logger.info(f"Searching issues: {jql}")

        data = self._request(
            "/rest/api/3/search/jql",
            params={
                "jql": jql,
                "fields": ",".join(fields),
                "maxResults": settings.max_results,
            }
        )

        issues = data.get("issues", [])
        return {
            "issues": issues,
            "total": len(issues),
            "isLast": data.get("isLast", not data.get("nextPageToken")),
        }

    def get_sprints(self, project_key: str) -> list:
        """Get sprints of the project's first board, most recent first.

        Returns an empty list when the project has no board.
        """
        boards = self._request(
            "/rest/agile/1.0/board",
            params={"projectKeyOrId": project_key}
        ).get("values", [])

        if not boards:
            return []

        board_id = boards[0]["id"]
        sprints = self._request(
            f"/rest/agile/1.0/board/{board_id}/sprint",
            params={"maxResults": 50}
        ).get("values", [])

        sprints.sort(key=lambda s: s.get("startDate") or "", reverse=True)

        return [
            {
                "id": sprint["id"],
                "name": sprint["name"],
                "state": sprint.get("state"),
                "startDate": sprint.get("startDate"),
                "endDate": sprint.get("endDate"),
                "completeDate": sprint.get("completeDate"),
                "boardId": board_id
            }
            for sprint in sprints
        ]

    def get_project_statuses(self, project_key: str) -> list:
        """Statuses per issue type, each with its statusCategory."""
        return self._request(f"/rest/api/3/project/{project_key}/statuses")

    def get_project_members(self, project_key: str) -> list:
        """Users assignable to issues in the project."""
        users = self._request(
            "/rest/api/3/user/assignable/search",
            params={"project": project_key, "maxResults": 1000}
        )
        return [
            {
                "accountId": user.get("accountId"),
                "displayName": user.get("displayName"),
                "emailAddress": user.get("emailAddress"),
                "active": user.get("active", True)
            }
            for user in users
        ]

    def get_issue(self, issue_key: str) -> dict:
        """Raw issue with every field, for inspecting custom fields."""
        return self._request(f"/rest/api/3/issue/{issue_key}", params={"fields": "*all"})

    def find_story_points_fields(self) -> list:
        """Find numeric custom fields that look like story points.

        Exact "Story Points" matches come first.
        """
        candidates = []

        for field in self._request("/rest/api/3/field"):
            name = field.get("name", "")
            name_lower = name.lower()

            if field.get("schema", {}).get("type") != "number":
                continue

            if not any(term in name_lower for term in ["story point", "points", "estimate", "sizing"]):
                continue

            candidate = {
                "id": field.get("id"),
                "name": name,
                "custom": field.get("custom", False)
            }
            if name_lower == "story points":
                candidates.insert(0, candidate)
            else:
                candidates.append(candidate)

        return candidates
