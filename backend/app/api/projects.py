"""Project, issue, sprint and status proxy endpoints."""

from flask import Blueprint, request, jsonify
import requests

from app.api.common import (
    get_jira_client,
    get_settings,
    jira_error_response,
    missing_credentials_response,
    utc_now,
)
from services.dashboard_config import parse_filters
from services.date_windows import InvalidDateRangeError
from services.jira_client import JiraAPIError
from services.status_classifier import build_status_mapping

bp = Blueprint("projects", __name__, url_prefix="/api/projects")


@bp.route("", methods=["GET"])
def list_projects():
    """List all projects accessible to the user.

    Requires headers:
        - X-Jira-Server: Jira server URL
        - X-Jira-Email: User's Jira email
        - X-Jira-Token: Jira API token
    """
    client = get_jira_client()
    if client is None:
        return missing_credentials_response()

    try:
        return jsonify({"data": client.get_projects()})
    except (JiraAPIError, requests.exceptions.RequestException) as e:
        return jira_error_response(e)


@bp.route("/<project_key>/issues", methods=["GET"])
def get_issues(project_key):
    """Get a project's issues for the dashboard filters.

    Query params:
        - time_period: week, month, quarter, custom or all (default: week)
        - start_date / end_date: ISO dates for the custom period
        - assignee: Assignee display name
        - issue_types: Comma-separated issue type names
    """
    client = get_jira_client()
    if client is None:
        return missing_credentials_response()

    try:
        filters = parse_filters(request.args)
        result = client.search_issues(project_key, filters, utc_now(), get_settings())
        return jsonify({"data": result})
    except InvalidDateRangeError as e:
        return jsonify({"error": str(e)}), 400
    except (JiraAPIError, requests.exceptions.RequestException) as e:
        return jira_error_response(e)


@bp.route("/<project_key>/sprints", methods=["GET"])
def get_sprints(project_key):
    """Get sprints of the project's board, most recent first.

    Query params:
        - limit: Number of sprints to return (default: all)
    """
    client = get_jira_client()
    if client is None:
        return missing_credentials_response()

    limit = request.args.get("limit", type=int)

    try:
        sprints = client.get_sprints(project_key)
    except (JiraAPIError, requests.exceptions.RequestException) as e:
        return jira_error_response(e)

    if limit:
        sprints = sprints[:limit]

    return jsonify({"data": sprints})


@bp.route("/<project_key>/statuses", methods=["GET"])
def get_statuses(project_key):
    """Get the project's statuses grouped by dashboard bucket.

    Returns each distinct status once, with its bucket, and the status ids
    per bucket.
    """
    client = get_jira_client()
    if client is None:
        return missing_credentials_response()

    try:
        project_statuses = client.get_project_statuses(project_key)
    except (JiraAPIError, requests.exceptions.RequestException) as e:
        return jira_error_response(e)

    mapping = build_status_mapping(project_statuses)

    statuses = {}
    for issue_type in project_statuses:
        for status in issue_type.get("statuses", []):
            status_id = str(status.get("id"))
            if status_id in statuses:
                continue
            category = mapping.get(status_id)
            statuses[status_id] = {
                "id": status_id,
                "name": status.get("name"),
                "categoryKey": (status.get("statusCategory") or {}).get("key"),
                "bucket": category.value if category else None
            }

    categories = {}
    for status_id, category in mapping.items():
        categories.setdefault(category.value, []).append(status_id)

    return jsonify({
        "data": {
            "statuses": list(statuses.values()),
            "categories": categories
        }
    })


@bp.route("/<project_key>/members", methods=["GET"])
def get_members(project_key):
    """Get users assignable to the project's issues."""
    client = get_jira_client()
    if client is None:
        return missing_credentials_response()

    try:
        return jsonify({"data": client.get_project_members(project_key)})
    except (JiraAPIError, requests.exceptions.RequestException) as e:
        return jira_error_response(e)
