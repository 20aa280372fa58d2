"""Productivity metrics API endpoints."""

import logging

from flask import Blueprint, Response, request, jsonify
import requests

from app.api.common import (
    get_jira_client,
    get_settings,
    jira_error_response,
    missing_credentials_response,
    utc_now,
)
from services.chart_data import (
    GRANULARITIES,
    completion_series,
    developer_productivity,
    issue_type_distribution,
    kanban_board,
    quick_stats,
    recent_activity,
    status_distribution,
)
from services.dashboard_config import filters_from_json, parse_filters
from services.date_windows import InvalidDateRangeError, resolve_window
from services.jira_client import JiraAPIError
from services.productivity_metrics import calculate_productivity_metrics, filter_issues
from services.report_export import build_csv_report, report_filename
from services.status_classifier import build_status_mapping

logger = logging.getLogger(__name__)

bp = Blueprint("metrics", __name__, url_prefix="/api/metrics")


def load_project_issues(client, project_key, filters, now, settings):
    """Fetch the project's issues and its status mapping.

    A failing statuses call is not fatal: classification falls back to the
    status category and keyword heuristics.

    Returns:
        Tuple of (issues, mapping)
    """
    result = client.search_issues(project_key, filters, now, settings)

    try:
        mapping = build_status_mapping(client.get_project_statuses(project_key))
    except JiraAPIError as e:
        logger.warning(f"Could not load statuses for {project_key}, using heuristics: {e.message}")
        mapping = {}

    return result["issues"], mapping


def _fetch_or_error(project_key):
    """Resolve filters and load issues for a project-scoped metrics route.

    Returns:
        Tuple of (context, error_response); exactly one is None
    """
    client = get_jira_client()
    if client is None:
        return None, missing_credentials_response()

    settings = get_settings()
    now = utc_now()

    try:
        filters = parse_filters(request.args)
        window = resolve_window(filters.time_period, now, filters.start_date, filters.end_date)
        issues, mapping = load_project_issues(client, project_key, filters, now, settings)
    except InvalidDateRangeError as e:
        return None, (jsonify({"error": str(e)}), 400)
    except (JiraAPIError, requests.exceptions.RequestException) as e:
        return None, jira_error_response(e)

    return {
        "issues": issues,
        "filtered": filter_issues(issues, filters),
        "mapping": mapping,
        "filters": filters,
        "window": window,
        "settings": settings,
        "now": now,
    }, None


@bp.route("/<project_key>/summary", methods=["GET"])
def get_summary(project_key):
    """Get headline metrics for the selected period.

    Query params:
        - time_period: week, month, quarter, custom or all (default: week)
        - start_date / end_date: ISO dates for the custom period
        - assignee: Assignee display name, email or account id
        - issue_types: Comma-separated issue type names

    Returns:
        - Tasks delivered, velocity, cycle time and bug rate with changes
        - Quick stats and recent activity
    """
    ctx, error = _fetch_or_error(project_key)
    if error:
        return error

    metrics = calculate_productivity_metrics(
        ctx["issues"], ctx["filters"], ctx["now"], ctx["mapping"], ctx["settings"]
    )

    return jsonify({
        "data": {
            "metrics": metrics,
            "quickStats": quick_stats(ctx["filtered"], ctx["mapping"], ctx["settings"]),
            "recentActivity": recent_activity(ctx["filtered"]),
            "filters": ctx["filters"].to_dict()
        }
    })


@bp.route("/<project_key>/developers", methods=["GET"])
def get_developers(project_key):
    """Get per-developer productivity for the selected period."""
    ctx, error = _fetch_or_error(project_key)
    if error:
        return error

    developers = developer_productivity(
        ctx["filtered"], ctx["window"], ctx["mapping"], ctx["settings"]
    )
    return jsonify({"data": developers})


@bp.route("/<project_key>/completion", methods=["GET"])
def get_completion(project_key):
    """Get completed issues over time.

    Query params:
        - granularity: day, week or month (default: day)
    """
    granularity = request.args.get("granularity", "day")
    if granularity not in GRANULARITIES:
        return jsonify({"error": f"Unknown granularity: {granularity}"}), 400

    ctx, error = _fetch_or_error(project_key)
    if error:
        return error

    series = completion_series(
        ctx["filtered"], granularity, ctx["now"], ctx["window"], ctx["mapping"], ctx["settings"]
    )
    return jsonify({"data": {"granularity": granularity, "series": series}})


@bp.route("/<project_key>/distribution", methods=["GET"])
def get_distribution(project_key):
    """Get issue counts by issue type and by status bucket."""
    ctx, error = _fetch_or_error(project_key)
    if error:
        return error

    return jsonify({
        "data": {
            "issueTypes": issue_type_distribution(ctx["filtered"]),
            "statuses": status_distribution(ctx["filtered"], ctx["mapping"], ctx["settings"])
        }
    })


@bp.route("/<project_key>/kanban", methods=["GET"])
def get_kanban(project_key):
    """Get the kanban board columns for the filtered issues."""
    ctx, error = _fetch_or_error(project_key)
    if error:
        return error

    return jsonify({"data": kanban_board(ctx["filtered"], ctx["mapping"], ctx["settings"])})


@bp.route("/<project_key>/export.csv", methods=["GET"])
def export_csv(project_key):
    """Download the productivity report as CSV."""
    ctx, error = _fetch_or_error(project_key)
    if error:
        return error

    metrics = calculate_productivity_metrics(
        ctx["issues"], ctx["filters"], ctx["now"], ctx["mapping"], ctx["settings"]
    )
    developers = developer_productivity(
        ctx["filtered"], ctx["window"], ctx["mapping"], ctx["settings"]
    )
    project_name = request.args.get("project_name") or project_key

    return Response(
        build_csv_report(project_name, metrics, developers, ctx["now"]),
        mimetype="text/csv",
        headers={
            "Content-Disposition":
                f'attachment; filename="{report_filename(project_name, ctx["now"])}"'
        }
    )


@bp.route("/calculate", methods=["POST"])
def calculate():
    """Compute dashboard metrics for issues handed in by the client.

    Expects JSON body with:
        - issues: Raw Jira issues
        - filters: timePeriod, customStartDate, customEndDate, assignee, issueTypes
        - projectStatuses: Optional project statuses for exact classification
    """
    data = request.get_json(silent=True)

    if not data or not isinstance(data.get("issues"), list):
        return jsonify({"error": "Missing required field: issues"}), 400

    settings = get_settings()
    now = utc_now()

    try:
        filters = filters_from_json(data.get("filters"))
        window = resolve_window(filters.time_period, now, filters.start_date, filters.end_date)
    except InvalidDateRangeError as e:
        return jsonify({"error": str(e)}), 400

    mapping = build_status_mapping(data.get("projectStatuses") or [])
    issues = data["issues"]
    filtered = filter_issues(issues, filters)

    return jsonify({
        "data": {
            "metrics": calculate_productivity_metrics(issues, filters, now, mapping, settings),
            "developers": developer_productivity(filtered, window, mapping, settings),
            "issueTypes": issue_type_distribution(filtered),
            "statuses": status_distribution(filtered, mapping, settings)
        }
    })
