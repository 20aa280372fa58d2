"""Debug API endpoints for troubleshooting."""

from flask import Blueprint, jsonify
import requests

from app.api.common import get_jira_client, get_settings, jira_error_response, missing_credentials_response
from services.jira_client import JiraAPIError

bp = Blueprint("debug", __name__, url_prefix="/api/debug")


@bp.route("/story-points-field", methods=["GET"])
def find_story_points_field():
    """Find the story points custom field in this Jira instance."""
    client = get_jira_client()
    if client is None:
        return missing_credentials_response()

    try:
        candidates = client.find_story_points_fields()
    except (JiraAPIError, requests.exceptions.RequestException) as e:
        return jira_error_response(e)

    return jsonify({
        "data": {
            "candidates": candidates,
            "configured": list(get_settings().story_point_fields)
        }
    })


@bp.route("/issue-fields/<issue_key>", methods=["GET"])
def get_issue_fields(issue_key):
    """Get one issue's custom fields that carry a value."""
    client = get_jira_client()
    if client is None:
        return missing_credentials_response()

    try:
        issue = client.get_issue(issue_key)
    except (JiraAPIError, requests.exceptions.RequestException) as e:
        return jira_error_response(e)

    fields = issue.get("fields", {})
    custom_fields = {
        k: v for k, v in fields.items()
        if k.startswith("customfield_") and v is not None
    }

    return jsonify({
        "data": {
            "key": issue.get("key"),
            "summary": fields.get("summary"),
            "issuetype": (fields.get("issuetype") or {}).get("name"),
            "status": (fields.get("status") or {}).get("name"),
            "custom_fields_with_values": custom_fields
        }
    })
