"""Authentication API endpoints."""

from flask import Blueprint, request, jsonify
import requests

from app.api.common import jira_error_response
from services.jira_client import JiraAPIError, JiraClient

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@bp.route("/validate", methods=["POST"])
def validate_token():
    """Validate Jira API token by fetching current user info.

    Expects JSON body with:
        - server: Jira server URL
        - email: User's Jira email
        - token: Jira API token

    Returns user info on success.
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    server = (data.get("server") or "").rstrip("/")
    email = data.get("email")
    token = data.get("token")

    if not all([server, email, token]):
        return jsonify({"error": "Missing required fields: server, email, token"}), 400

    try:
        user = JiraClient(server, email, token, timeout=10).validate_credentials()
    except JiraAPIError as e:
        if e.status_code == 401:
            return jsonify({"error": "Invalid credentials"}), 401
        return jira_error_response(e)
    except requests.exceptions.RequestException as e:
        return jira_error_response(e)

    return jsonify({"data": {"valid": True, "user": user}})
