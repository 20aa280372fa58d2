"""Helpers shared by the API blueprints."""

from datetime import datetime, timezone

import requests
from flask import current_app, jsonify, request

from services.dashboard_config import DashboardSettings
from services.jira_client import JiraAPIError, JiraClient


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_settings() -> DashboardSettings:
    return current_app.config.get("DASHBOARD_SETTINGS") or DashboardSettings()


def get_jira_credentials():
    """Extract Jira credentials from request headers."""
    server = request.headers.get("X-Jira-Server", "").rstrip("/")
    email = request.headers.get("X-Jira-Email")
    token = request.headers.get("X-Jira-Token")

    if not all([server, email, token]):
        return None, None, None

    return server, email, token


def get_jira_client():
    """Build a JiraClient from request headers, or None when credentials are missing."""
    server, email, token = get_jira_credentials()
    if not server:
        return None
    return JiraClient(server, email, token)


def missing_credentials_response():
    return jsonify({"error": "Missing Jira credentials in headers"}), 401


def jira_error_response(error):
    """Map a failed Jira call to an error response, keeping Jira's message."""
    if isinstance(error, JiraAPIError):
        return jsonify({"error": error.message}), error.status_code
    if isinstance(error, requests.exceptions.Timeout):
        return jsonify({"error": "Connection to Jira timed out"}), 504
    return jsonify({"error": f"Failed to connect to Jira: {str(error)}"}), 502
