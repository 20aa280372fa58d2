"""Dashboard insights API endpoints."""

from flask import Blueprint, request, jsonify

from services.insights import generate_insights

bp = Blueprint("insights", __name__, url_prefix="/api/insights")


@bp.route("", methods=["POST"])
def create_insights():
    """Generate rule-based insights from computed metrics.

    Expects JSON body with:
        - metrics: Output of the summary endpoint's metrics
        - developers: Optional developer productivity rows
    """
    data = request.get_json(silent=True)

    if not data or not isinstance(data.get("metrics"), dict):
        return jsonify({"error": "Missing required field: metrics"}), 400

    return jsonify({"data": generate_insights(data["metrics"], data.get("developers") or [])})
