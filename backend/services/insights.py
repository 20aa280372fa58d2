"""Rule-based productivity insights.

These are fixed threshold rules over the computed metrics, not a model call.
The response says so in its "engine" field.
"""

from typing import Optional

from services.productivity_metrics import round_half_away


VELOCITY_SWING = 10
CYCLE_TIME_IMPROVEMENT = -15
BUG_RATE_WARNING = 15
BUG_RATE_ANOMALY = 20
CYCLE_TIME_WARNING = 5
CYCLE_TIME_ANOMALY = 10
OVERLOADED_RESOLVED = 8
UNDERUTILIZED_RESOLVED = 3


def performance_insight(metrics: dict) -> str:
    velocity_change = metrics.get("velocityChange") or 0
    cycle_time_change = metrics.get("cycleTimeChange") or 0

    if velocity_change > VELOCITY_SWING:
        return ("Your team's velocity has increased significantly this period. "
                "Delivery is outpacing the previous period.")
    if velocity_change < -VELOCITY_SWING:
        return ("Your team's velocity has decreased this period. "
                "Consider reviewing task complexity and potential blockers.")
    if cycle_time_change < CYCLE_TIME_IMPROVEMENT:
        return ("Cycle time has improved notably. Your team is resolving tasks "
                "more efficiently than before.")
    return "Your team is maintaining steady performance with consistent delivery patterns."


def velocity_forecast(metrics: dict) -> dict:
    """Story point range for the next period, +/-10% around current velocity."""
    velocity = metrics.get("velocity") or 0

    return {
        "min": max(1, round_half_away(velocity * 0.9)),
        "max": max(1, round_half_away(velocity * 1.1)),
    }


def prediction_insight(metrics: dict) -> str:
    forecast = velocity_forecast(metrics)
    return (f"Based on current trends, your team is likely to complete "
            f"{forecast['min']}-{forecast['max']} story points next period.")


def recommendation_insight(metrics: dict) -> str:
    bug_rate = metrics.get("bugRate") or 0
    cycle_time = metrics.get("cycleTime") or 0

    if bug_rate > BUG_RATE_WARNING:
        return ("Consider implementing more thorough code reviews and automated "
                "testing to reduce the bug rate.")
    if cycle_time > CYCLE_TIME_WARNING:
        return ("Focus on breaking down larger tasks and improving the review "
                "process to reduce cycle time.")
    return ("Your team is performing well. Consider documenting successful "
            "practices for knowledge sharing.")


def classify_workload(issues_resolved: int) -> str:
    if issues_resolved > OVERLOADED_RESOLVED:
        return "overloaded"
    if issues_resolved < UNDERUTILIZED_RESOLVED:
        return "underutilized"
    return "normal"


def detect_anomalies(metrics: dict, developers: list) -> list:
    anomalies = []

    if (metrics.get("bugRate") or 0) > BUG_RATE_ANOMALY:
        anomalies.append({
            "type": "bug_rate",
            "severity": "high",
            "description": "Bug rate is significantly above the expected range",
            "suggestedActions": ["Review the QA process", "Add automated tests"],
        })

    if (metrics.get("cycleTime") or 0) > CYCLE_TIME_ANOMALY:
        anomalies.append({
            "type": "cycle_time",
            "severity": "medium",
            "description": "Cycle time is above the expected range",
            "affectedMembers": [
                d.get("name") for d in developers if (d.get("avgCycleTime") or 0) > CYCLE_TIME_ANOMALY
            ],
            "suggestedActions": ["Review task complexity", "Consider pair programming"],
        })

    return anomalies


def generate_insights(metrics: dict, developers: Optional[list] = None) -> dict:
    """Build the insights payload for the dashboard.

    Args:
        metrics: Productivity metrics (velocity, velocityChange, cycleTime,
            cycleTimeChange, bugRate, ...)
        developers: Optional developer productivity rollup

    Returns:
        Dict with performance, predictions and recommendations text, the
        velocity forecast, detected anomalies and per-developer workload
    """
    developers = developers or []

    workload = [
        {"name": d.get("name"), "issuesResolved": d.get("issuesResolved") or 0,
         "workload": classify_workload(d.get("issuesResolved") or 0)}
        for d in developers
    ]

    return {
        "engine": "rules",
        "performance": performance_insight(metrics),
        "predictions": prediction_insight(metrics),
        "recommendations": recommendation_insight(metrics),
        "forecast": velocity_forecast(metrics),
        "anomalies": detect_anomalies(metrics, developers),
        "workload": workload,
        "overloadedMembers": [w["name"] for w in workload if w["workload"] == "overloaded"],
        "underutilizedMembers": [w["name"] for w in workload if w["workload"] == "underutilized"],
    }
