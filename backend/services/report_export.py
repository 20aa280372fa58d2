"""CSV productivity report."""

import csv
import io
from datetime import datetime


def _signed(change) -> str:
    return f"{'+' if change >= 0 else ''}{change}%"


def build_csv_report(project_name: str, metrics: dict, developers: list,
                     generated_at: datetime) -> str:
    """Render the key metrics and developer rollup as CSV text."""
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(["Productivity Report"])
    writer.writerow([f"Project: {project_name}"])
    writer.writerow([f"Generated: {generated_at.strftime('%Y-%m-%d')}"])
    writer.writerow([f"Period: {metrics.get('timePeriod', '')}"])
    writer.writerow([])

    writer.writerow(["Key Metrics"])
    writer.writerow(["Metric", "Value", "Change"])
    writer.writerow(["Tasks Delivered", metrics["tasksDelivered"], _signed(metrics["tasksDeliveredChange"])])
    writer.writerow(["Team Velocity", metrics["velocity"], _signed(metrics["velocityChange"])])
    writer.writerow(["Avg. Cycle Time", f"{metrics['cycleTime']} days", _signed(metrics["cycleTimeChange"])])
    writer.writerow(["Bug Rate", f"{metrics['bugRate']}%", _signed(metrics["bugRateChange"])])
    writer.writerow([])

    writer.writerow(["Developer Productivity"])
    writer.writerow(["Developer", "Issues Resolved", "Story Points", "Avg. Cycle Time"])
    for dev in developers:
        writer.writerow([
            dev["name"],
            dev["issuesResolved"],
            dev["storyPoints"],
            f"{dev['avgCycleTime']} days",
        ])

    return output.getvalue()


def report_filename(project_name: str, generated_at: datetime) -> str:
    safe_name = "".join(c if c.isalnum() or c in "-_" else "-" for c in project_name)
    return f"productivity-report-{safe_name}-{generated_at.strftime('%Y-%m-%d')}.csv"
