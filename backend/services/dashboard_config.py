"""Dashboard settings and filter values.

Settings come from an optional ``config/dashboard-config.json`` file; filters
come from each request's query string. Both are immutable and handed to the
metrics functions explicitly.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from services.date_windows import TIME_PERIODS, InvalidDateRangeError
from services.status_classifier import DEFAULT_KEYWORDS, KeywordTable

logger = logging.getLogger(__name__)

# Most common first; the concrete field id depends on the Jira instance
DEFAULT_STORY_POINT_FIELDS = (
    "customfield_10016",
    "customfield_10002",
    "customfield_10004",
    "customfield_10008",
)

DEFAULT_BUG_KEYWORDS = ("bug", "defeito", "erro", "fault", "incident")

DEFAULT_ALLOWED_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")

ALL_DEVELOPERS = "All Developers"


@dataclass(frozen=True)
class DashboardSettings:
    story_point_fields: tuple = DEFAULT_STORY_POINT_FIELDS
    bug_keywords: tuple = DEFAULT_BUG_KEYWORDS
    status_keywords: KeywordTable = DEFAULT_KEYWORDS
    max_results: int = 1000
    allowed_origins: tuple = DEFAULT_ALLOWED_ORIGINS


@dataclass(frozen=True)
class DashboardFilters:
    time_period: str = "week"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    assignee: Optional[str] = None
    issue_types: tuple = field(default_factory=tuple)

    @property
    def has_assignee(self) -> bool:
        return bool(self.assignee) and self.assignee != ALL_DEVELOPERS

    def to_dict(self) -> dict:
        return {
            "timePeriod": self.time_period,
            "customStartDate": self.start_date,
            "customEndDate": self.end_date,
            "assignee": self.assignee,
            "issueTypes": list(self.issue_types),
        }


def parse_filters(args) -> DashboardFilters:
    """Build filters from request query params.

    Query params:
        - time_period: week, month, quarter, custom or all (default: week)
        - start_date / end_date: ISO dates for the custom period
        - assignee: display name, email or account id
        - issue_types: Comma-separated issue type names

    Raises:
        InvalidDateRangeError: for an unknown time period
    """
    time_period = args.get("time_period") or "week"
    if time_period not in TIME_PERIODS:
        raise InvalidDateRangeError(f"Unknown time period: {time_period}")

    issue_types = args.get("issue_types", "")
    types = tuple(t.strip() for t in issue_types.split(",") if t.strip())

    return DashboardFilters(
        time_period=time_period,
        start_date=args.get("start_date") or None,
        end_date=args.get("end_date") or None,
        assignee=args.get("assignee") or None,
        issue_types=types,
    )


def filters_from_json(data: Optional[dict]) -> DashboardFilters:
    """Build filters from the camelCase JSON shape the frontend sends."""
    data = data or {}
    return parse_filters({
        "time_period": data.get("timePeriod"),
        "start_date": data.get("customStartDate"),
        "end_date": data.get("customEndDate"),
        "assignee": data.get("assignee"),
        "issue_types": ",".join(data.get("issueTypes") or []),
    })


def load_settings(config_path: str) -> DashboardSettings:
    """Load dashboard settings from a JSON file, falling back to defaults."""
    if not os.path.exists(config_path):
        logger.info("No dashboard-config.json found, using default settings")
        return DashboardSettings()

    try:
        with open(config_path, "r") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load dashboard config: {e}")
        return DashboardSettings()

    defaults = DashboardSettings()
    if not isinstance(config, dict):
        logger.warning("Dashboard config must be a JSON object, using default settings")
        return defaults

    def lowered(values, fallback):
        return tuple(v.lower() for v in values) if values else fallback

    try:
        keywords = config.get("statusKeywords") or {}
        settings = DashboardSettings(
            story_point_fields=tuple(config.get("storyPointFields") or defaults.story_point_fields),
            bug_keywords=lowered(config.get("bugKeywords"), defaults.bug_keywords),
            status_keywords=KeywordTable(
                todo=lowered(keywords.get("todo"), DEFAULT_KEYWORDS.todo),
                in_progress=lowered(keywords.get("inProgress"), DEFAULT_KEYWORDS.in_progress),
                done=lowered(keywords.get("done"), DEFAULT_KEYWORDS.done),
            ),
            max_results=int(config.get("maxResults", defaults.max_results)),
            allowed_origins=tuple(config.get("allowedOrigins") or defaults.allowed_origins),
        )
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Invalid dashboard config, using default settings: {e}")
        return defaults

    logger.info(f"Loaded dashboard config with {len(settings.story_point_fields)} story point fields")
    return settings
