"""Status classification into To Do / In Progress / Done buckets.

Jira instances name their workflow statuses freely (and often in
Portuguese), so a status is resolved in three steps:

1. the project's authoritative status metadata (status id -> category), when
   it was fetched;
2. the status category name Jira attaches to the status;
3. a substring scan of the status name against a keyword table.

Anything left over is UNCLASSIFIED and shows up in its own bucket.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from services.date_windows import parse_jira_datetime

logger = logging.getLogger(__name__)


class StatusCategory(str, Enum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"
    UNCLASSIFIED = "Uncategorized"


# Jira statusCategory.key -> bucket
CATEGORY_KEYS = {
    "new": StatusCategory.TODO,
    "indeterminate": StatusCategory.IN_PROGRESS,
    "done": StatusCategory.DONE,
}

# statusCategory.name (lowercase) -> bucket
CATEGORY_NAMES = {
    "to do": StatusCategory.TODO,
    "new": StatusCategory.TODO,
    "in progress": StatusCategory.IN_PROGRESS,
    "indeterminate": StatusCategory.IN_PROGRESS,
    "done": StatusCategory.DONE,
    "complete": StatusCategory.DONE,
}


@dataclass(frozen=True)
class KeywordTable:
    """Status-name substrings per bucket, scanned in To Do, In Progress, Done order."""

    todo: tuple = ("aberto", "novo", "backlog", "to do", "a fazer")
    in_progress: tuple = (
        "progresso", "progress", "desenvolvimento", "em andamento", "fazendo", "doing"
    )
    done: tuple = ("concluído", "done", "fechado", "resolvido", "finalizado", "terminado")

    def match(self, status_name: str) -> StatusCategory:
        name = status_name.lower()
        for category, keywords in (
            (StatusCategory.TODO, self.todo),
            (StatusCategory.IN_PROGRESS, self.in_progress),
            (StatusCategory.DONE, self.done),
        ):
            if any(keyword in name for keyword in keywords):
                return category
        return StatusCategory.UNCLASSIFIED


DEFAULT_KEYWORDS = KeywordTable()


def classify_status(status_name: Optional[str], category_name: Optional[str],
                    status_id=None, mapping: Optional[dict] = None,
                    keywords: KeywordTable = DEFAULT_KEYWORDS) -> StatusCategory:
    """Resolve a status into a bucket.

    Args:
        status_name: Workflow status name (e.g., "Em Andamento")
        category_name: Jira status category name (e.g., "In Progress")
        status_id: Jira status id, used with ``mapping``
        mapping: Optional authoritative status id -> StatusCategory mapping
        keywords: Keyword table for the name scan

    Returns:
        StatusCategory, UNCLASSIFIED when nothing matched
    """
    if mapping and status_id is not None:
        category = mapping.get(str(status_id))
        if category is not None:
            return category

    if category_name:
        category = CATEGORY_NAMES.get(category_name.strip().lower())
        if category is not None:
            return category

    if status_name:
        return keywords.match(status_name)

    return StatusCategory.UNCLASSIFIED


def classify_issue(issue: dict, mapping: Optional[dict] = None,
                   keywords: KeywordTable = DEFAULT_KEYWORDS) -> StatusCategory:
    """Classify a raw Jira issue by its current status."""
    status = issue.get("fields", {}).get("status") or {}
    category = status.get("statusCategory") or {}
    return classify_status(
        status.get("name"),
        category.get("name"),
        status_id=status.get("id"),
        mapping=mapping,
        keywords=keywords,
    )


def build_status_mapping(project_statuses: list) -> dict:
    """Build the authoritative status id -> bucket mapping for a project.

    Args:
        project_statuses: Payload of /rest/api/3/project/{key}/statuses, a
            list of issue types each carrying a "statuses" list

    Returns:
        Dict of status id (str) -> StatusCategory. Statuses shared by several
        issue types appear once; unknown category keys are left out.
    """
    mapping = {}

    for issue_type in project_statuses or []:
        for status in issue_type.get("statuses", []):
            status_id = status.get("id")
            if status_id is None or str(status_id) in mapping:
                continue

            category_key = (status.get("statusCategory") or {}).get("key")
            category = CATEGORY_KEYS.get(category_key)
            if category is not None:
                mapping[str(status_id)] = category

    return mapping


def is_completed(issue: dict, mapping: Optional[dict] = None,
                 keywords: KeywordTable = DEFAULT_KEYWORDS) -> bool:
    """An issue is completed if it has a resolution date or sits in a Done status."""
    if issue.get("fields", {}).get("resolutiondate"):
        return True
    return classify_issue(issue, mapping, keywords) == StatusCategory.DONE


def completion_date(issue: dict):
    """Resolution date, falling back to the last update for done-but-unresolved issues."""
    fields = issue.get("fields", {})
    return parse_jira_datetime(fields.get("resolutiondate") or fields.get("updated"))


def group_issues_by_category(issues: list, mapping: Optional[dict] = None,
                             keywords: KeywordTable = DEFAULT_KEYWORDS) -> dict:
    """Split issues into kanban columns.

    Returns:
        Dict of StatusCategory -> list of issues, all four buckets present
    """
    columns = {category: [] for category in StatusCategory}
    unclassified_statuses = set()

    for issue in issues:
        category = classify_issue(issue, mapping, keywords)
        columns[category].append(issue)
        if category == StatusCategory.UNCLASSIFIED:
            status = issue.get("fields", {}).get("status") or {}
            unclassified_statuses.add(status.get("name") or "<none>")

    if unclassified_statuses:
        logger.info(
            f"{len(columns[StatusCategory.UNCLASSIFIED])} issues with unclassified statuses: "
            f"{', '.join(sorted(unclassified_statuses))}"
        )

    return columns
