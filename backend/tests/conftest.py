"""Shared fixtures for productivity dashboard tests."""

import pytest
from datetime import datetime, timezone


@pytest.fixture
def mock_jira_credentials():
    """Mock Jira credentials for testing."""
    return {
        "server": "https://test.atlassian.net",
        "email": "test@example.com",
        "token": "test-token-123"
    }


@pytest.fixture
def jira_headers(mock_jira_credentials):
    """Credential headers the frontend sends with every proxied call."""
    return {
        "X-Jira-Server": mock_jira_credentials["server"],
        "X-Jira-Email": mock_jira_credentials["email"],
        "X-Jira-Token": mock_jira_credentials["token"]
    }


@pytest.fixture
def now():
    """Fixed reference time: Monday 2024-01-15 12:00 UTC."""
    return datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_issue(key, status="Done", category="Done", status_id=None,
               issue_type="Story", created="2024-01-01T00:00:00.000+0000",
               updated=None, resolved=None, assignee=None, **extra_fields):
    """Build a raw Jira issue as returned by the search API."""
    fields = {
        "summary": f"Summary of {key}",
        "issuetype": {"name": issue_type},
        "status": {
            "id": status_id,
            "name": status,
            "statusCategory": {"name": category} if category else None
        },
        "created": created,
        "updated": updated or resolved or created,
        "resolutiondate": resolved,
        "assignee": assignee,
    }
    fields.update(extra_fields)
    return {"key": key, "fields": fields}


@pytest.fixture
def issue_factory():
    """Factory for raw Jira issues."""
    return make_issue


@pytest.fixture
def alice():
    return {
        "accountId": "acc-alice",
        "displayName": "Alice Silva",
        "emailAddress": "alice@example.com"
    }


@pytest.fixture
def bob():
    return {
        "accountId": "acc-bob",
        "displayName": "Bob Souza",
        "emailAddress": "bob@example.com"
    }


@pytest.fixture
def sample_issue_completed(alice):
    """Sample story completed this week with story points."""
    return make_issue(
        "PROJ-123",
        created="2024-01-10T10:00:00.000+0000",
        resolved="2024-01-12T10:00:00.000+0000",
        assignee=alice,
        customfield_10016=5.0
    )


@pytest.fixture
def sample_issue_in_progress(bob):
    """Sample issue still being worked on."""
    return make_issue(
        "PROJ-124",
        status="Em Andamento",
        category="In Progress",
        issue_type="Bug",
        created="2024-01-11T10:00:00.000+0000",
        updated="2024-01-14T09:00:00.000+0000",
        assignee=bob,
        customfield_10016=3.0
    )


@pytest.fixture
def sample_bug_completed(bob):
    """Sample bug completed this week without story points."""
    return make_issue(
        "PROJ-125",
        issue_type="Bug",
        created="2024-01-09T08:00:00.000+0000",
        resolved="2024-01-13T08:00:00.000+0000",
        assignee=bob
    )


@pytest.fixture
def sample_issue_previous_week(alice):
    """Sample story completed in the week before the current one."""
    return make_issue(
        "PROJ-120",
        created="2024-01-02T10:00:00.000+0000",
        resolved="2024-01-05T10:00:00.000+0000",
        assignee=alice,
        customfield_10016=2.0
    )


@pytest.fixture
def sample_issue_todo():
    """Unassigned backlog item."""
    return make_issue(
        "PROJ-126",
        status="Aberto",
        category="To Do",
        issue_type="Task",
        created="2024-01-14T10:00:00.000+0000"
    )


@pytest.fixture
def sample_issues(sample_issue_completed, sample_issue_in_progress,
                  sample_bug_completed, sample_issue_previous_week, sample_issue_todo):
    """Collection of issues as fetched for a project."""
    return [
        sample_issue_completed,
        sample_issue_in_progress,
        sample_bug_completed,
        sample_issue_previous_week,
        sample_issue_todo
    ]


@pytest.fixture
def sample_project_statuses():
    """Payload of /rest/api/3/project/{key}/statuses."""
    return [
        {
            "name": "Story",
            "statuses": [
                {"id": "1", "name": "Aberto", "statusCategory": {"key": "new"}},
                {"id": "3", "name": "Em Andamento", "statusCategory": {"key": "indeterminate"}},
                {"id": "10001", "name": "Done", "statusCategory": {"key": "done"}}
            ]
        },
        {
            "name": "Bug",
            "statuses": [
                {"id": "1", "name": "Aberto", "statusCategory": {"key": "new"}},
                {"id": "10002", "name": "Validação QA", "statusCategory": {"key": "indeterminate"}},
                {"id": "10001", "name": "Done", "statusCategory": {"key": "done"}}
            ]
        }
    ]


@pytest.fixture
def mock_fields_response():
    """Mock response for Jira fields endpoint."""
    return [
        {"id": "customfield_10002", "name": "Story Points", "custom": True, "schema": {"type": "number"}},
        {"id": "customfield_10016", "name": "Story point estimate", "custom": True, "schema": {"type": "number"}},
        {"id": "customfield_10020", "name": "Sprint points label", "custom": True, "schema": {"type": "string"}},
        {"id": "summary", "name": "Summary", "schema": {"type": "string"}},
        {"id": "status", "name": "Status", "schema": {"type": "status"}}
    ]


@pytest.fixture
def app(tmp_path):
    """Create Flask test app."""
    import sys
    import os
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

    from app import create_app
    app = create_app(str(tmp_path / "dashboard-config.json"))
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
