"""Tests for status classification."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.status_classifier import (
    KeywordTable,
    StatusCategory,
    build_status_mapping,
    classify_issue,
    classify_status,
    completion_date,
    group_issues_by_category,
    is_completed,
)


class TestClassifyStatus:
    """Test the three-step status resolution."""

    def test_portuguese_name_with_category(self):
        """Em Andamento with an In Progress category is in progress."""
        assert classify_status("Em Andamento", "In Progress") == StatusCategory.IN_PROGRESS

    def test_category_name_wins_over_keywords(self):
        """Category name is used before the name scan."""
        assert classify_status("Aberto", "Done") == StatusCategory.DONE

    def test_category_name_case_insensitive(self):
        assert classify_status("Whatever", "  to do ") == StatusCategory.TODO

    def test_mapping_wins_over_category(self):
        """Authoritative mapping is used first."""
        mapping = {"10": StatusCategory.DONE}
        result = classify_status("Em Andamento", "In Progress", status_id=10, mapping=mapping)
        assert result == StatusCategory.DONE

    def test_mapping_miss_falls_through(self):
        mapping = {"10": StatusCategory.DONE}
        result = classify_status("Fazendo", None, status_id="99", mapping=mapping)
        assert result == StatusCategory.IN_PROGRESS

    @pytest.mark.parametrize("name,expected", [
        ("Backlog", StatusCategory.TODO),
        ("A Fazer", StatusCategory.TODO),
        ("Em desenvolvimento", StatusCategory.IN_PROGRESS),
        ("Doing", StatusCategory.IN_PROGRESS),
        ("Concluído", StatusCategory.DONE),
        ("Resolvido", StatusCategory.DONE),
        ("Fechado", StatusCategory.DONE),
    ])
    def test_keyword_scan(self, name, expected):
        """Status names are matched by keyword when there is no category."""
        assert classify_status(name, None) == expected

    def test_unknown_status_is_unclassified(self):
        assert classify_status("Validação QA", None) == StatusCategory.UNCLASSIFIED

    def test_missing_everything_is_unclassified(self):
        assert classify_status(None, None) == StatusCategory.UNCLASSIFIED

    def test_custom_keyword_table(self):
        """A new locale is added through the table, not code."""
        keywords = KeywordTable(in_progress=("validação",))
        assert classify_status("Validação QA", None, keywords=keywords) == StatusCategory.IN_PROGRESS

    def test_deterministic(self, sample_issue_in_progress):
        """Classifying twice gives the same bucket."""
        assert classify_issue(sample_issue_in_progress) == classify_issue(sample_issue_in_progress)


class TestBuildStatusMapping:
    """Test authoritative mapping construction."""

    def test_maps_category_keys(self, sample_project_statuses):
        mapping = build_status_mapping(sample_project_statuses)

        assert mapping == {
            "1": StatusCategory.TODO,
            "3": StatusCategory.IN_PROGRESS,
            "10001": StatusCategory.DONE,
            "10002": StatusCategory.IN_PROGRESS,
        }

    def test_skips_unknown_category_key(self):
        mapping = build_status_mapping([
            {"statuses": [{"id": "7", "name": "Odd", "statusCategory": {"key": "undefined"}}]}
        ])
        assert mapping == {}

    def test_empty_payload(self):
        assert build_status_mapping([]) == {}
        assert build_status_mapping(None) == {}

    def test_mapping_resolves_unknown_names(self, issue_factory, sample_project_statuses):
        """A status the keywords miss is classified by its id."""
        issue = issue_factory("PROJ-1", status="Validação QA", category=None, status_id="10002")
        mapping = build_status_mapping(sample_project_statuses)

        assert classify_issue(issue) == StatusCategory.UNCLASSIFIED
        assert classify_issue(issue, mapping) == StatusCategory.IN_PROGRESS

    def test_heuristic_and_agreeing_mapping_match(self, issue_factory):
        """Heuristic path and a mapping built to agree give the same bucket."""
        names = ["Aberto", "Em Andamento", "Concluído", "Backlog", "Doing", "Resolvido"]
        issues = [
            issue_factory(f"PROJ-{i}", status=name, category=None, status_id=str(i))
            for i, name in enumerate(names)
        ]
        mapping = {
            issue["fields"]["status"]["id"]: classify_issue(issue)
            for issue in issues
        }

        for issue in issues:
            assert classify_issue(issue, mapping) == classify_issue(issue)


class TestCompletion:
    """Test completion detection and dates."""

    def test_resolution_date_means_completed(self, issue_factory):
        issue = issue_factory("PROJ-1", status="Em Andamento", category="In Progress",
                              resolved="2024-01-04T00:00:00.000+0000")
        assert is_completed(issue)

    def test_done_status_without_resolution_is_completed(self, issue_factory):
        issue = issue_factory("PROJ-1", updated="2024-01-06T00:00:00.000+0000")
        assert is_completed(issue)
        assert completion_date(issue).day == 6

    def test_in_progress_is_not_completed(self, sample_issue_in_progress):
        assert not is_completed(sample_issue_in_progress)

    def test_completion_date_prefers_resolution(self, issue_factory):
        issue = issue_factory("PROJ-1", resolved="2024-01-04T00:00:00.000+0000",
                              updated="2024-01-09T00:00:00.000+0000")
        assert completion_date(issue).day == 4


class TestGroupIssuesByCategory:
    """Test kanban grouping."""

    def test_all_buckets_present(self):
        columns = group_issues_by_category([])
        assert set(columns) == set(StatusCategory)
        assert all(len(issues) == 0 for issues in columns.values())

    def test_groups_sample_issues(self, sample_issues):
        columns = group_issues_by_category(sample_issues)

        assert [i["key"] for i in columns[StatusCategory.TODO]] == ["PROJ-126"]
        assert [i["key"] for i in columns[StatusCategory.IN_PROGRESS]] == ["PROJ-124"]
        assert len(columns[StatusCategory.DONE]) == 3

    def test_unclassified_bucket_and_log(self, issue_factory, caplog):
        """Unmatched statuses land in their own bucket and are logged."""
        issue = issue_factory("PROJ-9", status="Validação QA", category=None)

        with caplog.at_level("INFO"):
            columns = group_issues_by_category([issue])

        assert columns[StatusCategory.UNCLASSIFIED] == [issue]
        assert "Validação QA" in caplog.text
