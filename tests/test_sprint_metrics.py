"""
Unit tests for sprint resolution, story-point resolution and statistics.
"""

import pytest

from sprint_intel.constants import SprintMatchPolicy
from sprint_intel.errors import (
    ConfigurationError,
    SprintAmbiguousError,
    SprintNotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from sprint_intel.models import Issue
from sprint_intel.services.sprint_metrics import (
    NO_STORY_POINTS,
    SprintMetricsResolver,
    StoryPointResolver,
    as_number,
    calculate_story_point_stats,
    match_sprints,
    normalize_label,
    percentage,
    select_sprint,
)


def issue(key, status="Done", points=0, issue_type="Story", field="customfield_10004"):
    return Issue(
        key=key,
        status_name=status,
        issue_type_name=issue_type,
        story_points=points,
        story_points_field=field if points else None,
    )


class TestAsNumber:
    """Test numeric interpretation of raw field values."""

    @pytest.mark.parametrize("value,expected", [
        (5, 5), (0, 0), (2.5, 2.5), ("3", 3), (" 1.5 ", 1.5),
    ])
    def test_numbers(self, value, expected):
        assert as_number(value) == expected

    @pytest.mark.parametrize("value", [None, True, False, "", "abc", float("nan"), float("inf"), {"value": 3}])
    def test_not_numbers(self, value):
        assert as_number(value) is None


class TestStoryPointResolver:
    """Test the ordered fallback chain."""

    FIELDS = ["customfield_10004", "customfield_10002", "customfield_10005", "customfield_10003"]

    def test_first_numeric_field_wins(self):
        resolver = StoryPointResolver(self.FIELDS)
        result = resolver.resolve({"customfield_10004": 5, "customfield_10002": 8})
        assert result.value == 5
        assert result.source_field == "customfield_10004"

    def test_skips_non_numeric_fields(self):
        resolver = StoryPointResolver(self.FIELDS)
        result = resolver.resolve({"customfield_10004": None, "customfield_10002": "n/a", "customfield_10005": 3})
        assert result.value == 3
        assert result.source_field == "customfield_10005"

    def test_zero_is_a_valid_value(self):
        resolver = StoryPointResolver(self.FIELDS)
        result = resolver.resolve({"customfield_10004": 0, "customfield_10002": 8})
        assert result.value == 0
        assert result.source_field == "customfield_10004"
        assert result.resolved

    def test_no_numeric_field(self):
        resolver = StoryPointResolver(self.FIELDS)
        result = resolver.resolve({"customfield_10004": "large"})
        assert result.value == 0
        assert result.source_field is None
        assert not result.resolved

    def test_priority_is_configurable(self):
        resolver = StoryPointResolver(["customfield_10002", "customfield_10004"])
        assert resolver.priority == ["customfield_10002", "customfield_10004"]
        assert resolver.resolve({"customfield_10004": 5, "customfield_10002": 8}).value == 8

    def test_requires_fields(self):
        with pytest.raises(ValueError):
            StoryPointResolver([])


class TestSprintMatching:
    """Test label matching and selection."""

    def test_normalize_label(self):
        assert normalize_label("  Team  Sprint 2025-21 ") == "team sprint 2025-21"

    def test_label_in_name(self, make_sprint):
        sprints = [make_sprint(1, "Team Sprint 2025-20"), make_sprint(2, "Team Sprint 2025-21")]
        assert [s.id for s in match_sprints("2025-21", sprints)] == [2]

    def test_name_in_label(self, make_sprint):
        sprints = [make_sprint(1, "FY25-21")]
        assert [s.id for s in match_sprints("NDS FY25-21 release", sprints)] == [1]

    def test_case_insensitive(self, make_sprint):
        sprints = [make_sprint(1, "Team Sprint FY25-21")]
        assert match_sprints("fy25-21", sprints)[0].id == 1

    def test_not_found(self, make_sprint):
        with pytest.raises(SprintNotFoundError):
            select_sprint("2025-22", [make_sprint(1, "Team Sprint 2025-21")], board_id="42")

    def test_whole_token_narrows(self, make_sprint):
        sprints = [make_sprint(1, "Sprint 2025-210", end_day=20), make_sprint(2, "Sprint 2025-21", end_day=10)]
        assert select_sprint("2025-21", sprints).id == 2

    def test_exact_name_wins(self, make_sprint):
        sprints = [make_sprint(1, "FY25-21"), make_sprint(2, "FY25-21 hotfix")]
        assert select_sprint("fy25-21", sprints).id == 1

    def test_most_recent_policy_prefers_latest(self, make_sprint):
        sprints = [
            make_sprint(1, "FY24-21", start_day=1, end_day=14),
            make_sprint(2, "FY25-21", start_day=15, end_day=28),
        ]
        chosen = select_sprint("21", sprints, policy=SprintMatchPolicy.MOST_RECENT)
        assert chosen.id == 2

    def test_strict_policy_raises(self, make_sprint):
        sprints = [
            make_sprint(1, "FY24-21", end_day=14),
            make_sprint(2, "FY25-21", end_day=28),
        ]
        with pytest.raises(SprintAmbiguousError) as exc_info:
            select_sprint("21", sprints, policy=SprintMatchPolicy.STRICT)
        assert exc_info.value.candidates == ["FY24-21", "FY25-21"]

    def test_ambiguous_without_dates(self, make_sprint):
        sprints = [make_sprint(1, "FY24-21"), make_sprint(2, "FY25-21")]
        with pytest.raises(SprintAmbiguousError):
            select_sprint("21", sprints)

    def test_ambiguous_on_equal_dates(self, make_sprint):
        sprints = [make_sprint(1, "FY24-21", end_day=14), make_sprint(2, "FY25-21", end_day=14)]
        with pytest.raises(SprintAmbiguousError):
            select_sprint("21", sprints)


class TestStatistics:
    """Test percentage and story point statistics."""

    @pytest.mark.parametrize("part,whole,expected", [
        (59, 66, 89), (1, 2, 50), (1, 8, 13), (0, 10, 0), (5, 0, 0), (12, 10, 100),
    ])
    def test_percentage(self, part, whole, expected):
        assert percentage(part, whole) == expected

    def test_empty_sprint(self):
        stats = calculate_story_point_stats([])
        assert stats.total_issues == 0
        assert stats.completion_rate == 0
        assert stats.story_point_completion_rate == 0

    def test_completion_counts_done_only(self):
        issues = [
            issue("A-1", "Done", 5),
            issue("A-2", "In Progress", 3),
            issue("A-3", "Done", 0),
            issue("A-4", "To Do", 2, issue_type="Bug"),
        ]
        stats = calculate_story_point_stats(issues)

        assert stats.total_issues == 4
        assert stats.completed_issues == 2
        assert stats.total_story_points == 10
        assert stats.completed_story_points == 5
        assert stats.completion_rate == 50
        assert stats.story_point_completion_rate == 50
        assert stats.story_points_by_status == {"Done": 5, "In Progress": 3, "To Do": 2}
        assert stats.story_points_by_type == {"Story": 8, "Bug": 2}
        assert stats.story_point_sources == {"customfield_10004": 3, NO_STORY_POINTS: 1}

    def test_custom_done_status(self):
        issues = [issue("A-1", "Closed", 3), issue("A-2", "Done", 2)]
        stats = calculate_story_point_stats(issues, done_status="Closed")
        assert stats.completed_issues == 1
        assert stats.completed_story_points == 3


class TestSprintMetricsResolver:
    """Test the resolver against a fake tracker."""

    @pytest.mark.asyncio
    async def test_example_sprint(self, fake_jira_service, jira_config, make_sprint, make_raw_issue):
        """66 issues with 59 done resolve to an 89 % completion rate."""
        fake_jira_service.list_sprints.return_value = [
            make_sprint(1, "Team Sprint 2025-20"),
            make_sprint(2, "Team Sprint 2025-21"),
        ]
        fake_jira_service.fetch_sprint_issues.return_value = (
            [make_raw_issue(f"A-{n}", "Done", points=2) for n in range(59)]
            + [make_raw_issue(f"B-{n}", "In Progress", points=1) for n in range(7)]
        )

        metrics = await SprintMetricsResolver(fake_jira_service, jira_config).resolve("2025-21")

        assert metrics.sprint.id == 2
        fake_jira_service.fetch_sprint_issues.assert_awaited_once_with(2, "Team Sprint 2025-21")
        assert metrics.statistics.total_issues == 66
        assert metrics.statistics.completed_issues == 59
        assert metrics.statistics.completion_rate == 89
        assert metrics.statistics.completed_story_points == 118
        assert metrics.statistics.total_story_points == 125

    @pytest.mark.asyncio
    async def test_story_point_fallback(self, fake_jira_service, jira_config, make_sprint, make_raw_issue):
        fake_jira_service.list_sprints.return_value = [make_sprint(7, "Sprint 2025-21")]
        fake_jira_service.fetch_sprint_issues.return_value = [
            make_raw_issue("A-1", points=5, field="customfield_10002"),
            make_raw_issue("A-2"),
        ]

        metrics = await SprintMetricsResolver(fake_jira_service, jira_config).resolve("2025-21")

        assert metrics.issues[0].story_points == 5
        assert metrics.issues[0].story_points_field == "customfield_10002"
        assert metrics.issues[1].story_points == 0
        assert metrics.statistics.story_point_sources == {"customfield_10002": 1, NO_STORY_POINTS: 1}

    @pytest.mark.asyncio
    async def test_empty_label(self, fake_jira_service, jira_config):
        with pytest.raises(ValidationError):
            await SprintMetricsResolver(fake_jira_service, jira_config).resolve("  ")
        fake_jira_service.list_sprints.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_configuration_fails_before_network(self, fake_jira_service):
        from sprint_intel.config import JiraConfig

        resolver = SprintMetricsResolver(fake_jira_service, JiraConfig(domain="example.atlassian.net"))
        with pytest.raises(ConfigurationError):
            await resolver.resolve("2025-21")
        fake_jira_service.list_sprints.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(self, fake_jira_service, jira_config):
        fake_jira_service.list_sprints.side_effect = UpstreamUnavailableError("Jira")
        with pytest.raises(UpstreamUnavailableError):
            await SprintMetricsResolver(fake_jira_service, jira_config).resolve("2025-21")

    @pytest.mark.asyncio
    async def test_resolve_many_isolates_failures(self, fake_jira_service, jira_config, make_sprint, make_raw_issue):
        fake_jira_service.list_sprints.return_value = [
            make_sprint(1, "Sprint 2025-20"),
            make_sprint(2, "Sprint 2025-21"),
        ]
        fake_jira_service.fetch_sprint_issues.return_value = [make_raw_issue("A-1", points=3)]

        outcomes = await SprintMetricsResolver(fake_jira_service, jira_config).resolve_many(
            ["2025-20", "2025-99", "2025-21"]
        )

        assert [o.label for o in outcomes] == ["2025-20", "2025-99", "2025-21"]
        assert outcomes[0].ok and outcomes[2].ok
        assert isinstance(outcomes[1].error, SprintNotFoundError)
        fake_jira_service.list_sprints.assert_awaited_once()

    def test_to_issue_handles_missing_fields(self, fake_jira_service, jira_config):
        resolver = SprintMetricsResolver(fake_jira_service, jira_config)
        result = resolver.to_issue({"key": "A-1", "fields": {}})
        assert result.status_name == "Unknown"
        assert result.assignee_name is None
        assert result.story_points == 0
