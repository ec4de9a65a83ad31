"""
Shared fixtures: configuration objects and upstream payload factories.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

from sprint_intel.config import AzureDevOpsConfig, GitHubConfig, JiraConfig, SprintIntelConfig
from sprint_intel.models import Sprint


@pytest.fixture
def jira_config():
    return JiraConfig(domain="example.atlassian.net", token="jira-token", board_id="42")


@pytest.fixture
def azure_config():
    return AzureDevOpsConfig(
        org_url="https://dev.azure.com/example",
        project="Platform",
        pat="pat-value",
        pipeline_names=["Release-Build", "Deploy"],
        release_branch_patterns=["release/2025-21", "release/current", "release/next"],
    )


@pytest.fixture
def github_config():
    return GitHubConfig(repository="example/app", token="gh-token")


@pytest.fixture
def app_config(jira_config, azure_config, github_config):
    return SprintIntelConfig(
        jira=jira_config,
        azure_devops=azure_config,
        github=github_config,
        max_retries=0,
    )


@pytest.fixture
def make_sprint():
    def factory(sprint_id, name, start_day=None, end_day=None, state="closed"):
        return Sprint(
            id=sprint_id,
            name=name,
            state=state,
            start_date=datetime(2025, 5, start_day, tzinfo=timezone.utc) if start_day else None,
            end_date=datetime(2025, 5, end_day, tzinfo=timezone.utc) if end_day else None,
        )
    return factory


@pytest.fixture
def make_raw_issue():
    """Raw Jira issue JSON as returned by search_issues(json_result=True)"""
    def factory(key, status="Done", points=None, field="customfield_10004",
                issue_type="Story", assignee=None):
        fields = {
            "summary": f"Summary of {key}",
            "status": {"name": status},
            "issuetype": {"name": issue_type},
            "assignee": {"displayName": assignee} if assignee else None,
            "priority": {"name": "Medium"},
        }
        if points is not None:
            fields[field] = points
        return {"key": key, "fields": fields}
    return factory


@pytest.fixture
def fake_jira_service(jira_config):
    """JiraService stand-in with awaitable list/fetch methods"""
    service = Mock()
    service.config = jira_config
    service.board_id = jira_config.board_id
    service.list_sprints = AsyncMock(return_value=[])
    service.fetch_sprint_issues = AsyncMock(return_value=[])
    return service
