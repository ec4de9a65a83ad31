"""
Unit tests for GitHubService.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import Mock

import requests

from sprint_intel.config import GitHubConfig
from sprint_intel.errors import ConfigurationError, PermissionDeniedError
from sprint_intel.services.github_service import UNKNOWN_AUTHOR, GitHubService


def commit_payload(sha, author=None, login=None, date="2025-05-14T10:00:00Z"):
    return {
        "sha": sha,
        "html_url": f"https://github.com/example/app/commit/{sha}",
        "commit": {
            "message": f"Commit {sha}",
            "author": {"name": author, "date": date} if author else {"date": date},
        },
        "author": {"login": login} if login else None,
    }


def response(items, next_url=None, status_code=200):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = items
    resp.links = {"next": {"url": next_url}} if next_url else {}
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Client Error", response=resp)
    else:
        resp.raise_for_status.return_value = None
    return resp


class TestFetchCommits:
    """Test commit listing."""

    @pytest.mark.asyncio
    async def test_date_range_is_end_exclusive(self, github_config):
        session = Mock()
        session.get.return_value = response([commit_payload("a1", author="Ada")])
        service = GitHubService(github_config, session=session, max_retries=0)

        commits = await service.fetch_commits_for_date_range(
            datetime(2025, 5, 12, 8, 0, tzinfo=timezone.utc),
            datetime(2025, 5, 26, 8, 0, tzinfo=timezone.utc),
        )

        assert [c.sha for c in commits] == ["a1"]
        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url == "https://api.github.com/repos/example/app/commits"
        assert params["since"] == "2025-05-12T08:00:00Z"
        assert params["until"] == "2025-05-25T23:59:59.999000Z"
        assert params["per_page"] == 100

    @pytest.mark.asyncio
    async def test_follows_next_links(self, github_config):
        session = Mock()
        session.get.side_effect = [
            response([commit_payload("a1", author="Ada")], next_url="https://api.github.com/next?page=2"),
            response([commit_payload("b2", login="grace")]),
        ]
        service = GitHubService(github_config, session=session, max_retries=0)

        commits = await service.fetch_commits_for_branch("release/2025-21")

        assert [c.sha for c in commits] == ["a1", "b2"]
        assert commits[1].author_name == "grace"
        second = session.get.call_args_list[1]
        assert second.args[0] == "https://api.github.com/next?page=2"
        assert second.kwargs["params"] is None
        assert session.get.call_args_list[0].kwargs["params"]["sha"] == "release/2025-21"

    @pytest.mark.asyncio
    async def test_http_error_mapped(self, github_config):
        session = Mock()
        session.get.return_value = response([], status_code=403)
        service = GitHubService(github_config, session=session, max_retries=0)

        with pytest.raises(PermissionDeniedError) as exc_info:
            await service.fetch_commits_for_branch("main")
        assert exc_info.value.system == "GitHub"

    @pytest.mark.asyncio
    async def test_missing_configuration(self):
        service = GitHubService(GitHubConfig(repository="example/app"), max_retries=0)
        with pytest.raises(ConfigurationError) as exc_info:
            await service.fetch_commits_for_branch("main")
        assert exc_info.value.missing == ["GH_TOKEN"]


class TestToCommit:
    """Test payload conversion."""

    def test_unknown_author(self):
        commit = GitHubService._to_commit(commit_payload("c3"))
        assert commit.author_name == UNKNOWN_AUTHOR
        assert commit.date == datetime(2025, 5, 14, 10, 0, tzinfo=timezone.utc)

    def test_git_author_preferred_over_login(self):
        commit = GitHubService._to_commit(commit_payload("c4", author="Ada Lovelace", login="ada"))
        assert commit.author_name == "Ada Lovelace"


class TestClose:
    """Test session cleanup."""

    def test_close_releases_session(self, github_config):
        session = Mock()
        service = GitHubService(github_config, session=session)
        service.close()
        session.close.assert_called_once()
        service.close()
        session.close.assert_called_once()
