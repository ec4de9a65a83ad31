"""
GitHub service for commit history
Source-control boundary: commits for a date range or a branch
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..auth import github_session
from ..concurrency import UpstreamExecutor
from ..config import GitHubConfig
from ..constants import QueryLimits, Timeouts, WorkerPools
from ..decorators import upstream_operation
from ..models import Commit, parse_datetime

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "Unknown"


class GitHubService:
    """Service for reading commits from the configured repository"""

    def __init__(
        self,
        config: GitHubConfig,
        session=None,
        timeout_seconds: float = Timeouts.HTTP_REQUEST,
        max_retries: int = 3
    ):
        self.config = config
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self._session = session
        self.executor = UpstreamExecutor("GitHub", max_workers=WorkerPools.GITHUB)

    @property
    def session(self):
        """Lazy load the authenticated requests session"""
        if self._session is None:
            self._session = github_session(self.config)
        return self._session

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    def close(self) -> None:
        self.executor.shutdown()
        if self._session is not None:
            self._session.close()
            self._session = None

    @property
    def commits_url(self) -> str:
        return f"{self.config.api_url.rstrip('/')}/repos/{self.config.repository}/commits"

    async def fetch_commits_for_date_range(
        self,
        start: datetime,
        end: datetime
    ) -> List[Commit]:
        """
        Commits between two dates.

        The end date is exclusive: commits are taken up to the end of the
        day before ``end``, matching how sprints hand over on their end day.

        Args:
            start: Sprint start
            end: Sprint end

        Returns:
            Commits, newest first as returned by GitHub
        """
        since = _utc(start)
        until = (_utc(end) - timedelta(days=1)).replace(
            hour=23, minute=59, second=59, microsecond=999000
        )
        if until < since:
            until = _utc(end)

        logger.info(
            f"Fetching commits from {since.isoformat()} to {until.isoformat()} "
            f"repo={self.config.repository}"
        )
        return await self._fetch_all({
            'since': since.isoformat().replace('+00:00', 'Z'),
            'until': until.isoformat().replace('+00:00', 'Z'),
        })

    async def fetch_commits_for_branch(self, branch: str) -> List[Commit]:
        """Commits reachable from a branch (or any ref GitHub accepts as sha)"""
        logger.info(f"Fetching commits for branch '{branch}' repo={self.config.repository}")
        return await self._fetch_all({'sha': branch})

    async def _fetch_all(self, params: Dict[str, Any]) -> List[Commit]:
        """Follow rel="next" links up to the page cap"""
        commits: List[Commit] = []
        url: Optional[str] = self.commits_url
        page_params: Optional[Dict[str, Any]] = {**params, 'per_page': QueryLimits.GITHUB_PAGE_SIZE}
        pages = 0

        while url and pages < QueryLimits.GITHUB_MAX_PAGES:
            data, url = await self._fetch_page(url, page_params)
            # The next link already carries the query string
            page_params = None
            pages += 1
            commits.extend(self._to_commit(item) for item in data)
            if not data:
                break

        logger.info(f"Fetched {len(commits)} commits from {self.config.repository}")
        return commits

    @upstream_operation("GitHub")
    async def _fetch_page(self, url: str, params: Optional[Dict[str, Any]]) -> Tuple[List[Any], Optional[str]]:
        def request():
            response = self.session.get(url, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
            next_link = (response.links or {}).get('next', {}).get('url')
            return response.json() or [], next_link

        return await self.executor.run(request)

    @staticmethod
    def _to_commit(item: Dict[str, Any]) -> Commit:
        """Format a GitHub commit payload as a Commit"""
        detail = item.get('commit') or {}
        git_author = detail.get('author') or {}
        account = item.get('author') or {}

        return Commit(
            sha=item.get('sha', ''),
            message=detail.get('message', ''),
            author_name=git_author.get('name') or account.get('login') or UNKNOWN_AUTHOR,
            url=item.get('html_url', ''),
            date=parse_datetime(git_author.get('date')),
        )


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
