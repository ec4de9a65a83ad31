"""
Jira service for board sprints and sprint issues
Wraps the ``jira`` client with paging, timeouts and error mapping
"""
import logging
from typing import Any, Dict, List, Optional

from ..auth import connect_jira
from ..config import JiraConfig
from ..concurrency import UpstreamExecutor
from ..constants import QueryLimits, Timeouts, WorkerPools, issue_fields_for
from ..decorators import upstream_operation
from ..models import Sprint, parse_datetime

logger = logging.getLogger(__name__)


class JiraService:
    """Service for tracker reads: sprints of a board and issues of a sprint"""

    def __init__(
        self,
        config: JiraConfig,
        client=None,
        timeout_seconds: float = Timeouts.HTTP_REQUEST,
        max_retries: int = 3
    ):
        """
        Initialize Jira service

        Args:
            config: Jira settings
            client: Optional pre-built ``jira.JIRA`` client (tests inject mocks)
            timeout_seconds: Ceiling for each outbound request
            max_retries: Retries for transient failures
        """
        self.config = config
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self._client = client
        self.executor = UpstreamExecutor("Jira", max_workers=WorkerPools.JIRA)

    @property
    def client(self):
        """Lazy load the Jira client"""
        if self._client is None:
            self._client = connect_jira(self.config, timeout_seconds=self.timeout_seconds)
        return self._client

    def close(self) -> None:
        self.executor.shutdown()

    @property
    def board_id(self) -> str:
        return self.config.board_id

    async def list_sprints(self, state: Optional[str] = None) -> List[Sprint]:
        """
        Get every sprint on the configured board.

        Args:
            state: Optional comma-separated state filter ("active,closed")

        Returns:
            Sprints in board order

        Raises:
            ConfigurationError: If Jira is not configured (before any request)
            UpstreamUnavailableError: On network or auth failure
        """
        self.config.require()

        sprints: List[Sprint] = []
        start_at = 0
        while True:
            page = await self._fetch_sprint_page(start_at, state)
            sprints.extend(self._to_sprint(s) for s in page)

            # The board may cap page size below what we asked for, so trust
            # isLast when the client provides it
            is_last = getattr(page, 'isLast', None)
            if not page or is_last is True:
                break
            if is_last is None and len(page) < QueryLimits.JIRA_PAGE_SIZE:
                break
            start_at += len(page)

        logger.info(f"Fetched {len(sprints)} sprints for board {self.board_id}")
        return sprints

    async def fetch_sprint_issues(self, sprint_id: int, sprint_name: str = "") -> List[Dict[str, Any]]:
        """
        Get all issues of a sprint as raw Jira JSON.

        Story-point candidate fields are requested explicitly so the
        resolver can walk its fallback chain.

        Args:
            sprint_id: Jira sprint id
            sprint_name: Used for progress logging only

        Returns:
            Raw issue dictionaries ({"key": ..., "fields": {...}})
        """
        self.config.require()

        fields = issue_fields_for(self.config.story_point_fields)
        issues: List[Dict[str, Any]] = []
        start_at = 0
        total = None

        while total is None or start_at < total:
            page = await self._fetch_issue_page(sprint_id, start_at, fields)
            batch = page.get('issues') or []
            issues.extend(batch)
            total = page.get('total', len(issues))
            start_at += len(batch)

            logger.debug(f"Fetched {len(issues)} of {total} issues for sprint {sprint_name or sprint_id}")
            if not batch:
                break

        logger.info(f"Fetched {len(issues)} issues for sprint {sprint_name or sprint_id}")
        return issues

    @upstream_operation("Jira")
    async def _fetch_sprint_page(self, start_at: int, state: Optional[str] = None):
        return await self.executor.run(
            self.client.sprints,
            self.board_id,
            startAt=start_at,
            maxResults=QueryLimits.JIRA_PAGE_SIZE,
            state=state
        )

    @upstream_operation("Jira")
    async def _fetch_issue_page(self, sprint_id: int, start_at: int, fields: List[str]) -> Dict[str, Any]:
        return await self.executor.run(
            self.client.search_issues,
            f"sprint = {int(sprint_id)}",
            startAt=start_at,
            maxResults=QueryLimits.JIRA_PAGE_SIZE,
            fields=",".join(fields),
            json_result=True
        )

    @staticmethod
    def _to_sprint(resource) -> Sprint:
        """Format a Jira sprint resource (or raw dict) as a Sprint"""
        raw = resource if isinstance(resource, dict) else (getattr(resource, 'raw', None) or {})
        return Sprint(
            id=raw.get('id'),
            name=raw.get('name') or "",
            state=(raw.get('state') or "").lower(),
            start_date=parse_datetime(raw.get('startDate')),
            end_date=parse_datetime(raw.get('endDate')),
            complete_date=parse_datetime(raw.get('completeDate')),
        )
