"""
Contributor reconciliation
Merges issue assignees and commit authors into one ranked list
"""
import logging
from typing import Dict, Iterable, List, Optional

from ..models import Commit, Contributor, Issue
from .github_service import UNKNOWN_AUTHOR

logger = logging.getLogger(__name__)


class ContributorReconciler:
    """
    Build a ranked contributor list from tracker and source-control data.

    Identity is the exact display-name string. "J. Smith" in the tracker and
    "Jane Smith" in source control are two contributors; no canonical
    identity source exists to merge them safely.
    """

    IGNORED_NAMES = frozenset({UNKNOWN_AUTHOR})

    def reconcile(
        self,
        issues: Iterable[Issue],
        commits: Iterable[Commit],
        limit: Optional[int] = None
    ) -> List[Contributor]:
        """
        Count issues and commits per display name and rank the result.

        Ranking is by total contributions, then issue count, then name.

        Args:
            issues: Sprint issues (assignee counts)
            commits: Sprint commits (author counts)
            limit: Keep only the top N contributors

        Returns:
            Ranked contributors
        """
        issue_counts: Dict[str, int] = {}
        commit_counts: Dict[str, int] = {}

        for issue in issues:
            if self._counts(issue.assignee_name):
                issue_counts[issue.assignee_name] = issue_counts.get(issue.assignee_name, 0) + 1

        for commit in commits:
            if self._counts(commit.author_name):
                commit_counts[commit.author_name] = commit_counts.get(commit.author_name, 0) + 1

        contributors = [
            Contributor(
                name=name,
                issue_count=issue_counts.get(name, 0),
                commit_count=commit_counts.get(name, 0),
            )
            for name in set(issue_counts) | set(commit_counts)
        ]
        contributors.sort(key=lambda c: (-c.total, -c.issue_count, c.name))

        logger.debug(
            f"Reconciled {len(contributors)} contributors "
            f"({len(issue_counts)} assignees, {len(commit_counts)} commit authors)"
        )
        if limit is not None:
            return contributors[:limit]
        return contributors

    def _counts(self, name: Optional[str]) -> bool:
        return bool(name and name.strip()) and name not in self.IGNORED_NAMES
