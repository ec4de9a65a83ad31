"""
Sprint metrics resolution
Resolves a user-given sprint label to one tracker sprint, fetches its
issues and computes story-point and completion statistics
"""
import logging
import math
import re
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..concurrency import Settled, gather_settled
from ..config import JiraConfig
from ..constants import DEFAULT_DONE_STATUS, SprintMatchPolicy
from ..errors import SprintAmbiguousError, SprintNotFoundError, ValidationError
from ..models import Issue, Sprint, SprintMetrics, SprintStatistics, StoryPointResolution
from .jira_service import JiraService

logger = logging.getLogger(__name__)

NO_STORY_POINTS = "none"


# ============================================================================
# Story points: an ordered fallback chain over candidate fields
# ============================================================================

def as_number(value: Any) -> Optional[float]:
    """
    Interpret a raw field value as a number.

    Ints, floats and numeric strings are numbers; booleans, NaN,
    infinities and everything else are not.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Real):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    if isinstance(number, float) and number.is_integer() and not isinstance(value, float):
        return int(number)
    return number


@dataclass(frozen=True)
class StoryPointField:
    """One step of the chain: read a single candidate field"""
    field_id: str

    def extract(self, fields: Mapping[str, Any]) -> Optional[float]:
        return as_number(fields.get(self.field_id))


class StoryPointResolver:
    """
    Resolve story points by trying candidate fields in a fixed priority order.

    The first numeric value wins, including 0. An issue without any
    numeric candidate contributes 0 points and is reported under the
    ``"none"`` source so the loss is visible in the statistics.

    Example:
        resolver = StoryPointResolver(["customfield_10004", "customfield_10002"])
        resolver.resolve({"customfield_10002": 5})
        # StoryPointResolution(value=5, source_field="customfield_10002")
    """

    def __init__(self, field_ids: Iterable[str]):
        self.strategies = tuple(StoryPointField(f) for f in field_ids)
        if not self.strategies:
            raise ValueError("At least one story-point field is required")

    @property
    def priority(self) -> List[str]:
        """Candidate field ids in the order they are tried"""
        return [s.field_id for s in self.strategies]

    def resolve(self, fields: Optional[Mapping[str, Any]]) -> StoryPointResolution:
        fields = fields or {}
        for strategy in self.strategies:
            value = strategy.extract(fields)
            if value is not None:
                return StoryPointResolution(value=value, source_field=strategy.field_id)
        return StoryPointResolution(value=0, source_field=None)


# ============================================================================
# Sprint label matching
# ============================================================================

def normalize_label(label: str) -> str:
    """Case-insensitive, whitespace-trimmed form of a sprint label or name"""
    return " ".join((label or "").split()).lower()


def _contains_token(haystack: str, needle: str) -> bool:
    """True when needle occurs in haystack not glued to other letters/digits"""
    if not needle:
        return False
    pattern = r'(?<![0-9a-z])' + re.escape(needle) + r'(?![0-9a-z])'
    return re.search(pattern, haystack) is not None


def match_sprints(label: str, sprints: Sequence[Sprint]) -> List[Sprint]:
    """
    Sprints whose name contains the label, or whose name is contained in it.

    Example:
        "2025-21" matches "Team Alpha Sprint 2025-21"
    """
    wanted = normalize_label(label)
    if not wanted:
        return []

    matches = []
    for sprint in sprints:
        name = normalize_label(sprint.name)
        if not name:
            continue
        if wanted in name or name in wanted:
            matches.append(sprint)
    return matches


def select_sprint(
    label: str,
    sprints: Sequence[Sprint],
    policy: str = SprintMatchPolicy.MOST_RECENT,
    board_id: Optional[str] = None
) -> Sprint:
    """
    Resolve a label to exactly one sprint.

    Candidates are narrowed by exact name, then by whole-token matches
    (so "2025-21" does not pick "2025-210"). If several remain, the
    ``most_recent`` policy picks the latest sprint by end/start date and
    logs the ambiguity; ``strict`` refuses to guess.

    Raises:
        SprintNotFoundError: No sprint matches
        SprintAmbiguousError: Several sprints match and none can be preferred
    """
    candidates = match_sprints(label, sprints)
    if not candidates:
        raise SprintNotFoundError(label, board_id=board_id)
    if len(candidates) == 1:
        return candidates[0]

    wanted = normalize_label(label)
    exact = [s for s in candidates if normalize_label(s.name) == wanted]
    if len(exact) == 1:
        return exact[0]

    tokens = [
        s for s in candidates
        if _contains_token(normalize_label(s.name), wanted)
        or _contains_token(wanted, normalize_label(s.name))
    ]
    if len(tokens) == 1:
        return tokens[0]
    narrowed = exact or tokens or candidates
    names = [s.name for s in narrowed]

    if policy == SprintMatchPolicy.STRICT:
        raise SprintAmbiguousError(label, names)

    dated = [s for s in narrowed if s.recency is not None]
    if not dated:
        raise SprintAmbiguousError(label, names)

    latest = max(s.recency for s in dated)
    newest = [s for s in dated if s.recency == latest]
    if len(newest) > 1:
        raise SprintAmbiguousError(label, [s.name for s in newest])

    chosen = newest[0]
    logger.warning(
        f"Sprint label '{label}' matched {len(narrowed)} sprints ({', '.join(names)}); "
        f"using most recent '{chosen.name}'"
    )
    return chosen


# ============================================================================
# Statistics
# ============================================================================

def percentage(part: float, whole: float) -> int:
    """Rounded (half up) percentage in [0, 100]; 0 when whole is 0"""
    if not whole or whole <= 0:
        return 0
    value = math.floor(part / whole * 100 + 0.5)
    return max(0, min(100, value))


def calculate_story_point_stats(
    issues: Sequence[Issue],
    done_status: str = DEFAULT_DONE_STATUS
) -> SprintStatistics:
    """
    Aggregate issue and story-point statistics.

    completion_rate is issue-based: completed issues over all issues.
    story_point_completion_rate is the same ratio over story points.
    """
    total_issues = len(issues)
    completed = [i for i in issues if i.status_name == done_status]

    total_points = sum(i.story_points for i in issues)
    completed_points = sum(i.story_points for i in completed)

    by_status: Dict[str, float] = {}
    by_type: Dict[str, float] = {}
    sources: Dict[str, int] = {}
    for issue in issues:
        by_status[issue.status_name] = by_status.get(issue.status_name, 0) + issue.story_points
        by_type[issue.issue_type_name] = by_type.get(issue.issue_type_name, 0) + issue.story_points
        source = issue.story_points_field or NO_STORY_POINTS
        sources[source] = sources.get(source, 0) + 1

    return SprintStatistics(
        total_issues=total_issues,
        completed_issues=len(completed),
        total_story_points=total_points,
        completed_story_points=completed_points,
        completion_rate=percentage(len(completed), total_issues),
        story_point_completion_rate=percentage(completed_points, total_points),
        story_points_by_status=by_status,
        story_points_by_type=by_type,
        story_point_sources=sources,
    )


def _name_of(value: Any, *keys: str) -> Optional[str]:
    if isinstance(value, dict):
        for key in keys:
            if value.get(key):
                return str(value[key])
        return None
    if value:
        return str(value)
    return None


class SprintMetricsResolver:
    """Resolve a sprint label and compute its metrics"""

    def __init__(self, jira_service: JiraService, config: JiraConfig):
        """
        Initialize the resolver

        Args:
            jira_service: Tracker access
            config: Jira settings (story-point fields, done status, match policy)
        """
        self.jira_service = jira_service
        self.config = config
        self.story_points = StoryPointResolver(config.story_point_fields)

    async def resolve_sprint(self, label: str) -> Sprint:
        """
        Resolve a sprint label to exactly one board sprint.

        Raises:
            ValidationError: Empty label
            ConfigurationError: Jira not configured (before any request)
            SprintNotFoundError / SprintAmbiguousError: Resolution failed
            UpstreamUnavailableError: Tracker unreachable
        """
        if not normalize_label(label):
            raise ValidationError("sprint_label", "Sprint label cannot be empty")
        self.config.require()

        sprints = await self.jira_service.list_sprints()
        sprint = select_sprint(
            label,
            sprints,
            policy=self.config.sprint_match_policy,
            board_id=self.config.board_id
        )
        logger.info(f"Resolved sprint label '{label}' to '{sprint.name}' (id={sprint.id})")
        return sprint

    async def collect(self, sprint: Sprint) -> SprintMetrics:
        """Fetch the sprint's issues and compute statistics"""
        raw_issues = await self.jira_service.fetch_sprint_issues(sprint.id, sprint.name)
        issues = tuple(self.to_issue(raw) for raw in raw_issues)
        statistics = calculate_story_point_stats(issues, self.config.done_status)

        unresolved = statistics.story_point_sources.get(NO_STORY_POINTS, 0)
        if unresolved:
            logger.info(
                f"{unresolved} of {len(issues)} issues in '{sprint.name}' have no numeric "
                f"story points in {', '.join(self.story_points.priority)}; counted as 0"
            )
        return SprintMetrics(sprint=sprint, issues=issues, statistics=statistics)

    async def resolve(self, label: str) -> SprintMetrics:
        """Resolve the sprint and collect its metrics"""
        sprint = await self.resolve_sprint(label)
        return await self.collect(sprint)

    async def resolve_many(self, labels: Sequence[str]) -> List[Settled]:
        """
        Resolve several labels against one sprint listing and collect
        their metrics concurrently.

        A label that fails to resolve or collect is returned as a failed
        Settled; it does not affect the other labels.

        Raises:
            ConfigurationError / UpstreamUnavailableError: When the board's
                sprint list itself cannot be read
        """
        self.config.require()
        sprints = await self.jira_service.list_sprints()

        async def one(label: str) -> SprintMetrics:
            if not normalize_label(label):
                raise ValidationError("sprint_labels", "Sprint label cannot be empty")
            sprint = select_sprint(
                label,
                sprints,
                policy=self.config.sprint_match_policy,
                board_id=self.config.board_id
            )
            return await self.collect(sprint)

        return await gather_settled((label, one(label)) for label in labels)

    def to_issue(self, raw: Dict[str, Any]) -> Issue:
        """Format a raw Jira issue, resolving its story points"""
        fields = raw.get('fields') or {}
        points = self.story_points.resolve(fields)

        return Issue(
            key=raw.get('key') or str(raw.get('id', '')),
            summary=fields.get('summary'),
            status_name=_name_of(fields.get('status'), 'name') or "Unknown",
            issue_type_name=_name_of(fields.get('issuetype'), 'name') or "Unknown",
            assignee_name=_name_of(fields.get('assignee'), 'displayName', 'name'),
            priority_name=_name_of(fields.get('priority'), 'name'),
            story_points=points.value,
            story_points_field=points.source_field,
        )
