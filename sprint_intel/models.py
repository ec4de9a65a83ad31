"""
Data models for the sprint intelligence core
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple


_OFFSET_WITHOUT_COLON = re.compile(r'([+-]\d{2})(\d{2})$')


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an upstream timestamp into an aware datetime.

    Accepts datetime objects and ISO-8601 strings as returned by Jira
    ("2025-05-01T10:00:00.000+0000"), Azure DevOps and GitHub ("...Z").
    Naive values are taken as UTC. Unparseable values yield None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _OFFSET_WITHOUT_COLON.sub(r'\1:\2', text)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Sprint:
    """Represents a tracker sprint"""
    id: int
    name: str
    state: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    complete_date: Optional[datetime] = None

    @property
    def recency(self) -> Optional[datetime]:
        """Most informative date for ordering sprints by recency"""
        return self.end_date or self.start_date or self.complete_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'state': self.state,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'complete_date': _iso(self.complete_date),
        }


@dataclass(frozen=True)
class StoryPointResolution:
    """Outcome of the story-point fallback chain for one issue"""
    value: float = 0
    source_field: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.source_field is not None


@dataclass(frozen=True)
class Issue:
    """Represents a tracker issue with resolved story points"""
    key: str
    status_name: str
    issue_type_name: str
    summary: Optional[str] = None
    assignee_name: Optional[str] = None
    priority_name: Optional[str] = None
    story_points: float = 0
    story_points_field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'summary': self.summary,
            'status': self.status_name,
            'issue_type': self.issue_type_name,
            'assignee': self.assignee_name,
            'priority': self.priority_name,
            'story_points': self.story_points,
            'story_points_field': self.story_points_field,
        }


@dataclass(frozen=True)
class Commit:
    """Represents a source-control commit"""
    sha: str
    message: str
    author_name: str
    url: str
    date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sha': self.sha,
            'message': self.message,
            'author': self.author_name,
            'url': self.url,
            'date': _iso(self.date),
        }


@dataclass(frozen=True)
class Pipeline:
    """Represents a CI pipeline definition"""
    id: int
    name: str


@dataclass(frozen=True)
class Build:
    """Represents one execution of a CI pipeline"""
    id: int
    build_number: str
    status: Optional[str]
    result: Optional[str]
    queue_time: Optional[datetime]
    source_branch: Optional[str]
    web_url: str
    pipeline_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'build_number': self.build_number,
            'status': self.status,
            'result': self.result,
            'queue_time': _iso(self.queue_time),
            'source_branch': self.source_branch,
            'web_url': self.web_url,
            'pipeline_name': self.pipeline_name,
        }


@dataclass(frozen=True)
class PipelineBuilds:
    """A pipeline with its most relevant builds for a sprint"""
    pipeline: Pipeline
    builds: Tuple[Build, ...]
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.pipeline.id,
            'name': self.pipeline.name,
            'used_fallback': self.used_fallback,
            'builds': [b.to_dict() for b in self.builds],
        }


@dataclass(frozen=True)
class Contributor:
    """A person contributing issues and/or commits to a sprint"""
    name: str
    issue_count: int = 0
    commit_count: int = 0

    @property
    def total(self) -> int:
        return self.issue_count + self.commit_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'issue_count': self.issue_count,
            'commit_count': self.commit_count,
        }


@dataclass(frozen=True)
class SprintStatistics:
    """Aggregate story-point and completion statistics for a set of issues"""
    total_issues: int = 0
    completed_issues: int = 0
    total_story_points: float = 0
    completed_story_points: float = 0
    completion_rate: int = 0
    story_point_completion_rate: int = 0
    story_points_by_status: Dict[str, float] = field(default_factory=dict)
    story_points_by_type: Dict[str, float] = field(default_factory=dict)
    story_point_sources: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_issues': self.total_issues,
            'completed_issues': self.completed_issues,
            'total_story_points': self.total_story_points,
            'completed_story_points': self.completed_story_points,
            'completion_rate': self.completion_rate,
            'story_point_completion_rate': self.story_point_completion_rate,
            'story_points_by_status': dict(self.story_points_by_status),
            'story_points_by_type': dict(self.story_points_by_type),
            'story_point_sources': dict(self.story_point_sources),
        }


@dataclass(frozen=True)
class SprintMetrics:
    """A resolved sprint with its issues and statistics"""
    sprint: Sprint
    issues: Tuple[Issue, ...]
    statistics: SprintStatistics


@dataclass(frozen=True)
class SprintMetricsReport:
    """
    Aggregate output of one report run.

    Handed as a plain value to renderers and notifiers.
    """
    sprint: Sprint
    issues: Tuple[Issue, ...]
    total_story_points: float
    completed_story_points: float
    completion_rate: int
    pipelines: Tuple[PipelineBuilds, ...] = ()
    contributors: Tuple[Contributor, ...] = ()
    statistics: SprintStatistics = field(default_factory=SprintStatistics)
    degraded_sections: Tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_sections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sprint': self.sprint.to_dict(),
            'total_issues': self.statistics.total_issues,
            'completed_issues': self.statistics.completed_issues,
            'total_story_points': self.total_story_points,
            'completed_story_points': self.completed_story_points,
            'completion_rate': self.completion_rate,
            'story_points_by_status': dict(self.statistics.story_points_by_status),
            'story_points_by_type': dict(self.statistics.story_points_by_type),
            'story_point_sources': dict(self.statistics.story_point_sources),
            'issues': [i.to_dict() for i in self.issues],
            'pipelines': [p.to_dict() for p in self.pipelines],
            'contributors': [c.to_dict() for c in self.contributors],
            'degraded_sections': list(self.degraded_sections),
        }


@dataclass(frozen=True)
class VelocityEntry:
    """Velocity of one sprint"""
    sprint_name: str
    completed_points: float
    planned_points: float
    completion_rate: int


@dataclass(frozen=True)
class VelocityAnalysis:
    """Velocity trend across several sprints"""
    entries: Tuple[VelocityEntry, ...]
    average_velocity: int
    trend: str
    consistency: str
    best_sprint: Optional[str] = None
    worst_sprint: Optional[str] = None
    skipped: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sprints': [
                {
                    'sprint': e.sprint_name,
                    'completed_points': e.completed_points,
                    'planned_points': e.planned_points,
                    'completion_rate': e.completion_rate,
                }
                for e in self.entries
            ],
            'average_velocity': self.average_velocity,
            'trend': self.trend,
            'consistency': self.consistency,
            'best_sprint': self.best_sprint,
            'worst_sprint': self.worst_sprint,
            'skipped': list(self.skipped),
        }


