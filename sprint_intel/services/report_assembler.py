"""
Sprint report assembly
Runs the metrics, pipeline and contributor resolution concurrently and
composes one SprintMetricsReport
"""
import asyncio
import logging
from typing import List, Optional

from ..concurrency import gather_settled
from ..log_sanitizer import safe_log_error
from ..models import Commit, Sprint, SprintMetricsReport
from .contributors import ContributorReconciler
from .github_service import GitHubService
from .pipeline_service import PipelineBuildResolver
from .sprint_metrics import SprintMetricsResolver

logger = logging.getLogger(__name__)

METRICS = "metrics"
PIPELINES = "pipelines"
CONTRIBUTORS = "contributors"


class SprintReportAssembler:
    """
    Compose a SprintMetricsReport for a sprint label.

    Sprint and issue data are essential: if they fail, assembly fails.
    Pipelines and contributors are optional: a failure there is logged and
    the section is replaced by an empty collection, and its name is listed
    in ``degraded_sections``.

    Example:
        assembler = SprintReportAssembler(metrics_resolver, pipeline_resolver, github_service)
        report = await assembler.assemble("2025-21")
    """

    def __init__(
        self,
        metrics_resolver: SprintMetricsResolver,
        pipeline_resolver: Optional[PipelineBuildResolver] = None,
        github_service: Optional[GitHubService] = None,
        reconciler: Optional[ContributorReconciler] = None
    ):
        self.metrics_resolver = metrics_resolver
        self.pipeline_resolver = pipeline_resolver
        self.github_service = github_service
        self.reconciler = reconciler or ContributorReconciler()

    async def assemble(
        self,
        sprint_label: str,
        include_pipelines: bool = True,
        include_contributors: bool = True
    ) -> SprintMetricsReport:
        """
        Build the report.

        Sprint identity is resolved once and shared: issue fetching and
        commit fetching both wait on it, while pipeline resolution starts
        immediately since it only needs the label.

        Raises:
            SprintIntelError: When the sprint or its issues cannot be resolved
        """
        sprint_future = asyncio.ensure_future(
            self.metrics_resolver.resolve_sprint(sprint_label)
        )

        async def collect_metrics():
            return await self.metrics_resolver.collect(await sprint_future)

        async def collect_commits():
            return await self._fetch_commits(await sprint_future)

        tasks = [(METRICS, collect_metrics())]
        if include_pipelines:
            tasks.append((PIPELINES, self._resolve_pipelines(sprint_label)))
        if include_contributors:
            tasks.append((CONTRIBUTORS, collect_commits()))

        outcomes = {outcome.label: outcome for outcome in await gather_settled(tasks)}

        metrics_outcome = outcomes[METRICS]
        if not metrics_outcome.ok:
            logger.error(safe_log_error(metrics_outcome.error, f"Sprint report for '{sprint_label}' failed"))
            raise metrics_outcome.error
        metrics = metrics_outcome.value

        degraded: List[str] = []

        pipelines = ()
        if include_pipelines:
            outcome = outcomes[PIPELINES]
            if outcome.ok:
                pipelines = tuple(outcome.value)
            else:
                degraded.append(PIPELINES)
                logger.warning(safe_log_error(outcome.error, "Pipeline data unavailable, continuing without it"))

        contributors = ()
        if include_contributors:
            outcome = outcomes[CONTRIBUTORS]
            if outcome.ok:
                try:
                    contributors = tuple(self.reconciler.reconcile(metrics.issues, outcome.value))
                except Exception as e:
                    degraded.append(CONTRIBUTORS)
                    logger.warning(safe_log_error(e, "Contributor reconciliation failed, continuing without it"))
            else:
                degraded.append(CONTRIBUTORS)
                logger.warning(safe_log_error(outcome.error, "Commit data unavailable, continuing without contributors"))

        stats = metrics.statistics
        report = SprintMetricsReport(
            sprint=metrics.sprint,
            issues=metrics.issues,
            total_story_points=stats.total_story_points,
            completed_story_points=stats.completed_story_points,
            completion_rate=stats.completion_rate,
            pipelines=pipelines,
            contributors=contributors,
            statistics=stats,
            degraded_sections=tuple(degraded),
        )
        logger.info(
            f"Assembled report for '{metrics.sprint.name}': {stats.total_issues} issues, "
            f"{len(pipelines)} pipelines, {len(contributors)} contributors"
            + (f" (degraded: {', '.join(degraded)})" if degraded else "")
        )
        return report

    async def _resolve_pipelines(self, sprint_label: str):
        if self.pipeline_resolver is None:
            return []
        return await self.pipeline_resolver.resolve(sprint_label)

    async def _fetch_commits(self, sprint: Sprint) -> List[Commit]:
        """Commits inside the sprint window; empty when GitHub is not configured"""
        if self.github_service is None or not self.github_service.is_configured:
            logger.info("GitHub configuration not found, contributors come from issues only")
            return []
        if not sprint.start_date or not sprint.end_date:
            logger.info(f"Sprint '{sprint.name}' has no dates, skipping commit history")
            return []
        return await self.github_service.fetch_commits_for_date_range(
            sprint.start_date, sprint.end_date
        )
