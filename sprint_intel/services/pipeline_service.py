"""
Pipeline build resolution for Azure DevOps
Correlates CI builds to a sprint through concurrent branch-targeted search,
an unfiltered fallback search, and a dedup/sort/truncate stage
"""
import logging
from typing import Any, Iterable, List, Optional

from ..auth import AzureDevOpsAuth
from ..concurrency import UpstreamExecutor, dedupe_by, gather_settled, log_failures, most_recent
from ..config import AzureDevOpsConfig
from ..constants import QueryLimits, RELEASE_BRANCH_MARKER, Timeouts, WorkerPools
from ..decorators import PerformanceMonitor, upstream_operation
from ..errors import UpstreamUnavailableError
from ..models import Build, Pipeline, PipelineBuilds, parse_datetime

logger = logging.getLogger(__name__)

IN_PROGRESS_RESULT = "In Progress"


def _field(obj: Any, *names: str) -> Any:
    """Read the first present attribute/key from an SDK model or raw dict"""
    for name in names:
        if isinstance(obj, dict):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


def _unwrap(result: Any) -> List[Any]:
    """SDK list calls return either a list or a response object with ``value``"""
    if result is None:
        return []
    if isinstance(result, (list, tuple)):
        return list(result)
    value = _field(result, 'value')
    if value is not None:
        return list(value)
    return list(result)


def _web_url(raw: Any) -> str:
    links = _field(raw, '_links', 'links')
    if links is not None:
        for container in (links, _field(links, 'links'), _field(links, 'additional_properties')):
            web = _field(container, 'web') if container is not None else None
            href = _field(web, 'href') if web is not None else None
            if href:
                return str(href)
    return str(_field(raw, 'web_url', 'url') or "")


def filter_release_builds(builds: Iterable[Build], sprint_label: str) -> List[Build]:
    """
    Keep builds whose branch mentions the sprint label or "release".

    Case-insensitive. Used on the unfiltered fallback result because many
    pipelines do not tag builds with sprint-specific branch names.
    """
    label = (sprint_label or "").strip().lower()
    kept = []
    for build in builds:
        branch = (build.source_branch or "").lower()
        if (label and label in branch) or RELEASE_BRANCH_MARKER in branch:
            kept.append(build)
    return kept


def select_recent_builds(
    builds: Iterable[Build],
    limit: int = QueryLimits.MAX_BUILDS_PER_PIPELINE
) -> List[Build]:
    """Dedup by build id, sort by queue time (newest first, stable), truncate"""
    unique = dedupe_by(builds, key=lambda b: b.id)
    return most_recent(unique, timestamp=lambda b: b.queue_time, limit=limit)


class PipelineBuildResolver:
    """
    Finds the most relevant recent builds per pipeline for a sprint.

    CI is optional: without org URL, project and PAT the resolver returns
    an empty list instead of failing.

    Example:
        resolver = PipelineBuildResolver(config.azure_devops)
        pipelines = await resolver.resolve("2025-21")
    """

    def __init__(
        self,
        config: AzureDevOpsConfig,
        auth: Optional[AzureDevOpsAuth] = None,
        build_client=None,
        timeout_seconds: float = Timeouts.HTTP_REQUEST,
        max_retries: int = 3
    ):
        """
        Initialize pipeline build resolver

        Args:
            config: Azure DevOps settings
            auth: Optional shared AzureDevOpsAuth
            build_client: Optional pre-built build client (tests inject mocks)
            timeout_seconds: Ceiling for each outbound request
            max_retries: Retries for transient failures
        """
        self.config = config
        self.auth = auth or AzureDevOpsAuth(config)
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self._build_client = build_client
        self.executor = UpstreamExecutor("Azure DevOps", max_workers=WorkerPools.AZURE_DEVOPS)

    @property
    def build_client(self):
        """Lazy load build client"""
        if not self._build_client:
            client = self.auth.get_client('build')
            # msrest waits 100s per request unless told otherwise
            client.config.connection.timeout = self.timeout_seconds
            self._build_client = client
        return self._build_client

    def close(self) -> None:
        self.executor.shutdown()

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    async def resolve(self, sprint_label: str) -> List[PipelineBuilds]:
        """
        Resolve builds for every allow-listed pipeline concurrently.

        A pipeline whose resolution fails is dropped with a warning;
        pipelines without any matching build are omitted.

        Args:
            sprint_label: Sprint label used by the fallback branch filter

        Returns:
            Pipelines with their top builds, in definition order

        Raises:
            UpstreamUnavailableError: When every matching pipeline failed
        """
        if not self.is_configured:
            logger.warning("Azure DevOps configuration not found, skipping pipeline data")
            return []

        async with PerformanceMonitor(f"pipeline builds for '{sprint_label}'"):
            pipelines = await self.list_matching_pipelines()
            if not pipelines:
                logger.info("No pipelines match the configured pipeline names")
                return []

            logger.info(f"Fetching build data for {len(pipelines)} pipelines...")
            settled = await gather_settled(
                (pipeline.name, self.resolve_pipeline(pipeline, sprint_label))
                for pipeline in pipelines
            )

        succeeded = log_failures(settled, "Pipeline")
        if not succeeded:
            raise UpstreamUnavailableError(
                system="Azure DevOps",
                message=f"Build data unavailable for all {len(pipelines)} matching pipelines",
                original_error=settled[0].error
            )

        resolved = [outcome.value for outcome in succeeded if outcome.value.builds]
        logger.info(f"Fetched build data for {len(resolved)} of {len(pipelines)} pipelines")
        return resolved

    async def list_matching_pipelines(self) -> List[Pipeline]:
        """Pipeline definitions whose name contains any configured name"""
        definitions = _unwrap(await self._list_definitions())
        names = self.config.pipeline_names

        pipelines = []
        for definition in definitions:
            name = _field(definition, 'name') or ""
            if any(wanted in name for wanted in names):
                pipelines.append(Pipeline(id=_field(definition, 'id'), name=name))
        return pipelines

    async def resolve_pipeline(self, pipeline: Pipeline, sprint_label: str) -> PipelineBuilds:
        """Branch-targeted search, then fallback when it finds nothing"""
        candidates = await self.branch_search(pipeline)
        used_fallback = False

        if not candidates:
            logger.info(
                f"No builds on release branches for '{pipeline.name}', "
                "falling back to recent builds"
            )
            candidates = await self.fallback_search(pipeline, sprint_label)
            used_fallback = True

        builds = select_recent_builds(candidates)
        return PipelineBuilds(pipeline=pipeline, builds=tuple(builds), used_fallback=used_fallback)

    async def branch_search(self, pipeline: Pipeline) -> List[Build]:
        """
        One build-list request per release-branch pattern, all concurrent.

        A failing pattern is logged and skipped; it never affects the others.
        """
        refs = [self.config.branch_ref(p) for p in self.config.release_branch_patterns]
        settled = await gather_settled(
            (ref, self._list_builds(pipeline.id, branch_name=ref, top=self.config.branch_build_limit))
            for ref in refs
        )

        builds: List[Build] = []
        for outcome in log_failures(settled, f"Branch query for '{pipeline.name}'"):
            builds.extend(
                self._to_build(raw, pipeline, default_branch=outcome.label)
                for raw in _unwrap(outcome.value)
            )
        return builds

    async def fallback_search(self, pipeline: Pipeline, sprint_label: str) -> List[Build]:
        """Most recent builds unfiltered by branch, filtered locally"""
        raw_builds = _unwrap(
            await self._list_builds(pipeline.id, top=self.config.fallback_build_limit)
        )
        builds = [self._to_build(raw, pipeline) for raw in raw_builds]
        return filter_release_builds(builds, sprint_label)

    @upstream_operation("Azure DevOps")
    async def _list_definitions(self):
        return await self.executor.run(
            self.build_client.get_definitions,
            project=self.config.project
        )

    @upstream_operation("Azure DevOps")
    async def _list_builds(
        self,
        definition_id: int,
        branch_name: Optional[str] = None,
        top: int = QueryLimits.BRANCH_BUILD_LIMIT
    ):
        return await self.executor.run(
            self.build_client.get_builds,
            project=self.config.project,
            definitions=[definition_id],
            branch_name=branch_name,
            top=top,
            query_order='queueTimeDescending'
        )

    @staticmethod
    def _to_build(raw: Any, pipeline: Pipeline, default_branch: Optional[str] = None) -> Build:
        """Format an SDK build (or raw dict) as a Build"""
        build_id = _field(raw, 'id')
        return Build(
            id=build_id,
            build_number=str(_field(raw, 'build_number', 'buildNumber') or build_id),
            status=_field(raw, 'status'),
            result=_field(raw, 'result') or IN_PROGRESS_RESULT,
            queue_time=parse_datetime(_field(raw, 'queue_time', 'queueTime')),
            source_branch=_field(raw, 'source_branch', 'sourceBranch') or default_branch,
            web_url=_web_url(raw),
            pipeline_name=pipeline.name,
        )
