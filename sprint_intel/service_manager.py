"""
Service Manager for the sprint intelligence services
Provides lazily created, cached service instances built from one config
"""
from typing import Any, Dict, Optional

from .auth import AzureDevOpsAuth
from .config import SprintIntelConfig
from .services.contributors import ContributorReconciler
from .services.github_service import GitHubService
from .services.jira_service import JiraService
from .services.pipeline_service import PipelineBuildResolver
from .services.report_assembler import SprintReportAssembler
from .services.sprint_metrics import SprintMetricsResolver


class ServiceManager:
    """
    Owns the service instances for one process.

    Features:
    - Configuration passed in explicitly, never read from the environment
    - Lazy-loading: services created only when first accessed
    - No network activity until a service method is awaited
    - Usage statistics for monitoring

    Example:
        manager = ServiceManager(SprintIntelConfig.from_env())

        # Services created on first access
        assembler = manager.get_report_assembler()

        # Subsequent calls return cached instances
        same_assembler = manager.get_report_assembler()
    """

    def __init__(self, config: SprintIntelConfig, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize service manager

        Args:
            config: Process configuration
            overrides: Optional pre-built services keyed by service name
                       (e.g. {"jira_service": fake}); used by tests and scripts
        """
        if config is None:
            raise ValueError("ServiceManager requires a SprintIntelConfig instance.")

        self.config = config
        self._services: Dict[str, Any] = dict(overrides or {})

        # Statistics
        self._service_creation_count = 0
        self._cache_hit_count = 0

    def _get_or_create(self, name: str, factory):
        if name in self._services:
            self._cache_hit_count += 1
            return self._services[name]

        service = factory()
        self._services[name] = service
        self._service_creation_count += 1
        return service

    def get_jira_service(self) -> JiraService:
        return self._get_or_create(
            "jira_service",
            lambda: JiraService(
                self.config.jira,
                timeout_seconds=self.config.http_timeout_seconds,
                max_retries=self.config.max_retries
            )
        )

    def get_azure_devops_auth(self) -> AzureDevOpsAuth:
        return self._get_or_create(
            "azure_devops_auth",
            lambda: AzureDevOpsAuth(self.config.azure_devops)
        )

    def get_github_service(self) -> GitHubService:
        return self._get_or_create(
            "github_service",
            lambda: GitHubService(
                self.config.github,
                timeout_seconds=self.config.http_timeout_seconds,
                max_retries=self.config.max_retries
            )
        )

    def get_metrics_resolver(self) -> SprintMetricsResolver:
        return self._get_or_create(
            "metrics_resolver",
            lambda: SprintMetricsResolver(self.get_jira_service(), self.config.jira)
        )

    def get_pipeline_resolver(self) -> PipelineBuildResolver:
        return self._get_or_create(
            "pipeline_resolver",
            lambda: PipelineBuildResolver(
                self.config.azure_devops,
                auth=self.get_azure_devops_auth(),
                timeout_seconds=self.config.http_timeout_seconds,
                max_retries=self.config.max_retries
            )
        )

    def get_contributor_reconciler(self) -> ContributorReconciler:
        return self._get_or_create("contributor_reconciler", ContributorReconciler)

    def get_report_assembler(self) -> SprintReportAssembler:
        return self._get_or_create(
            "report_assembler",
            lambda: SprintReportAssembler(
                self.get_metrics_resolver(),
                pipeline_resolver=self.get_pipeline_resolver(),
                github_service=self.get_github_service(),
                reconciler=self.get_contributor_reconciler()
            )
        )

    def get_loaded_services(self):
        """Names of services that have been created (or injected)"""
        return sorted(self._services)

    def clear_all_services(self) -> None:
        """
        Drop all cached service instances
        Useful for testing or after a configuration change
        """
        self._services.clear()

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get service manager statistics

        Returns:
            Dictionary with usage statistics:
            - loaded_services: Number of service instances alive
            - service_creations: Total services created (including cleared)
            - cache_hits: Number of times a cached service was returned
            - cache_hit_rate_percent: Percentage of cache hits vs total requests
            - configured: Which upstream systems are configured
        """
        total_requests = self._service_creation_count + self._cache_hit_count
        cache_hit_rate = (
            (self._cache_hit_count / total_requests * 100)
            if total_requests > 0 else 0.0
        )

        return {
            "loaded_services": len(self._services),
            "service_creations": self._service_creation_count,
            "cache_hits": self._cache_hit_count,
            "cache_hit_rate_percent": round(cache_hit_rate, 2),
            "configured": self.config.describe(),
        }

    def close(self) -> None:
        """Release connections and worker threads held by created services"""
        for name in ("jira_service", "pipeline_resolver", "github_service", "azure_devops_auth"):
            service = self._services.get(name)
            if service is not None:
                service.close()

    def __repr__(self) -> str:
        """String representation for debugging"""
        stats = self.get_statistics()
        return (
            f"ServiceManager(services={stats['loaded_services']}, "
            f"configured={stats['configured']})"
        )
