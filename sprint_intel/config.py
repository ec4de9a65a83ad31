"""
Configuration for the sprint intelligence core.

All credentials and identifiers are collected once per process into
explicit configuration objects that are passed to each service. Nothing
below the server entry point reads the environment directly.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .constants import (
    DEFAULT_BRANCH_REF_PREFIX,
    DEFAULT_DONE_STATUS,
    DEFAULT_STORY_POINT_FIELDS,
    QueryLimits,
    SprintMatchPolicy,
    Timeouts,
    ToolCategories,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def split_csv(value: Optional[str]) -> List[str]:
    """Split a comma-separated setting, trimming entries and dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class JiraConfig:
    """Issue tracker settings."""
    domain: str = ""
    token: str = ""
    board_id: str = ""
    email: Optional[str] = None
    story_point_fields: Tuple[str, ...] = DEFAULT_STORY_POINT_FIELDS
    done_status: str = DEFAULT_DONE_STATUS
    sprint_match_policy: str = SprintMatchPolicy.MOST_RECENT

    @property
    def server_url(self) -> str:
        """Base URL of the Jira instance (scheme added when missing)."""
        domain = self.domain.strip().rstrip("/")
        if domain.startswith(("http://", "https://")):
            return domain
        return f"https://{domain}"

    def missing_settings(self) -> List[str]:
        missing = []
        if not self.domain:
            missing.append("JIRA_DOMAIN")
        if not self.token:
            missing.append("JIRA_TOKEN")
        if not self.board_id:
            missing.append("JIRA_BOARD_ID")
        return missing

    def require(self) -> None:
        """
        Fail fast when the tracker cannot be used.

        Raises:
            ConfigurationError: If domain, token or board id is missing
        """
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(missing=missing, system="Jira")

        if self.sprint_match_policy not in SprintMatchPolicy.ALL:
            raise ConfigurationError(
                missing=[f"SPRINT_MATCH_POLICY (one of {', '.join(SprintMatchPolicy.ALL)})"],
                system="Jira"
            )


@dataclass
class AzureDevOpsConfig:
    """CI (Azure Pipelines) settings. CI is optional."""
    org_url: str = ""
    project: str = ""
    pat: str = ""
    pipeline_names: List[str] = field(default_factory=list)
    release_branch_patterns: List[str] = field(default_factory=list)
    branch_ref_prefix: str = DEFAULT_BRANCH_REF_PREFIX
    branch_build_limit: int = QueryLimits.BRANCH_BUILD_LIMIT
    fallback_build_limit: int = QueryLimits.FALLBACK_BUILD_LIMIT

    @property
    def is_configured(self) -> bool:
        return bool(self.org_url and self.project and self.pat)

    def branch_ref(self, pattern: str) -> str:
        """Full ref name for a release-branch pattern."""
        if pattern.startswith("refs/"):
            return pattern
        return f"{self.branch_ref_prefix}{pattern}"


@dataclass
class GitHubConfig:
    """Source-control settings. Optional like CI."""
    repository: str = ""
    token: str = ""
    api_url: str = "https://api.github.com"

    @property
    def is_configured(self) -> bool:
        return bool(self.repository and self.token)


@dataclass
class SprintIntelConfig:
    """
    Process-wide configuration.

    Example:
        config = SprintIntelConfig.from_env()
        manager = ServiceManager(config)
    """
    jira: JiraConfig = field(default_factory=JiraConfig)
    azure_devops: AzureDevOpsConfig = field(default_factory=AzureDevOpsConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    http_timeout_seconds: float = Timeouts.HTTP_REQUEST
    max_retries: int = 3
    enabled_categories: List[str] = field(
        default_factory=lambda: list(ToolCategories.ALL)
    )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "SprintIntelConfig":
        """
        Build configuration from environment variables.

        Args:
            env: Mapping to read from. If None, loads a .env file and
                 reads os.environ.

        Returns:
            Populated configuration
        """
        if env is None:
            load_dotenv()
            env = os.environ

        story_point_fields = tuple(split_csv(env.get("JIRA_STORY_POINT_FIELDS"))) \
            or DEFAULT_STORY_POINT_FIELDS

        jira = JiraConfig(
            domain=env.get("JIRA_DOMAIN", ""),
            token=env.get("JIRA_TOKEN", ""),
            board_id=env.get("JIRA_BOARD_ID", ""),
            email=env.get("JIRA_EMAIL") or None,
            story_point_fields=story_point_fields,
            done_status=env.get("JIRA_DONE_STATUS") or DEFAULT_DONE_STATUS,
            sprint_match_policy=(
                env.get("SPRINT_MATCH_POLICY") or SprintMatchPolicy.MOST_RECENT
            ).strip().lower(),
        )

        azure_devops = AzureDevOpsConfig(
            org_url=(env.get("AZURE_DEVOPS_ORG_URL") or "").rstrip("/"),
            project=env.get("AZURE_DEVOPS_PROJECT", ""),
            pat=env.get("AZURE_DEVOPS_PAT", ""),
            pipeline_names=split_csv(env.get("PIPELINE_NAMES")),
            release_branch_patterns=split_csv(env.get("RELEASE_BRANCH_PATTERNS")),
            branch_ref_prefix=env.get("RELEASE_BRANCH_PREFIX") or DEFAULT_BRANCH_REF_PREFIX,
        )

        github = GitHubConfig(
            repository=env.get("GH_REPOSITORY", ""),
            token=env.get("GH_TOKEN", ""),
        )

        timeout = Timeouts.HTTP_REQUEST
        raw_timeout = env.get("HTTP_TIMEOUT_SECONDS")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                logger.warning(
                    f"Ignoring invalid HTTP_TIMEOUT_SECONDS={raw_timeout!r}, "
                    f"using {Timeouts.HTTP_REQUEST}s"
                )

        categories = split_csv(env.get("TOOL_CATEGORIES")) or list(ToolCategories.ALL)

        return cls(
            jira=jira,
            azure_devops=azure_devops,
            github=github,
            http_timeout_seconds=timeout,
            enabled_categories=[c.lower() for c in categories],
        )

    def describe(self) -> Dict[str, bool]:
        """Which upstream systems are configured (never exposes secrets)."""
        return {
            "jira": not self.jira.missing_settings(),
            "azure_devops": self.azure_devops.is_configured,
            "github": self.github.is_configured,
        }
