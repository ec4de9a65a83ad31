"""
Authentication handling for the upstream systems.

- Azure DevOps: Personal Access Token through an SDK Connection
- Jira: bearer token, or basic auth when an account e-mail is configured
- GitHub: token header on a requests Session
"""
import logging
from typing import Optional

import requests
from azure.devops.connection import Connection
from jira import JIRA
from msrest.authentication import BasicAuthentication

from .config import AzureDevOpsConfig, GitHubConfig, JiraConfig
from .errors import ConfigurationError
from .log_sanitizer import safe_log_error

logger = logging.getLogger(__name__)


class AzureDevOpsAuth:
    """
    Holds the Azure DevOps connection for the configured organization.

    The connection is created lazily on first client access so that an
    unconfigured CI integration never touches the network.
    """

    def __init__(self, config: AzureDevOpsConfig):
        """
        Initialize authentication handler

        Args:
            config: Azure DevOps settings (org URL, project, PAT)
        """
        self.config = config
        self.connection: Optional[Connection] = None

    def initialize(self) -> Connection:
        """
        Establish the connection using the Personal Access Token.

        Raises:
            ConfigurationError: If org URL, project or PAT is missing
        """
        if self.connection:
            return self.connection

        missing = []
        if not self.config.org_url:
            missing.append("AZURE_DEVOPS_ORG_URL")
        if not self.config.project:
            missing.append("AZURE_DEVOPS_PROJECT")
        if not self.config.pat:
            missing.append("AZURE_DEVOPS_PAT")
        if missing:
            raise ConfigurationError(missing=missing, system="Azure DevOps")

        credentials = BasicAuthentication('', self.config.pat)
        self.connection = Connection(base_url=self.config.org_url, creds=credentials)
        logger.info(f"Azure DevOps connection prepared for {self.config.org_url}")
        return self.connection

    def get_client(self, client_type: str):
        """
        Get a specific Azure DevOps client

        Args:
            client_type: Type of client to get. Options:
                - 'build': For pipeline definitions and builds

        Returns:
            The requested client instance
        """
        connection = self.initialize()

        client_map = {
            'build': connection.clients.get_build_client,
        }

        if client_type not in client_map:
            raise ValueError(f"Unknown client type: {client_type}")

        return client_map[client_type]()

    def close(self):
        """Clean up resources"""
        self.connection = None


def connect_jira(config: JiraConfig, timeout_seconds: float = 30) -> JIRA:
    """
    Create a Jira client for the configured instance.

    Uses basic auth (e-mail + API token) when ``JIRA_EMAIL`` is set and a
    bearer token otherwise. No request is made here.

    Raises:
        ConfigurationError: If domain, token or board id is missing
    """
    config.require()

    options = {"server": config.server_url}
    try:
        if config.email:
            client = JIRA(
                options=options,
                basic_auth=(config.email, config.token),
                timeout=timeout_seconds,
                get_server_info=False,
            )
            auth_method = "basic auth"
        else:
            client = JIRA(
                options=options,
                token_auth=config.token,
                timeout=timeout_seconds,
                get_server_info=False,
            )
            auth_method = "bearer token"
    except Exception as e:
        logger.error(safe_log_error(e, "Jira client setup failed"))
        raise

    logger.info(f"Jira client prepared for {config.server_url} ({auth_method})")
    return client


def github_session(config: GitHubConfig) -> requests.Session:
    """
    Create a requests Session carrying the GitHub token.

    Raises:
        ConfigurationError: If repository or token is missing
    """
    if not config.is_configured:
        missing = []
        if not config.repository:
            missing.append("GH_REPOSITORY")
        if not config.token:
            missing.append("GH_TOKEN")
        raise ConfigurationError(missing=missing, system="GitHub")

    session = requests.Session()
    session.headers.update({
        "Authorization": f"token {config.token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    })
    return session
