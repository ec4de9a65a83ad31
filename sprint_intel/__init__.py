"""Sprint intelligence MCP server: Jira sprint metrics, Azure DevOps builds and GitHub contributors."""

__version__ = "1.0.0"
