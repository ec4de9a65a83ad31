"""
Sprint Intelligence MCP Server
Sprint metrics from Jira, release builds from Azure DevOps and contributors
from GitHub, exposed as MCP tools
"""
from fastmcp import FastMCP, Context
from typing import Optional, Dict, Any
import logging
import os
import sys
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from .config import SprintIntelConfig
from .service_manager import ServiceManager
from .tools import ToolRegistry
from .tools.integration_tools import HealthCheckTool


# Global state for configuration, services and tools
# Initialized during lifespan startup
_service_manager = None
_registry = None

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    """Log to stderr so the STDIO transport keeps stdout for JSON-RPC"""
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@asynccontextmanager
async def lifespan(app):
    """Initialize services on startup"""
    global _service_manager, _registry

    configure_logging()

    # Loads .env, then reads the environment
    config = SprintIntelConfig.from_env()

    missing = config.jira.missing_settings()
    if missing:
        # Tools that need Jira fail with a configuration error; health_check still works
        logger.warning(f"Jira is not configured, missing: {', '.join(missing)}")

    _service_manager = ServiceManager(config)
    _registry = ToolRegistry(_service_manager, enabled_categories=config.enabled_categories)
    logger.info(f"Sprint Intelligence ready: {_service_manager!r}")

    yield  # Server runs

    # Cleanup on shutdown
    _service_manager.close()


# Initialize FastMCP server with lifespan
mcp = FastMCP(
    name="Sprint Intelligence",
    lifespan=lifespan
)


# ============================================================================
# TOOL DISPATCH
# ============================================================================

@mcp.tool()
async def list_tools(ctx: Context = None) -> Dict[str, Any]:
    """
    List the registered sprint intelligence tools by category.

    Returns:
        Dictionary with categories and each tool's name, description
        and input schema
    """
    await ctx.info(f"Listing {_registry.get_tool_count()} tools...")
    return {
        "categories": _registry.describe_categories(),
        "tools": [tool.describe() for tool in _registry.get_all_tools()],
        "total_tools": _registry.get_tool_count(),
    }


@mcp.tool()
async def run_tool(
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
    ctx: Context = None
) -> Dict[str, Any]:
    """
    Run a registered tool by name.

    Args:
        name: Tool name (see list_tools), e.g. "analyze_velocity"
        arguments: Tool arguments, e.g. {"sprint_labels": ["2025-20", "2025-21"]}

    Returns:
        Result envelope: {"content": [{"type": "text", "text": ...}], "isError": bool}
    """
    await ctx.info(f"Running tool {name}...")
    result = await _registry.execute_tool(name, arguments or {})
    if result.is_error:
        await ctx.info(f"Tool {name} failed")
    return result.to_dict()


# ============================================================================
# SHORTCUTS (typed entry points for the most common tools)
# ============================================================================

@mcp.tool()
async def generate_sprint_report(
    sprint_label: str,
    include_pipelines: bool = True,
    include_contributors: bool = True,
    ctx: Context = None
) -> Dict[str, Any]:
    """
    Generate the sprint report: metrics, pipeline builds and contributors.

    Args:
        sprint_label: Sprint label (e.g., "2025-21" or "FY25-21")
        include_pipelines: Resolve Azure DevOps builds for the sprint
        include_contributors: Reconcile contributors from issues and commits

    Returns:
        Result envelope with the report as JSON text
    """
    await ctx.info(f"Generating sprint report for '{sprint_label}'...")
    result = await _registry.execute_tool(
        "generate_sprint_report",
        {
            "sprint_label": sprint_label,
            "include_pipelines": include_pipelines,
            "include_contributors": include_contributors,
        }
    )
    return result.to_dict()


@mcp.tool()
async def get_pipeline_builds(
    sprint_label: str,
    ctx: Context = None
) -> Dict[str, Any]:
    """
    Get the most relevant recent builds per pipeline for a sprint.

    Args:
        sprint_label: Sprint label (e.g., "2025-21")

    Returns:
        Result envelope with the builds as JSON text
    """
    await ctx.info(f"Resolving pipeline builds for '{sprint_label}'...")
    result = await _registry.execute_tool("get_pipeline_builds", {"sprint_label": sprint_label})
    return result.to_dict()


# ============================================================================
# MONITORING TOOLS (Health and Statistics)
# ============================================================================

@mcp.tool()
async def health_check(ctx: Context = None) -> Dict[str, Any]:
    """
    Get server health status for monitoring.

    Reports which upstream systems are configured and service manager
    statistics without calling any upstream API.

    Returns:
        Result envelope with health status as JSON text
    """
    # Available even when the integration category is disabled
    tool = _registry.get_tool("health_check") or HealthCheckTool(_service_manager)
    result = await tool.execute({})
    payload = result.to_dict()
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    return payload


# Entry point for running the server
if __name__ == "__main__":
    # Support both STDIO and HTTP transports via configuration
    transport_mode = os.getenv("MCP_TRANSPORT", "http").lower()

    if transport_mode == "stdio":
        # STDIO mode for desktop MCP clients
        print("Starting MCP server in STDIO mode", file=sys.stderr)
        print("Server ready for JSON-RPC messages on stdin/stdout", file=sys.stderr)
        mcp.run()  # Default transport is stdio
    else:
        # HTTP mode (default) for web-based clients
        port = int(os.getenv("PORT", 8000))

        print(f"Starting MCP server with HTTP streaming on port {port}")
        print(f"Server URL: http://localhost:{port}/mcp")
        print("Health check: Use 'health_check' tool")
        print("Tool catalogue: Use 'list_tools' tool")

        mcp.run(transport="streamable-http", port=port, host="0.0.0.0")
