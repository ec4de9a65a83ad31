"""
Integration tools: health and tool discovery
"""
from typing import Any, Dict

from ..constants import ToolCategories
from .base import BaseTool


class HealthCheckTool(BaseTool):
    name = "health_check"
    category = ToolCategories.INTEGRATION
    description = (
        "Report which upstream systems are configured and service manager "
        "statistics. Makes no upstream requests."
    )

    async def run(self, args: Dict[str, Any]) -> Any:
        stats = self.service_manager.get_statistics()
        configured = stats["configured"]
        return {
            "status": "healthy" if configured["jira"] else "degraded",
            "service": "Sprint Intelligence",
            "configured": configured,
            "missing_jira_settings": self.service_manager.config.jira.missing_settings(),
            "service_manager": stats,
        }


class ListAvailableToolsTool(BaseTool):
    name = "list_available_tools"
    category = ToolCategories.INTEGRATION
    description = "List the enabled tools grouped by category."

    def __init__(self, service_manager, registry=None):
        super().__init__(service_manager)
        self.registry = registry

    async def run(self, args: Dict[str, Any]) -> Any:
        if self.registry is None:
            return {"categories": {}, "total_tools": 0}
        return {
            "categories": {
                category: [tool.describe() for tool in self.registry.get_tools_by_category(category)]
                for category in self.registry.get_categories()
            },
            "total_tools": self.registry.get_tool_count(),
        }


INTEGRATION_TOOLS = (HealthCheckTool, ListAvailableToolsTool)
