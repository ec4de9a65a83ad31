"""
Tool registry: tools grouped by category, looked up by name
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from ..constants import ToolCategories
from .analysis_tools import ANALYSIS_TOOLS
from .base import BaseTool, ToolResult
from .integration_tools import INTEGRATION_TOOLS, ListAvailableToolsTool
from .jira_tools import JIRA_TOOLS
from .release_tools import RELEASE_TOOLS

logger = logging.getLogger(__name__)


CATEGORY_DESCRIPTIONS = {
    ToolCategories.RELEASE: "Pipeline builds and combined sprint reports",
    ToolCategories.ANALYSIS: "Story points, velocity and contributor analysis",
    ToolCategories.INTEGRATION: "Health and tool discovery",
    ToolCategories.JIRA: "Sprints and issues from the Jira board",
}

_TOOL_CLASSES = {
    ToolCategories.RELEASE: RELEASE_TOOLS,
    ToolCategories.ANALYSIS: ANALYSIS_TOOLS,
    ToolCategories.INTEGRATION: INTEGRATION_TOOLS,
    ToolCategories.JIRA: JIRA_TOOLS,
}


class ToolRegistry:
    """
    Registers the tools of the enabled categories.

    Tool lookup never raises: unknown names come back as None from
    ``get_tool`` and as an error envelope from ``execute_tool``.

    Example:
        registry = ToolRegistry(ServiceManager(config), enabled_categories=["jira"])
        result = await registry.execute_tool("get_sprint_details", {"sprint_label": "2025-21"})
    """

    def __init__(self, service_manager, enabled_categories: Optional[Iterable[str]] = None):
        """
        Initialize the registry

        Args:
            service_manager: ServiceManager the tools resolve services from
            enabled_categories: Category names to register (all when None).
                                Unknown names are logged and ignored.
        """
        self.service_manager = service_manager
        self._categories: Dict[str, List[BaseTool]] = {}

        requested = list(ToolCategories.ALL) if enabled_categories is None else [
            c.strip().lower() for c in enabled_categories if c and c.strip()
        ]
        unknown = [c for c in requested if c not in _TOOL_CLASSES]
        if unknown:
            logger.warning(
                f"Ignoring unknown tool categories: {', '.join(unknown)} "
                f"(known: {', '.join(ToolCategories.ALL)})"
            )

        # Registration follows the canonical category order
        for category in ToolCategories.ALL:
            if category in requested:
                self._categories[category] = [
                    self._create(tool_class) for tool_class in _TOOL_CLASSES[category]
                ]

        logger.info(
            f"Registered {self.get_tool_count()} tools in "
            f"{self.get_category_count()} categories: {', '.join(self._categories)}"
        )

    def _create(self, tool_class) -> BaseTool:
        if tool_class is ListAvailableToolsTool:
            return tool_class(self.service_manager, registry=self)
        return tool_class(self.service_manager)

    def get_tool(self, name: str) -> Optional[BaseTool]:
        for tools in self._categories.values():
            for tool in tools:
                if tool.name == name:
                    return tool
        return None

    def get_all_tools(self) -> List[BaseTool]:
        return [tool for tools in self._categories.values() for tool in tools]

    def get_categories(self) -> List[str]:
        return list(self._categories)

    def describe_categories(self) -> List[Dict[str, Any]]:
        """Categories with their descriptions and tool names"""
        return [
            {
                "name": category,
                "description": CATEGORY_DESCRIPTIONS.get(category, ""),
                "tools": [tool.name for tool in tools],
            }
            for category, tools in self._categories.items()
        ]

    def get_tools_by_category(self, category: str) -> List[BaseTool]:
        return list(self._categories.get(category, []))

    def get_tool_count(self) -> int:
        return sum(len(tools) for tools in self._categories.values())

    def get_category_count(self) -> int:
        return len(self._categories)

    async def execute_tool(self, name: str, args: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Dispatch a tool call by name.

        Returns:
            The tool's result, or an error envelope naming the available
            tools when ``name`` is not registered
        """
        tool = self.get_tool(name)
        if tool is None:
            available = ", ".join(t.name for t in self.get_all_tools())
            logger.warning(f"Unknown tool requested: {name}")
            return ToolResult.error(f"Unknown tool: {name}. Available tools: {available}")
        return await tool.execute(args)

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={self.get_tool_count()}, categories={self.get_categories()})"
