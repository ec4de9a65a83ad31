"""
Tracker tools: sprint listing and sprint contents
"""
from typing import Any, Dict

from ..constants import SprintStates, ToolCategories
from .base import SPRINT_LABEL_PROPERTY, BaseTool


class ListSprintsTool(BaseTool):
    name = "list_sprints"
    category = ToolCategories.JIRA
    description = "List the sprints of the configured Jira board, optionally filtered by state."
    input_schema = {
        "type": "object",
        "properties": {
            "state": {
                "type": "string",
                "enum": list(SprintStates.ALL),
                "description": "Only sprints in this state",
            },
        },
        "required": [],
    }

    async def run(self, args: Dict[str, Any]) -> Any:
        jira = self.service_manager.get_jira_service()
        sprints = await jira.list_sprints(state=args.get("state"))
        return {
            "board_id": jira.board_id,
            "total_sprints": len(sprints),
            "sprints": [s.to_dict() for s in sprints],
        }


class GetSprintDetailsTool(BaseTool):
    name = "get_sprint_details"
    category = ToolCategories.JIRA
    description = (
        "Resolve a sprint label and return the sprint with its completion and "
        "story-point statistics."
    )
    input_schema = {
        "type": "object",
        "properties": {"sprint_label": SPRINT_LABEL_PROPERTY},
        "required": ["sprint_label"],
    }

    async def run(self, args: Dict[str, Any]) -> Any:
        metrics = await self.service_manager.get_metrics_resolver().resolve(args["sprint_label"])
        return {
            "sprint": metrics.sprint.to_dict(),
            "statistics": metrics.statistics.to_dict(),
        }


class GetSprintIssuesTool(BaseTool):
    name = "get_sprint_issues"
    category = ToolCategories.JIRA
    description = "Resolve a sprint label and list its issues with resolved story points."
    input_schema = {
        "type": "object",
        "properties": {"sprint_label": SPRINT_LABEL_PROPERTY},
        "required": ["sprint_label"],
    }

    async def run(self, args: Dict[str, Any]) -> Any:
        metrics = await self.service_manager.get_metrics_resolver().resolve(args["sprint_label"])
        return {
            "sprint": metrics.sprint.to_dict(),
            "total_issues": len(metrics.issues),
            "issues": [i.to_dict() for i in metrics.issues],
        }


JIRA_TOOLS = (ListSprintsTool, GetSprintDetailsTool, GetSprintIssuesTool)
