"""
Release tools: pipeline builds and the combined sprint report
"""
from typing import Any, Dict

from ..constants import ToolCategories
from .base import SPRINT_LABEL_PROPERTY, BaseTool


class GetPipelineBuildsTool(BaseTool):
    name = "get_pipeline_builds"
    category = ToolCategories.RELEASE
    description = (
        "Most relevant recent builds per configured pipeline for a sprint, "
        "searching release branches first and falling back to recent builds "
        "whose branch mentions the sprint."
    )
    input_schema = {
        "type": "object",
        "properties": {"sprint_label": SPRINT_LABEL_PROPERTY},
        "required": ["sprint_label"],
    }

    async def run(self, args: Dict[str, Any]) -> Any:
        resolver = self.service_manager.get_pipeline_resolver()
        pipelines = await resolver.resolve(args["sprint_label"])
        return {
            "sprint_label": args["sprint_label"],
            "configured": resolver.is_configured,
            "total_pipelines": len(pipelines),
            "pipelines": [p.to_dict() for p in pipelines],
        }


class GenerateSprintReportTool(BaseTool):
    name = "generate_sprint_report"
    category = ToolCategories.RELEASE
    description = (
        "Sprint metrics with pipeline builds and top contributors. Pipelines and "
        "contributors are optional sections: when their source fails the report "
        "still returns and lists them under degraded_sections."
    )
    input_schema = {
        "type": "object",
        "properties": {
            "sprint_label": SPRINT_LABEL_PROPERTY,
            "include_pipelines": {
                "type": "boolean",
                "description": "Resolve pipeline builds (default true)",
            },
            "include_contributors": {
                "type": "boolean",
                "description": "Reconcile contributors from issues and commits (default true)",
            },
        },
        "required": ["sprint_label"],
    }

    async def run(self, args: Dict[str, Any]) -> Any:
        report = await self.service_manager.get_report_assembler().assemble(
            args["sprint_label"],
            include_pipelines=args.get("include_pipelines", True),
            include_contributors=args.get("include_contributors", True),
        )
        return report.to_dict()


RELEASE_TOOLS = (GetPipelineBuildsTool, GenerateSprintReportTool)
