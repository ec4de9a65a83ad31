"""
Analysis tools: story points across sprints, velocity and contributors
"""
from typing import Any, Dict, List

from ..concurrency import log_failures
from ..constants import DEFAULT_CONTRIBUTOR_LIMIT, ToolCategories
from ..log_sanitizer import sanitize_error
from ..services.sprint_metrics import calculate_story_point_stats
from ..services.velocity import analyze_velocity
from .base import SPRINT_LABEL_PROPERTY, SPRINT_LABELS_PROPERTY, BaseTool


class AnalyzeStoryPointsTool(BaseTool):
    name = "analyze_story_points"
    category = ToolCategories.ANALYSIS
    description = (
        "Story-point totals and completion per sprint, with a combined summary "
        "and breakdowns by status and issue type."
    )
    input_schema = {
        "type": "object",
        "properties": {"sprint_labels": SPRINT_LABELS_PROPERTY},
        "required": ["sprint_labels"],
    }

    async def run(self, args: Dict[str, Any]) -> Any:
        resolver = self.service_manager.get_metrics_resolver()
        outcomes = await resolver.resolve_many(args["sprint_labels"])
        resolved = log_failures(outcomes, "Story point analysis")

        issues = [issue for outcome in resolved for issue in outcome.value.issues]
        combined = calculate_story_point_stats(issues, resolver.config.done_status)

        return {
            "sprints": [
                {
                    "label": outcome.label,
                    "sprint": outcome.value.sprint.name,
                    **outcome.value.statistics.to_dict(),
                }
                for outcome in resolved
            ],
            "summary": combined.to_dict(),
            "failed": _failures(outcomes),
        }


class AnalyzeVelocityTool(BaseTool):
    name = "analyze_velocity"
    category = ToolCategories.ANALYSIS
    description = (
        "Velocity across sprints given oldest first: completed points per sprint, "
        "average, trend and consistency."
    )
    input_schema = {
        "type": "object",
        "properties": {"sprint_labels": SPRINT_LABELS_PROPERTY},
        "required": ["sprint_labels"],
    }

    async def run(self, args: Dict[str, Any]) -> Any:
        outcomes = await self.service_manager.get_metrics_resolver().resolve_many(args["sprint_labels"])
        resolved = log_failures(outcomes, "Velocity analysis")

        analysis = analyze_velocity(
            [outcome.value for outcome in resolved],
            skipped=[outcome.label for outcome in outcomes if not outcome.ok],
        )
        return {**analysis.to_dict(), "failed": _failures(outcomes)}


class GetTopContributorsTool(BaseTool):
    name = "get_top_contributors"
    category = ToolCategories.ANALYSIS
    description = (
        "Rank the people who contributed to a sprint by assigned issues plus "
        "authored commits in the sprint window."
    )
    input_schema = {
        "type": "object",
        "properties": {
            "sprint_label": SPRINT_LABEL_PROPERTY,
            "limit": {
                "type": "integer",
                "minimum": 1,
                "description": f"How many contributors to return (default {DEFAULT_CONTRIBUTOR_LIMIT})",
            },
        },
        "required": ["sprint_label"],
    }

    async def run(self, args: Dict[str, Any]) -> Any:
        limit = args.get("limit") or DEFAULT_CONTRIBUTOR_LIMIT
        report = await self.service_manager.get_report_assembler().assemble(
            args["sprint_label"],
            include_pipelines=False,
            include_contributors=True,
        )
        contributors = report.contributors[:limit]
        return {
            "sprint": report.sprint.name,
            "total_contributors": len(report.contributors),
            "contributors": [c.to_dict() for c in contributors],
            "degraded_sections": list(report.degraded_sections),
        }


def _failures(outcomes) -> List[Dict[str, str]]:
    return [
        {"label": outcome.label, "error": sanitize_error(outcome.error)}
        for outcome in outcomes
        if not outcome.ok
    ]


ANALYSIS_TOOLS = (AnalyzeStoryPointsTool, AnalyzeVelocityTool, GetTopContributorsTool)
