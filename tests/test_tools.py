"""
Unit tests for the tool layer: envelopes, registry and individual tools.
"""

import json

import pytest
from unittest.mock import AsyncMock, Mock

from sprint_intel.concurrency import Settled
from sprint_intel.errors import SprintNotFoundError
from sprint_intel.models import Contributor, Sprint, SprintMetrics, SprintMetricsReport, SprintStatistics
from sprint_intel.service_manager import ServiceManager
from sprint_intel.tools import BaseTool, ToolRegistry, ToolResult


SPRINT = Sprint(id=21, name="Team Sprint 2025-21", state="closed")


def metrics(name, completed, planned):
    return SprintMetrics(
        sprint=Sprint(id=1, name=name, state="closed"),
        issues=(),
        statistics=SprintStatistics(
            total_issues=2, completed_issues=1,
            total_story_points=planned, completed_story_points=completed,
        ),
    )


@pytest.fixture
def manager(app_config, fake_jira_service):
    return ServiceManager(app_config, overrides={"jira_service": fake_jira_service})


@pytest.fixture
def registry(manager):
    return ToolRegistry(manager)


class TestToolResult:
    """Test the result envelope."""

    def test_success_serializes_json(self):
        result = ToolResult.success({"a": 1})
        assert result.to_dict() == {
            "content": [{"type": "text", "text": json.dumps({"a": 1}, indent=2)}],
            "isError": False,
        }

    def test_success_keeps_plain_text(self):
        assert ToolResult.success("done").text == "done"

    def test_error(self):
        result = ToolResult.error("nope")
        assert result.is_error
        assert result.to_dict()["isError"] is True


class TestBaseTool:
    """Test validation and failure containment."""

    class EchoTool(BaseTool):
        name = "echo"
        category = "integration"
        input_schema = {
            "type": "object",
            "properties": {"sprint_label": {"type": "string"}},
            "required": ["sprint_label"],
        }

        def __init__(self, service_manager, behaviour=None):
            super().__init__(service_manager)
            self.behaviour = behaviour
            self.calls = 0

        async def run(self, args):
            self.calls += 1
            if self.behaviour:
                raise self.behaviour
            return {"echo": args["sprint_label"]}

    @pytest.mark.asyncio
    async def test_success(self):
        result = await self.EchoTool(Mock()).execute({"sprint_label": "2025-21"})
        assert not result.is_error
        assert json.loads(result.text) == {"echo": "2025-21"}

    @pytest.mark.asyncio
    async def test_missing_required_argument(self):
        tool = self.EchoTool(Mock())
        result = await tool.execute({})
        assert result.is_error
        assert "Missing required parameter: sprint_label" in result.text
        assert tool.calls == 0

    @pytest.mark.asyncio
    async def test_domain_error_becomes_envelope(self):
        result = await self.EchoTool(Mock(), SprintNotFoundError("2025-99")).execute({"sprint_label": "2025-99"})
        assert result.is_error
        assert "Sprint '2025-99' not found" in result.text

    @pytest.mark.asyncio
    async def test_unexpected_error_is_sanitized(self):
        result = await self.EchoTool(Mock(), RuntimeError("token=secret")).execute({"sprint_label": "x"})
        assert result.is_error
        assert "secret" not in result.text


class TestToolRegistry:
    """Test registration and lookup."""

    def test_all_categories(self, registry):
        assert registry.get_categories() == ["release", "analysis", "integration", "jira"]
        assert registry.get_category_count() == 4
        assert registry.get_tool_count() == 10
        assert {t.name for t in registry.get_all_tools()} == {
            "list_sprints", "get_sprint_details", "get_sprint_issues",
            "analyze_story_points", "analyze_velocity", "get_top_contributors",
            "get_pipeline_builds", "generate_sprint_report",
            "health_check", "list_available_tools",
        }

    def test_selected_categories(self, manager):
        registry = ToolRegistry(manager, enabled_categories=["jira", "bogus"])
        assert registry.get_categories() == ["jira"]
        assert registry.get_tool("generate_sprint_report") is None
        assert [t.name for t in registry.get_tools_by_category("jira")] == [
            "list_sprints", "get_sprint_details", "get_sprint_issues",
        ]

    def test_unknown_tool_is_none(self, registry):
        assert registry.get_tool("nonexistent") is None
        assert registry.get_tools_by_category("nonexistent") == []

    @pytest.mark.asyncio
    async def test_execute_unknown_tool(self, registry):
        result = await registry.execute_tool("nonexistent", {})
        assert result.is_error
        assert "Unknown tool: nonexistent" in result.text
        assert "generate_sprint_report" in result.text

    @pytest.mark.asyncio
    async def test_execution_does_not_change_registry(self, registry):
        before = [t.name for t in registry.get_all_tools()]
        await registry.execute_tool("get_sprint_details", {})
        await registry.execute_tool("list_available_tools", {})
        assert [t.name for t in registry.get_all_tools()] == before

    def test_tools_describe_schema(self, registry):
        description = registry.get_tool("get_top_contributors").describe()
        assert description["category"] == "analysis"
        assert description["inputSchema"]["required"] == ["sprint_label"]


class TestJiraTools:
    """Test tracker tools against a fake Jira service."""

    @pytest.mark.asyncio
    async def test_list_sprints(self, registry, fake_jira_service):
        fake_jira_service.list_sprints.return_value = [SPRINT]

        result = await registry.execute_tool("list_sprints", {"state": "closed"})

        assert not result.is_error
        payload = json.loads(result.text)
        assert payload["total_sprints"] == 1
        assert payload["sprints"][0]["name"] == "Team Sprint 2025-21"
        fake_jira_service.list_sprints.assert_awaited_once_with(state="closed")

    @pytest.mark.asyncio
    async def test_list_sprints_invalid_state(self, registry, fake_jira_service):
        result = await registry.execute_tool("list_sprints", {"state": "open"})
        assert result.is_error
        fake_jira_service.list_sprints.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_sprint_details(self, registry, fake_jira_service, make_sprint, make_raw_issue):
        fake_jira_service.list_sprints.return_value = [make_sprint(21, "Team Sprint 2025-21")]
        fake_jira_service.fetch_sprint_issues.return_value = [
            make_raw_issue("A-1", "Done", points=3),
            make_raw_issue("A-2", "To Do", points=2),
        ]

        result = await registry.execute_tool("get_sprint_details", {"sprint_label": "2025-21"})

        payload = json.loads(result.text)
        assert payload["sprint"]["id"] == 21
        assert payload["statistics"]["completion_rate"] == 50
        assert payload["statistics"]["total_story_points"] == 5

    @pytest.mark.asyncio
    async def test_get_sprint_issues_not_found(self, registry, fake_jira_service):
        result = await registry.execute_tool("get_sprint_issues", {"sprint_label": "2025-99"})
        assert result.is_error
        assert "not found" in result.text


class TestAnalysisTools:
    """Test analysis tools with a stubbed metrics resolver."""

    @pytest.mark.asyncio
    async def test_analyze_velocity_skips_failures(self, app_config):
        resolver = Mock()
        resolver.resolve_many = AsyncMock(return_value=[
            Settled("S1", value=metrics("S1", 20, 25)),
            Settled("S2", error=SprintNotFoundError("S2")),
            Settled("S3", value=metrics("S3", 30, 30)),
        ])
        registry = ToolRegistry(ServiceManager(app_config, overrides={"metrics_resolver": resolver}))

        result = await registry.execute_tool("analyze_velocity", {"sprint_labels": ["S1", "S2", "S3"]})

        payload = json.loads(result.text)
        assert [s["sprint"] for s in payload["sprints"]] == ["S1", "S3"]
        assert payload["skipped"] == ["S2"]
        assert payload["average_velocity"] == 25
        assert payload["failed"][0]["label"] == "S2"

    @pytest.mark.asyncio
    async def test_analyze_story_points(self, registry, fake_jira_service, make_sprint, make_raw_issue):
        fake_jira_service.list_sprints.return_value = [
            make_sprint(1, "Sprint 2025-20"),
            make_sprint(2, "Sprint 2025-21"),
        ]
        fake_jira_service.fetch_sprint_issues.return_value = [make_raw_issue("A-1", "Done", points=4)]

        result = await registry.execute_tool("analyze_story_points", {"sprint_labels": ["2025-20", "2025-21"]})

        payload = json.loads(result.text)
        assert len(payload["sprints"]) == 2
        assert payload["summary"]["total_story_points"] == 8
        assert payload["failed"] == []

    @pytest.mark.asyncio
    async def test_analyze_requires_labels(self, registry):
        result = await registry.execute_tool("analyze_velocity", {"sprint_labels": []})
        assert result.is_error
        assert "sprint_labels" in result.text

    @pytest.mark.asyncio
    async def test_top_contributors_limit(self, app_config):
        assembler = Mock()
        assembler.assemble = AsyncMock(return_value=SprintMetricsReport(
            sprint=SPRINT, issues=(), total_story_points=0, completed_story_points=0, completion_rate=0,
            contributors=tuple(Contributor(name=f"dev{n}", commit_count=10 - n) for n in range(7)),
        ))
        registry = ToolRegistry(ServiceManager(app_config, overrides={"report_assembler": assembler}))

        result = await registry.execute_tool("get_top_contributors", {"sprint_label": "2025-21", "limit": 3})

        payload = json.loads(result.text)
        assert [c["name"] for c in payload["contributors"]] == ["dev0", "dev1", "dev2"]
        assert payload["total_contributors"] == 7
        assembler.assemble.assert_awaited_once_with("2025-21", include_pipelines=False, include_contributors=True)


class TestReleaseAndIntegrationTools:
    """Test release and integration tools."""

    @pytest.mark.asyncio
    async def test_generate_sprint_report(self, app_config):
        assembler = Mock()
        assembler.assemble = AsyncMock(return_value=SprintMetricsReport(
            sprint=SPRINT, issues=(), total_story_points=0, completed_story_points=0, completion_rate=0,
            degraded_sections=("pipelines",),
        ))
        registry = ToolRegistry(ServiceManager(app_config, overrides={"report_assembler": assembler}))

        result = await registry.execute_tool(
            "generate_sprint_report", {"sprint_label": "2025-21", "include_pipelines": False}
        )

        payload = json.loads(result.text)
        assert payload["degraded_sections"] == ["pipelines"]
        assembler.assemble.assert_awaited_once_with("2025-21", include_pipelines=False, include_contributors=True)

    @pytest.mark.asyncio
    async def test_get_pipeline_builds_unconfigured(self):
        from sprint_intel.config import SprintIntelConfig

        registry = ToolRegistry(ServiceManager(SprintIntelConfig.from_env({})))

        result = await registry.execute_tool("get_pipeline_builds", {"sprint_label": "2025-21"})

        payload = json.loads(result.text)
        assert payload["configured"] is False
        assert payload["pipelines"] == []

    @pytest.mark.asyncio
    async def test_health_check(self, registry):
        result = await registry.execute_tool("health_check", {})
        payload = json.loads(result.text)
        assert payload["status"] == "healthy"
        assert payload["missing_jira_settings"] == []
        assert "jira-token" not in result.text

    @pytest.mark.asyncio
    async def test_list_available_tools(self, registry):
        result = await registry.execute_tool("list_available_tools")
        payload = json.loads(result.text)
        assert payload["total_tools"] == 10
        assert [t["name"] for t in payload["categories"]["release"]] == [
            "get_pipeline_builds", "generate_sprint_report",
        ]
