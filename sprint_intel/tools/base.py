"""
Tool abstraction: a named, schema-validated capability returning a
uniform result envelope.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..decorators import PerformanceMonitor
from ..errors import SprintIntelError
from ..log_sanitizer import safe_log_error, sanitize_error
from ..validation import validate_tool_arguments

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """
    Envelope returned by every tool.

    ``content`` is a list of text segments ({"type": "text", "text": ...});
    ``is_error`` flags failures. Serialized with the wire key ``isError``.
    """
    content: List[Dict[str, str]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def success(cls, payload: Any) -> "ToolResult":
        text = payload if isinstance(payload, str) else json.dumps(payload, indent=2, default=str)
        return cls(content=[{"type": "text", "text": text}], is_error=False)

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(content=[{"type": "text", "text": message}], is_error=True)

    @property
    def text(self) -> str:
        return "\n".join(segment.get("text", "") for segment in self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {"content": [dict(segment) for segment in self.content], "isError": self.is_error}


class BaseTool:
    """
    Base class for tools.

    Subclasses set ``name``, ``description``, ``input_schema`` and
    ``category`` and implement ``run(args)``, returning a JSON-ready value.
    ``execute`` never raises: validation errors and anything ``run``
    raises come back as an error-flagged ToolResult.
    """

    name: str = ""
    description: str = ""
    category: str = ""
    input_schema: Dict[str, Any] = {"type": "object", "properties": {}, "required": []}

    def __init__(self, service_manager):
        self.service_manager = service_manager

    async def run(self, args: Dict[str, Any]) -> Any:
        raise NotImplementedError

    async def execute(self, args: Optional[Dict[str, Any]] = None) -> ToolResult:
        monitor = PerformanceMonitor(f"tool:{self.name}")
        try:
            async with monitor:
                validated = validate_tool_arguments(self.input_schema, args)
                payload = await self.run(validated)
        except SprintIntelError as e:
            logger.warning(safe_log_error(e, f"Tool '{self.name}' failed"))
            return ToolResult.error(f"Error in {self.name}: {sanitize_error(e)}")
        except Exception as e:
            logger.error(safe_log_error(e, f"Tool '{self.name}' raised unexpectedly"))
            return ToolResult.error(f"Error in {self.name}: {sanitize_error(e)}")

        logger.info(f"Tool {self.name} executed in {monitor.duration_ms:.0f}ms")
        return ToolResult.success(payload)

    def describe(self) -> Dict[str, Any]:
        """Tool metadata as exposed to MCP clients"""
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "inputSchema": self.input_schema,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, category={self.category!r})"


SPRINT_LABEL_PROPERTY = {
    "type": "string",
    "description": "Sprint label, e.g. '2025-21' or 'FY25-21'",
}

SPRINT_LABELS_PROPERTY = {
    "type": "array",
    "items": {"type": "string"},
    "description": "Sprint labels in chronological order",
}
