from .base import BaseTool, ToolResult
from .registry import ToolRegistry

__all__ = ["BaseTool", "ToolResult", "ToolRegistry"]
