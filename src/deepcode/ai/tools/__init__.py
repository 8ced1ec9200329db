"""Workspace tool catalog."""

from .base import BaseTool, ChangedFile, ToolContext, ToolResult
from .errors import ErrorCode, ToolError
from .tool_registry import TOOL_SCHEMAS, ToolRegistry, ToolSchema, build_default_registry

__all__ = [
    "BaseTool",
    "ChangedFile",
    "ToolContext",
    "ToolResult",
    "ErrorCode",
    "ToolError",
    "TOOL_SCHEMAS",
    "ToolRegistry",
    "ToolSchema",
    "build_default_registry",
]
