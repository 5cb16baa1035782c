"""Agent tool capabilities and the hook-aware mediator that runs them."""

from .builtin import ReadFileTool, WriteFileTool
from .mediator import BLOCKED_BY_HOOK_ERROR, ToolMediator
from .models import Tool, ToolResult

__all__ = [
    "Tool",
    "ToolResult",
    "ToolMediator",
    "ReadFileTool",
    "WriteFileTool",
    "BLOCKED_BY_HOOK_ERROR",
]
