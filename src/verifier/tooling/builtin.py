"""Built-in file tools."""

from pathlib import Path
from typing import Any

from .models import Tool, ToolResult


class ReadFileTool(Tool):
    """Reads the content of a file."""

    name = "Read"
    description = "Reads the content of a file."

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        file_path = tool_input.get("file_path")
        if not file_path:
            return ToolResult.fail("Missing file_path")
        try:
            content = Path(file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult.fail(f"Error reading file: {e}")
        return ToolResult.ok({"content": content})


class WriteFileTool(Tool):
    """Writes content to a file."""

    name = "Write"
    description = "Writes content to a file."

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        file_path = tool_input.get("file_path")
        if not file_path:
            return ToolResult.fail("Missing file_path")
        content = tool_input.get("content")
        if content is None:
            return ToolResult.fail("Missing content")
        try:
            Path(file_path).write_text(str(content), encoding="utf-8")
        except OSError as e:
            return ToolResult.fail(f"Error writing file: {e}")
        return ToolResult.ok({"file_path": str(file_path)})
