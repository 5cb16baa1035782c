"""Tool capability contract."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ToolResult:
    """Normalized result of one tool invocation."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            out["data"] = self.data
        if self.error is not None:
            out["error"] = self.error
        return out


class Tool(ABC):
    """A capability an agent can call through the tool mediator."""

    name: str
    description: str = ""

    @abstractmethod
    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        """
        Run the capability.

        Args:
            tool_input: Tool-specific arguments

        Returns:
            ToolResult describing success or failure
        """
        pass
