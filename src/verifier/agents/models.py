"""Agent contract: context, result, and the abstract base agent."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..tooling import Tool, ToolMediator


class AgentStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    BLOCKING = "blocking"


@dataclass(frozen=True)
class AgentResult:
    """
    Outcome of one agent run.

    Produced once per run by the agent (or synthesized by the orchestrator
    on exception, skip, or unknown agent) and never mutated afterwards.
    """

    agent_id: str
    status: AgentStatus
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    severity: Optional[Severity] = None
    score: Optional[float] = None
    tokens_used: Optional[int] = None
    cost: Optional[float] = None
    data: Optional[Any] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization, omitting unset fields."""
        out: dict[str, Any] = {
            "agent_id": self.agent_id,
            "status": self.status.value,
            "timestamp": self.timestamp,
        }
        if self.severity is not None:
            out["severity"] = self.severity.value
        for key in ("score", "tokens_used", "cost", "data", "error"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass
class AgentContext:
    """Repository snapshot and run services handed to an agent."""

    repo_path: Optional[str] = None
    branch: Optional[str] = None
    diff: Optional[str] = None
    files: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    demo_mode: bool = False
    tool_mediator: Optional["ToolMediator"] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serializable view for transcripts (the mediator is left out)."""
        return {
            "repo_path": self.repo_path,
            "branch": self.branch,
            "diff": self.diff,
            "files": list(self.files),
            "demo_mode": self.demo_mode,
            "extra": self.extra,
        }


class BaseAgent(ABC):
    """
    A pluggable unit of analysis.

    Subclasses declare their identity and model, list the tools they may
    call, and implement execute(). Tools are reached only through
    context.tool_mediator so every call passes through the hooks.
    """

    id: str
    name: str
    description: str = ""
    model: str = "none"
    max_tokens: int = 0

    def __init__(self) -> None:
        self.tools: list["Tool"] = []

    def create_result(self, status: AgentStatus = AgentStatus.SUCCESS, **fields: Any) -> AgentResult:
        """Build a result stamped with this agent's id and the current time."""
        return AgentResult(agent_id=self.id, status=status, **fields)

    @abstractmethod
    async def execute(self, context: AgentContext) -> AgentResult:
        """Run the analysis and return exactly one result."""
        pass
