"""Agent contract, built-in agents and the registration table."""

from .file_summary import FileSummaryAgent
from .models import (
    AgentContext,
    AgentResult,
    AgentStatus,
    BaseAgent,
    Severity,
)
from .registry import AgentFactory, AgentRegistry, default_registry

__all__ = [
    "AgentContext",
    "AgentResult",
    "AgentStatus",
    "BaseAgent",
    "Severity",
    "AgentFactory",
    "AgentRegistry",
    "default_registry",
    "FileSummaryAgent",
]
