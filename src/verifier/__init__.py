"""Verifier - agent execution and hook orchestration engine."""

__version__ = "0.1.0"

from .orchestrator import AgentOrchestrator, AgentRun, RunState

__all__ = ["AgentOrchestrator", "AgentRun", "RunState", "__version__"]
