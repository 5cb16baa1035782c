"""Explicit agent registration table."""

from typing import Callable, Iterable, Optional

from loguru import logger

from .file_summary import FileSummaryAgent
from .models import BaseAgent

AgentFactory = Callable[[], BaseAgent]


class AgentRegistry:
    """
    Maps agent ids to factories producing a fresh agent per run.

    Built once at startup and passed to the orchestrator.
    """

    def __init__(self, factories: Optional[Iterable[AgentFactory]] = None):
        self._factories: dict[str, AgentFactory] = {}
        for factory in factories or ():
            self.register(factory)

    def register(self, factory: AgentFactory, agent_id: Optional[str] = None) -> str:
        """
        Register an agent factory (usually the agent class).

        Args:
            factory: Zero-argument callable returning a BaseAgent
            agent_id: Id override; defaults to the produced agent's id

        Returns:
            The id the factory was registered under

        Raises:
            ValueError: If the id is empty or already registered
        """
        if agent_id is None:
            agent_id = getattr(factory, "id", None) or factory().id
        if not agent_id:
            raise ValueError("Agent id must not be empty")
        if agent_id in self._factories:
            raise ValueError(f"Agent already registered: {agent_id}")
        self._factories[agent_id] = factory
        logger.debug(f"[agents] Registered agent: {agent_id}")
        return agent_id

    def create(self, agent_id: str) -> Optional[BaseAgent]:
        """New agent instance for the id, or None if unknown."""
        factory = self._factories.get(agent_id)
        return factory() if factory else None

    def ids(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def default_registry() -> AgentRegistry:
    """Registry of the built-in agents."""
    return AgentRegistry([FileSummaryAgent])
