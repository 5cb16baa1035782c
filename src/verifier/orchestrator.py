"""Agent orchestrator: session, hooks, budget and metrics around one agent run."""

import asyncio
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional

from loguru import logger

from .agents import AgentContext, AgentRegistry, AgentResult, AgentStatus, BaseAgent
from .budget import BudgetGate
from .config import VerifierConfig
from .hooks import HookDispatcher, HookEvent, HookRunner, Namespace, namespace_for_model
from .metrics import Metric, MetricsStore, parse_timestamp, utc_now_iso
from .session import Session, SessionRecorder
from .tooling import ToolMediator

AGENT_FAILED_ERROR = "Agent execution failed"


class RunState(str, Enum):
    """Lifecycle states of one agent run."""

    CREATED = "created"
    SESSION_STARTED = "session_started"
    BUDGET_CHECKED = "budget_checked"
    SKIPPED = "skipped"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class AgentRun:
    """Bookkeeping for one run: states reached, session, result and metric."""

    agent_id: str
    namespace: Namespace
    states: list[RunState] = field(default_factory=lambda: [RunState.CREATED])
    session: Optional[Session] = None
    result: Optional[AgentResult] = None
    metric: Optional[Metric] = None
    hook_context: str = ""

    @property
    def state(self) -> RunState:
        return self.states[-1]

    def advance(self, state: RunState) -> None:
        logger.debug(f"[orchestrator] {self.agent_id}: {self.state.value} -> {state.value}")
        self.states.append(state)


class AgentOrchestrator:
    """
    Top-level coordinator for agent runs.

    Per run:
    - opens a session and dispatches SessionStart hooks; injected context
      is appended to the run's diff
    - consults the budget gate; an exhausted budget yields a skipped result
    - attaches a ToolMediator and awaits the agent
    - always dispatches Stop hooks, writes the final transcript entry and
      records exactly one metric, whichever way the run ended

    run_agent() never raises; failures come back as failure results.
    """

    def __init__(
        self,
        config: VerifierConfig,
        registry: AgentRegistry,
        metrics: MetricsStore,
        recorder: SessionRecorder,
        dispatcher: Optional[HookDispatcher] = None,
        budget_gate: Optional[BudgetGate] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Project configuration (hooks, budgets)
            registry: Agents available to run
            metrics: Store receiving one metric per run
            recorder: Session transcript recorder
            dispatcher: Hook dispatcher (built from config.hooks if None)
            budget_gate: Budget gate (built from config.budgets if None)
        """
        self._config = config
        self._registry = registry
        self._metrics = metrics
        self._recorder = recorder
        self._dispatcher = dispatcher or HookDispatcher(config.hooks, HookRunner())
        self._budget_gate = budget_gate or BudgetGate(metrics, config.budgets.daily_tokens)

    @property
    def project_dir(self) -> str:
        return self._dispatcher.runner.project_dir

    def _base_payload(self, session: Session, event: HookEvent) -> dict[str, Any]:
        return {
            "session_id": session.id,
            "transcript_path": str(session.transcript_path),
            "cwd": self.project_dir,
            "hook_event_name": event.value,
        }

    async def run_agent(self, agent_id: str, context: Optional[AgentContext] = None) -> AgentResult:
        """Run one agent and return its result."""
        run = await self.execute_run(agent_id, context)
        return run.result

    async def execute_run(self, agent_id: str, context: Optional[AgentContext] = None) -> AgentRun:
        """
        Run one agent through the full lifecycle.

        Args:
            agent_id: Registered agent id
            context: Input context; copied, never mutated

        Returns:
            AgentRun with the result, session, states and metric
        """
        try:
            agent = self._registry.create(agent_id)
        except Exception as e:
            logger.error(f"[orchestrator] Failed to construct agent {agent_id}: {e}")
            agent = None
        if agent is None:
            run = AgentRun(agent_id=agent_id, namespace=Namespace.GENERIC)
            run.result = AgentResult(
                agent_id=agent_id,
                status=AgentStatus.FAILURE,
                error=f"Agent {agent_id} not found",
            )
            return run

        run = AgentRun(agent_id=agent_id, namespace=namespace_for_model(agent.model))
        context = replace(context) if context is not None else AgentContext()
        started = time.monotonic()

        session = self._recorder.open()
        run.session = session
        try:
            await self._start_session(run, agent, context)
            decision = self._budget_gate.evaluate()
            run.advance(RunState.BUDGET_CHECKED)

            if not decision.allowed:
                run.advance(RunState.SKIPPED)
                run.result = AgentResult(
                    agent_id=agent_id,
                    status=AgentStatus.SKIPPED,
                    error=decision.reason,
                    tokens_used=0,
                    cost=0.0,
                )
                self._recorder.log(session, {"type": "skipped", "result": run.result.to_dict()})
            else:
                context.tool_mediator = ToolMediator(
                    agent.tools,
                    self._dispatcher,
                    self._recorder,
                    session,
                    run.namespace,
                    self.project_dir,
                )
                run.advance(RunState.EXECUTING)
                result = await agent.execute(context)
                if not isinstance(result, AgentResult):
                    raise TypeError(f"Agent returned {type(result).__name__}, expected AgentResult")
                run.result = result
                run.advance(RunState.COMPLETED)
                self._recorder.log(session, {"type": "result", "result": result.to_dict()})
        except Exception as e:
            logger.error(f"[orchestrator] Agent {agent_id} failed: {e}")
            run.advance(RunState.FAILED)
            run.result = AgentResult(
                agent_id=agent_id,
                status=AgentStatus.FAILURE,
                error=AGENT_FAILED_ERROR,
                tokens_used=0,
                cost=0.0,
            )
            self._recorder.log(
                session, {"type": "error", "error": run.result.to_dict(), "exception": str(e)}
            )
        finally:
            await self._stop_session(run, session)
            self._record_metric(run, started)
            run.advance(RunState.STOPPED)

        return run

    async def _start_session(self, run: AgentRun, agent: BaseAgent, context: AgentContext) -> None:
        session = run.session
        self._recorder.log(
            session,
            {
                "type": "start",
                "agent": agent.id,
                "model": agent.model,
                "namespace": run.namespace.value,
                "context": context.to_dict(),
            },
        )
        run.advance(RunState.SESSION_STARTED)

        payload = self._base_payload(session, HookEvent.SESSION_START)
        payload["source"] = "startup"
        verdict = await self._dispatcher.dispatch(HookEvent.SESSION_START, run.namespace, payload)
        if verdict.should_block:
            logger.info(f"[orchestrator] SessionStart hook asked to block {agent.id}; continuing")
        if verdict.additional_context:
            run.hook_context = verdict.additional_context
            context.diff = f"{context.diff or ''}\n{verdict.additional_context}"
            self._recorder.log(
                session,
                {"type": "context", "source": "hook", "context": verdict.additional_context},
            )

    async def _stop_session(self, run: AgentRun, session: Session) -> None:
        payload = self._base_payload(session, HookEvent.STOP)
        payload["stop_hook_active"] = False
        try:
            await self._dispatcher.dispatch(HookEvent.STOP, run.namespace, payload)
        except Exception as e:
            logger.error(f"[orchestrator] Stop hooks failed for {run.agent_id}: {e}")
        self._recorder.log(session, {"type": "stop", "state": run.state.value})

    def _record_metric(self, run: AgentRun, started: float) -> None:
        result = run.result
        timestamp = result.timestamp
        try:
            parse_timestamp(timestamp)
        except (TypeError, ValueError, AttributeError):
            logger.warning(
                f"[orchestrator] {run.agent_id} returned bad timestamp {timestamp!r}; using current time"
            )
            timestamp = utc_now_iso()
        run.metric = Metric(
            agent_id=run.agent_id,
            timestamp=timestamp,
            tokens_used=result.tokens_used or 0,
            cost=result.cost or 0.0,
            result=result.status.value,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        self._metrics.record(run.metric)

    async def run_multiple(
        self,
        agent_ids: Iterable[str],
        context: Optional[AgentContext] = None,
        parallel: bool = True,
        fail_fast: bool = False,
    ) -> list[AgentResult]:
        """
        Run several agents.

        Args:
            agent_ids: Agents to run
            context: Shared input context (each run gets its own copy)
            parallel: Run concurrently with asyncio.gather
            fail_fast: Sequential only; stop after the first failure

        Returns:
            Results in the order the agents were given (or ran, when stopped early)
        """
        ids = list(agent_ids)
        if parallel:
            return list(await asyncio.gather(*(self.run_agent(i, context) for i in ids)))

        results = []
        for agent_id in ids:
            result = await self.run_agent(agent_id, context)
            results.append(result)
            if fail_fast and result.status == AgentStatus.FAILURE:
                logger.info(f"[orchestrator] Stopping after failure of {agent_id}")
                break
        return results
