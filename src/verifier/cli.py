"""Command line entry point."""

import argparse
import asyncio
import json
import os
import sys
from typing import Optional, Sequence

from loguru import logger

from .agents import AgentContext, AgentRegistry, AgentStatus, default_registry
from .config import Config, ConfigError, VerifierConfig, load_config
from .context import ContextCollector
from .hooks import HookDispatcher, HookRunner
from .logging_config import configure_logging
from .metrics import MetricsStore, Period, usage_report
from .orchestrator import AgentOrchestrator
from .session import SessionRecorder


def build_orchestrator(
    config: VerifierConfig,
    registry: Optional[AgentRegistry] = None,
    project_dir: Optional[str] = None,
) -> AgentOrchestrator:
    """Wire the engine's components from configuration."""
    runner = HookRunner(
        project_dir=project_dir or os.getcwd(),
        default_timeout_ms=Config.HOOK_DEFAULT_TIMEOUT_MS,
    )
    return AgentOrchestrator(
        config=config,
        registry=registry or default_registry(),
        metrics=MetricsStore(Config.METRICS_DIR),
        recorder=SessionRecorder(Config.SESSIONS_DIR),
        dispatcher=HookDispatcher(config.hooks, runner),
    )


def build_context(
    cwd: str,
    files: Optional[Sequence[str]] = None,
    demo: bool = False,
    collector: Optional[ContextCollector] = None,
) -> AgentContext:
    """
    Agent input for a CLI run.

    Git context is collected from cwd; explicit files replace the changed
    files git reports.
    """
    repo = (collector or ContextCollector(cwd)).collect()
    context = AgentContext(
        repo_path=repo.root or cwd,
        branch=repo.branch,
        diff=repo.diff,
        files=list(repo.files),
        demo_mode=demo,
    )
    if files:
        context.repo_path = cwd
        context.files = list(files)
        logger.debug(f"Targeting specific files: {', '.join(files)}")
    if demo:
        logger.info("Running in demo mode")
    return context


def _cmd_run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    registry = default_registry()
    if args.agent not in registry:
        logger.error(f"Unknown agent '{args.agent}'. Available: {', '.join(registry.ids())}")
        return 1

    orchestrator = build_orchestrator(config, registry)
    context = build_context(os.getcwd(), args.files, args.demo)
    result = asyncio.run(orchestrator.run_agent(args.agent, context))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        print(f"{result.agent_id}: {result.status.value}")
        if result.error:
            print(f"  error: {result.error}")
        if result.data is not None:
            print(f"  data: {json.dumps(result.data, default=str)}")
    return 1 if result.status == AgentStatus.FAILURE else 0


def _cmd_agents(args: argparse.Namespace) -> int:
    registry = default_registry()
    for agent_id in registry.ids():
        agent = registry.create(agent_id)
        print(f"{agent_id:<20} {agent.model:<24} {agent.description}")
    return 0


def _cmd_token_usage(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    report = usage_report(
        MetricsStore(Config.METRICS_DIR),
        Period(args.period),
        config.budgets.daily_tokens,
    )

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2))
        return 0

    print(f"\nToken Usage Report ({report.period.value})")
    print(f"{'Agent':<24} {'Calls':>6} {'Tokens':>12} {'Cost':>10}")
    print("-" * 56)
    for agent_id, usage in report.by_agent.items():
        print(f"{agent_id:<24} {usage.calls:>6} {usage.tokens:>12,} {'$' + format(usage.cost, '.2f'):>10}")
    print(f"Total Tokens: {report.total_tokens:,}")
    print(f"Total Cost: ${report.total_cost:.2f}")
    if report.budget_used_pct is not None:
        print(f"Budget Used: {report.budget_used_pct:.1f}% of {report.budget_tokens:,.0f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="verifier", description="Run analysis agents with lifecycle hooks")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--log-level", default=Config.LOG_LEVEL, help="Console log level")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run one agent")
    run.add_argument("agent", help="Agent id")
    run.add_argument("--files", nargs="*", help="Files to analyze")
    run.add_argument("--json", action="store_true", help="Print the result as JSON")
    run.add_argument("--demo", action="store_true", help="Run in demo mode")
    run.set_defaults(handler=_cmd_run)

    agents = sub.add_parser("agents", help="List available agents")
    agents.set_defaults(handler=_cmd_agents)

    usage = sub.add_parser("token-usage", help="Report token usage")
    usage.add_argument("--period", choices=[p.value for p in Period], default=Period.DAILY.value)
    usage.add_argument("--format", choices=["table", "json"], default="table")
    usage.set_defaults(handler=_cmd_token_usage)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, configure logging and dispatch the subcommand."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, Config.LOG_FILE)
    try:
        return args.handler(args)
    except ConfigError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
