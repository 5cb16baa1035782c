"""Lifecycle hook system for agent runs.

External commands configured per (namespace, event) observe, veto or
augment a run. Each hook receives the event payload as JSON on stdin and
answers with plain text or a JSON document on stdout; exit code 2 blocks.

Key components:
- HookDispatcher: resolves, matches and runs hooks, folds their verdicts
- HookRunner: child process execution with a bounded lifetime
- Models: HookEvent, Namespace, HookRule, HookSettings, HookVerdict

Usage:
    dispatcher = HookDispatcher(config.hooks, HookRunner(project_dir))
    verdict = await dispatcher.dispatch(
        HookEvent.PRE_TOOL_USE, Namespace.CLAUDE, payload
    )
    if verdict.should_block:
        ...
"""

from .dispatcher import (
    CLAUDE_SYSTEM_REMINDER,
    HookDispatcher,
    compile_matcher,
    matcher_applies,
)
from .models import (
    BLOCK_EXIT_CODE,
    SPAWN_FAILURE_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    HookEvent,
    HookInvocationResult,
    HookRule,
    HookSettings,
    HookVerdict,
    Namespace,
    namespace_for_model,
)
from .runner import DEFAULT_HOOK_TIMEOUT_MS, PROJECT_DIR_ENV, HookRunner

__all__ = [
    # Dispatcher
    "HookDispatcher",
    "CLAUDE_SYSTEM_REMINDER",
    "compile_matcher",
    "matcher_applies",
    # Runner
    "HookRunner",
    "DEFAULT_HOOK_TIMEOUT_MS",
    "PROJECT_DIR_ENV",
    # Models
    "HookEvent",
    "HookInvocationResult",
    "HookRule",
    "HookSettings",
    "HookVerdict",
    "Namespace",
    "namespace_for_model",
    "BLOCK_EXIT_CODE",
    "SPAWN_FAILURE_EXIT_CODE",
    "TIMEOUT_EXIT_CODE",
]
