"""Hook dispatcher: runs configured hooks for one event and folds their verdicts."""

import json
import re
from typing import Any, Optional

from loguru import logger

from .models import (
    BLOCK_EXIT_CODE,
    HookEvent,
    HookInvocationResult,
    HookRule,
    HookSettings,
    HookVerdict,
    Namespace,
)
from .runner import HookRunner

CLAUDE_SYSTEM_REMINDER = (
    "<system-reminder>Stay focused on the current goal and avoid drifting "
    "from the task.</system-reminder>"
)

# Namespaces that always carry a built-in context string
DEFAULT_CONTEXT: dict[Namespace, str] = {
    Namespace.CLAUDE: CLAUDE_SYSTEM_REMINDER,
}

WILDCARD = "*"


def compile_matcher(matcher: str) -> re.Pattern:
    """Compile a glob-like matcher: '*' is any sequence, everything else literal."""
    parts = [re.escape(part) for part in matcher.split(WILDCARD)]
    return re.compile(".*".join(parts), re.DOTALL)


def matcher_applies(matcher: Optional[str], target: Optional[str]) -> bool:
    """
    Check whether a rule's matcher selects the payload's target.

    Empty and "*" match everything, even with no target (session events).
    Any other matcher needs a target and must match it in full.
    """
    m = (matcher or "").strip()
    if m in ("", WILDCARD):
        return True
    if not target:
        return False
    return compile_matcher(m).fullmatch(target) is not None


class HookDispatcher:
    """
    Runs the hooks configured for a lifecycle event.

    Features:
    - Generic rules first, then namespace rules, each in declared order
    - Every matching hook runs; no short-circuit on block
    - JSON output: continue=false / decision=block block,
      hookSpecificOutput.additionalContext is appended
    - Plain-text output is logged, and merged into context only for
      prompt-shaping events
    - Exit code 2 blocks independently of the output
    - Hook failures are logged and never abort the dispatch
    """

    def __init__(
        self,
        settings: HookSettings,
        runner: Optional[HookRunner] = None,
        default_context: Optional[dict[Namespace, str]] = None,
    ):
        """
        Initialize dispatcher.

        Args:
            settings: Hook rules by namespace and event
            runner: Process runner (a default HookRunner if None)
            default_context: Built-in context per namespace
        """
        self._settings = settings
        self._runner = runner or HookRunner()
        self._default_context = DEFAULT_CONTEXT if default_context is None else default_context

    @property
    def runner(self) -> HookRunner:
        return self._runner

    def resolve_rules(self, event: HookEvent, namespace: Namespace) -> list[HookRule]:
        """Generic rules for the event followed by the namespace's rules."""
        rules = list(self._settings.rules_for(Namespace.GENERIC, event))
        if namespace != Namespace.GENERIC:
            rules.extend(self._settings.rules_for(namespace, event))
        return rules

    async def dispatch(
        self,
        event: HookEvent,
        namespace: Namespace,
        payload: dict[str, Any],
    ) -> HookVerdict:
        """
        Dispatch one lifecycle event to its hooks.

        Args:
            event: Lifecycle event
            namespace: Provider namespace of the active agent
            payload: Event payload, sent to each hook on stdin

        Returns:
            Aggregated HookVerdict
        """
        verdict = HookVerdict()
        rules = self.resolve_rules(event, namespace)
        builtin = self._default_context.get(namespace)

        if not rules:
            if builtin:
                verdict.add_context(builtin)
            return verdict

        if builtin:
            verdict.add_context(f"{builtin}\n")

        logger.debug(
            f"[hooks] Executing {len(rules)} hooks for event: {event.value} "
            f"(namespace: {namespace.value})"
        )

        target = payload.get("tool_name")
        for rule in rules:
            if not matcher_applies(rule.matcher, target):
                continue
            try:
                result = await self._runner.run(rule.command, payload, rule.timeout_ms)
            except Exception as e:
                logger.error(f"[hooks] Hook command crashed: {rule.command}: {e}")
                continue
            self._fold(event, result, verdict)

        return verdict

    @staticmethod
    def _fold(event: HookEvent, result: HookInvocationResult, verdict: HookVerdict) -> None:
        """Interpret one hook's output into the running verdict."""
        if result.stdout:
            output = _parse_json_output(result.stdout)
            if output is not None:
                if output.get("continue") is False:
                    logger.info(f"[hooks] Hook stopped execution: {output.get('stopReason') or ''}")
                    verdict.block()
                if output.get("decision") == "block":
                    logger.info(f"[hooks] Hook blocked execution: {output.get('reason') or ''}")
                    verdict.block()
                specific = output.get("hookSpecificOutput")
                if isinstance(specific, dict):
                    extra = specific.get("additionalContext")
                    if isinstance(extra, str):
                        verdict.add_context(extra)
            else:
                logger.info(f"[Hook STDOUT] {result.stdout.strip()}")
                if event.shapes_prompt:
                    verdict.add_context(result.stdout)

        if result.stderr:
            logger.error(f"[Hook STDERR] {result.stderr.strip()}")

        if result.exit_code == BLOCK_EXIT_CODE:
            verdict.block()


def _parse_json_output(stdout: str) -> Optional[dict[str, Any]]:
    """
    Decode hook stdout as JSON, or None for plain text.

    Valid JSON that is not an object carries no recognized fields and
    decodes to an empty dict.
    """
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return {}
    return data
