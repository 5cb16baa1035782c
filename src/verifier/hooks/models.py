"""Hook system models for the agent execution engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Exit codes synthesized by the process runner
TIMEOUT_EXIT_CODE = 124
SPAWN_FAILURE_EXIT_CODE = -1

# Exit code a hook uses to force a block
BLOCK_EXIT_CODE = 2


class HookEvent(str, Enum):
    """Lifecycle events hooks can subscribe to (wire names)."""

    SESSION_START = "SessionStart"
    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    STOP = "Stop"
    # Reserved, not dispatched by the orchestrator yet
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    NOTIFICATION = "Notification"
    PRE_COMPACT = "PreCompact"
    SUBAGENT_STOP = "SubagentStop"

    @property
    def shapes_prompt(self) -> bool:
        """Plain-text hook output is merged into context only for these events."""
        return self in (HookEvent.SESSION_START, HookEvent.USER_PROMPT_SUBMIT)

    @classmethod
    def parse(cls, value: str) -> Optional["HookEvent"]:
        """Resolve a config key to an event, or None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


class Namespace(str, Enum):
    """Provider namespaces hooks are partitioned into."""

    GENERIC = "generic"
    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"


MODEL_PREFIXES: dict[str, Namespace] = {
    "gpt-": Namespace.OPENAI,
    "claude-": Namespace.CLAUDE,
    "gemini-": Namespace.GEMINI,
}


def namespace_for_model(model: Optional[str]) -> Namespace:
    """
    Derive the provider namespace from a model identifier.

    Args:
        model: Model name declared by the agent (e.g. "claude-3-5-sonnet")

    Returns:
        Matching provider namespace, GENERIC when the prefix is unknown
    """
    if not model:
        return Namespace.GENERIC
    for prefix, namespace in MODEL_PREFIXES.items():
        if model.startswith(prefix):
            return namespace
    return Namespace.GENERIC


@dataclass(frozen=True)
class HookRule:
    """
    One configured hook command.

    Immutable; sourced from the hooks section of the project config.
    """

    event: HookEvent
    command: str
    matcher: str = ""
    timeout_ms: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event.value,
            "matcher": self.matcher,
            "command": self.command,
            "timeout": self.timeout_ms,
        }


@dataclass
class HookSettings:
    """
    Hook rules partitioned by namespace and event.

    Rules keep their declared order within each (namespace, event) pair.
    """

    rules: dict[tuple[Namespace, HookEvent], tuple[HookRule, ...]] = field(default_factory=dict)

    def rules_for(self, namespace: Namespace, event: HookEvent) -> tuple[HookRule, ...]:
        return self.rules.get((namespace, event), ())

    def is_empty(self) -> bool:
        return not any(self.rules.values())

    def to_dict(self) -> dict[str, Any]:
        """Serialize back into the nested matcher-group layout."""
        out: dict[str, Any] = {}
        for (namespace, event), rules in self.rules.items():
            groups = out.setdefault(namespace.value, {}).setdefault(event.value, [])
            for rule in rules:
                hook: dict[str, Any] = {"type": "command", "command": rule.command}
                if rule.timeout_ms is not None:
                    hook["timeout"] = rule.timeout_ms
                groups.append({"matcher": rule.matcher, "hooks": [hook]})
        return out


@dataclass(frozen=True)
class HookInvocationResult:
    """Captured output of one hook process run."""

    stdout: str
    stderr: str
    exit_code: Optional[int]
    timed_out: bool = False

    @property
    def failed_to_start(self) -> bool:
        return self.exit_code == SPAWN_FAILURE_EXIT_CODE


@dataclass
class HookVerdict:
    """
    Aggregated decision of every hook run for one event.

    should_block is monotonic: once set it is never cleared.
    """

    should_block: bool = False
    additional_context: str = ""

    def block(self) -> None:
        self.should_block = True

    def add_context(self, text: str) -> None:
        if text:
            self.additional_context += text

    def to_dict(self) -> dict[str, Any]:
        return {
            "should_block": self.should_block,
            "additional_context": self.additional_context,
        }
