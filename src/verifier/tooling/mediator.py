"""Tool invocation mediator: wraps every tool call in pre/post hook dispatch."""

from typing import Any, Iterable, Optional

from loguru import logger

from ..hooks import HookDispatcher, HookEvent, Namespace
from ..session import Session, SessionRecorder
from .models import Tool, ToolResult

BLOCKED_BY_HOOK_ERROR = "Tool execution blocked by PreToolUse hook"


class ToolMediator:
    """
    Gates an agent's tool calls through the hook protocol.

    Bound to one session and provider namespace. Agents call invoke()
    sequentially; nothing here is safe for concurrent calls in one run.

    Flow per call:
    1. Unknown tool -> failure, no hooks, nothing logged to the session
    2. tool_start logged
    3. PreToolUse dispatched; a block returns a failure and skips the tool
    4. Tool executed; exceptions become failure results
    5. PostToolUse dispatched with the response, success or failure
    """

    def __init__(
        self,
        tools: Iterable[Tool],
        dispatcher: HookDispatcher,
        recorder: SessionRecorder,
        session: Session,
        namespace: Namespace,
        cwd: str,
    ):
        self._tools: dict[str, Tool] = {tool.name: tool for tool in tools}
        self._dispatcher = dispatcher
        self._recorder = recorder
        self._session = session
        self._namespace = namespace
        self._cwd = cwd
        # Context injected by PostToolUse hooks, for the orchestrator to consult
        self.additional_context = ""
        self.call_count = 0

    def _payload(self, event: HookEvent, **fields: Any) -> dict[str, Any]:
        return {
            "session_id": self._session.id,
            "transcript_path": str(self._session.transcript_path),
            "cwd": self._cwd,
            "hook_event_name": event.value,
            **fields,
        }

    async def invoke(self, tool_name: str, tool_input: Optional[dict[str, Any]] = None) -> ToolResult:
        """
        Invoke a registered tool with hook mediation.

        Args:
            tool_name: Registered tool name (e.g. "Read")
            tool_input: Tool arguments

        Returns:
            ToolResult; never raises
        """
        tool_input = tool_input or {}
        tool = self._tools.get(tool_name)
        if tool is None:
            logger.warning(f"[tools] Unknown tool requested: {tool_name}")
            return ToolResult.fail(f"Tool {tool_name} not found")

        self.call_count += 1
        self._recorder.log(
            self._session, {"type": "tool_start", "tool": tool_name, "input": tool_input}
        )

        pre = await self._dispatcher.dispatch(
            HookEvent.PRE_TOOL_USE,
            self._namespace,
            self._payload(HookEvent.PRE_TOOL_USE, tool_name=tool_name, tool_input=tool_input),
        )
        if pre.should_block:
            logger.info(f"[tools] {tool_name} blocked by PreToolUse hook")
            result = ToolResult.fail(BLOCKED_BY_HOOK_ERROR)
            self._recorder.log(
                self._session,
                {"type": "tool_blocked", "tool": tool_name, "error": result.error},
            )
            return result

        try:
            result = await tool.execute(tool_input)
            if not isinstance(result, ToolResult):
                raise TypeError(f"expected ToolResult, got {type(result).__name__}")
            self._recorder.log(
                self._session, {"type": "tool_end", "tool": tool_name, "result": result.to_dict()}
            )
        except Exception as e:
            logger.error(f"[tools] Tool {tool_name} raised: {e}")
            result = ToolResult.fail(f"Error executing tool {tool_name}: {e}")
            self._recorder.log(
                self._session, {"type": "tool_error", "tool": tool_name, "error": result.to_dict()}
            )

        post = await self._dispatcher.dispatch(
            HookEvent.POST_TOOL_USE,
            self._namespace,
            self._payload(
                HookEvent.POST_TOOL_USE,
                tool_name=tool_name,
                tool_input=tool_input,
                tool_response=result.to_dict(),
            ),
        )
        if post.should_block:
            logger.warning(f"[tools] PostToolUse hook flagged {tool_name}; result already produced")
        if post.additional_context:
            self.additional_context += post.additional_context
        self._recorder.log(
            self._session,
            {"type": "post_tool_verdict", "tool": tool_name, "verdict": post.to_dict()},
        )

        return result
