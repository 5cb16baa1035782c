"""Hook command execution with a bounded lifetime."""
from __future__ import annotations

import asyncio
import json
import os
import signal
from typing import Any, Mapping, Optional

from loguru import logger

from .models import (
    SPAWN_FAILURE_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    HookInvocationResult,
)

PROJECT_DIR_ENV = "CLAUDE_PROJECT_DIR"
DEFAULT_HOOK_TIMEOUT_MS = 10_000

# Grace period for pipe readers after the process group was killed
_DRAIN_GRACE_SECONDS = 1.0
_READ_CHUNK = 4096


async def _feed(stdin: Optional[asyncio.StreamWriter], data: bytes) -> None:
    if stdin is None:
        return
    try:
        stdin.write(data)
        await stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        # Hook exited without reading its input
        pass
    finally:
        stdin.close()


async def _drain(stream: Optional[asyncio.StreamReader], buffer: bytearray) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        buffer.extend(chunk)


def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the hook and anything it spawned."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


class HookRunner:
    """
    Runs hook commands as child processes.

    Features:
    - Host environment plus CLAUDE_PROJECT_DIR
    - JSON payload written to stdin, stdin then closed
    - stdout/stderr captured fully in memory
    - Timeout kills the whole process group; partial output is kept
    - Start failures are returned as results, never raised
    """

    def __init__(
        self,
        project_dir: Optional[str] = None,
        default_timeout_ms: int = DEFAULT_HOOK_TIMEOUT_MS,
        env: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize hook runner.

        Args:
            project_dir: Working project directory (defaults to cwd)
            default_timeout_ms: Timeout applied when a rule has none
            env: Base environment (defaults to os.environ)
        """
        self.project_dir = project_dir or os.getcwd()
        self.default_timeout_ms = default_timeout_ms
        self._env = env

    def build_env(self) -> dict[str, str]:
        base = os.environ if self._env is None else self._env
        env = dict(base)
        env[PROJECT_DIR_ENV] = self.project_dir
        return env

    async def run(
        self,
        command: str,
        payload: dict[str, Any],
        timeout_ms: Optional[int] = None,
    ) -> HookInvocationResult:
        """
        Run one hook command.

        Args:
            command: Shell command line
            payload: Event payload, sent as one JSON document on stdin
            timeout_ms: Per-rule override of the default timeout

        Returns:
            HookInvocationResult; exit_code is TIMEOUT_EXIT_CODE on timeout
            and SPAWN_FAILURE_EXIT_CODE when the process could not start
        """
        effective_ms = max(1, timeout_ms if timeout_ms is not None else self.default_timeout_ms)
        logger.debug(f"[hooks] Executing hook command: {command}")

        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.project_dir,
                env=self.build_env(),
                start_new_session=True,
            )
        except OSError as e:
            logger.error(f"[hooks] Failed to start hook command: {command}: {e}")
            return HookInvocationResult(
                stdout="",
                stderr=str(e),
                exit_code=SPAWN_FAILURE_EXIT_CODE,
            )

        stdout_buf = bytearray()
        stderr_buf = bytearray()
        readers = asyncio.gather(
            _drain(process.stdout, stdout_buf),
            _drain(process.stderr, stderr_buf),
        )

        data = json.dumps(payload, default=str).encode("utf-8")
        writer = asyncio.ensure_future(_feed(process.stdin, data))

        # Feeding stdin counts against the deadline: a hook that never reads
        # a large payload still times out.
        timed_out = False
        try:
            await asyncio.wait_for(
                asyncio.gather(writer, process.wait()),
                timeout=effective_ms / 1000,
            )
        except asyncio.TimeoutError:
            timed_out = True
            writer.cancel()
            _kill(process)
            await process.wait()

        try:
            await asyncio.wait_for(readers, timeout=_DRAIN_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"[hooks] Output streams still open after exit: {command}")

        stdout = stdout_buf.decode("utf-8", errors="replace")
        stderr = stderr_buf.decode("utf-8", errors="replace")

        if timed_out:
            logger.error(f"[hooks] Hook timed out after {effective_ms}ms: {command}")
            return HookInvocationResult(
                stdout=stdout,
                stderr=(stderr + "\n" if stderr else "") + "Hook timed out",
                exit_code=TIMEOUT_EXIT_CODE,
                timed_out=True,
            )

        if process.returncode != 0:
            logger.error(f"[hooks] Hook command exited with code {process.returncode}: {command}")
        return HookInvocationResult(stdout=stdout, stderr=stderr, exit_code=process.returncode)
