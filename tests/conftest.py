"""Pytest fixtures and test utilities for the verifier engine test suite."""

import itertools
import shlex
import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest
from loguru import logger

from verifier.config import VerifierConfig
from verifier.hooks import HookDispatcher, HookRunner, HookSettings
from verifier.metrics import MetricsStore
from verifier.session import SessionRecorder


# ============================================================================
# HOOK SCRIPT FIXTURES
# ============================================================================


@pytest.fixture
def make_hook(tmp_path: Path) -> Callable[[str], str]:
    """
    Write a Python hook script and return the shell command that runs it.

    The body is dedented; json, os, sys and time are imported for it.

    Returns:
        Factory taking the script body and returning a command line
    """
    counter = itertools.count()
    scripts = tmp_path / "hooks"
    scripts.mkdir()

    def _make(body: str) -> str:
        path = scripts / f"hook_{next(counter)}.py"
        path.write_text("import json, os, sys, time\n" + textwrap.dedent(body), encoding="utf-8")
        return f"{shlex.quote(sys.executable)} {shlex.quote(str(path))}"

    return _make


@pytest.fixture
def marker_file(tmp_path: Path) -> Path:
    """File hooks append one line to each time they run."""
    return tmp_path / "hook_runs.log"


@pytest.fixture
def make_marker_hook(make_hook, marker_file):
    """
    Hook that records `label` in marker_file, then prints `stdout` and exits `code`.

    Returns:
        Factory (label, stdout="", code=0) -> command line
    """

    def _make(label: str, stdout: str = "", code: int = 0) -> str:
        return make_hook(
            f"""
            payload = json.load(sys.stdin)
            with open({str(marker_file)!r}, "a") as f:
                f.write({label!r} + " " + payload.get("hook_event_name", "") + "\\n")
            sys.stdout.write({stdout!r})
            sys.exit({code})
            """
        )

    return _make


# ============================================================================
# COMPONENT FIXTURES
# ============================================================================


@pytest.fixture
def runner(tmp_path: Path) -> HookRunner:
    """HookRunner rooted at the test's tmp directory."""
    return HookRunner(project_dir=str(tmp_path), default_timeout_ms=5000)


@pytest.fixture
def dispatcher_for(runner):
    """Factory building a HookDispatcher over the given settings."""

    def _make(settings: HookSettings) -> HookDispatcher:
        return HookDispatcher(settings, runner)

    return _make


@pytest.fixture
def recorder(tmp_path: Path) -> SessionRecorder:
    return SessionRecorder(str(tmp_path / "sessions"))


@pytest.fixture
def metrics_store(tmp_path: Path) -> MetricsStore:
    return MetricsStore(str(tmp_path / "metrics"))


@pytest.fixture
def empty_config() -> VerifierConfig:
    return VerifierConfig()


# ============================================================================
# LOG CAPTURE
# ============================================================================


@pytest.fixture
def log_records():
    """
    Capture loguru records emitted during the test.

    Yields:
        List of (level_name, message) tuples
    """
    captured = []
    handler_id = logger.add(
        lambda message: captured.append(
            (message.record["level"].name, message.record["message"])
        ),
        level="DEBUG",
    )
    yield captured
    logger.remove(handler_id)
