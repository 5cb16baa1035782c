"""Repository context collection for agent runs."""
from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

GIT_TIMEOUT_SECONDS = 10


class GitUnavailable(Exception):
    """git is missing, timed out, or the directory is not a repository."""


@dataclass
class RepoContext:
    """Branch, staged diff and changed files of a working tree."""

    root: Optional[str] = None
    branch: Optional[str] = None
    diff: Optional[str] = None
    files: list[str] = field(default_factory=list)


def parse_porcelain(output: str) -> list[str]:
    """
    Paths from `git status --porcelain` output.

    Renames ("R  old -> new") report the new path.
    """
    paths = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        paths.append(path.strip('"'))
    return paths


class ContextCollector:
    """
    Collects git context for a working directory.

    Fails soft: any git problem yields an empty RepoContext.
    """

    def __init__(self, cwd: str, git: str = "git"):
        self.cwd = cwd
        self.git = git

    def _git(self, *args: str) -> str:
        try:
            completed = subprocess.run(
                [self.git, *args],
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise GitUnavailable(str(e)) from e
        if completed.returncode != 0:
            raise GitUnavailable(completed.stderr.strip() or f"git {args[0]} failed")
        return completed.stdout

    def collect(self) -> RepoContext:
        """Read branch, staged diff and changed files."""
        try:
            root = self._git("rev-parse", "--show-toplevel").strip()
            branch = self._git("branch", "--show-current").strip() or None
            diff = self._git("diff", "--cached")
            files = parse_porcelain(self._git("status", "--porcelain"))
        except GitUnavailable as e:
            logger.warning(f"[context] Git context unavailable; proceeding with minimal context: {e}")
            return RepoContext()

        logger.debug(f"[context] Collected {len(files)} changed files on branch {branch}")
        return RepoContext(root=root, branch=branch, diff=diff, files=files)
