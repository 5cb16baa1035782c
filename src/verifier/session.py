"""Append-only session transcripts for agent runs."""

import json
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .config import Config

TRANSCRIPT_SUFFIX = ".jsonl"


@dataclass
class Session:
    """One agent run's identity and transcript location."""

    id: str
    transcript_path: Path
    events: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "transcript_path": str(self.transcript_path),
            "event_count": len(self.events),
        }


class SessionRecorder:
    """
    Allocates sessions and appends their transcript records.

    Features:
    - 128-bit random session ids (uuid4)
    - JSON Lines transcripts, one record per line
    - Each append is flushed and fsynced before log() returns
    - Write failures are logged and counted, never raised
    """

    def __init__(self, sessions_dir: Optional[str] = None):
        """
        Initialize recorder.

        Args:
            sessions_dir: Storage root for transcripts (defaults to Config.SESSIONS_DIR)
        """
        self.sessions_dir = Path(sessions_dir or Config.SESSIONS_DIR)
        self.write_failures = 0

    def open(self) -> Session:
        """Allocate a fresh session and ensure its directory exists."""
        session_id = uuid.uuid4().hex
        transcript = self.sessions_dir / f"{session_id}{TRANSCRIPT_SUFFIX}"
        while transcript.exists():
            session_id = uuid.uuid4().hex
            transcript = self.sessions_dir / f"{session_id}{TRANSCRIPT_SUFFIX}"
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.write_failures += 1
            logger.error(f"[session] Failed to create {self.sessions_dir}: {e}")
        logger.debug(f"[session] Opened session {session_id}")
        return Session(id=session_id, transcript_path=transcript)

    def log(self, session: Session, record: dict[str, Any]) -> bool:
        """
        Append one record to the session transcript.

        Args:
            session: Session to append to
            record: JSON-serializable record

        Returns:
            True if the record reached disk, False if the write failed
        """
        session.events.append(record)
        try:
            line = json.dumps(record, ensure_ascii=False, default=str)
            with open(session.transcript_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())
            return True
        except (OSError, TypeError, ValueError) as e:
            self.write_failures += 1
            logger.error(f"[session] Failed to write transcript for {session.id}: {e}")
            return False

    def list_sessions(self) -> list[str]:
        """Session ids with a transcript, oldest first."""
        if not self.sessions_dir.is_dir():
            return []
        paths = sorted(
            self.sessions_dir.glob(f"*{TRANSCRIPT_SUFFIX}"),
            key=lambda p: p.stat().st_mtime,
        )
        return [p.stem for p in paths]

    def read_transcript(self, session_id: str) -> list[dict[str, Any]]:
        """Read a transcript back in append order; unreadable lines are skipped."""
        path = self.sessions_dir / f"{session_id}{TRANSCRIPT_SUFFIX}"
        if not path.exists():
            return []
        records = []
        with open(path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError as e:
                    logger.warning(f"[session] Skipping corrupt line {lineno} in {path}: {e}")
        return records
