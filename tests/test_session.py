"""Tests for session allocation and transcripts."""

import json
import re

from verifier.session import SessionRecorder


class TestOpen:
    """Tests for SessionRecorder.open."""

    def test_allocates_unique_ids(self, recorder):
        ids = {recorder.open().id for _ in range(200)}

        assert len(ids) == 200
        assert all(re.fullmatch(r"[0-9a-f]{32}", i) for i in ids)

    def test_transcript_lives_under_storage_root(self, recorder):
        session = recorder.open()

        assert recorder.sessions_dir.is_dir()
        assert session.transcript_path.parent == recorder.sessions_dir
        assert session.transcript_path.name == f"{session.id}.jsonl"

    def test_unwritable_root_is_not_fatal(self, tmp_path, log_records):
        blocker = tmp_path / "file"
        blocker.write_text("not a dir")
        recorder = SessionRecorder(str(blocker / "sessions"))

        session = recorder.open()

        assert session.id
        assert recorder.write_failures == 1


class TestLog:
    """Tests for SessionRecorder.log."""

    def test_records_round_trip_in_order(self, recorder):
        session = recorder.open()
        records = [
            {"type": "start", "agent": "lint", "context": {"files": ["a.py"]}},
            {"type": "tool_start", "tool": "Read", "input": {"file_path": "a.py"}},
            {"type": "tool_end", "tool": "Read", "result": {"success": True, "data": {"content": "ü\n"}}},
            {"type": "stop", "state": "completed"},
        ]

        for record in records:
            assert recorder.log(session, record) is True

        lines = session.transcript_path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line) for line in lines] == records
        assert recorder.read_transcript(session.id) == records
        assert session.events == records

    def test_write_failure_is_reported_not_raised(self, recorder, tmp_path, log_records):
        session = recorder.open()
        session.transcript_path = tmp_path  # a directory cannot be appended to

        assert recorder.log(session, {"type": "start"}) is False
        assert recorder.write_failures == 1
        assert any(level == "ERROR" and "transcript" in message for level, message in log_records)

    def test_unserializable_values_are_stringified(self, recorder):
        session = recorder.open()

        recorder.log(session, {"type": "context", "path": recorder.sessions_dir})

        assert recorder.read_transcript(session.id) == [
            {"type": "context", "path": str(recorder.sessions_dir)}
        ]


class TestListing:
    """Tests for listing and reading transcripts."""

    def test_list_sessions(self, recorder):
        first = recorder.open()
        recorder.log(first, {"type": "start"})
        second = recorder.open()
        recorder.log(second, {"type": "start"})

        assert set(recorder.list_sessions()) == {first.id, second.id}

    def test_list_sessions_without_root(self, tmp_path):
        assert SessionRecorder(str(tmp_path / "nothing")).list_sessions() == []

    def test_read_transcript_skips_corrupt_lines(self, recorder):
        session = recorder.open()
        recorder.log(session, {"type": "start"})
        with open(session.transcript_path, "a", encoding="utf-8") as f:
            f.write("{not json\n")
        recorder.log(session, {"type": "stop"})

        assert recorder.read_transcript(session.id) == [{"type": "start"}, {"type": "stop"}]

    def test_read_unknown_transcript(self, recorder):
        assert recorder.read_transcript("missing") == []
