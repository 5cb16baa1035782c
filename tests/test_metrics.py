"""Tests for the per-day metrics store and usage reports."""

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from verifier.metrics import Metric, MetricsStore, Period, period_budget, usage_report


def metric(agent_id="lint", tokens=10, cost=0.1, when=None, result="success") -> Metric:
    when = when or datetime.now(timezone.utc)
    return Metric(
        agent_id=agent_id,
        timestamp=when.isoformat(),
        tokens_used=tokens,
        cost=cost,
        result=result,
        duration_ms=5,
    )


class TestRecord:
    """Tests for MetricsStore.record."""

    def test_record_writes_day_file(self, metrics_store):
        when = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)

        assert metrics_store.record(metric(when=when)) is True

        path = metrics_store.metrics_dir / "2026-03-14.json"
        data = json.loads(path.read_text())
        assert data == [metric(when=when).to_dict()]

    def test_record_appends(self, metrics_store):
        for i in range(3):
            metrics_store.record(metric(tokens=i))

        assert [m.tokens_used for m in metrics_store.get_metrics()] == [0, 1, 2]

    def test_day_is_taken_in_utc(self, metrics_store):
        local = datetime(2026, 3, 14, 23, 30, tzinfo=timezone(timedelta(hours=-5)))

        assert metrics_store.day_file(local.isoformat()).name == "2026-03-15.json"

    def test_write_failure_is_logged(self, tmp_path, log_records):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        store = MetricsStore(str(blocker / "metrics"))

        assert store.record(metric()) is False
        assert any(level == "ERROR" for level, _ in log_records)

    def test_concurrent_writers_lose_nothing(self, metrics_store):
        """Two writers on the same day file serialize their read-modify-write."""
        per_writer = 25
        barrier = threading.Barrier(2)

        def writer(agent_id):
            barrier.wait()
            for i in range(per_writer):
                assert metrics_store.record(metric(agent_id=agent_id, tokens=1))

        threads = [threading.Thread(target=writer, args=(name,)) for name in ("a", "b")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = metrics_store.get_metrics()
        assert len(stored) == 2 * per_writer
        assert sum(1 for m in stored if m.agent_id == "a") == per_writer
        assert sum(1 for m in stored if m.agent_id == "b") == per_writer


class TestWindow:
    """Tests for trailing-window reads."""

    def test_window_filters_by_timestamp(self, metrics_store):
        now = datetime.now(timezone.utc)
        metrics_store.record(metric(tokens=100, when=now - timedelta(hours=2)))
        metrics_store.record(metric(tokens=7, when=now - timedelta(hours=23)))
        metrics_store.record(metric(tokens=1000, when=now - timedelta(days=2)))

        assert metrics_store.sum_tokens(Period.DAILY, now=now) == 107
        assert metrics_store.sum_tokens(Period.HOURLY, now=now) == 0
        assert metrics_store.sum_tokens(Period.WEEKLY, now=now) == 1107

    def test_empty_store(self, metrics_store):
        assert metrics_store.get_metrics() == []
        assert metrics_store.sum_tokens() == 0

    def test_corrupt_file_read(self, metrics_store):
        metrics_store.metrics_dir.mkdir(parents=True)
        today = datetime.now(timezone.utc).date().isoformat()
        (metrics_store.metrics_dir / f"{today}.json").write_text("{broken")

        assert metrics_store.get_metrics() == []
        with pytest.raises(ValueError):
            metrics_store.sum_tokens()

    def test_unrelated_files_ignored(self, metrics_store):
        metrics_store.record(metric(tokens=3))
        (metrics_store.metrics_dir / "notes.json").write_text("[]")

        assert metrics_store.sum_tokens() == 3


class TestUsageReport:
    """Tests for usage_report aggregation."""

    def test_aggregates_by_agent(self, metrics_store):
        metrics_store.record(metric(agent_id="lint", tokens=10, cost=0.5))
        metrics_store.record(metric(agent_id="lint", tokens=5, cost=0.25))
        metrics_store.record(metric(agent_id="security", tokens=100, cost=2.0))

        report = usage_report(metrics_store, Period.DAILY, daily_tokens=1000)

        assert report.total_tokens == 115
        assert report.total_cost == pytest.approx(2.75)
        assert report.by_agent["lint"].calls == 2
        assert report.by_agent["lint"].tokens == 15
        assert report.by_agent["security"].cost == pytest.approx(2.0)
        assert report.budget_used_pct == pytest.approx(11.5)
        assert report.to_dict()["by_agent"]["lint"] == {"calls": 2, "tokens": 15, "cost": 0.75}

    def test_no_budget(self, metrics_store):
        report = usage_report(metrics_store, "weekly")

        assert report.period == Period.WEEKLY
        assert report.budget_tokens is None
        assert report.budget_used_pct is None

    @pytest.mark.parametrize(
        "period,expected",
        [
            (Period.HOURLY, 100.0),
            (Period.DAILY, 2400.0),
            (Period.WEEKLY, 16800.0),
            (Period.MONTHLY, None),
        ],
    )
    def test_period_budget(self, period, expected):
        assert period_budget(period, 2400) == expected
