"""Per-day JSON metrics store and usage reporting."""

import fcntl
import json
import os
import tempfile
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Optional

from loguru import logger

from .config import Config


class Period(str, Enum):
    """Trailing windows metrics can be aggregated over."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def window(self) -> timedelta:
        return {
            Period.HOURLY: timedelta(hours=1),
            Period.DAILY: timedelta(days=1),
            Period.WEEKLY: timedelta(days=7),
            Period.MONTHLY: timedelta(days=30),
        }[self]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Metric:
    """Usage record for one completed, failed or skipped agent run."""

    agent_id: str
    timestamp: str
    tokens_used: int = 0
    cost: float = 0.0
    result: str = ""
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Metric":
        return cls(
            agent_id=str(data.get("agent_id", "")),
            timestamp=str(data.get("timestamp", "")),
            tokens_used=int(data.get("tokens_used") or 0),
            cost=float(data.get("cost") or 0.0),
            result=str(data.get("result", "")),
            duration_ms=int(data.get("duration_ms") or 0),
        )


class MetricsStore:
    """
    Metrics persisted as one JSON array per UTC day.

    Features:
    - <metrics_dir>/YYYY-MM-DD.json, one file per day
    - Read-modify-write serialized by an exclusive flock on a sidecar lock
    - Atomic rewrite via temp file + os.replace
    - Read failures yield no metrics; write failures are logged
    """

    def __init__(self, metrics_dir: Optional[str] = None):
        """
        Initialize metrics store.

        Args:
            metrics_dir: Directory holding per-day files (defaults to Config.METRICS_DIR)
        """
        self.metrics_dir = Path(metrics_dir or Config.METRICS_DIR)

    def day_file(self, timestamp: str) -> Path:
        day = parse_timestamp(timestamp).astimezone(timezone.utc).date().isoformat()
        return self.metrics_dir / f"{day}.json"

    @contextmanager
    def _locked(self, path: Path) -> Iterator[None]:
        """Hold an exclusive lock for the given day file."""
        lock_path = path.with_suffix(".lock")
        lock_fd = os.open(lock_path, os.O_CREAT | os.O_RDWR, 0o644)
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            yield
        finally:
            fcntl.flock(lock_fd, fcntl.LOCK_UN)
            os.close(lock_fd)

    @staticmethod
    def _read_file(path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{path} does not hold a JSON array")
        return data

    def record(self, metric: Metric) -> bool:
        """
        Append a metric to its day file.

        Returns:
            True if stored, False if the write failed (logged)
        """
        try:
            self.metrics_dir.mkdir(parents=True, exist_ok=True)
            path = self.day_file(metric.timestamp)
            with self._locked(path):
                entries = self._read_file(path)
                entries.append(metric.to_dict())
                fd, tmp_path = tempfile.mkstemp(dir=self.metrics_dir, suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(entries, f, indent=2)
                    os.replace(tmp_path, path)
                except BaseException:
                    Path(tmp_path).unlink(missing_ok=True)
                    raise
            return True
        except Exception as e:
            logger.error(f"[metrics] Failed to record metric for {metric.agent_id}: {e}")
            return False

    def get_metrics(self, period: Period = Period.DAILY, now: Optional[datetime] = None) -> list[Metric]:
        """Metrics within the trailing window; empty on read failure."""
        try:
            return self.load_window(period, now)
        except Exception as e:
            logger.error(f"[metrics] Failed to get metrics: {e}")
            return []

    def load_window(self, period: Period = Period.DAILY, now: Optional[datetime] = None) -> list[Metric]:
        """
        Metrics within the trailing window.

        Raises:
            OSError, ValueError: If a day file cannot be read or decoded
        """
        now = now or datetime.now(timezone.utc)
        start = now - Period(period).window
        if not self.metrics_dir.is_dir():
            return []

        out: list[Metric] = []
        for path in sorted(self.metrics_dir.glob("*.json")):
            try:
                file_day = datetime.strptime(path.stem, "%Y-%m-%d").date()
            except ValueError:
                continue
            if file_day < start.date():
                continue
            for entry in self._read_file(path):
                metric = Metric.from_dict(entry)
                try:
                    stamp = parse_timestamp(metric.timestamp)
                except ValueError:
                    logger.warning(f"[metrics] Skipping metric with bad timestamp in {path}")
                    continue
                if start <= stamp <= now:
                    out.append(metric)
        return out

    def sum_tokens(self, period: Period = Period.DAILY, now: Optional[datetime] = None) -> int:
        """Total tokens in the window. Raises on read failure."""
        return sum(m.tokens_used for m in self.load_window(period, now))


@dataclass
class AgentUsage:
    calls: int = 0
    tokens: int = 0
    cost: float = 0.0


@dataclass
class UsageReport:
    """Token/cost usage aggregated by agent for one period."""

    period: Period
    total_tokens: int = 0
    total_cost: float = 0.0
    by_agent: dict[str, AgentUsage] = field(default_factory=dict)
    budget_tokens: Optional[float] = None

    @property
    def budget_used_pct(self) -> Optional[float]:
        if not self.budget_tokens:
            return None
        return self.total_tokens / self.budget_tokens * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period.value,
            "total_tokens": self.total_tokens,
            "total_cost": self.total_cost,
            "by_agent": {agent: asdict(usage) for agent, usage in self.by_agent.items()},
            "budget_tokens": self.budget_tokens,
            "budget_used_pct": self.budget_used_pct,
        }


def period_budget(period: Period, daily_tokens: Optional[int]) -> Optional[float]:
    """Token budget for a period, derived from the daily ceiling."""
    if daily_tokens is None:
        return None
    if period == Period.HOURLY:
        return daily_tokens / 24
    if period == Period.DAILY:
        return float(daily_tokens)
    if period == Period.WEEKLY:
        return float(daily_tokens * 7)
    # No monthly token budget, only cost
    return None


def usage_report(
    store: MetricsStore,
    period: Period = Period.DAILY,
    daily_tokens: Optional[int] = None,
) -> UsageReport:
    """Aggregate stored metrics into a per-agent usage report."""
    period = Period(period)
    usage: dict[str, AgentUsage] = defaultdict(AgentUsage)
    report = UsageReport(period=period, budget_tokens=period_budget(period, daily_tokens))
    for metric in store.get_metrics(period):
        current = usage[metric.agent_id]
        current.calls += 1
        current.tokens += metric.tokens_used
        current.cost += metric.cost
        report.total_tokens += metric.tokens_used
        report.total_cost += metric.cost
    report.by_agent = dict(usage)
    return report
