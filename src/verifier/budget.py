"""Daily token budget gate."""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .metrics import MetricsStore, Period

BUDGET_EXHAUSTED_REASON = "Daily token budget exhausted"


@dataclass(frozen=True)
class BudgetDecision:
    """Outcome of a budget check."""

    allowed: bool
    used_tokens: Optional[int] = None
    ceiling: Optional[int] = None
    reason: str = ""


class BudgetGate:
    """
    Pre-flight check against the rolling daily token ceiling.

    FAIL-OPEN: if the metrics store cannot be read the run is allowed,
    so storage problems never block execution outright.
    """

    def __init__(self, store: MetricsStore, daily_tokens: Optional[int] = None):
        """
        Initialize budget gate.

        Args:
            store: Metrics store to sum usage from
            daily_tokens: Ceiling for the trailing 24 hours (None = unbounded)
        """
        self._store = store
        self.daily_tokens = daily_tokens

    def evaluate(self) -> BudgetDecision:
        """Sum the trailing 24h usage and compare against the ceiling."""
        if self.daily_tokens is None:
            return BudgetDecision(allowed=True)

        try:
            used = self._store.sum_tokens(Period.DAILY)
        except Exception as e:
            logger.error(f"[budget] Failed to read metrics, allowing run: {e}")
            return BudgetDecision(allowed=True, ceiling=self.daily_tokens)

        if used >= self.daily_tokens:
            logger.warning(f"[budget] Daily budget exhausted: {used}/{self.daily_tokens} tokens")
            return BudgetDecision(
                allowed=False,
                used_tokens=used,
                ceiling=self.daily_tokens,
                reason=BUDGET_EXHAUSTED_REASON,
            )
        return BudgetDecision(allowed=True, used_tokens=used, ceiling=self.daily_tokens)

    def check(self) -> bool:
        """True if an agent run may start."""
        return self.evaluate().allowed
