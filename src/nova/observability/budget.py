"""Latency budgets — per-route history and nearest-rank percentiles.

Every compiled route owns one ``LatencyHistory``. The tracker appends the
observed latency of each completed request and re-evaluates the route's
budgets over the full history. Violations are diagnostic only: they are
logged and handed back to the engine for its hooks, never used to alter
or abort a response.

Free-threading safety:
    - LatencyHistory uses a Lock around append + percentile evaluation,
      so readers never observe a torn append
    - BudgetViolation is a frozen dataclass (safe to share)
    - No cross-route ordering is promised
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from fractions import Fraction
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nova.compiler.route import BudgetConstraint, CompiledRoute

logger = logging.getLogger("nova.budget")


def nearest_rank(values: list[float], percentile: float) -> float:
    """Return the *percentile* of *values* by the nearest-rank method.

    ``index = ceil(percentile / 100 * n) - 1``, clamped to 0, into the
    ascending sort. Exact rational arithmetic keeps ``p90`` of 10 samples
    at index 8 rather than drifting with float rounding.

    Raises ``ValueError`` on an empty sample.
    """
    if not values:
        msg = "Cannot take a percentile of an empty history"
        raise ValueError(msg)
    ordered = sorted(values)
    rank = math.ceil(Fraction(str(percentile)) * len(ordered) / 100)
    return ordered[max(0, rank - 1)]


@dataclass(frozen=True, slots=True)
class BudgetViolation:
    """One budget exceeded after one recorded request."""

    route: str
    percentile: float
    observed: float
    threshold: float
    samples: int


class LatencyHistory:
    """Append-only latency samples (milliseconds) for one route.

    Never reordered, truncated, or windowed for the life of the process.
    """

    __slots__ = ("_lock", "_samples")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: list[float] = []

    def record(
        self,
        duration_ms: float,
        budgets: Iterable[BudgetConstraint] = (),
    ) -> list[tuple[BudgetConstraint, float]]:
        """Append a sample and evaluate *budgets* against the new history.

        Returns ``(budget, observed)`` for every budget whose percentile
        value exceeds its threshold. Append and evaluation happen under
        one lock acquisition.
        """
        with self._lock:
            self._samples.append(duration_ms)
            exceeded: list[tuple[BudgetConstraint, float]] = []
            for budget in budgets:
                observed = nearest_rank(self._samples, budget.percentile)
                if observed > budget.threshold_ms:
                    exceeded.append((budget, observed))
            return exceeded

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)


class BudgetTracker:
    """Records latencies against compiled routes and reports violations.

    Stateless itself: all state lives in each route's ``LatencyHistory``.
    """

    __slots__ = ()

    def record(self, route: CompiledRoute, duration_ms: float) -> list[BudgetViolation]:
        """Record *duration_ms* for *route* and return any budget violations."""
        exceeded = route.history.record(duration_ms, route.budgets)
        if not exceeded:
            return []

        samples = len(route.history)
        violations: list[BudgetViolation] = []
        for budget, observed in exceeded:
            logger.warning(
                "Budget violation on %s: p%g=%gms > %gms",
                route.label,
                budget.percentile,
                observed,
                budget.threshold_ms,
            )
            violations.append(
                BudgetViolation(
                    route=route.label,
                    percentile=budget.percentile,
                    observed=observed,
                    threshold=budget.threshold_ms,
                    samples=samples,
                )
            )
        return violations
