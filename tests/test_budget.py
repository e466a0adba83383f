"""Tests for nova.observability.budget — nearest-rank percentiles and violations."""

import logging
import threading

import pytest

from nova.capabilities import CapabilityDictionary
from nova.compiler.parser import compile_route
from nova.compiler.route import BudgetConstraint
from nova.observability.budget import BudgetTracker, LatencyHistory, nearest_rank


def _route(budget: str = "!p90<45ms"):
    return compile_route(
        "R1",
        f'GET /j -> [M1] :: kv.scan("j:") | {budget}',
        capabilities=CapabilityDictionary.default(),
    )


class TestNearestRank:
    def test_p90_of_five(self) -> None:
        assert nearest_rank([10, 20, 30, 40, 50], 90) == 50

    def test_p50_of_five(self) -> None:
        assert nearest_rank([50, 10, 40, 20, 30], 50) == 30

    def test_p90_of_ten_is_ninth(self) -> None:
        assert nearest_rank(list(range(1, 11)), 90) == 9

    def test_p100_is_max(self) -> None:
        assert nearest_rank([3, 1, 2], 100) == 3

    def test_small_percentile_clamps_to_min(self) -> None:
        assert nearest_rank([3, 1, 2], 0.1) == 1

    def test_single_sample(self) -> None:
        assert nearest_rank([7.5], 99) == 7.5

    def test_empty_raises(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            nearest_rank([], 50)


class TestLatencyHistory:
    def test_record_reports_exceeded(self) -> None:
        history = LatencyHistory()
        budget = BudgetConstraint(percentile=90, threshold_ms=45)
        results = [history.record(ms, [budget]) for ms in (10, 20, 30, 40)]
        assert results == [[], [], [], []]
        assert history.record(50, [budget]) == [(budget, 50)]

    def test_record_without_budgets_only_appends(self) -> None:
        history = LatencyHistory()
        for ms in (3.0, 1.0, 2.0):
            assert history.record(ms) == []
        assert len(history) == 3

    def test_concurrent_appends_are_not_lost(self) -> None:
        history = LatencyHistory()
        budget = BudgetConstraint(percentile=99, threshold_ms=1000)

        def worker() -> None:
            for i in range(200):
                history.record(float(i), [budget])

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(history) == 1600


class TestBudgetTracker:
    def test_violation_on_fifth_sample(self) -> None:
        route = _route()
        tracker = BudgetTracker()
        for ms in (10, 20, 30, 40):
            assert tracker.record(route, ms) == []
        violations = tracker.record(route, 50)
        assert len(violations) == 1
        v = violations[0]
        assert v.route == "GET /j"
        assert v.percentile == 90
        assert v.observed == 50
        assert v.threshold == 45
        assert v.samples == 5

    def test_unbudgeted_route_still_records(self) -> None:
        route = compile_route(
            "R1", 'GET /j -> [M1] :: kv.scan("j:")', capabilities=CapabilityDictionary.default()
        )
        assert BudgetTracker().record(route, 10_000) == []
        assert len(route.history) == 1

    def test_each_budget_evaluated(self) -> None:
        route = _route("!p50<100ms | !p99<1s")
        tracker = BudgetTracker()
        violations = tracker.record(route, 1500)
        assert [v.percentile for v in violations] == [50, 99]

    def test_violation_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        route = _route("!p50<1ms")
        with caplog.at_level(logging.WARNING, logger="nova.budget"):
            BudgetTracker().record(route, 5)
        assert "Budget violation on GET /j: p50=5ms > 1ms" in caplog.text

    def test_histories_are_per_route(self) -> None:
        a, b = _route(), _route()
        tracker = BudgetTracker()
        tracker.record(a, 10)
        assert len(a.history) == 1
        assert len(b.history) == 0
