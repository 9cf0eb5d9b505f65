"""Unit tests for performance tracking."""

import pytest

from tests.conftest import run_at
from test_intelligence.analysis.performance import PerformanceTracker, p95
from test_intelligence.config import TestIntelligenceConfig
from test_intelligence.models import (
    CoverageMetrics,
    PerformanceTrend,
    TestEntity,
    TestExecution,
    TestStatus,
    TestType,
)

P = TestStatus.PASSED
F = TestStatus.FAILED


def make_entity():
    return TestEntity(
        id="S:t",
        path="S",
        hash="h",
        language="typescript",
        test_type=TestType.UNIT,
        framework="jest",
    )


def executions(statuses, duration=100.0):
    return [
        TestExecution(id=f"e{i}", timestamp=run_at(i), status=s, duration=duration)
        for i, s in enumerate(statuses)
    ]


class TestP95:
    """Test the nearest-rank percentile."""

    def test_twenty_values(self):
        assert p95(list(range(100, 2001, 100))) == 2000

    def test_unsorted_input(self):
        assert p95([300, 100, 200]) == 300

    def test_single_value(self):
        assert p95([42.0]) == 42.0

    def test_empty(self):
        assert p95([]) == 0.0


class TestTrend:
    """Test success rate trend detection."""

    def setup_method(self):
        self.tracker = PerformanceTracker(TestIntelligenceConfig(_env_file=None))

    def test_short_history_stable(self):
        assert self.tracker.calculate_trend(executions([F, P, P])) == PerformanceTrend.STABLE

    def test_single_window_stable(self):
        assert self.tracker.calculate_trend(executions([F] * 5)) == PerformanceTrend.STABLE

    def test_improving(self):
        history = executions([F] * 5 + [P] * 5)

        assert self.tracker.calculate_trend(history) == PerformanceTrend.IMPROVING

    def test_degrading(self):
        history = executions([P] * 5 + [P, F, P, F, P])

        assert self.tracker.calculate_trend(history) == PerformanceTrend.DEGRADING

    def test_equal_rates_stable(self):
        history = executions([P, P, P, P, F] + [P, P, F, P, P])

        assert self.tracker.calculate_trend(history) == PerformanceTrend.STABLE
        assert self.tracker.calculate_trend(executions([P] * 10)) == PerformanceTrend.STABLE

    def test_threshold_configurable(self):
        tracker = PerformanceTracker(
            TestIntelligenceConfig(_env_file=None, trend_threshold=0.5)
        )
        history = executions([P, P, P, P, F] + [P] * 5)

        assert self.tracker.calculate_trend(history) == PerformanceTrend.IMPROVING
        assert tracker.calculate_trend(history) == PerformanceTrend.STABLE

    def test_partial_older_window(self):
        """Test fewer than ten executions compare against what is available."""
        history = executions([F, F] + [P] * 5)

        assert self.tracker.calculate_trend(history) == PerformanceTrend.IMPROVING


class TestUpdate:
    """Test metric recomputation on an entity."""

    def setup_method(self):
        self.tracker = PerformanceTracker(TestIntelligenceConfig(_env_file=None))

    def test_metrics_from_passed_executions(self):
        entity = make_entity()
        entity.execution_history = executions([P, P, F])
        entity.execution_history[1].duration = 300.0
        entity.execution_history[2].duration = 5000.0

        self.tracker.update(entity)

        metrics = entity.performance_metrics
        assert metrics.average_execution_time == pytest.approx(200.0)
        assert metrics.success_rate == pytest.approx(2 / 3)
        assert metrics.p95_execution_time == 300.0
        assert metrics.trend == PerformanceTrend.STABLE

    def test_no_passed_executions(self):
        entity = make_entity()
        entity.execution_history = executions([F, F])

        self.tracker.update(entity)

        assert entity.performance_metrics.average_execution_time == 0.0
        assert entity.performance_metrics.success_rate == 0.0
        assert entity.performance_metrics.p95_execution_time == 0.0

    def test_historical_point_appended(self):
        entity = make_entity()
        entity.coverage = CoverageMetrics(lines=72.5)
        entity.execution_history = executions([P])

        self.tracker.update(entity, run_at(9))

        point = entity.performance_metrics.historical_data[-1]
        assert point.timestamp == run_at(9)
        assert point.execution_time == 100.0
        assert point.success_rate == 1.0
        assert point.coverage_percentage == 72.5

    def test_default_timestamp_is_latest_execution(self):
        entity = make_entity()
        entity.execution_history = executions([P, P])

        self.tracker.update(entity)

        assert entity.performance_metrics.historical_data[-1].timestamp == run_at(1)

    def test_empty_history_untouched(self):
        entity = make_entity()

        self.tracker.update(entity)

        assert entity.performance_metrics.historical_data == []

    def test_historical_data_capped(self):
        """Test the series keeps the most recent points in order."""
        entity = make_entity()
        for i in range(105):
            entity.execution_history.append(
                TestExecution(id=f"e{i}", timestamp=run_at(i), status=P, duration=10.0)
            )
            self.tracker.update(entity, run_at(i))

        data = entity.performance_metrics.historical_data
        assert len(data) == 100
        assert data[0].timestamp == run_at(5)
        assert data[-1].timestamp == run_at(104)
        assert [p.timestamp for p in data] == sorted(p.timestamp for p in data)

    def test_history_limit_configurable(self):
        tracker = PerformanceTracker(
            TestIntelligenceConfig(_env_file=None, historical_data_limit=3)
        )
        entity = make_entity()
        for i in range(5):
            entity.execution_history.append(
                TestExecution(id=f"e{i}", timestamp=run_at(i), status=P, duration=10.0)
            )
            tracker.update(entity, run_at(i))

        assert [p.timestamp for p in entity.performance_metrics.historical_data] == [
            run_at(2),
            run_at(3),
            run_at(4),
        ]
