"""
Performance tracking for test entities.

Recomputes a test's rolling execution statistics from its execution history
and appends one point to its capped historical series per ingestion.
"""

import math
from datetime import datetime
from typing import List, Optional, Sequence

from ..config import TestIntelligenceConfig
from ..models import (
    HistoricalDataPoint,
    PerformanceTrend,
    TestEntity,
    TestExecution,
    TestStatus,
)


def p95(durations: Sequence[float]) -> float:
    """
    Nearest-rank 95th percentile without interpolation.

    Returns the value at index ``floor(0.95 * n)`` of the ascending-sorted
    list, or 0.0 when that index is out of range.
    """
    ordered = sorted(durations)
    index = math.floor(0.95 * len(ordered))
    if index >= len(ordered):
        return 0.0
    return ordered[index]


class PerformanceTracker:
    """Maintain ``TestPerformanceMetrics`` on test entities."""

    def __init__(self, config: Optional[TestIntelligenceConfig] = None):
        self.config = config or TestIntelligenceConfig()

    def calculate_trend(self, history: Sequence[TestExecution]) -> PerformanceTrend:
        """
        Compare the success rate of the last window against the one before it.

        Needs at least ``trend_window`` executions; a difference above
        ``trend_threshold`` is improving, below its negative is degrading.
        """
        window = self.config.trend_window
        if len(history) < window:
            return PerformanceTrend.STABLE

        recent = list(history[-window:])
        older = list(history[-2 * window:-window])
        if not older:
            return PerformanceTrend.STABLE

        diff = self._success_rate(recent) - self._success_rate(older)
        if diff > self.config.trend_threshold:
            return PerformanceTrend.IMPROVING
        if diff < -self.config.trend_threshold:
            return PerformanceTrend.DEGRADING
        return PerformanceTrend.STABLE

    def update(self, entity: TestEntity, timestamp: Optional[datetime] = None) -> None:
        """
        Recompute ``entity.performance_metrics`` in place.

        Durations come from ``passed`` executions only. A new historical point
        stamped ``timestamp`` (default: latest execution time) is appended and
        the series is trimmed to ``historical_data_limit``, oldest first.
        """
        history = entity.execution_history
        if not history:
            return

        metrics = entity.performance_metrics
        passed_durations: List[float] = [
            e.duration for e in history if e.status == TestStatus.PASSED
        ]

        metrics.average_execution_time = (
            sum(passed_durations) / len(passed_durations) if passed_durations else 0.0
        )
        metrics.success_rate = len(passed_durations) / len(history)
        metrics.p95_execution_time = p95(passed_durations)
        metrics.trend = self.calculate_trend(history)

        metrics.historical_data.append(
            HistoricalDataPoint(
                timestamp=timestamp or history[-1].timestamp,
                execution_time=metrics.average_execution_time,
                success_rate=metrics.success_rate,
                coverage_percentage=entity.coverage.lines,
            )
        )

        limit = self.config.historical_data_limit
        if len(metrics.historical_data) > limit:
            del metrics.historical_data[:-limit]

    @staticmethod
    def _success_rate(executions: Sequence[TestExecution]) -> float:
        return sum(1 for e in executions if e.status == TestStatus.PASSED) / len(executions)
