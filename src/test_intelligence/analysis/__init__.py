"""Flakiness, performance and coverage analysis."""

from .coverage import CoverageAggregator, aggregate
from .flakiness import FlakinessAnalyzer, alternating_ratio
from .performance import PerformanceTracker, p95

__all__ = [
    "CoverageAggregator",
    "FlakinessAnalyzer",
    "PerformanceTracker",
    "aggregate",
    "alternating_ratio",
    "p95",
]
