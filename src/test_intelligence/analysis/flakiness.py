"""
Flakiness analysis for test results.

Two computations are provided:

- batch analysis over one ingested batch of results, scoring every test by
  recent failure rate, pass/fail alternation and duration variability, and
  emitting reports with recommendations for tests above the threshold;
- the cumulative flaky score stored on a test entity, computed from its most
  recent executions.
"""

import re
import statistics
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..config import TestIntelligenceConfig
from ..models import FlakyTestAnalysis, TestExecution, TestResult, TestStatus

RECENT_FAILURE_WEIGHT = 0.4
ALTERNATION_WEIGHT = 0.3
DURATION_WEIGHT = 0.3

HISTORY_FAILURE_WEIGHT = 0.6
HISTORY_RECENT_FAILURE_WEIGHT = 0.4

MONITOR_RECOMMENDATION = "Monitor this test closely in future runs"
DETERMINISTIC_RECOMMENDATION = "Consider rewriting this test to be more deterministic"
RACE_CONDITION_RECOMMENDATION = "Check for race conditions or timing dependencies"

RESOURCE_PATTERNS = [
    r"timeout",
    r"timed out",
    r"connection",
    r"network",
    r"memory",
    r"resource",
]


def alternating_ratio(statuses: Sequence[TestStatus], min_results: int = 3) -> float:
    """
    Fraction of consecutive status changes.

    Returns:
        ``changes / (n - 1)``, or 0.0 when fewer than ``min_results`` statuses
    """
    if len(statuses) < min_results:
        return 0.0
    changes = sum(1 for prev, cur in zip(statuses, statuses[1:]) if prev != cur)
    return changes / (len(statuses) - 1)


def duration_std_dev(durations: Sequence[float]) -> float:
    """Population standard deviation of durations, 0.0 when empty."""
    if not durations:
        return 0.0
    return statistics.pstdev(durations)


def failure_rate(statuses: Sequence[TestStatus]) -> float:
    if not statuses:
        return 0.0
    return sum(1 for s in statuses if s == TestStatus.FAILED) / len(statuses)


class FlakinessAnalyzer:
    """
    Detect flaky tests in ingested batches and score test histories.

    Only ``failed`` results count as failures; ``error`` results contribute
    to alternation but not to failure rates.
    """

    def __init__(self, config: Optional[TestIntelligenceConfig] = None):
        """
        Initialize flakiness analyzer.

        Args:
            config: Windows and thresholds; defaults when omitted
        """
        self.config = config or TestIntelligenceConfig()

    def analyze_flaky_tests(self, results: List[TestResult]) -> List[FlakyTestAnalysis]:
        """
        Analyze one batch of results for flaky behavior.

        Results are grouped by ``test_id`` in first-seen order; every group is
        scored and only those scoring above ``flaky_report_threshold`` are
        returned.

        Args:
            results: Results of one batch, in run order

        Returns:
            Reports for potentially flaky tests
        """
        groups: "OrderedDict[str, List[TestResult]]" = OrderedDict()
        for result in results:
            groups.setdefault(result.test_id, []).append(result)

        analyses = []
        for test_id, group in groups.items():
            analysis = self.analyze_single_test(test_id, group)
            if analysis.flaky_score > self.config.flaky_report_threshold:
                analyses.append(analysis)

        if analyses:
            logger.info(
                f"Detected {len(analyses)} potentially flaky tests "
                f"out of {len(groups)} analyzed"
            )
        return analyses

    def analyze_single_test(
        self, test_id: str, results: List[TestResult]
    ) -> FlakyTestAnalysis:
        """Score one test's results from a batch."""
        statuses = [r.status for r in results]
        durations = [r.duration for r in results]
        total_runs = len(results)
        failures = sum(1 for s in statuses if s == TestStatus.FAILED)

        recent = statuses[-self.config.flaky_recent_window:]
        recent_failures = sum(1 for s in recent if s == TestStatus.FAILED)

        score = self.batch_score(statuses, durations)
        patterns = self.identify_failure_patterns(results)

        return FlakyTestAnalysis(
            test_id=test_id,
            test_name=results[0].test_name if results else test_id,
            flaky_score=score,
            total_runs=total_runs,
            failure_rate=failures / total_runs if total_runs else 0.0,
            success_rate=1 - failures / total_runs if total_runs else 0.0,
            recent_failures=recent_failures,
            patterns=patterns,
            recommendations=self.generate_recommendations(score, patterns),
        )

    def batch_score(
        self, statuses: Sequence[TestStatus], durations: Sequence[float]
    ) -> float:
        """
        Weighted flakiness score clipped to ``[0, 1]``.

        ``0.4 * recent failure rate + 0.3 * alternating ratio
        + 0.3 * min(duration std dev / cap, 1)``
        """
        if not statuses:
            return 0.0

        recent = statuses[-self.config.flaky_recent_window:]
        variability = duration_std_dev(durations) / self.config.duration_variability_cap_ms

        score = (
            RECENT_FAILURE_WEIGHT * failure_rate(recent)
            + ALTERNATION_WEIGHT
            * alternating_ratio(statuses, self.config.flaky_min_alternation_results)
            + DURATION_WEIGHT * min(variability, 1.0)
        )
        return min(max(score, 0.0), 1.0)

    def cumulative_score(self, history: Sequence[TestExecution]) -> float:
        """
        Flaky score stored on a test entity.

        Uses the last ``flaky_history_window`` executions:
        ``0.6 * failure rate + 0.4 * failure rate of the last 5``.
        Fewer than ``flaky_min_history`` executions score 0.
        """
        window = list(history)[-self.config.flaky_history_window:]
        if len(window) < self.config.flaky_min_history:
            return 0.0

        statuses = [e.status for e in window]
        recent = statuses[-self.config.flaky_recent_history_window:]
        return (
            HISTORY_FAILURE_WEIGHT * failure_rate(statuses)
            + HISTORY_RECENT_FAILURE_WEIGHT * failure_rate(recent)
        )

    def identify_failure_patterns(self, results: List[TestResult]) -> Dict[str, str]:
        """Describe duration spread, alternation and environment signals of a group."""
        patterns = {
            "timeOfDay": "various",
            "environment": "unknown",
            "duration": "stable",
            "alternating": "low",
        }

        if len(results) < 2:
            return patterns

        durations = [r.duration for r in results]
        mean = statistics.fmean(durations)
        if mean > 0:
            variation = duration_std_dev(durations) / mean
            if variation > 0.5:
                patterns["duration"] = "variable"
            elif variation > 0.2:
                patterns["duration"] = "moderate"

        ratio = alternating_ratio(
            [r.status for r in results], self.config.flaky_min_alternation_results
        )
        if ratio > 0.7:
            patterns["alternating"] = "high"
        elif ratio > 0.4:
            patterns["alternating"] = "moderate"

        messages = [
            r.error_message
            for r in results
            if r.status == TestStatus.FAILED and r.error_message
        ]
        if any(
            re.search(pattern, message, re.IGNORECASE)
            for message in messages
            for pattern in RESOURCE_PATTERNS
        ):
            patterns["environment"] = "resource_contention"

        return patterns

    def generate_recommendations(
        self, score: float, patterns: Dict[str, str]
    ) -> List[str]:
        """Recommendations by score tier and detected patterns; always ends with monitoring advice."""
        recommendations: List[str] = []

        if score > 0.8:
            recommendations.extend(
                [
                    "This test has critical flakiness - immediate investigation required",
                    "Consider disabling this test temporarily until stability is improved",
                    "Review test setup and teardown for resource cleanup issues",
                    "Check for global state pollution between test runs",
                ]
            )

        if score > 0.7:
            recommendations.extend(
                [
                    DETERMINISTIC_RECOMMENDATION,
                    RACE_CONDITION_RECOMMENDATION,
                    "Add explicit waits instead of relying on timing",
                ]
            )

        if score > 0.5:
            recommendations.extend(
                [
                    "Run this test in isolation to identify external dependencies",
                    "Add retry logic if the failure is intermittent",
                    "Check for network or I/O dependencies that may cause variability",
                ]
            )

        if patterns.get("duration") == "variable":
            recommendations.extend(
                [
                    "Test duration varies significantly - investigate timing-related issues",
                    "Consider adding timeouts and ensuring async operations complete",
                ]
            )

        if patterns.get("alternating") == "high":
            recommendations.extend(
                [
                    "Test alternates between pass/fail - check for initialization order issues",
                    "Verify test isolation and cleanup between runs",
                    DETERMINISTIC_RECOMMENDATION,
                    RACE_CONDITION_RECOMMENDATION,
                ]
            )

        if patterns.get("environment") == "resource_contention":
            recommendations.extend(
                [
                    "Test may be affected by resource contention - consider adding delays",
                    "Run test with reduced parallelism to isolate resource issues",
                ]
            )

        recommendations.append(MONITOR_RECOMMENDATION)

        # dict preserves first-insertion order
        return list(dict.fromkeys(recommendations))
