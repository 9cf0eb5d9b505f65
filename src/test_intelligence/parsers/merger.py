"""Merge suite fragments found in one report into one suite result."""

from typing import List

from ..errors import ParseError
from ..models import TestSuiteResult

DEFAULT_MERGED_SUITE_NAME = "Merged Test Suite"


def merge_suites(
    suites: List[TestSuiteResult],
    merged_name: str = DEFAULT_MERGED_SUITE_NAME,
) -> TestSuiteResult:
    """
    Combine suite fragments in order.

    The first fragment's timestamp and framework are kept, counts and
    durations are summed and results concatenated in fragment order. A single
    fragment is returned unchanged.

    Args:
        suites: Fragments in document order
        merged_name: Suite name given to a merged result

    Returns:
        The merged suite result

    Raises:
        ParseError: If ``suites`` is empty
    """
    if not suites:
        raise ParseError("No test suites found")

    if len(suites) == 1:
        return suites[0]

    first = suites[0]
    merged = TestSuiteResult(
        suite_name=merged_name,
        timestamp=first.timestamp,
        framework=first.framework,
    )

    for suite in suites:
        merged.total_tests += suite.total_tests
        merged.passed_tests += suite.passed_tests
        merged.failed_tests += suite.failed_tests
        merged.skipped_tests += suite.skipped_tests
        merged.duration += suite.duration
        merged.results.extend(suite.results)

    return merged
