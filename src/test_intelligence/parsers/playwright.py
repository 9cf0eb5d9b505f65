"""Playwright JSON report parser."""

from typing import Any, Dict, List

from ..models import TestResult, TestStatus, TestSuiteResult
from .base import JsonReportParser, map_status, non_negative, now, parse_report_timestamp

PLAYWRIGHT_STATUS = {
    "passed": TestStatus.PASSED,
    "failed": TestStatus.FAILED,
    "skipped": TestStatus.SKIPPED,
    "pending": TestStatus.SKIPPED,
    "timedOut": TestStatus.ERROR,
}


class PlaywrightParser(JsonReportParser):
    """
    Parser for Playwright's JSON reporter.

    Every result attempt (retries included) of every test becomes one
    flattened ``TestResult``.
    """

    framework = "playwright"

    def parse_report(self, data: Dict[str, Any]) -> TestSuiteResult:
        results: List[TestResult] = []
        for suite in data.get("suites") or []:
            self._process_suite(suite, results)

        config = data.get("config") or {}
        stats = data.get("stats") or {}
        return TestSuiteResult.from_results(
            suite_name=config.get("name") or "Playwright Test Suite",
            timestamp=parse_report_timestamp(stats.get("startTime")) or now(),
            framework=self.framework,
            results=results,
        )

    def _process_suite(self, suite: Dict[str, Any], results: List[TestResult]) -> None:
        suite_title = suite.get("title") or "Playwright Suite"

        for spec in suite.get("specs") or []:
            spec_file = spec.get("file") or suite.get("file") or suite_title
            for test in spec.get("tests") or []:
                title = str(test.get("title") or spec.get("title") or "")
                for attempt in test.get("results") or []:
                    results.append(
                        self._build_result(spec_file, suite_title, title, attempt)
                    )

        for child in suite.get("suites") or []:
            self._process_suite(child, results)

    def _build_result(
        self,
        spec_file: str,
        suite_title: str,
        title: str,
        attempt: Dict[str, Any],
    ) -> TestResult:
        result = TestResult(
            test_id=f"{spec_file}:{title}",
            test_suite=suite_title,
            test_name=title,
            status=map_status(attempt.get("status"), PLAYWRIGHT_STATUS, TestStatus.ERROR),
            duration=non_negative(attempt.get("duration")),
        )

        error = attempt.get("error")
        if error:
            result.error_message = error.get("message")
            result.stack_trace = error.get("stack")

        return result
