"""Mocha JSON report parser."""

from typing import Any, Dict, List

from ..models import TestResult, TestStatus, TestSuiteResult
from .base import JsonReportParser, map_status, non_negative, now, parse_report_timestamp

# Anything else (pending, undefined) is reported as skipped.
MOCHA_STATUS = {
    "passed": TestStatus.PASSED,
    "failed": TestStatus.FAILED,
}


class MochaParser(JsonReportParser):
    """Parser for Mocha JSON output with nested ``suites[]``."""

    framework = "mocha"

    def parse_report(self, data: Dict[str, Any]) -> TestSuiteResult:
        results: List[TestResult] = []
        for suite in data.get("suites") or []:
            self._process_suite(suite, "", results)

        stats = data.get("stats") or {}
        return TestSuiteResult.from_results(
            suite_name=data.get("title") or "Mocha Test Suite",
            timestamp=parse_report_timestamp(stats.get("start")) or now(),
            framework=self.framework,
            results=results,
        )

    def _process_suite(
        self, suite: Dict[str, Any], parent_name: str, results: List[TestResult]
    ) -> None:
        title = str(suite.get("title", ""))
        suite_name = f"{parent_name} > {title}" if parent_name else title

        for test in suite.get("tests") or []:
            results.append(self._build_result(suite_name, test))

        for child in suite.get("suites") or []:
            self._process_suite(child, suite_name, results)

    def _build_result(self, suite_name: str, test: Dict[str, Any]) -> TestResult:
        title = str(test.get("title", ""))
        result = TestResult(
            test_id=f"{suite_name}:{title}",
            test_suite=suite_name,
            test_name=title,
            status=map_status(test.get("state"), MOCHA_STATUS, TestStatus.SKIPPED),
            duration=non_negative(test.get("duration")),
        )

        err = test.get("err")
        if err:
            result.error_message = err.get("message")
            result.stack_trace = err.get("stack")

        return result
