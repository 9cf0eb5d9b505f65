"""Jest and Vitest JSON report parsers."""

from typing import Any, Dict, List

from ..models import TestResult, TestStatus, TestSuiteResult
from .base import JsonReportParser, map_status, non_negative, now, parse_report_timestamp

JEST_STATUS = {
    "passed": TestStatus.PASSED,
    "failed": TestStatus.FAILED,
    "pending": TestStatus.SKIPPED,
    "todo": TestStatus.SKIPPED,
}


class JestParser(JsonReportParser):
    """
    Parser for ``jest --json`` output.

    Walks ``testResults[].testResults[]``; each file entry becomes the suite
    of the tests it contains.
    """

    framework = "jest"
    default_suite_name = "Jest Test Suite"
    default_file_name = "Jest Suite"

    def parse_report(self, data: Dict[str, Any]) -> TestSuiteResult:
        results: List[TestResult] = []
        test_files = data.get("testResults") or []
        for test_file in test_files:
            suite_name = (
                test_file.get("testFilePath")
                or test_file.get("name")
                or self.default_file_name
            )
            for test in test_file.get("testResults") or []:
                results.append(self._build_result(suite_name, test))

        first_name = test_files[0].get("name") if test_files else None
        return TestSuiteResult.from_results(
            suite_name=first_name or self.default_suite_name,
            timestamp=parse_report_timestamp(data.get("startTime")) or now(),
            framework=self.framework,
            results=results,
        )

    def _build_result(self, suite_name: str, test: Dict[str, Any]) -> TestResult:
        title = str(test.get("title", ""))
        result = TestResult(
            test_id=f"{suite_name}:{title}",
            test_suite=suite_name,
            test_name=title,
            status=map_status(test.get("status"), JEST_STATUS, TestStatus.ERROR),
            duration=non_negative(test.get("duration")),
        )

        failure_messages = test.get("failureMessages") or []
        if failure_messages:
            joined = "\n".join(str(m) for m in failure_messages)
            result.error_message = joined
            result.stack_trace = joined

        return result


class VitestParser(JestParser):
    """Vitest's JSON reporter emits the Jest schema, fallback names included."""

    framework = "vitest"
