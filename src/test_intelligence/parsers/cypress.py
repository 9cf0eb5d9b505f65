"""Cypress JSON report parser."""

from typing import Any, Dict, Iterator, List, Tuple

from ..models import TestResult, TestStatus, TestSuiteResult
from .base import JsonReportParser, map_status, non_negative, now

CYPRESS_STATUS = {
    "passed": TestStatus.PASSED,
    "failed": TestStatus.FAILED,
}


def _spec_blocks(run: Dict[str, Any]) -> Iterator[Tuple[Dict[str, Any], List[Any]]]:
    """Yield ``(spec, tests)`` for every spec carried by one run."""
    spec = run.get("spec")
    if spec:
        yield spec, run.get("tests") or spec.get("tests") or []
        return

    specs = run.get("specs") or []
    for spec in specs:
        tests = spec.get("tests")
        if tests is None and len(specs) == 1:
            tests = run.get("tests")
        yield spec, tests or []


def _duration(test: Dict[str, Any]) -> float:
    if test.get("duration") is not None:
        return non_negative(test.get("duration"))
    attempts = test.get("attempts") or []
    if attempts:
        last = attempts[-1]
        return non_negative(last.get("duration", last.get("wallClockDuration")))
    return 0.0


class CypressParser(JsonReportParser):
    """
    Parser for Cypress run results.

    Test titles may be the list of nested ``describe``/``it`` titles; they are
    joined with `` > ``. The spec's relative path is the suite identity.
    """

    framework = "cypress"

    def parse_report(self, data: Dict[str, Any]) -> TestSuiteResult:
        results: List[TestResult] = []
        for run in data.get("runs") or []:
            for spec, tests in _spec_blocks(run):
                spec_path = spec.get("relative") or spec.get("file") or "unknown.spec"
                for test in tests:
                    results.append(self._build_result(spec_path, test))

        return TestSuiteResult.from_results(
            suite_name=data.get("runUrl") or "Cypress Test Suite",
            timestamp=now(),
            framework=self.framework,
            results=results,
        )

    def _build_result(self, spec_path: str, test: Dict[str, Any]) -> TestResult:
        raw_title = test.get("title")
        if isinstance(raw_title, list):
            title = " > ".join(str(t) for t in raw_title)
        else:
            title = "" if raw_title is None else str(raw_title)

        result = TestResult(
            test_id=f"{spec_path}:{title}",
            test_suite=spec_path,
            test_name=title,
            status=map_status(test.get("state"), CYPRESS_STATUS, TestStatus.SKIPPED),
            duration=_duration(test),
        )

        err = test.get("err")
        if err:
            result.error_message = err.get("message")
            result.stack_trace = err.get("stack")
        elif test.get("displayError"):
            result.error_message = test["displayError"]
            result.stack_trace = test["displayError"]

        return result
