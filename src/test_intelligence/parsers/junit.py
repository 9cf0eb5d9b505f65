"""
JUnit XML report parser.

Scans the report with regular expressions rather than a full XML grammar so
that truncated or slightly malformed reports still yield every well-formed
test case. An unterminated ``<testcase>`` block is skipped and parsing
continues after its start tag.
"""

import html
import re
from typing import Dict, List, Optional, Tuple

from loguru import logger

from ..errors import MalformedFragmentError, ParseError
from ..models import TestResult, TestStatus, TestSuiteResult
from .base import BaseParser, non_negative, now, parse_report_timestamp
from .merger import DEFAULT_MERGED_SUITE_NAME, merge_suites

# <testsuite ...>...</testsuite>, excluding the <testsuites> wrapper and
# self-closing empty suites
SUITE_RE = re.compile(r"<testsuite(?=[\s>])([^>]*)(?<!/)>(.*?)</testsuite>", re.DOTALL)
TESTCASE_START_RE = re.compile(r"<testcase\b[^>]*>")
TESTCASE_END = "</testcase>"
ATTRIBUTE_RE = re.compile(r"""([\w:.-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
TAG_RE = re.compile(r"<[^>]*>")
CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)


def parse_attributes(tag: str) -> Dict[str, str]:
    """Extract ``name="value"`` pairs from a start tag."""
    attrs: Dict[str, str] = {}
    for match in ATTRIBUTE_RE.finditer(tag):
        value = match.group(2) if match.group(2) is not None else match.group(3)
        attrs[match.group(1)] = html.unescape(value)
    return attrs


def strip_tags(content: str) -> str:
    """Remove markup from element content, keeping CDATA text verbatim."""
    parts: List[str] = []
    pos = 0
    for match in CDATA_RE.finditer(content):
        parts.append(html.unescape(TAG_RE.sub("", content[pos:match.start()])))
        parts.append(match.group(1))
        pos = match.end()
    parts.append(html.unescape(TAG_RE.sub("", content[pos:])))
    return "".join(parts).strip()


def find_element(content: str, tag: str) -> Optional[Tuple[Dict[str, str], str]]:
    """
    Find the first ``<tag>`` element in ``content``.

    Returns:
        ``(attributes, text)`` or None if the tag is absent. ``text`` is empty
        for self-closing elements.
    """
    pattern = re.compile(
        rf"<{tag}\b([^>]*?)(?:/>|>(.*?)</{tag}\s*>)", re.DOTALL
    )
    match = pattern.search(content)
    if not match:
        return None
    return parse_attributes(match.group(1)), strip_tags(match.group(2) or "")


def has_element(content: str, tag: str) -> bool:
    return re.search(rf"<{tag}\b", content) is not None


class JUnitParser(BaseParser):
    """Parser for JUnit XML reports (one or more ``<testsuite>`` blocks)."""

    framework = "junit"

    def __init__(self, merged_suite_name: str = DEFAULT_MERGED_SUITE_NAME):
        self.merged_suite_name = merged_suite_name

    def parse(self, content: str) -> TestSuiteResult:
        if not content or not content.strip():
            raise ParseError("Empty test result content")

        suites: List[TestSuiteResult] = []
        for match in SUITE_RE.finditer(content):
            suites.append(self._parse_suite(match.group(1), match.group(2)))

        return merge_suites(suites, self.merged_suite_name)

    def _parse_suite(self, start_attrs: str, body: str) -> TestSuiteResult:
        attrs = parse_attributes(start_attrs)
        suite_name = attrs.get("name") or "Unknown Suite"
        timestamp = parse_report_timestamp(attrs.get("timestamp")) or now()

        results: List[TestResult] = []
        pos = 0
        while True:
            match = TESTCASE_START_RE.search(body, pos)
            if match is None:
                break
            pos = match.end()

            start_tag = match.group(0)
            inner = ""
            if not start_tag.rstrip().endswith("/>"):
                try:
                    inner, pos = self._read_testcase_body(body, pos)
                except MalformedFragmentError as e:
                    logger.warning(f"Skipping malformed test case in {suite_name}: {e}")
                    continue

            results.append(self._build_result(suite_name, start_tag, inner))

        suite = TestSuiteResult.from_results(
            suite_name=suite_name,
            timestamp=timestamp,
            framework=self.framework,
            results=results,
        )
        if "tests" in attrs and attrs["tests"] != str(suite.total_tests):
            logger.debug(
                f"Suite {suite_name} declares {attrs['tests']} tests, "
                f"parsed {suite.total_tests}"
            )
        return suite

    def _read_testcase_body(self, body: str, start: int) -> Tuple[str, int]:
        end = body.find(TESTCASE_END, start)
        if end == -1:
            raise MalformedFragmentError(
                f"unterminated <testcase> at offset {start}"
            )
        return body[start:end], end + len(TESTCASE_END)

    def _build_result(self, suite_name: str, start_tag: str, inner: str) -> TestResult:
        attrs = parse_attributes(start_tag)
        test_name = attrs.get("name") or "Unknown Test"
        result = TestResult(
            test_id=f"{suite_name}:{test_name}",
            test_suite=suite_name,
            test_name=test_name,
            status=TestStatus.PASSED,
            duration=non_negative(attrs.get("time")) * 1000,
        )

        # Later checks override earlier ones: skipped > error > failure.
        if has_element(inner, "failure"):
            result.status = TestStatus.FAILED
            self._apply_error(result, find_element(inner, "failure"))

        if has_element(inner, "error"):
            result.status = TestStatus.ERROR
            self._apply_error(result, find_element(inner, "error"))

        if has_element(inner, "skipped"):
            result.status = TestStatus.SKIPPED

        return result

    @staticmethod
    def _apply_error(
        result: TestResult, element: Optional[Tuple[Dict[str, str], str]]
    ) -> None:
        if element is None:
            return
        attrs, text = element
        result.error_message = text or attrs.get("message") or None
        result.stack_trace = text or None
