"""
Report parsers.

One ``BaseParser`` implementation per supported format, selected through a
dispatch table keyed by ``ReportFormat``:

    >>> from test_intelligence.parsers import parse
    >>> suite = parse(xml_text, "junit")
    >>> print(suite.total_tests, suite.failed_tests)
"""

from pathlib import Path
from typing import Dict, Optional, Union

from loguru import logger

from ..errors import ParseError
from ..models import ReportFormat, TestSuiteResult
from .base import BaseParser, JsonReportParser
from .cypress import CypressParser
from .jest import JestParser, VitestParser
from .junit import JUnitParser
from .merger import DEFAULT_MERGED_SUITE_NAME, merge_suites
from .mocha import MochaParser
from .playwright import PlaywrightParser

FormatLike = Union[ReportFormat, str]


class TestResultParser:
    """Parse test reports of any supported format into canonical suite results."""

    def __init__(self, merged_suite_name: str = DEFAULT_MERGED_SUITE_NAME):
        """
        Initialize parser registry.

        Args:
            merged_suite_name: Suite name used when a JUnit report holds
                several ``<testsuite>`` blocks
        """
        self.parsers: Dict[ReportFormat, BaseParser] = {
            ReportFormat.JUNIT: JUnitParser(merged_suite_name),
            ReportFormat.JEST: JestParser(),
            ReportFormat.MOCHA: MochaParser(),
            ReportFormat.VITEST: VitestParser(),
            ReportFormat.CYPRESS: CypressParser(),
            ReportFormat.PLAYWRIGHT: PlaywrightParser(),
        }

    def parse_content(self, content: str, report_format: FormatLike) -> TestSuiteResult:
        """
        Parse report text.

        Args:
            content: Raw report text
            report_format: One of the ``ReportFormat`` values

        Returns:
            Canonical suite result

        Raises:
            ParseError: If the format is unsupported or the content is invalid
        """
        parser = self._get_parser(report_format)
        suite = parser.parse(content)
        logger.debug(
            f"Parsed {parser.framework} report: {suite.total_tests} tests, "
            f"{suite.failed_tests} failed, {suite.skipped_tests} skipped"
        )
        return suite

    def parse_file(
        self, file_path: Union[str, Path], report_format: FormatLike
    ) -> TestSuiteResult:
        """
        Read a UTF-8 report from disk and parse it.

        Raises:
            ParseError: If the format is unsupported or the content is invalid
            FileNotFoundError: If the file doesn't exist
        """
        content = Path(file_path).read_text(encoding="utf-8")
        return self.parse_content(content, report_format)

    def register_parser(self, report_format: ReportFormat, parser: BaseParser) -> None:
        """Register or replace the parser for a format."""
        self.parsers[report_format] = parser

    def _get_parser(self, report_format: FormatLike) -> BaseParser:
        try:
            key = ReportFormat(report_format)
        except ValueError:
            raise ParseError(f"Unsupported test format: {report_format}") from None

        parser = self.parsers.get(key)
        if parser is None:
            raise ParseError(f"Unsupported test format: {report_format}")
        return parser


_default_parser: Optional[TestResultParser] = None


def parse(content: str, report_format: FormatLike) -> TestSuiteResult:
    """Parse report text with the default parser registry."""
    global _default_parser
    if _default_parser is None:
        _default_parser = TestResultParser()
    return _default_parser.parse_content(content, report_format)


__all__ = [
    "BaseParser",
    "CypressParser",
    "JUnitParser",
    "JsonReportParser",
    "JestParser",
    "MochaParser",
    "PlaywrightParser",
    "TestResultParser",
    "VitestParser",
    "merge_suites",
    "parse",
]
