"""Unit tests for the JUnit XML parser."""

from datetime import datetime, timezone

import pytest

from test_intelligence.errors import ParseError
from test_intelligence.models import TestStatus
from test_intelligence.parsers import TestResultParser
from test_intelligence.parsers.junit import JUnitParser, find_element, parse_attributes

SINGLE_SUITE = """<?xml version="1.0" encoding="UTF-8"?>
<testsuite name="MathSuite" tests="4" timestamp="2024-01-15T10:00:00Z">
  <testcase classname="math" name="adds numbers" time="0.125"/>
  <testcase classname="math" name="divides by zero" time="0.5">
    <failure message="expected Infinity">AssertionError: expected Infinity
    at divide (math.js:10)</failure>
  </testcase>
  <testcase classname="math" name="rounds" time="0.01">
    <skipped/>
  </testcase>
  <testcase classname="math" name="parses input" time="0.2">
    <error message="TypeError: undefined"/>
  </testcase>
</testsuite>
"""

MULTI_SUITE = """<?xml version="1.0"?>
<testsuites name="all">
  <testsuite name="First" timestamp="2024-01-15T10:00:00Z">
    <testcase name="one" time="1"/>
    <testcase name="two" time="2"><failure>boom</failure></testcase>
  </testsuite>
  <testsuite name="Second" timestamp="2024-01-16T10:00:00Z">
    <testcase name="three" time="3"><skipped/></testcase>
  </testsuite>
</testsuites>
"""


class TestJUnitParser:
    """Test JUnit report parsing."""

    def setup_method(self):
        self.parser = JUnitParser()

    def test_single_suite(self):
        """Test parsing one suite with every status."""
        suite = self.parser.parse(SINGLE_SUITE)

        assert suite.suite_name == "MathSuite"
        assert suite.framework == "junit"
        assert suite.timestamp == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        assert suite.total_tests == 4
        assert suite.passed_tests == 1
        assert suite.failed_tests == 2
        assert suite.skipped_tests == 1

        statuses = [r.status for r in suite.results]
        assert statuses == [
            TestStatus.PASSED,
            TestStatus.FAILED,
            TestStatus.SKIPPED,
            TestStatus.ERROR,
        ]

    def test_counts_match_results(self):
        """Test totals always equal the sum of the status counts."""
        suite = self.parser.parse(SINGLE_SUITE)

        assert suite.total_tests == len(suite.results)
        assert suite.total_tests == (
            suite.passed_tests + suite.failed_tests + suite.skipped_tests
        )

    def test_durations_converted_to_ms(self):
        """Test time attributes in seconds become milliseconds."""
        suite = self.parser.parse(SINGLE_SUITE)

        assert suite.results[0].duration == pytest.approx(125.0)
        assert suite.duration == pytest.approx(125.0 + 500.0 + 10.0 + 200.0)

    def test_test_id_format(self):
        """Test ids combine suite name and test name."""
        suite = self.parser.parse(SINGLE_SUITE)

        assert suite.results[0].test_id == "MathSuite:adds numbers"
        assert suite.results[0].test_suite == "MathSuite"
        assert suite.results[0].test_name == "adds numbers"

    def test_failure_text_used_for_message_and_trace(self):
        """Test failure element text fills message and stack trace."""
        result = self.parser.parse(SINGLE_SUITE).results[1]

        assert result.error_message.startswith("AssertionError: expected Infinity")
        assert "math.js:10" in result.stack_trace

    def test_error_message_attribute_fallback(self):
        """Test a self-closing error uses its message attribute."""
        result = self.parser.parse(SINGLE_SUITE).results[3]

        assert result.error_message == "TypeError: undefined"
        assert result.stack_trace is None

    def test_skipped_overrides_failure(self):
        """Test a case carrying both failure and skipped is skipped."""
        content = """
        <testsuite name="S">
          <testcase name="t" time="0.1">
            <failure>broken</failure>
            <skipped/>
          </testcase>
        </testsuite>
        """
        result = self.parser.parse(content).results[0]

        assert result.status == TestStatus.SKIPPED

    def test_error_overrides_failure(self):
        """Test error wins over failure when both are present."""
        content = """
        <testsuite name="S">
          <testcase name="t"><failure>f</failure><error>e</error></testcase>
        </testsuite>
        """
        result = self.parser.parse(content).results[0]

        assert result.status == TestStatus.ERROR
        assert result.error_message == "e"

    def test_multiple_suites_merged(self):
        """Test several suites merge into one result in document order."""
        suite = self.parser.parse(MULTI_SUITE)

        assert suite.suite_name == "Merged Test Suite"
        assert suite.timestamp == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        assert [r.test_id for r in suite.results] == [
            "First:one",
            "First:two",
            "Second:three",
        ]
        assert suite.total_tests == 3
        assert suite.passed_tests == 1
        assert suite.failed_tests == 1
        assert suite.skipped_tests == 1
        assert suite.duration == pytest.approx(6000.0)

    def test_custom_merged_suite_name(self):
        """Test the merged suite name is configurable."""
        suite = JUnitParser(merged_suite_name="Nightly").parse(MULTI_SUITE)

        assert suite.suite_name == "Nightly"

    def test_empty_content_raises(self):
        """Test empty input is rejected."""
        with pytest.raises(ParseError, match="Empty test result content"):
            self.parser.parse("")

        with pytest.raises(ParseError):
            self.parser.parse("   \n  ")

    def test_no_suites_raises(self):
        """Test a document without testsuite elements is rejected."""
        with pytest.raises(ParseError, match="No test suites found"):
            self.parser.parse("<testsuites></testsuites>")

    def test_unterminated_testcase_skipped(self, log_messages):
        """Test an unterminated test case is skipped and parsing continues."""
        content = """
        <testsuite name="S">
          <testcase name="broken" time="1">
            <failure>never closed
          <testcase name="fine" time="2"/>
        </testsuite>
        """
        suite = self.parser.parse(content)

        assert [r.test_name for r in suite.results] == ["fine"]
        assert suite.results[0].status == TestStatus.PASSED
        assert any("Skipping malformed test case" in m for m in log_messages)

    def test_missing_names_use_defaults(self):
        """Test unnamed suites and cases get placeholder names."""
        suite = self.parser.parse("<testsuite><testcase/></testsuite>")

        assert suite.suite_name == "Unknown Suite"
        assert suite.results[0].test_id == "Unknown Suite:Unknown Test"
        assert suite.results[0].duration == 0.0

    def test_invalid_time_treated_as_zero(self):
        """Test non-numeric or negative times become zero."""
        content = """
        <testsuite name="S">
          <testcase name="a" time="abc"/>
          <testcase name="b" time="-2"/>
        </testsuite>
        """
        suite = self.parser.parse(content)

        assert [r.duration for r in suite.results] == [0.0, 0.0]

    def test_non_finite_time_treated_as_zero(self):
        content = """
        <testsuite name="S">
          <testcase name="a" time="nan"/>
          <testcase name="b" time="inf"/>
          <testcase name="c" time="0.5"/>
        </testsuite>
        """
        suite = self.parser.parse(content)

        assert [r.duration for r in suite.results] == [0.0, 0.0, 500.0]
        assert suite.duration == 500.0

    def test_entities_unescaped(self):
        """Test XML entities in attributes and text are decoded."""
        content = """
        <testsuite name="A &amp; B">
          <testcase name="handles &lt;tags&gt;">
            <failure><![CDATA[expected <div> & got <span>]]></failure>
          </testcase>
        </testsuite>
        """
        result = self.parser.parse(content).results[0]

        assert result.test_suite == "A & B"
        assert result.test_name == "handles <tags>"
        assert result.error_message == "expected <div> & got <span>"

    def test_declared_count_mismatch_logged(self, log_messages):
        """Test a wrong tests attribute is logged, parsed results win."""
        content = '<testsuite name="S" tests="5"><testcase name="a"/></testsuite>'
        suite = self.parser.parse(content)

        assert suite.total_tests == 1
        assert any("declares 5 tests" in m for m in log_messages)


class TestJUnitHelpers:
    """Test attribute and element helpers."""

    def test_parse_attributes_quotes(self):
        attrs = parse_attributes("""<testcase name="a" classname='b' time="1.5">""")

        assert attrs == {"name": "a", "classname": "b", "time": "1.5"}

    def test_find_element_self_closing(self):
        attrs, text = find_element('<error message="boom"/>', "error")

        assert attrs == {"message": "boom"}
        assert text == ""

    def test_find_element_absent(self):
        assert find_element("<skipped/>", "failure") is None


class TestParserDispatch:
    """Test format dispatch through TestResultParser."""

    def test_dispatch_by_string(self):
        suite = TestResultParser().parse_content(SINGLE_SUITE, "junit")

        assert suite.framework == "junit"

    def test_unsupported_format(self):
        with pytest.raises(ParseError, match="Unsupported test format: tap"):
            TestResultParser().parse_content(SINGLE_SUITE, "tap")

    def test_parse_file(self, tmp_path):
        report = tmp_path / "junit.xml"
        report.write_text(SINGLE_SUITE, encoding="utf-8")

        suite = TestResultParser().parse_file(report, "junit")

        assert suite.total_tests == 4

    def test_parse_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TestResultParser().parse_file(tmp_path / "missing.xml", "junit")
