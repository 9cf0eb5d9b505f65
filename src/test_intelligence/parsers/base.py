"""
Base parser for test report formats.

Each supported format provides one ``BaseParser`` implementation that turns
raw report text into a canonical ``TestSuiteResult``.
"""

import json
import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..errors import ParseError
from ..models import TestStatus, TestSuiteResult


class BaseParser(ABC):
    """Strategy interface implemented once per report format."""

    #: Value stored in ``TestSuiteResult.framework``
    framework: str = "unknown"

    @abstractmethod
    def parse(self, content: str) -> TestSuiteResult:
        """
        Parse report text into a canonical suite result.

        Args:
            content: Raw report text

        Returns:
            Parsed suite result

        Raises:
            ParseError: If the content is empty or cannot be parsed
        """

    def _load_json(self, content: str) -> Dict[str, Any]:
        """Decode a JSON report whose top level must be an object."""
        if not content or not content.strip():
            raise ParseError(f"Empty {self.framework} report content")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Invalid JSON format in {self.framework} test results: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ParseError(
                f"Invalid {self.framework} JSON format: expected object"
            )
        return data


class JsonReportParser(BaseParser):
    """
    Base for JSON report formats.

    Subclasses walk the decoded report in ``parse_report``; a report that
    decodes but has the wrong shape (a list where an object is expected, a
    string error record) is raised as ``ParseError``.
    """

    def parse(self, content: str) -> TestSuiteResult:
        data = self._load_json(content)
        try:
            return self.parse_report(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise ParseError(f"Invalid {self.framework} JSON format: {e}") from e

    @abstractmethod
    def parse_report(self, data: Dict[str, Any]) -> TestSuiteResult:
        """Build the suite result from a decoded report object."""


def map_status(
    raw: Any, table: Dict[str, TestStatus], default: TestStatus
) -> TestStatus:
    """Map a framework status string through ``table``, falling back to ``default``."""
    return table.get(str(raw) if raw is not None else "", default)


def non_negative(value: Any) -> float:
    """Coerce a reported number (duration, time attribute) to a finite non-negative float."""
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(number, 0.0)


def parse_report_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or epoch-milliseconds timestamp, if any."""
    if isinstance(value, bool) or not value:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def now() -> datetime:
    return datetime.now(timezone.utc)
