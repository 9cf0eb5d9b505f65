"""Shared fixtures for test-intelligence tests."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from loguru import logger

from test_intelligence.config import TestIntelligenceConfig
from test_intelligence.models import (
    CoverageMetrics,
    TestResult,
    TestStatus,
    TestSuiteResult,
)
from test_intelligence.recorder import TestRecorder
from test_intelligence.stores import InMemoryGraphStore, InMemorySuiteResultStore

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def make_result(
    test_id: str = "MathSuite:adds numbers",
    status: TestStatus = TestStatus.PASSED,
    duration: float = 100.0,
    test_suite: str = "MathSuite",
    test_name: Optional[str] = None,
    error_message: Optional[str] = None,
    coverage: Optional[CoverageMetrics] = None,
) -> TestResult:
    return TestResult(
        test_id=test_id,
        test_suite=test_suite,
        test_name=test_name or test_id.split(":", 1)[-1],
        status=status,
        duration=duration,
        error_message=error_message,
        coverage=coverage,
    )


def make_suite(
    results: List[TestResult],
    timestamp: Optional[datetime] = None,
    suite_name: str = "MathSuite",
    framework: str = "jest",
) -> TestSuiteResult:
    return TestSuiteResult.from_results(
        suite_name=suite_name,
        timestamp=timestamp or BASE_TIME,
        framework=framework,
        results=results,
    )


def run_at(index: int) -> datetime:
    """Timestamp of the ``index``-th simulated run, one minute apart."""
    return BASE_TIME + timedelta(minutes=index)


@pytest.fixture
def config():
    """Default configuration, independent of the caller's environment."""
    return TestIntelligenceConfig(_env_file=None)


@pytest.fixture
def graph_store():
    return InMemoryGraphStore()


@pytest.fixture
def suite_store():
    return InMemorySuiteResultStore()


@pytest.fixture
def recorder(graph_store, suite_store, config):
    return TestRecorder(graph_store, suite_store, config)


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
