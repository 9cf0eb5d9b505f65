"""
test-intelligence: test report normalization and per-test analytics.

Parses reports from JUnit XML, Jest, Mocha, Vitest, Cypress and Playwright
into one canonical schema and maintains longitudinal per-test state:
execution history, coverage, flakiness and performance trend.

Parsing API:
    >>> from test_intelligence import parse
    >>> suite = parse(open("junit.xml").read(), "junit")
    >>> print(f"{suite.passed_tests}/{suite.total_tests} passed")

Recording API:
    >>> from test_intelligence import InMemoryGraphStore, SQLiteSuiteResultStore, TestRecorder
    >>> recorder = TestRecorder(InMemoryGraphStore(), SQLiteSuiteResultStore("results.db"))
    >>> flaky = recorder.record_test_results(suite)
    >>> metrics = recorder.get_performance_metrics(suite.results[0].test_id)
"""

__version__ = "0.1.0"

from .analysis import CoverageAggregator, FlakinessAnalyzer, PerformanceTracker, aggregate
from .config import TestIntelligenceConfig, load_config
from .errors import (
    EntityNotFoundError,
    MalformedFragmentError,
    ParseError,
    StorageError,
    TestIntelligenceError,
    TestRecordingFailed,
)
from .logging_config import setup_logging
from .models import (
    CoverageMetrics,
    FlakyTestAnalysis,
    HistoricalDataPoint,
    PerformanceSample,
    PerformanceTrend,
    ReportFormat,
    TestCoverageAnalysis,
    TestEntity,
    TestEntityStatus,
    TestExecution,
    TestPerformanceMetrics,
    TestResult,
    TestStatus,
    TestSuiteResult,
    TestType,
)
from .parsers import TestResultParser, merge_suites, parse
from .recorder import TestRecorder
from .storage import SQLiteSuiteResultStore
from .stores import GraphStore, InMemoryGraphStore, InMemorySuiteResultStore, SuiteResultStore

__all__ = [
    # Main API
    "TestRecorder",
    "TestResultParser",
    "parse",
    "merge_suites",
    # Analysis
    "CoverageAggregator",
    "FlakinessAnalyzer",
    "PerformanceTracker",
    "aggregate",
    # Stores
    "GraphStore",
    "SuiteResultStore",
    "InMemoryGraphStore",
    "InMemorySuiteResultStore",
    "SQLiteSuiteResultStore",
    # Configuration
    "TestIntelligenceConfig",
    "load_config",
    "setup_logging",
    # Models
    "CoverageMetrics",
    "FlakyTestAnalysis",
    "HistoricalDataPoint",
    "PerformanceSample",
    "TestCoverageAnalysis",
    "TestEntity",
    "TestExecution",
    "TestPerformanceMetrics",
    "TestResult",
    "TestSuiteResult",
    # Enums
    "PerformanceTrend",
    "ReportFormat",
    "TestEntityStatus",
    "TestStatus",
    "TestType",
    # Errors
    "EntityNotFoundError",
    "MalformedFragmentError",
    "ParseError",
    "StorageError",
    "TestIntelligenceError",
    "TestRecordingFailed",
]
