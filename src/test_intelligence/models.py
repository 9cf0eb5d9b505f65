"""
Data models for test result ingestion and per-test intelligence.

Provides the canonical, framework-independent result shape that every parser
converges to, plus the persistent test entity and the derived analysis records
maintained by the recorder.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class TestStatus(str, Enum):
    """Outcome of one test in one run."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"


class TestEntityStatus(str, Enum):
    """Status stored on a test entity, derived from its latest execution."""

    PASSING = "passing"
    FAILING = "failing"
    SKIPPED = "skipped"
    UNKNOWN = "unknown"


class TestType(str, Enum):
    """Type of test."""

    UNIT = "unit"
    INTEGRATION = "integration"
    E2E = "e2e"


class ReportFormat(str, Enum):
    """Report formats accepted by the parsers."""

    JUNIT = "junit"
    JEST = "jest"
    MOCHA = "mocha"
    VITEST = "vitest"
    CYPRESS = "cypress"
    PLAYWRIGHT = "playwright"


class PerformanceTrend(str, Enum):
    """Direction of a test's success rate over recent executions."""

    IMPROVING = "improving"
    STABLE = "stable"
    DEGRADING = "degrading"


class RelationshipType(str, Enum):
    """Relationship types written to the graph store."""

    COVERAGE_PROVIDES = "COVERAGE_PROVIDES"


ENTITY_STATUS_MAP: Dict[TestStatus, TestEntityStatus] = {
    TestStatus.PASSED: TestEntityStatus.PASSING,
    TestStatus.FAILED: TestEntityStatus.FAILING,
    TestStatus.SKIPPED: TestEntityStatus.SKIPPED,
    TestStatus.ERROR: TestEntityStatus.UNKNOWN,
}


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class CoverageMetrics:
    """Coverage percentages for one test or suite."""

    lines: float = 0.0
    branches: float = 0.0
    functions: float = 0.0
    statements: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "lines": self.lines,
            "branches": self.branches,
            "functions": self.functions,
            "statements": self.statements,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoverageMetrics":
        """Create from dictionary."""
        return cls(
            lines=data.get("lines", 0.0),
            branches=data.get("branches", 0.0),
            functions=data.get("functions", 0.0),
            statements=data.get("statements", 0.0),
        )


@dataclass
class PerformanceSample:
    """Resource samples reported alongside a test result."""

    memory_usage: Optional[float] = None
    cpu_usage: Optional[float] = None
    network_requests: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memory_usage": self.memory_usage,
            "cpu_usage": self.cpu_usage,
            "network_requests": self.network_requests,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PerformanceSample":
        return cls(
            memory_usage=data.get("memory_usage"),
            cpu_usage=data.get("cpu_usage"),
            network_requests=data.get("network_requests"),
        )


@dataclass
class TestResult:
    """One test's outcome in one run."""

    test_id: str
    test_suite: str
    test_name: str
    status: TestStatus
    duration: float  # milliseconds

    error_message: Optional[str] = None
    stack_trace: Optional[str] = None
    coverage: Optional[CoverageMetrics] = None
    performance: Optional[PerformanceSample] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "test_id": self.test_id,
            "test_suite": self.test_suite,
            "test_name": self.test_name,
            "status": self.status.value,
            "duration": self.duration,
            "error_message": self.error_message,
            "stack_trace": self.stack_trace,
            "coverage": self.coverage.to_dict() if self.coverage else None,
            "performance": self.performance.to_dict() if self.performance else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestResult":
        """Create from dictionary."""
        return cls(
            test_id=data["test_id"],
            test_suite=data["test_suite"],
            test_name=data["test_name"],
            status=TestStatus(data["status"]),
            duration=data.get("duration", 0.0),
            error_message=data.get("error_message"),
            stack_trace=data.get("stack_trace"),
            coverage=CoverageMetrics.from_dict(data["coverage"])
            if data.get("coverage")
            else None,
            performance=PerformanceSample.from_dict(data["performance"])
            if data.get("performance")
            else None,
        )


@dataclass
class TestSuiteResult:
    """
    One run's aggregate result.

    Counts and duration are always derived from ``results`` by the parsers
    (see ``from_results``); ``error`` results are counted as failed.
    """

    suite_name: str
    timestamp: datetime
    framework: str
    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    skipped_tests: int = 0
    duration: float = 0.0
    results: List[TestResult] = field(default_factory=list)
    coverage: Optional[CoverageMetrics] = None

    @classmethod
    def from_results(
        cls,
        suite_name: str,
        timestamp: datetime,
        framework: str,
        results: List[TestResult],
        coverage: Optional[CoverageMetrics] = None,
    ) -> "TestSuiteResult":
        """Build a suite result, summing counts and duration over ``results``."""
        suite = cls(
            suite_name=suite_name,
            timestamp=timestamp,
            framework=framework,
            results=list(results),
            coverage=coverage,
        )
        for result in suite.results:
            suite.total_tests += 1
            suite.duration += result.duration
            if result.status == TestStatus.PASSED:
                suite.passed_tests += 1
            elif result.status == TestStatus.SKIPPED:
                suite.skipped_tests += 1
            else:
                suite.failed_tests += 1
        return suite

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "suite_name": self.suite_name,
            "timestamp": self.timestamp.isoformat(),
            "framework": self.framework,
            "total_tests": self.total_tests,
            "passed_tests": self.passed_tests,
            "failed_tests": self.failed_tests,
            "skipped_tests": self.skipped_tests,
            "duration": self.duration,
            "results": [r.to_dict() for r in self.results],
            "coverage": self.coverage.to_dict() if self.coverage else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestSuiteResult":
        """Create from dictionary."""
        return cls(
            suite_name=data["suite_name"],
            timestamp=_parse_timestamp(data["timestamp"]),
            framework=data["framework"],
            total_tests=data.get("total_tests", 0),
            passed_tests=data.get("passed_tests", 0),
            failed_tests=data.get("failed_tests", 0),
            skipped_tests=data.get("skipped_tests", 0),
            duration=data.get("duration", 0.0),
            results=[TestResult.from_dict(r) for r in data.get("results", [])],
            coverage=CoverageMetrics.from_dict(data["coverage"])
            if data.get("coverage")
            else None,
        )


@dataclass
class TestExecution:
    """One historical run record of a test."""

    id: str
    timestamp: datetime
    status: TestStatus
    duration: float
    error_message: Optional[str] = None
    stack_trace: Optional[str] = None
    coverage: Optional[CoverageMetrics] = None
    performance: Optional[PerformanceSample] = None
    environment: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "duration": self.duration,
            "error_message": self.error_message,
            "stack_trace": self.stack_trace,
            "coverage": self.coverage.to_dict() if self.coverage else None,
            "performance": self.performance.to_dict() if self.performance else None,
            "environment": self.environment,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestExecution":
        return cls(
            id=data["id"],
            timestamp=_parse_timestamp(data["timestamp"]),
            status=TestStatus(data["status"]),
            duration=data.get("duration", 0.0),
            error_message=data.get("error_message"),
            stack_trace=data.get("stack_trace"),
            coverage=CoverageMetrics.from_dict(data["coverage"])
            if data.get("coverage")
            else None,
            performance=PerformanceSample.from_dict(data["performance"])
            if data.get("performance")
            else None,
            environment=data.get("environment", {}),
        )


@dataclass
class HistoricalDataPoint:
    """One point of a test's derived performance series."""

    timestamp: datetime
    execution_time: float
    success_rate: float
    coverage_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "execution_time": self.execution_time,
            "success_rate": self.success_rate,
            "coverage_percentage": self.coverage_percentage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalDataPoint":
        return cls(
            timestamp=_parse_timestamp(data["timestamp"]),
            execution_time=data.get("execution_time", 0.0),
            success_rate=data.get("success_rate", 0.0),
            coverage_percentage=data.get("coverage_percentage", 0.0),
        )


@dataclass
class TestPerformanceMetrics:
    """Rolling performance statistics for a test."""

    average_execution_time: float = 0.0
    p95_execution_time: float = 0.0
    success_rate: float = 0.0
    trend: PerformanceTrend = PerformanceTrend.STABLE
    historical_data: List[HistoricalDataPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average_execution_time": self.average_execution_time,
            "p95_execution_time": self.p95_execution_time,
            "success_rate": self.success_rate,
            "trend": self.trend.value,
            "historical_data": [p.to_dict() for p in self.historical_data],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestPerformanceMetrics":
        return cls(
            average_execution_time=data.get("average_execution_time", 0.0),
            p95_execution_time=data.get("p95_execution_time", 0.0),
            success_rate=data.get("success_rate", 0.0),
            trend=PerformanceTrend(data.get("trend", PerformanceTrend.STABLE.value)),
            historical_data=[
                HistoricalDataPoint.from_dict(p)
                for p in data.get("historical_data", [])
            ],
        )


@dataclass
class TestEntity:
    """
    Persistent test entity stored in the graph store.

    ``flaky_score`` and ``performance_metrics`` are recomputed by the recorder
    on every ingestion; ``execution_history`` is append-only.
    """

    id: str
    path: str
    hash: str
    language: str
    test_type: TestType
    framework: str
    target_symbol: Optional[str] = None
    status: TestEntityStatus = TestEntityStatus.UNKNOWN
    coverage: CoverageMetrics = field(default_factory=CoverageMetrics)
    flaky_score: float = 0.0
    execution_history: List[TestExecution] = field(default_factory=list)
    performance_metrics: TestPerformanceMetrics = field(
        default_factory=TestPerformanceMetrics
    )
    tags: List[str] = field(default_factory=list)
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_duration: Optional[float] = None

    type: str = "test"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the graph store."""
        return {
            "id": self.id,
            "type": self.type,
            "path": self.path,
            "hash": self.hash,
            "language": self.language,
            "test_type": self.test_type.value,
            "framework": self.framework,
            "target_symbol": self.target_symbol,
            "status": self.status.value,
            "coverage": self.coverage.to_dict(),
            "flaky_score": self.flaky_score,
            "execution_history": [e.to_dict() for e in self.execution_history],
            "performance_metrics": self.performance_metrics.to_dict(),
            "tags": list(self.tags),
            "created": self.created.isoformat() if self.created else None,
            "last_modified": self.last_modified.isoformat()
            if self.last_modified
            else None,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_duration": self.last_duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestEntity":
        """Create from a graph store record."""
        return cls(
            id=data["id"],
            path=data.get("path", ""),
            hash=data.get("hash", ""),
            language=data.get("language", ""),
            test_type=TestType(data.get("test_type", TestType.UNIT.value)),
            framework=data.get("framework", "unknown"),
            target_symbol=data.get("target_symbol"),
            status=TestEntityStatus(data.get("status", TestEntityStatus.UNKNOWN.value)),
            coverage=CoverageMetrics.from_dict(data.get("coverage") or {}),
            flaky_score=data.get("flaky_score", 0.0),
            execution_history=[
                TestExecution.from_dict(e) for e in data.get("execution_history", [])
            ],
            performance_metrics=TestPerformanceMetrics.from_dict(
                data.get("performance_metrics") or {}
            ),
            tags=list(data.get("tags", [])),
            created=_parse_timestamp(data["created"]) if data.get("created") else None,
            last_modified=_parse_timestamp(data["last_modified"])
            if data.get("last_modified")
            else None,
            last_run_at=_parse_timestamp(data["last_run_at"])
            if data.get("last_run_at")
            else None,
            last_duration=data.get("last_duration"),
            type=data.get("type", "test"),
        )


@dataclass
class Relationship:
    """Edge written to the graph store."""

    id: str
    from_entity_id: str
    to_entity_id: str
    type: RelationshipType
    created: datetime
    last_modified: datetime
    version: int = 1
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from_entity_id": self.from_entity_id,
            "to_entity_id": self.to_entity_id,
            "type": self.type.value,
            "created": self.created.isoformat(),
            "last_modified": self.last_modified.isoformat(),
            "version": self.version,
            "metadata": self.metadata,
        }


@dataclass
class FlakyTestAnalysis:
    """Flakiness report for one test over one ingested batch."""

    test_id: str
    test_name: str
    flaky_score: float
    total_runs: int
    failure_rate: float
    success_rate: float
    recent_failures: int
    patterns: Dict[str, str] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "test_id": self.test_id,
            "test_name": self.test_name,
            "flaky_score": self.flaky_score,
            "total_runs": self.total_runs,
            "failure_rate": self.failure_rate,
            "success_rate": self.success_rate,
            "recent_failures": self.recent_failures,
            "patterns": self.patterns,
            "recommendations": self.recommendations,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlakyTestAnalysis":
        """Create from dictionary."""
        return cls(
            test_id=data["test_id"],
            test_name=data["test_name"],
            flaky_score=data["flaky_score"],
            total_runs=data["total_runs"],
            failure_rate=data["failure_rate"],
            success_rate=data["success_rate"],
            recent_failures=data["recent_failures"],
            patterns=data.get("patterns", {}),
            recommendations=data.get("recommendations", []),
        )


@dataclass
class CoveredTestCase:
    """A test contributing coverage to an entity."""

    test_id: str
    test_name: str
    covers: List[str] = field(default_factory=list)


@dataclass
class TestCoverageAnalysis:
    """Coverage of one target entity across all tests covering it."""

    entity_id: str
    overall_coverage: CoverageMetrics
    unit_tests: CoverageMetrics
    integration_tests: CoverageMetrics
    e2e_tests: CoverageMetrics
    test_cases: List[CoveredTestCase] = field(default_factory=list)
