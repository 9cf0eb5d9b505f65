"""
Recorder for canonical suite results.

Folds each ingested ``TestResult`` into its persistent test entity, keeps the
entity's performance metrics and flaky score current, publishes coverage
relationships and stores the batch flakiness reports.

Results of one suite are processed strictly in order so that execution
history order matches run order. Nothing here serializes separate calls that
touch the same test ids; that is left to the caller or the graph store.
"""

import hashlib
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from loguru import logger

from .analysis.coverage import CoverageAggregator
from .analysis.flakiness import FlakinessAnalyzer
from .analysis.performance import PerformanceTracker
from .config import TestIntelligenceConfig
from .errors import EntityNotFoundError, TestRecordingFailed
from .models import (
    ENTITY_STATUS_MAP,
    FlakyTestAnalysis,
    Relationship,
    RelationshipType,
    ReportFormat,
    TestCoverageAnalysis,
    TestEntity,
    TestExecution,
    TestPerformanceMetrics,
    TestResult,
    TestStatus,
    TestSuiteResult,
    TestType,
)
from .parsers import TestResultParser
from .stores import GraphStore, SuiteResultStore

TAG_KEYWORDS = ["slow", "fast", "flaky", "critical"]


def infer_test_type(suite_name: str, test_name: str) -> TestType:
    name = f"{suite_name} {test_name}".lower()
    if "e2e" in name or "end-to-end" in name:
        return TestType.E2E
    if "integration" in name or "int" in name:
        return TestType.INTEGRATION
    return TestType.UNIT


def infer_framework(suite_name: str) -> str:
    lowered = suite_name.lower()
    for framework in ("jest", "mocha", "vitest"):
        if framework in lowered:
            return framework
    return "unknown"


def extract_tags(test_name: str) -> List[str]:
    lowered = test_name.lower()
    return [tag for tag in TAG_KEYWORDS if tag in lowered]


def content_hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def _epoch_ms(timestamp: datetime) -> int:
    return int(timestamp.timestamp() * 1000)


class TestRecorder:
    """
    Record suite results into the graph and suite result stores.

    Example:
        >>> recorder = TestRecorder(graph_store, suite_store)
        >>> recorder.parse_and_record("junit.xml", "junit")
        >>> recorder.get_performance_metrics("MathSuite:adds numbers").success_rate
        1.0
    """

    def __init__(
        self,
        graph_store: GraphStore,
        suite_store: SuiteResultStore,
        config: Optional[TestIntelligenceConfig] = None,
        parser: Optional[TestResultParser] = None,
    ):
        """
        Initialize recorder.

        Args:
            graph_store: Store owning test entities and relationships
            suite_store: Bulk store for suite results and flakiness reports
            config: Windows and thresholds; defaults when omitted
            parser: Parser registry; built from ``config`` when omitted
        """
        self.config = config or TestIntelligenceConfig()
        self.graph_store = graph_store
        self.suite_store = suite_store
        self.parser = parser or TestResultParser(self.config.merged_suite_name)
        self.flakiness = FlakinessAnalyzer(self.config)
        self.performance = PerformanceTracker(self.config)
        self.coverage = CoverageAggregator(graph_store)

    def parse_and_record(
        self, file_path: Union[str, Path], report_format: Union[ReportFormat, str]
    ) -> TestSuiteResult:
        """
        Parse a report file and record it.

        Raises:
            ParseError: If the report cannot be parsed; nothing is recorded
            TestRecordingFailed: If recording fails
        """
        suite = self.parser.parse_file(file_path, report_format)
        self.record_test_results(suite)
        return suite

    def record_test_results(self, suite: TestSuiteResult) -> List[FlakyTestAnalysis]:
        """
        Record one suite result.

        Stores the suite, folds every result into its test entity in order,
        refreshes flaky scores of the touched entities and stores the batch
        flakiness reports. Work committed before a failure is not rolled back.

        Returns:
            The flakiness reports stored for this batch

        Raises:
            TestRecordingFailed: On invalid input or any store failure
        """
        try:
            self._validate(suite)

            self.suite_store.store_test_suite_result(suite)

            touched: Dict[str, TestEntity] = {}
            for result in suite.results:
                touched[result.test_id] = self._process_result(result, suite)

            for entity in touched.values():
                entity.flaky_score = self.flakiness.cumulative_score(
                    entity.execution_history
                )
                self._save_entity(entity)

            analyses = self.flakiness.analyze_flaky_tests(suite.results)
            self.suite_store.store_flaky_test_analyses(analyses)
        except Exception as e:
            logger.exception(f"Failed to record test results for {suite.suite_name}")
            raise TestRecordingFailed(str(e)) from e

        logger.info(
            f"Recorded {len(suite.results)} results from {suite.suite_name} "
            f"into {len(touched)} test entities"
        )
        return analyses

    def get_performance_metrics(self, entity_id: str) -> TestPerformanceMetrics:
        """
        Performance metrics of a test entity.

        Raises:
            ValueError: If ``entity_id`` is blank
            EntityNotFoundError: If no test entity has this id
        """
        return self._require_test_entity(entity_id).performance_metrics

    def get_coverage_analysis(self, entity_id: str) -> TestCoverageAnalysis:
        """Coverage of ``entity_id`` across all tests covering it."""
        return self.coverage.analyze(entity_id)

    def find_test_entity(self, test_id: str) -> Optional[TestEntity]:
        """Look up a test entity; entities of another type count as absent."""
        data = self.graph_store.get_entity(test_id)
        if data is None or data.get("type") != "test":
            return None
        return TestEntity.from_dict(data)

    def _validate(self, suite: TestSuiteResult) -> None:
        if not suite.results:
            raise ValueError("Test suite must contain at least one test result")

        for result in suite.results:
            if not result.test_id or not result.test_id.strip():
                raise ValueError("Test result must have a valid testId")
            if not result.test_name or not result.test_name.strip():
                raise ValueError("Test result must have a valid testName")
            if not math.isfinite(result.duration):
                raise ValueError("Test result duration must be a finite number")
            if result.duration < 0:
                raise ValueError("Test result duration cannot be negative")
            if not isinstance(result.status, TestStatus):
                raise ValueError(f"Invalid test status: {result.status}")

    def _process_result(self, result: TestResult, suite: TestSuiteResult) -> TestEntity:
        timestamp = suite.timestamp
        entity = self.find_test_entity(result.test_id)
        if entity is None:
            entity = self._create_test_entity(result, suite)

        entity.execution_history.append(
            TestExecution(
                id=self._execution_id(entity, result.test_id, timestamp),
                timestamp=timestamp,
                status=result.status,
                duration=result.duration,
                error_message=result.error_message,
                stack_trace=result.stack_trace,
                coverage=result.coverage,
                performance=result.performance,
                environment={
                    "framework": suite.framework,
                    "timestamp": timestamp.isoformat(),
                },
            )
        )

        entity.status = ENTITY_STATUS_MAP[result.status]
        entity.last_run_at = timestamp
        entity.last_duration = result.duration

        self.performance.update(entity, timestamp)

        if result.coverage is not None:
            entity.coverage = result.coverage
            self._publish_coverage(entity)

        self._save_entity(entity)
        return entity

    def _create_test_entity(
        self, result: TestResult, suite: TestSuiteResult
    ) -> TestEntity:
        framework = suite.framework
        if not framework or framework == "unknown":
            framework = infer_framework(result.test_suite)
        now = datetime.now(timezone.utc)
        entity = TestEntity(
            id=result.test_id,
            path=result.test_suite,
            hash=content_hash(result.test_id),
            language=self.config.default_language,
            test_type=infer_test_type(result.test_suite, result.test_name),
            framework=framework,
            target_symbol=f"{result.test_suite}#{result.test_name}",
            status=ENTITY_STATUS_MAP[result.status],
            tags=extract_tags(result.test_name),
            created=now,
            last_modified=now,
        )
        logger.info(f"Creating test entity {entity.id} ({entity.test_type.value})")
        return entity

    @staticmethod
    def _execution_id(entity: TestEntity, test_id: str, timestamp: datetime) -> str:
        base_id = f"{test_id}_{_epoch_ms(timestamp)}"
        existing = {e.id for e in entity.execution_history}
        if base_id not in existing:
            return base_id

        # Retries within one run share a timestamp.
        attempt = 2
        while f"{base_id}_{attempt}" in existing:
            attempt += 1
        return f"{base_id}_{attempt}"

    def _publish_coverage(self, entity: TestEntity) -> None:
        target = entity.target_symbol
        if not target or self.graph_store.get_entity(target) is None:
            logger.debug(f"No coverage target entity for test {entity.id}")
            return

        now = datetime.now(timezone.utc)
        relationship = Relationship(
            id=f"{entity.id}_covers_{target}",
            from_entity_id=entity.id,
            to_entity_id=target,
            type=RelationshipType.COVERAGE_PROVIDES,
            created=now,
            last_modified=now,
            metadata={"coverage_percentage": entity.coverage.lines},
        )
        self.graph_store.create_relationship(relationship.to_dict())

    def _save_entity(self, entity: TestEntity) -> None:
        entity.last_modified = datetime.now(timezone.utc)
        self.graph_store.create_or_update_entity(entity.to_dict())

    def _require_test_entity(self, entity_id: str) -> TestEntity:
        if not entity_id or not entity_id.strip():
            raise ValueError("Entity ID cannot be empty")
        entity = self.find_test_entity(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return entity
