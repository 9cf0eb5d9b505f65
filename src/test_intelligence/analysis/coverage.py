"""Coverage aggregation across tests."""

from typing import List, Sequence

from ..errors import EntityNotFoundError
from ..models import (
    CoverageMetrics,
    CoveredTestCase,
    RelationshipType,
    TestCoverageAnalysis,
    TestEntity,
    TestType,
)
from ..stores import GraphStore


def aggregate(coverages: Sequence[CoverageMetrics]) -> CoverageMetrics:
    """Arithmetic mean per dimension; all zeros for an empty input."""
    if not coverages:
        return CoverageMetrics()

    count = len(coverages)
    return CoverageMetrics(
        lines=sum(c.lines for c in coverages) / count,
        branches=sum(c.branches for c in coverages) / count,
        functions=sum(c.functions for c in coverages) / count,
        statements=sum(c.statements for c in coverages) / count,
    )


class CoverageAggregator:
    """Build coverage breakdowns for entities covered by tests."""

    def __init__(self, graph_store: GraphStore):
        self.graph_store = graph_store

    def covering_tests(self, entity_id: str) -> List[TestEntity]:
        """Test entities with a coverage-provides relationship to ``entity_id``."""
        relationships = self.graph_store.query_relationships(
            entity_id, RelationshipType.COVERAGE_PROVIDES.value
        )

        tests = []
        for rel in relationships:
            data = self.graph_store.get_entity(rel["from_entity_id"])
            if data is not None and data.get("type") == "test":
                tests.append(TestEntity.from_dict(data))
        return tests

    def analyze(self, entity_id: str) -> TestCoverageAnalysis:
        """
        Coverage analysis of one target entity.

        Args:
            entity_id: Id of the covered entity

        Returns:
            Overall mean and per test type means over every covering test

        Raises:
            ValueError: If ``entity_id`` is blank
            EntityNotFoundError: If the entity doesn't exist
        """
        if not entity_id or not entity_id.strip():
            raise ValueError("Entity ID cannot be empty")
        if self.graph_store.get_entity(entity_id) is None:
            raise EntityNotFoundError(entity_id)

        tests = self.covering_tests(entity_id)

        def by_type(test_type: TestType) -> CoverageMetrics:
            return aggregate([t.coverage for t in tests if t.test_type == test_type])

        return TestCoverageAnalysis(
            entity_id=entity_id,
            overall_coverage=aggregate([t.coverage for t in tests]),
            unit_tests=by_type(TestType.UNIT),
            integration_tests=by_type(TestType.INTEGRATION),
            e2e_tests=by_type(TestType.E2E),
            test_cases=[
                CoveredTestCase(test_id=t.id, test_name=t.path, covers=[entity_id])
                for t in tests
            ],
        )
