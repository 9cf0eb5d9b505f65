"""
Store contracts consumed by the recorder.

The graph store owns test entities and relationships; the suite result store
keeps raw suite results and flakiness reports. Both are external
collaborators: the recorder only relies on the protocols below. Entities and
relationships cross the graph store boundary as plain dictionaries.

Concurrent ingestions touching the same test ids are not serialized here;
callers must not submit overlapping suites concurrently, or must hold their
own per-test lock.
"""

import copy
from typing import Any, Dict, List, Optional, Protocol

from .models import FlakyTestAnalysis, TestSuiteResult


class GraphStore(Protocol):
    """Entity and relationship store."""

    def get_entity(self, entity_id: str) -> Optional[Dict[str, Any]]:
        ...

    def create_or_update_entity(self, entity: Dict[str, Any]) -> None:
        ...

    def create_relationship(self, relationship: Dict[str, Any]) -> None:
        ...

    def query_relationships(
        self, to_entity_id: str, relationship_type: str
    ) -> List[Dict[str, Any]]:
        ...


class SuiteResultStore(Protocol):
    """Bulk store for suite results and flakiness reports."""

    def store_test_suite_result(self, suite: TestSuiteResult) -> None:
        ...

    def store_flaky_test_analyses(self, analyses: List[FlakyTestAnalysis]) -> None:
        ...


class InMemoryGraphStore:
    """Dictionary-backed ``GraphStore``; returns copies so callers own what they read."""

    def __init__(self) -> None:
        self.entities: Dict[str, Dict[str, Any]] = {}
        self.relationships: Dict[str, Dict[str, Any]] = {}

    def get_entity(self, entity_id: str) -> Optional[Dict[str, Any]]:
        entity = self.entities.get(entity_id)
        return copy.deepcopy(entity) if entity is not None else None

    def create_or_update_entity(self, entity: Dict[str, Any]) -> None:
        self.entities[entity["id"]] = copy.deepcopy(entity)

    def create_relationship(self, relationship: Dict[str, Any]) -> None:
        # Same id means same edge; the latest write wins.
        self.relationships[relationship["id"]] = copy.deepcopy(relationship)

    def query_relationships(
        self, to_entity_id: str, relationship_type: str
    ) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(rel)
            for rel in self.relationships.values()
            if rel.get("to_entity_id") == to_entity_id
            and rel.get("type") == relationship_type
        ]


class InMemorySuiteResultStore:
    """List-backed ``SuiteResultStore``."""

    def __init__(self) -> None:
        self.suites: List[TestSuiteResult] = []
        self.flaky_analyses: List[List[FlakyTestAnalysis]] = []

    def store_test_suite_result(self, suite: TestSuiteResult) -> None:
        self.suites.append(suite)

    def store_flaky_test_analyses(self, analyses: List[FlakyTestAnalysis]) -> None:
        self.flaky_analyses.append(list(analyses))
