"""Exceptions raised by the parsers, stores and recorder."""


class TestIntelligenceError(Exception):
    """Base class for all test intelligence errors."""

    pass


class ParseError(TestIntelligenceError):
    """Report content cannot be parsed, or its format is not supported."""

    pass


class MalformedFragmentError(TestIntelligenceError):
    """A single fragment of a report is malformed and is skipped."""

    pass


class StorageError(TestIntelligenceError):
    """An external store failed to read or write."""

    pass


class TestRecordingFailed(TestIntelligenceError):
    """Recording a suite result was aborted."""

    def __init__(self, message: str):
        super().__init__(f"Test result recording failed: {message}")
        self.reason = message


class EntityNotFoundError(TestIntelligenceError):
    """A queried entity does not exist in the graph store."""

    def __init__(self, entity_id: str):
        super().__init__(f"Test entity {entity_id} not found")
        self.entity_id = entity_id
