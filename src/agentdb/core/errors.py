"""Error taxonomy for the action-pattern store."""

from __future__ import annotations

from pathlib import Path


class AgentDBError(Exception):
    """Base class for all AgentDB errors."""


class CapacityExceededError(AgentDBError):
    """The vector index is full; a reindex is required before more inserts."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        super().__init__(
            f"Vector index is full ({capacity} elements); reindex with a larger capacity"
        )


class DuplicateIdError(AgentDBError, ValueError):
    """An id was inserted into the vector index twice."""

    def __init__(self, pattern_id: int) -> None:
        self.pattern_id = pattern_id
        super().__init__(f"Id {pattern_id} is already present in the index")


class DimensionMismatchError(AgentDBError):
    """A vector or persisted index disagrees with the configured dimensionality."""

    def __init__(self, expected: int, actual: int, source: str = "vector") -> None:
        self.expected = expected
        self.actual = actual
        self.source = source
        super().__init__(f"{source} has {actual} dimensions, expected {expected}")


class InconsistentPersistenceError(AgentDBError):
    """One persisted artifact is missing or unreadable while the other exists."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Inconsistent database at {path}: {reason}")


class InvalidQueryError(AgentDBError, ValueError):
    """A similarity query was malformed (bad k or filter)."""
