"""Core data structures for AgentDB."""

from agentdb.core.action_pattern import ActionContext, ActionPattern, PatternInput
from agentdb.core.errors import (
    AgentDBError,
    CapacityExceededError,
    DimensionMismatchError,
    DuplicateIdError,
    InconsistentPersistenceError,
    InvalidQueryError,
)

__all__ = [
    "ActionContext",
    "ActionPattern",
    "AgentDBError",
    "CapacityExceededError",
    "DimensionMismatchError",
    "DuplicateIdError",
    "InconsistentPersistenceError",
    "InvalidQueryError",
    "PatternInput",
]
