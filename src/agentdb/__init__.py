"""AgentDB - action-pattern memory for browser automation."""

from agentdb.core.action_pattern import ActionContext, ActionPattern, PatternInput
from agentdb.core.errors import (
    AgentDBError,
    CapacityExceededError,
    DimensionMismatchError,
    DuplicateIdError,
    InconsistentPersistenceError,
    InvalidQueryError,
)
from agentdb.database import AgentDB
from agentdb.engine.query import SearchFilter, SearchResult
from agentdb.engine.statistics import PatternSummary, Statistics
from agentdb.utils.config import AgentDBConfig

__version__ = "0.1.0"

__all__ = [
    # Database
    "AgentDB",
    "AgentDBConfig",
    # Core models
    "ActionContext",
    "ActionPattern",
    "PatternInput",
    # Queries and statistics
    "SearchFilter",
    "SearchResult",
    "PatternSummary",
    "Statistics",
    # Errors
    "AgentDBError",
    "CapacityExceededError",
    "DimensionMismatchError",
    "DuplicateIdError",
    "InconsistentPersistenceError",
    "InvalidQueryError",
    # Version
    "__version__",
]
