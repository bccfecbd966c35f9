"""Storage layer: vector index, record store and on-disk persistence."""

from agentdb.storage.pattern_store import PatternStore
from agentdb.storage.persistence import PersistenceManager
from agentdb.storage.vector_index import VectorIndex

__all__ = ["PatternStore", "PersistenceManager", "VectorIndex"]
