"""AgentDB - the action-pattern store.

One :class:`AgentDB` owns a vector index, the ordered record map and the
id counter.  Collaborators receive the instance explicitly and share it;
there is no module-level database.

Typical use::

    db = AgentDB.open("./data/agentdb")
    db.record("fill", selector="#email", url="https://site.com/signup", success=True)
    hits = db.find_similar({"action": "fill", "url": "site.com"}, k=5,
                           search_filter={"success_only": True})
    db.save()

Everything except :meth:`save` / :meth:`load` is synchronous and
in-memory.  Saving is always caller-triggered.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from agentdb.core.action_pattern import ActionContext, ActionPattern, PatternInput, utc_timestamp
from agentdb.core.errors import CapacityExceededError
from agentdb.engine.embedding import EmbeddingProvider, create_embedding_provider
from agentdb.engine.query import QueryEngine, SearchFilter, SearchResult
from agentdb.engine.statistics import PatternSummary, Statistics, StatisticsAggregator
from agentdb.storage.pattern_store import PatternStore
from agentdb.storage.persistence import FORMAT_VERSION, PersistenceManager
from agentdb.storage.vector_index import VectorIndex
from agentdb.utils.config import AgentDBConfig

logger = logging.getLogger(__name__)


class AgentDB:
    """Persistent corpus of automation actions with similarity search."""

    def __init__(
        self,
        config: AgentDBConfig | None = None,
        *,
        path: Path | str | None = None,
        embedder: EmbeddingProvider | None = None,
        store: PatternStore | None = None,
    ) -> None:
        self._config = config or AgentDBConfig()
        self._path = Path(path) if path is not None else None
        if store is None:
            embedder = embedder or create_embedding_provider(self._config)
            store = PatternStore(self._new_index(self._config.max_elements), embedder)
        self._store = store
        self._query = QueryEngine(store)
        self._stats = StatisticsAggregator()

    # ──────────────────── Construction ────────────────────

    @classmethod
    def load(
        cls,
        path: Path | str,
        config: AgentDBConfig | None = None,
        *,
        embedder: EmbeddingProvider | None = None,
    ) -> AgentDB:
        """
        Load a saved database.

        Raises:
            FileNotFoundError: Nothing has been saved at ``path``
            InconsistentPersistenceError: Only one artifact exists or it is unreadable
            DimensionMismatchError: Saved dimensionality differs from ``config``
        """
        config = config or AgentDBConfig()
        state = PersistenceManager(path).load(config)
        embedder = embedder or create_embedding_provider(config)
        store = PatternStore(state.index, embedder, records=state.records, next_id=state.next_id)
        return cls(config, path=path, store=store)

    @classmethod
    def open(
        cls,
        path: Path | str,
        config: AgentDBConfig | None = None,
        *,
        embedder: EmbeddingProvider | None = None,
    ) -> AgentDB:
        """Load the database at ``path``, or start an empty one if nothing is saved there."""
        if PersistenceManager(path).exists():
            return cls.load(path, config, embedder=embedder)
        logger.info("No database at %s; starting empty", path)
        return cls(config, path=path, embedder=embedder)

    def _new_index(self, max_elements: int) -> VectorIndex:
        return VectorIndex(
            self._config.dimensions,
            max_elements,
            m=self._config.hnsw_m,
            ef_construction=self._config.ef_construction,
            ef_search=self._config.ef_search,
        )

    # ──────────────────── Properties ────────────────────

    @property
    def config(self) -> AgentDBConfig:
        return self._config

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def dimensions(self) -> int:
        return self._store.index.dimensions

    @property
    def capacity(self) -> int:
        return self._store.index.max_elements

    @property
    def next_id(self) -> int:
        return self._store.next_id

    def __len__(self) -> int:
        return len(self._store)

    # ──────────────────── Recording ────────────────────

    def store(self, pattern: PatternInput | Mapping[str, Any]) -> int:
        """
        Record an action and return its id.

        Raises:
            CapacityExceededError: The index is full; call :meth:`reindex`
            ValueError: The pattern has no action
        """
        if not isinstance(pattern, PatternInput):
            pattern = PatternInput.from_dict(pattern)
        return self._store.store(pattern)

    def record(
        self,
        action: str,
        *,
        selector: str | None = None,
        url: str | None = None,
        value: str | None = None,
        success: bool = False,
        timestamp: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """Keyword form of :meth:`store`."""
        return self._store.store(
            PatternInput(
                action=action,
                selector=selector,
                url=url,
                value=value,
                success=success,
                timestamp=timestamp,
                metadata=metadata or {},
            )
        )

    def get(self, pattern_id: int) -> ActionPattern | None:
        return self._store.get(pattern_id)

    def patterns(self) -> list[ActionPattern]:
        """All stored patterns in id order."""
        return list(self._store)

    # ──────────────────── Querying ────────────────────

    def find_similar(
        self,
        context: ActionContext | Mapping[str, Any],
        k: int = 10,
        search_filter: SearchFilter | Mapping[str, Any] | None = None,
    ) -> list[SearchResult]:
        """See :meth:`QueryEngine.find_similar`."""
        return self._query.find_similar(context, k, search_filter)

    def query_by_metadata(self, metadata: Mapping[str, Any]) -> list[ActionPattern]:
        return self._query.query_by_metadata(metadata)

    def get_statistics(self, top_n: int = 10) -> Statistics:
        return self._stats.compute(
            self._store,
            top_n=top_n,
            average_embedding_ms=self._store.average_embedding_ms,
        )

    def top_patterns(self, n: int = 10) -> list[PatternSummary]:
        return self._stats.top_patterns(self._store, n)

    # ──────────────────── Persistence ────────────────────

    def save(self, path: Path | str | None = None) -> Path:
        """
        Flush both artifacts to ``path`` (default: the path this database was opened with).

        Returns:
            The directory written to
        """
        target = Path(path) if path is not None else self._path
        if target is None:
            raise ValueError("No path given and the database was not opened from one")
        PersistenceManager(target).save(
            self._store.index,
            dict(self._store.items()),
            self._store.next_id,
        )
        if self._path is None:
            self._path = target
        return target

    def reindex(self, max_elements: int | None = None) -> int:
        """
        Rebuild the vector index with a larger capacity.

        Args:
            max_elements: New capacity (default: double the current one)

        Returns:
            The new capacity
        """
        new_capacity = max_elements if max_elements is not None else self.capacity * 2
        rebuilt = self._store.index.resized(new_capacity)
        self._store.replace_index(rebuilt)
        logger.info("Reindexed %d patterns with capacity %d", len(self), new_capacity)
        return new_capacity

    # ──────────────────── Import / export ────────────────────

    def export_training_data(self) -> str:
        """Serialize the corpus for sharing with another instance."""
        return json.dumps(
            {
                "version": FORMAT_VERSION,
                "exportedAt": utc_timestamp(),
                "dimensions": self.dimensions,
                "patternsWithIds": [[pid, p.to_dict()] for pid, p in self._store.items()],
            },
            indent=2,
            ensure_ascii=False,
        )

    def import_from(self, data: str | Mapping[str, Any] | list[Any]) -> list[int]:
        """
        Append patterns from an export, assigning fresh ids.

        Source ids are ignored so merging corpora never collides.  Every
        entry is validated and capacity is checked before anything is
        inserted.

        Args:
            data: JSON text or parsed document; either an export document,
                a bare ``[[id, pattern], ...]`` list or ``{"patterns": [...]}``

        Returns:
            Ids assigned to the imported patterns, in order

        Raises:
            ValueError: The document is malformed
            CapacityExceededError: The patterns would not fit
        """
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid training data: {e}") from e

        inputs = [PatternInput.from_dict(entry) for entry in _import_entries(data)]

        if len(self) + len(inputs) > self.capacity:
            raise CapacityExceededError(self.capacity)

        ids = [self._store.store(pattern) for pattern in inputs]
        logger.info("Imported %d patterns", len(ids))
        return ids


def _import_entries(data: Any) -> list[Mapping[str, Any]]:
    if isinstance(data, Mapping):
        if "patternsWithIds" in data:
            data = data["patternsWithIds"]
        elif "patterns" in data:
            data = data["patterns"]
        else:
            raise ValueError("Invalid training data: expected patternsWithIds or patterns")

    if not isinstance(data, list):
        raise ValueError("Invalid training data: expected a list of patterns")

    entries: list[Mapping[str, Any]] = []
    for item in data:
        if isinstance(item, list | tuple) and len(item) == 2 and isinstance(item[1], Mapping):
            entries.append(item[1])
        elif isinstance(item, Mapping):
            entries.append(item)
        else:
            raise ValueError(f"Invalid training data entry: {item!r}")
    return entries
