"""Append-only pattern record store.

Pairs the id -> :class:`ActionPattern` map with the vector index.  A store
call is all-or-nothing: the embedding is inserted into the index before
the record is appended, and if the index rejects it (capacity, duplicate)
nothing is retained and the id is not consumed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator

from agentdb.core.action_pattern import ActionPattern, PatternInput, utc_timestamp
from agentdb.engine.embedding.provider import EmbeddingProvider
from agentdb.safety.sensitive import scrub_value
from agentdb.storage.vector_index import VectorIndex

logger = logging.getLogger(__name__)


class PatternStore:
    """Ordered id -> ActionPattern map backed by a vector index."""

    def __init__(
        self,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        records: dict[int, ActionPattern] | None = None,
        next_id: int = 0,
    ) -> None:
        if embedder.dimension != index.dimensions:
            raise ValueError(
                f"Embedder dimension {embedder.dimension} != index dimensions {index.dimensions}"
            )
        self._index = index
        self._embedder = embedder
        self._records: dict[int, ActionPattern] = records if records is not None else {}
        self._next_id = next_id
        self._embedding_ms_total = 0.0
        self._embedding_count = 0

    @property
    def index(self) -> VectorIndex:
        return self._index

    @property
    def embedder(self) -> EmbeddingProvider:
        return self._embedder

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def average_embedding_ms(self) -> float:
        """Mean time spent embedding per store call in this process."""
        if self._embedding_count == 0:
            return 0.0
        return self._embedding_ms_total / self._embedding_count

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ActionPattern]:
        return iter(self._records.values())

    def items(self) -> list[tuple[int, ActionPattern]]:
        return list(self._records.items())

    def store(self, pattern: PatternInput) -> int:
        """
        Append a pattern and return its id.

        Args:
            pattern: The action to record

        Returns:
            The newly assigned id

        Raises:
            CapacityExceededError: The index is full; nothing was recorded
        """
        pattern_id = self._next_id
        self._index.check_insert(pattern_id)

        started = time.perf_counter()
        vector = self._embedder.embed(pattern.action, pattern.selector, pattern.url)
        self._embedding_ms_total += (time.perf_counter() - started) * 1000.0
        self._embedding_count += 1

        self._index.insert(pattern_id, vector)

        self._records[pattern_id] = ActionPattern(
            id=pattern_id,
            action=pattern.action,
            selector=pattern.selector,
            url=pattern.url,
            value=scrub_value(pattern.value, pattern.selector, pattern.metadata),
            success=pattern.success,
            timestamp=pattern.timestamp or utc_timestamp(),
            metadata=dict(pattern.metadata),
        )
        self._next_id = pattern_id + 1
        return pattern_id

    def get(self, pattern_id: int) -> ActionPattern | None:
        return self._records.get(pattern_id)

    def replace_index(self, index: VectorIndex) -> None:
        """Swap in a rebuilt index holding exactly the current ids."""
        if set(index.ids) != set(self._records):
            raise ValueError("Replacement index does not cover the stored patterns")
        self._index = index
