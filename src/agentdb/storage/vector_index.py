"""FAISS HNSW vector index keyed by pattern id.

Vectors are L2-normalised on insert and searched by inner product, so the
inner product is the cosine similarity and ``1 - ip`` is the cosine
distance in [0, 2].  The underlying ``IndexIDMap2`` keeps our integer ids
and supports reconstructing stored vectors, which is what reindexing
relies on.

The index is append-only.  Capacity is declared up front and enforced
here; growing it means building a new index with :meth:`resized`.
"""

from __future__ import annotations

import logging
from pathlib import Path

import faiss
import numpy as np

from agentdb.core.errors import CapacityExceededError, DimensionMismatchError, DuplicateIdError
from agentdb.utils.config import DEFAULT_MAX_ELEMENTS

logger = logging.getLogger(__name__)


def _normalise(vector: np.ndarray, dimensions: int) -> np.ndarray:
    arr = np.asarray(vector, dtype=np.float32).reshape(-1)
    if arr.shape[0] != dimensions:
        raise DimensionMismatchError(dimensions, int(arr.shape[0]))
    norm = float(np.linalg.norm(arr))
    if norm == 0.0 or not np.isfinite(norm):
        raise ValueError("Cannot index a zero or non-finite vector")
    return np.ascontiguousarray((arr / np.float32(norm)).reshape(1, dimensions))


class VectorIndex:
    """Approximate k-NN index over pattern embeddings."""

    def __init__(
        self,
        dimensions: int,
        max_elements: int = DEFAULT_MAX_ELEMENTS,
        *,
        m: int = 16,
        ef_construction: int = 200,
        ef_search: int = 64,
    ) -> None:
        self._dimensions = dimensions
        self._max_elements = max_elements
        self._m = m
        self._ef_construction = ef_construction
        self._ef_search = ef_search

        self._hnsw = faiss.IndexHNSWFlat(dimensions, m, faiss.METRIC_INNER_PRODUCT)
        self._hnsw.hnsw.efConstruction = ef_construction
        self._hnsw.hnsw.efSearch = ef_search
        self._index = faiss.IndexIDMap2(self._hnsw)
        self._ids: set[int] = set()

    # ──────────────────── Properties ────────────────────

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def max_elements(self) -> int:
        return self._max_elements

    @property
    def ids(self) -> list[int]:
        """All indexed ids in ascending order."""
        return sorted(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, pattern_id: object) -> bool:
        return pattern_id in self._ids

    # ──────────────────── Insert / query ────────────────────

    def check_insert(self, pattern_id: int) -> None:
        """Raise if ``pattern_id`` could not be inserted right now."""
        if pattern_id in self._ids:
            raise DuplicateIdError(pattern_id)
        if len(self._ids) >= self._max_elements:
            raise CapacityExceededError(self._max_elements)

    def insert(self, pattern_id: int, vector: np.ndarray) -> None:
        """Add one vector under ``pattern_id``.

        Raises:
            DuplicateIdError: The id is already indexed
            CapacityExceededError: The index holds ``max_elements`` vectors
            DimensionMismatchError: The vector has the wrong length
        """
        self.check_insert(pattern_id)
        row = _normalise(vector, self._dimensions)
        self._index.add_with_ids(row, np.array([pattern_id], dtype=np.int64))
        self._ids.add(pattern_id)

    def query(self, vector: np.ndarray, k: int) -> list[tuple[int, float]]:
        """Return up to ``k`` ``(id, cosine_distance)`` pairs, nearest first.

        Equal distances resolve to the lower id first.
        """
        if k <= 0 or not self._ids:
            return []

        row = _normalise(vector, self._dimensions)
        k_eff = min(k, len(self._ids))
        self._hnsw.hnsw.efSearch = max(self._ef_search, k_eff)
        scores, labels = self._index.search(row, k_eff)

        hits: list[tuple[int, float]] = []
        for score, label in zip(scores[0], labels[0], strict=True):
            if label < 0:
                continue
            distance = min(2.0, max(0.0, 1.0 - float(score)))
            hits.append((int(label), distance))

        hits.sort(key=lambda hit: (hit[1], hit[0]))
        return hits

    def get_vector(self, pattern_id: int) -> np.ndarray:
        """Return the stored (normalised) vector for ``pattern_id``."""
        if pattern_id not in self._ids:
            raise KeyError(pattern_id)
        return self._index.reconstruct(int(pattern_id))

    # ──────────────────── Growth ────────────────────

    def resized(self, max_elements: int) -> VectorIndex:
        """Build a new index with a larger capacity from all stored vectors."""
        if max_elements < len(self._ids):
            raise ValueError(
                f"max_elements ({max_elements}) is smaller than the indexed count ({len(self)})"
            )
        rebuilt = VectorIndex(
            self._dimensions,
            max_elements,
            m=self._m,
            ef_construction=self._ef_construction,
            ef_search=self._ef_search,
        )
        for pattern_id in self.ids:
            rebuilt.insert(pattern_id, self.get_vector(pattern_id))
        return rebuilt

    # ──────────────────── Serialization ────────────────────

    def write(self, path: Path) -> None:
        """Serialize the graph and vectors to ``path``."""
        faiss.write_index(self._index, str(path))

    @classmethod
    def read(
        cls,
        path: Path,
        dimensions: int,
        max_elements: int = DEFAULT_MAX_ELEMENTS,
        *,
        m: int = 16,
        ef_search: int = 64,
    ) -> VectorIndex:
        """Load an index written by :meth:`write`.

        Raises:
            DimensionMismatchError: The stored index has another dimensionality
        """
        index = faiss.read_index(str(path))
        if index.d != dimensions:
            raise DimensionMismatchError(dimensions, index.d, source="index file")

        hnsw = faiss.downcast_index(index.index)
        ids = {int(i) for i in faiss.vector_to_array(index.id_map)}

        instance = cls.__new__(cls)
        instance._dimensions = dimensions
        instance._max_elements = max(max_elements, len(ids))
        instance._m = m
        instance._ef_construction = int(hnsw.hnsw.efConstruction)
        instance._ef_search = ef_search
        instance._hnsw = hnsw
        instance._hnsw.hnsw.efSearch = ef_search
        instance._index = index
        instance._ids = ids
        logger.debug("Read vector index with %d vectors from %s", len(ids), path)
        return instance
