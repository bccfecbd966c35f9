"""Similarity query engine.

Combines the vector index with metadata filters:

1. embed the query context
2. over-fetch ``max(3k, k + 10)`` candidates to survive post-filtering
3. resolve ids to stored patterns and drop filter non-matches
4. convert cosine distance to similarity ``clamp(1 - d/2, 0, 1)``
5. sort by similarity descending, lower id first on ties, keep ``k``

Malformed queries are a caller mistake with an obvious harmless reading,
so they resolve to an empty result instead of raising.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from agentdb.core.action_pattern import ActionContext, ActionPattern
from agentdb.core.errors import InvalidQueryError
from agentdb.storage.pattern_store import PatternStore

logger = logging.getLogger(__name__)

_FILTER_KEYS = {
    "success_only": "success_only",
    "successOnly": "success_only",
    "min_similarity": "min_similarity",
    "minSimilarity": "min_similarity",
    "metadata_equals": "metadata_equals",
    "metadataEquals": "metadata_equals",
    "url_contains": "url_contains",
    "urlPattern": "url_contains",
}


@dataclass(frozen=True)
class SearchFilter:
    """
    Post-filter applied to similarity candidates.

    Attributes:
        success_only: Keep only patterns recorded as successful
        min_similarity: Drop results below this similarity (0.0-1.0)
        metadata_equals: Every key must be present with an equal value
        url_contains: Keep only patterns whose URL contains this substring
    """

    success_only: bool = False
    min_similarity: float | None = None
    metadata_equals: Mapping[str, Any] = field(default_factory=dict)
    url_contains: str | None = None

    def validate(self) -> None:
        """Raise :class:`InvalidQueryError` if the filter is malformed."""
        if not isinstance(self.success_only, bool):
            raise InvalidQueryError(f"success_only must be a bool, got {self.success_only!r}")
        if self.min_similarity is not None:
            if isinstance(self.min_similarity, bool) or not isinstance(
                self.min_similarity, int | float
            ):
                raise InvalidQueryError(
                    f"min_similarity must be a number, got {self.min_similarity!r}"
                )
            if not 0.0 <= self.min_similarity <= 1.0:
                raise InvalidQueryError(
                    f"min_similarity must be in [0.0, 1.0], got {self.min_similarity}"
                )
        if not isinstance(self.metadata_equals, Mapping):
            raise InvalidQueryError("metadata_equals must be a mapping")
        if self.url_contains is not None and not isinstance(self.url_contains, str):
            raise InvalidQueryError(f"url_contains must be a string, got {self.url_contains!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchFilter:
        """Build a filter from a mapping; accepts snake_case or camelCase keys."""
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _FILTER_KEYS.get(key)
            if name is None:
                raise InvalidQueryError(f"Unknown filter key: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    def matches(self, pattern: ActionPattern) -> bool:
        if self.success_only and pattern.success is not True:
            return False
        # Patterns recorded without a URL are not excluded by a URL filter
        if self.url_contains and pattern.url is not None and self.url_contains not in pattern.url:
            return False
        for key, expected in self.metadata_equals.items():
            if key not in pattern.metadata or pattern.metadata[key] != expected:
                return False
        return True


@dataclass(frozen=True)
class SearchResult:
    """A stored pattern together with its similarity to the query."""

    pattern: ActionPattern
    similarity: float

    @property
    def id(self) -> int:
        return self.pattern.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.pattern.id,
            "similarity": self.similarity,
            "pattern": self.pattern.to_dict(),
        }


def overfetch_count(k: int) -> int:
    """Candidates requested from the index for a final result size of ``k``."""
    return max(3 * k, k + 10)


def distance_to_similarity(distance: float) -> float:
    return min(1.0, max(0.0, 1.0 - distance / 2.0))


def _coerce_context(context: ActionContext | Mapping[str, Any]) -> ActionContext:
    if isinstance(context, ActionContext):
        return context
    if isinstance(context, Mapping):
        return ActionContext.from_dict(context)
    raise InvalidQueryError(f"context must be an ActionContext or mapping, got {type(context)}")


def _coerce_filter(search_filter: SearchFilter | Mapping[str, Any] | None) -> SearchFilter:
    if search_filter is None:
        return SearchFilter()
    if isinstance(search_filter, SearchFilter):
        resolved = search_filter
    elif isinstance(search_filter, Mapping):
        resolved = SearchFilter.from_dict(search_filter)
    else:
        raise InvalidQueryError(f"filter must be a SearchFilter or mapping, got {search_filter!r}")
    resolved.validate()
    return resolved


class QueryEngine:
    """Runs filtered k-NN queries over a :class:`PatternStore`."""

    def __init__(self, store: PatternStore) -> None:
        self._store = store

    def find_similar(
        self,
        context: ActionContext | Mapping[str, Any],
        k: int = 10,
        search_filter: SearchFilter | Mapping[str, Any] | None = None,
    ) -> list[SearchResult]:
        """
        Find the ``k`` stored patterns most similar to ``context``.

        Args:
            context: Action, selector and URL to match against
            k: Maximum number of results
            search_filter: Optional post-filter

        Returns:
            Results ordered by similarity (desc), then id (asc).  Empty
            when nothing matches or the query is malformed.
        """
        try:
            if isinstance(k, bool) or not isinstance(k, int) or k <= 0:
                raise InvalidQueryError(f"k must be a positive integer, got {k!r}")
            query_context = _coerce_context(context)
            resolved_filter = _coerce_filter(search_filter)
        except InvalidQueryError as e:
            logger.debug("Ignoring invalid similarity query: %s", e)
            return []

        if len(self._store) == 0:
            return []

        vector = self._store.embedder.embed_context(query_context)
        candidates = self._store.index.query(vector, overfetch_count(k))

        results: list[SearchResult] = []
        for pattern_id, distance in candidates:
            pattern = self._store.get(pattern_id)
            if pattern is None:
                continue
            if not resolved_filter.matches(pattern):
                continue
            similarity = distance_to_similarity(distance)
            floor = resolved_filter.min_similarity
            if floor is not None and similarity < floor:
                continue
            results.append(SearchResult(pattern=pattern, similarity=similarity))

        results.sort(key=lambda r: (-r.similarity, r.pattern.id))
        return results[:k]

    def query_by_metadata(self, metadata: Mapping[str, Any]) -> list[ActionPattern]:
        """Return every pattern whose metadata contains all of ``metadata``, in id order."""
        criteria = SearchFilter(metadata_equals=metadata)
        return [p for p in self._store if criteria.matches(p)]
