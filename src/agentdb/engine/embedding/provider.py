"""Abstract base class for embedding providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from agentdb.core.action_pattern import ActionContext


class EmbeddingProvider(ABC):
    """Base class for all embedding providers.

    Subclasses must implement ``embed`` and ``dimension``.  Implementations
    must be deterministic: identical ``(action, selector, url)`` always map
    to the identical vector, across calls and process restarts.  The
    ``value`` of a pattern is never part of the input.
    """

    @abstractmethod
    def embed(
        self,
        action: str,
        selector: str | None = None,
        url: str | None = None,
    ) -> np.ndarray:
        """Return a float32 vector of length :attr:`dimension`."""

    def embed_context(self, context: ActionContext) -> np.ndarray:
        """Embed an :class:`ActionContext`."""
        return self.embed(context.action, context.selector, context.url)

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Dimensionality of the vectors returned by :meth:`embed`."""

    def similarity(self, vec_a: np.ndarray, vec_b: np.ndarray) -> float:
        """Compute cosine similarity between two vectors.

        Returns 0.0 when either vector has zero magnitude.
        """
        norm_a = float(np.linalg.norm(vec_a))
        norm_b = float(np.linalg.norm(vec_b))

        if norm_a == 0.0 or norm_b == 0.0:
            return 0.0

        return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
