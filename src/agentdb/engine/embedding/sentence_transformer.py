"""Sentence-transformer embedding provider with lazy import."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from agentdb.core.errors import DimensionMismatchError
from agentdb.engine.embedding.provider import EmbeddingProvider
from agentdb.utils.config import DEFAULT_DIMENSIONS

logger = logging.getLogger(__name__)


def context_text(action: str, selector: str | None = None, url: str | None = None) -> str:
    """Render an action context as the sentence handed to the model."""
    parts = [f"action: {action}"]
    if selector:
        parts.append(f"selector: {selector}")
    if url:
        parts.append(f"url: {url}")
    return "; ".join(parts)


class SentenceTransformerEmbedding(EmbeddingProvider):
    """Embedding provider backed by ``sentence-transformers``.

    The heavy ``sentence_transformers`` import and model loading are
    deferred until the first call to :meth:`embed`, keeping startup
    cost at zero when the hashing provider is in use.  The model must
    produce vectors of the configured dimension; anything else is a
    :class:`DimensionMismatchError` rather than silent truncation.
    """

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        dimension: int = DEFAULT_DIMENSIONS,
    ) -> None:
        self._model_name = model_name
        self._model: Any | None = None
        self._dimension = dimension

    def _ensure_model(self) -> Any:
        """Lazy-load the sentence-transformers model on first use."""
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as exc:
                raise ImportError(
                    "sentence-transformers is required for "
                    "SentenceTransformerEmbedding. "
                    "Install it with: pip install 'agentdb[models]'"
                ) from exc

            model = SentenceTransformer(self._model_name, device="cpu")
            embedding_dim: int | None = getattr(
                model, "get_sentence_embedding_dimension", lambda: None
            )()
            if embedding_dim is not None and embedding_dim != self._dimension:
                raise DimensionMismatchError(self._dimension, embedding_dim, source="model")
            logger.info("Loaded embedding model: %s", self._model_name)
            self._model = model

        return self._model

    def embed(
        self,
        action: str,
        selector: str | None = None,
        url: str | None = None,
    ) -> np.ndarray:
        """Encode the action context into a normalised dense vector."""
        model = self._ensure_model()
        vector = model.encode(
            context_text(action, selector, url),
            convert_to_numpy=True,
            normalize_embeddings=True,
        )
        return np.asarray(vector, dtype=np.float32)

    @property
    def dimension(self) -> int:
        """Dimensionality of the embedding vectors."""
        return self._dimension
