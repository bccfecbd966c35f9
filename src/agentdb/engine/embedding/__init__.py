"""Embedding layer: maps an action context to a fixed-length vector.

The hashing provider is the default (zero dependencies beyond numpy);
a sentence-transformers model can be plugged in via configuration.
"""

from __future__ import annotations

from agentdb.engine.embedding.hashing import HashingEmbedding
from agentdb.engine.embedding.provider import EmbeddingProvider
from agentdb.engine.embedding.sentence_transformer import SentenceTransformerEmbedding
from agentdb.utils.config import AgentDBConfig


def create_embedding_provider(config: AgentDBConfig) -> EmbeddingProvider:
    """
    Create an embedding provider based on configuration.

    Args:
        config: Database configuration (provider, model, dimensions)

    Returns:
        Configured provider producing ``config.dimensions``-long vectors
    """
    if config.embedding_provider == "sentence_transformer":
        return SentenceTransformerEmbedding(config.embedding_model, dimension=config.dimensions)
    return HashingEmbedding(config.dimensions)


__all__ = [
    "EmbeddingProvider",
    "HashingEmbedding",
    "SentenceTransformerEmbedding",
    "create_embedding_provider",
]
