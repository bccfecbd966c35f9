"""Configuration management for AgentDB."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

DEFAULT_DIMENSIONS = 384
DEFAULT_MAX_ELEMENTS = 10_000

_VALID_PROVIDERS = ("hashing", "sentence_transformer")


def get_data_dir() -> Path:
    """Get the default database directory.

    Priority:
    1. AGENTDB_DIR environment variable
    2. ~/.agentdb/
    """
    env_dir = os.environ.get("AGENTDB_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".agentdb"


@dataclass(frozen=True)
class AgentDBConfig:
    """
    Configuration for an AgentDB instance.

    Attributes:
        dimensions: Embedding dimensionality, fixed for the index's lifetime
        max_elements: Capacity of the vector index before a reindex is needed
        hnsw_m: Neighbours per HNSW graph node
        ef_construction: HNSW candidate list size while inserting
        ef_search: HNSW candidate list size while querying (raised to k)
        embedding_provider: "hashing" (default) or "sentence_transformer"
        embedding_model: Model name for the sentence-transformer provider
    """

    VALID_PROVIDERS: ClassVar[tuple[str, ...]] = _VALID_PROVIDERS

    dimensions: int = DEFAULT_DIMENSIONS
    max_elements: int = DEFAULT_MAX_ELEMENTS
    hnsw_m: int = 16
    ef_construction: int = 200
    ef_search: int = 64
    embedding_provider: str = "hashing"
    embedding_model: str = "all-MiniLM-L6-v2"

    def __post_init__(self) -> None:
        if self.dimensions <= 0:
            raise ValueError(f"dimensions must be > 0, got {self.dimensions}")
        if self.max_elements <= 0:
            raise ValueError(f"max_elements must be > 0, got {self.max_elements}")
        if self.hnsw_m < 2:
            raise ValueError(f"hnsw_m must be >= 2, got {self.hnsw_m}")
        if self.ef_construction <= 0 or self.ef_search <= 0:
            raise ValueError("ef_construction and ef_search must be > 0")
        if self.embedding_provider not in _VALID_PROVIDERS:
            raise ValueError(
                f"embedding_provider must be one of {_VALID_PROVIDERS}, "
                f"got {self.embedding_provider!r}"
            )

    def with_updates(self, **kwargs: Any) -> AgentDBConfig:
        """Create a new config with updated values."""
        return AgentDBConfig(
            dimensions=kwargs.get("dimensions", self.dimensions),
            max_elements=kwargs.get("max_elements", self.max_elements),
            hnsw_m=kwargs.get("hnsw_m", self.hnsw_m),
            ef_construction=kwargs.get("ef_construction", self.ef_construction),
            ef_search=kwargs.get("ef_search", self.ef_search),
            embedding_provider=kwargs.get("embedding_provider", self.embedding_provider),
            embedding_model=kwargs.get("embedding_model", self.embedding_model),
        )

    @classmethod
    def from_env(cls) -> AgentDBConfig:
        """Load configuration from environment variables."""

        def get_int(key: str, default: int) -> int:
            value = os.getenv(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError:
                return default

        return cls(
            dimensions=get_int("AGENTDB_DIMENSIONS", DEFAULT_DIMENSIONS),
            max_elements=get_int("AGENTDB_MAX_ELEMENTS", DEFAULT_MAX_ELEMENTS),
            hnsw_m=get_int("AGENTDB_HNSW_M", 16),
            ef_construction=get_int("AGENTDB_EF_CONSTRUCTION", 200),
            ef_search=get_int("AGENTDB_EF_SEARCH", 64),
            embedding_provider=os.getenv("AGENTDB_EMBEDDING_PROVIDER", "hashing"),
            embedding_model=os.getenv("AGENTDB_EMBEDDING_MODEL", "all-MiniLM-L6-v2"),
        )


# Cached environment config, used by the CLI
_config: AgentDBConfig | None = None


def get_config() -> AgentDBConfig:
    """Get the environment-derived configuration instance."""
    global _config
    if _config is None:
        _config = AgentDBConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset the cached configuration (useful for testing)."""
    global _config
    _config = None
