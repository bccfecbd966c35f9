"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from agentdb.core.action_pattern import PatternInput
from agentdb.database import AgentDB
from agentdb.engine.embedding import HashingEmbedding
from agentdb.utils.config import AgentDBConfig, reset_config

_ENV_VARS = (
    "AGENTDB_DIR",
    "AGENTDB_DIMENSIONS",
    "AGENTDB_MAX_ELEMENTS",
    "AGENTDB_HNSW_M",
    "AGENTDB_EF_CONSTRUCTION",
    "AGENTDB_EF_SEARCH",
    "AGENTDB_EMBEDDING_PROVIDER",
    "AGENTDB_EMBEDDING_MODEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate every test from the caller's AGENTDB_* environment."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config() -> AgentDBConfig:
    """Create a small test configuration."""
    return AgentDBConfig(max_elements=100)


@pytest.fixture
def embedder(config: AgentDBConfig) -> HashingEmbedding:
    return HashingEmbedding(config.dimensions)


@pytest.fixture
def db(config: AgentDBConfig) -> AgentDB:
    """Create an empty in-memory database."""
    return AgentDB(config)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Directory for a persisted database (not created yet)."""
    return tmp_path / "agentdb"


@pytest.fixture
def sample_inputs() -> list[PatternInput]:
    """A small mixed corpus of form-filling actions."""
    return [
        PatternInput(
            action="fill",
            selector="#email",
            url="https://site.com/signup",
            value="jane@example.com",
            success=True,
            timestamp="2025-01-01T10:00:00.000Z",
            metadata={"fieldType": "email"},
        ),
        PatternInput(
            action="fill",
            selector="#email",
            url="https://site.com/signup",
            success=False,
            timestamp="2025-01-01T10:01:00.000Z",
            metadata={"fieldType": "email"},
        ),
        PatternInput(
            action="click",
            selector="button[type=submit]",
            url="https://site.com/signup",
            success=True,
            timestamp="2025-01-01T10:02:00.000Z",
        ),
        PatternInput(
            action="fill",
            selector="#company",
            url="https://other.org/contact",
            value="Acme",
            success=True,
            timestamp="2025-01-02T09:00:00.000Z",
            metadata={"fieldType": "text"},
        ),
    ]


@pytest.fixture
def populated_db(db: AgentDB, sample_inputs: list[PatternInput]) -> AgentDB:
    """Database holding ``sample_inputs`` with ids 0..3."""
    for pattern in sample_inputs:
        db.store(pattern)
    return db
