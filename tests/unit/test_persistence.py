"""Tests for the two-artifact persistence format."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from agentdb.core.errors import DimensionMismatchError, InconsistentPersistenceError
from agentdb.database import AgentDB
from agentdb.storage.persistence import (
    FORMAT_VERSION,
    INDEX_FILENAME,
    METADATA_FILENAME,
    PersistenceManager,
)
from agentdb.utils.config import AgentDBConfig


def _read_metadata(path: Path) -> dict:
    return json.loads((path / METADATA_FILENAME).read_text(encoding="utf-8"))


def _write_metadata(path: Path, data: dict) -> None:
    (path / METADATA_FILENAME).write_text(json.dumps(data), encoding="utf-8")


class TestSave:
    """What lands on disk."""

    def test_both_artifacts_written(self, populated_db: AgentDB, db_path: Path) -> None:
        assert populated_db.save(db_path) == db_path
        assert (db_path / INDEX_FILENAME).is_file()
        assert (db_path / METADATA_FILENAME).is_file()
        assert not (db_path / f"{INDEX_FILENAME}.tmp").exists()

    def test_metadata_document(self, populated_db: AgentDB, db_path: Path) -> None:
        populated_db.save(db_path)
        data = _read_metadata(db_path)
        assert data["version"] == FORMAT_VERSION
        assert data["dimensions"] == 384
        assert data["nextId"] == 4
        assert data["maxElements"] == 100
        assert data["savedAt"].endswith("Z")
        assert [pid for pid, _ in data["patternsWithIds"]] == [0, 1, 2, 3]
        assert data["patternsWithIds"][0][1]["selector"] == "#email"

    def test_save_without_path(self, db: AgentDB) -> None:
        with pytest.raises(ValueError):
            db.save()

    def test_save_remembers_path(self, db: AgentDB, db_path: Path) -> None:
        db.save(db_path)
        assert db.path == db_path
        db.record("click")
        db.save()
        assert _read_metadata(db_path)["nextId"] == 1


class TestExists:
    """Presence checks on a database directory."""

    def test_missing_directory(self, db_path: Path) -> None:
        assert PersistenceManager(db_path).exists() is False

    def test_both_present(self, populated_db: AgentDB, db_path: Path) -> None:
        populated_db.save(db_path)
        assert PersistenceManager(db_path).exists() is True

    @pytest.mark.parametrize("removed", [INDEX_FILENAME, METADATA_FILENAME])
    def test_one_missing(self, populated_db: AgentDB, db_path: Path, removed: str) -> None:
        populated_db.save(db_path)
        (db_path / removed).unlink()
        with pytest.raises(InconsistentPersistenceError, match=removed):
            PersistenceManager(db_path).exists()


class TestLoad:
    """Reading a saved database back."""

    def test_round_trip(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        populated_db.save(db_path)
        loaded = AgentDB.load(db_path, config)

        assert loaded.patterns() == populated_db.patterns()
        assert loaded.next_id == populated_db.next_id
        assert loaded.capacity == populated_db.capacity
        assert loaded.get_statistics() == populated_db.get_statistics()

    def test_round_trip_query(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        populated_db.save(db_path)
        loaded = AgentDB.load(db_path, config)
        query = {"action": "fill", "selector": "#company", "url": "other.org/contact"}
        assert loaded.find_similar(query, 1)[0].id == populated_db.find_similar(query, 1)[0].id

    def test_ids_continue_after_load(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        populated_db.save(db_path)
        loaded = AgentDB.load(db_path, config)
        assert loaded.record("click", selector="#next") == 4

    def test_nothing_saved(self, db_path: Path, config: AgentDBConfig) -> None:
        with pytest.raises(FileNotFoundError):
            AgentDB.load(db_path, config)

    def test_open_starts_empty(self, db_path: Path, config: AgentDBConfig) -> None:
        db = AgentDB.open(db_path, config)
        assert len(db) == 0
        assert db.path == db_path

    def test_open_loads_existing(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        populated_db.save(db_path)
        assert len(AgentDB.open(db_path, config)) == 4

    @pytest.mark.parametrize("removed", [INDEX_FILENAME, METADATA_FILENAME])
    def test_one_artifact_missing(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig, removed: str
    ) -> None:
        populated_db.save(db_path)
        (db_path / removed).unlink()
        with pytest.raises(InconsistentPersistenceError):
            AgentDB.load(db_path, config)
        with pytest.raises(InconsistentPersistenceError):
            AgentDB.open(db_path, config)

    def test_corrupt_metadata(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        populated_db.save(db_path)
        (db_path / METADATA_FILENAME).write_text("{not json", encoding="utf-8")
        with pytest.raises(InconsistentPersistenceError):
            AgentDB.load(db_path, config)

    @pytest.mark.parametrize(
        ("key", "value"),
        [("nextId", "abc"), ("maxElements", "lots"), ("dimensions", "384"), ("nextId", [1])],
    )
    def test_malformed_header_field(
        self,
        populated_db: AgentDB,
        db_path: Path,
        config: AgentDBConfig,
        key: str,
        value: object,
    ) -> None:
        populated_db.save(db_path)
        data = _read_metadata(db_path)
        data[key] = value
        _write_metadata(db_path, data)
        with pytest.raises(InconsistentPersistenceError, match="malformed"):
            AgentDB.load(db_path, config)

    def test_corrupt_index(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        populated_db.save(db_path)
        (db_path / INDEX_FILENAME).write_bytes(b"definitely not an index")
        with pytest.raises(InconsistentPersistenceError):
            AgentDB.load(db_path, config)

    def test_dimension_mismatch(self, populated_db: AgentDB, db_path: Path) -> None:
        populated_db.save(db_path)
        with pytest.raises(DimensionMismatchError):
            AgentDB.load(db_path, AgentDBConfig(dimensions=128))

    def test_id_sets_disagree(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        populated_db.save(db_path)
        data = _read_metadata(db_path)
        data["patternsWithIds"] = data["patternsWithIds"][:-1]
        _write_metadata(db_path, data)
        with pytest.raises(InconsistentPersistenceError):
            AgentDB.load(db_path, config)

    def test_stale_next_id_adjusted(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        populated_db.save(db_path)
        data = _read_metadata(db_path)
        data["nextId"] = 1
        _write_metadata(db_path, data)
        assert AgentDB.load(db_path, config).next_id == 4

    def test_legacy_patterns_list(
        self, populated_db: AgentDB, db_path: Path, config: AgentDBConfig
    ) -> None:
        """Documents without ids use list position as the id."""
        populated_db.save(db_path)
        data = _read_metadata(db_path)
        data["patterns"] = [pattern for _, pattern in data.pop("patternsWithIds")]
        _write_metadata(db_path, data)

        loaded = AgentDB.load(db_path, config)
        assert [p.id for p in loaded.patterns()] == [0, 1, 2, 3]
        assert loaded.get(3).selector == "#company"  # type: ignore[union-attr]

    def test_saved_capacity_kept(self, db: AgentDB, db_path: Path) -> None:
        """A reindexed capacity survives a reload with a smaller configured one."""
        db.reindex(250)
        db.save(db_path)
        assert AgentDB.load(db_path, AgentDBConfig(max_elements=100)).capacity == 250
