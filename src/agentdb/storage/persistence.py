"""File-based persistence for an AgentDB database.

A database directory holds exactly two artifacts that only make sense
together:

    index.faiss      FAISS HNSW graph and vectors (binary)
    metadata.json    {version, dimensions, nextId, savedAt, maxElements,
                      patternsWithIds: [[id, pattern], ...]}

Both are written atomically (temp file + rename).  Loading requires both:
a directory with neither is simply a fresh database, one with only one of
them is an :class:`InconsistentPersistenceError`.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agentdb.core.action_pattern import ActionPattern, utc_timestamp
from agentdb.core.errors import DimensionMismatchError, InconsistentPersistenceError
from agentdb.storage.vector_index import VectorIndex
from agentdb.utils.config import AgentDBConfig

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0.0"
INDEX_FILENAME = "index.faiss"
METADATA_FILENAME = "metadata.json"


@dataclass(frozen=True)
class LoadedState:
    """Everything read back from a database directory."""

    index: VectorIndex
    records: dict[int, ActionPattern]
    next_id: int
    saved_at: str | None


class PersistenceManager:
    """Reads and writes the two artifacts of one database directory."""

    def __init__(self, directory: Path | str) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def index_path(self) -> Path:
        return self._dir / INDEX_FILENAME

    @property
    def metadata_path(self) -> Path:
        return self._dir / METADATA_FILENAME

    def exists(self) -> bool:
        """True when both artifacts are present.

        Raises:
            InconsistentPersistenceError: Exactly one artifact is present
        """
        has_index = self.index_path.exists()
        has_metadata = self.metadata_path.exists()
        if has_index and has_metadata:
            return True
        if has_index or has_metadata:
            missing = METADATA_FILENAME if has_index else INDEX_FILENAME
            raise InconsistentPersistenceError(self._dir, f"{missing} is missing")
        return False

    # ──────────────────── Save ────────────────────

    def save(
        self,
        index: VectorIndex,
        records: dict[int, ActionPattern],
        next_id: int,
    ) -> None:
        """Flush the index and the record map to disk."""
        self._dir.mkdir(parents=True, exist_ok=True)

        tmp_index = self._dir / f"{INDEX_FILENAME}.tmp"
        try:
            index.write(tmp_index)
            os.replace(tmp_index, self.index_path)
        except (OSError, RuntimeError) as e:
            logger.error("Failed to write %s: %s", self.index_path, e)
            if tmp_index.exists():
                tmp_index.unlink()
            raise

        data: dict[str, Any] = {
            "version": FORMAT_VERSION,
            "dimensions": index.dimensions,
            "nextId": next_id,
            "savedAt": utc_timestamp(),
            "maxElements": index.max_elements,
            "patternsWithIds": [[pid, pattern.to_dict()] for pid, pattern in records.items()],
        }
        self._write_json(self.metadata_path, data)
        logger.info("Saved %d patterns to %s", len(records), self._dir)

    # ──────────────────── Load ────────────────────

    def load(self, config: AgentDBConfig) -> LoadedState:
        """
        Read both artifacts back.

        Args:
            config: Runtime configuration; its ``dimensions`` must match

        Raises:
            FileNotFoundError: Neither artifact exists
            InconsistentPersistenceError: One artifact missing or unreadable,
                or the two disagree on which ids exist
            DimensionMismatchError: Persisted dimensionality differs from config
        """
        if not self.exists():
            raise FileNotFoundError(f"No AgentDB database at {self._dir}")

        data = self._read_json(self.metadata_path)

        dimensions, saved_max, next_id = _header_fields(data, self._dir)
        if dimensions is not None and dimensions != config.dimensions:
            raise DimensionMismatchError(config.dimensions, dimensions, source="metadata")

        records = _records_from_metadata(data, self._dir)
        max_elements = max(saved_max, config.max_elements)

        try:
            index = VectorIndex.read(
                self.index_path,
                config.dimensions,
                max_elements,
                m=config.hnsw_m,
                ef_search=config.ef_search,
            )
        except RuntimeError as e:
            raise InconsistentPersistenceError(
                self._dir, f"unreadable {INDEX_FILENAME}: {e}"
            ) from e

        if set(index.ids) != set(records):
            raise InconsistentPersistenceError(
                self._dir,
                f"{INDEX_FILENAME} holds {len(index)} ids, "
                f"{METADATA_FILENAME} holds {len(records)} patterns",
            )

        if records and next_id <= max(records):
            logger.warning("nextId %d is not past the highest stored id; adjusting", next_id)
            next_id = max(records) + 1

        logger.info("Loaded %d patterns from %s", len(records), self._dir)
        return LoadedState(
            index=index,
            records=records,
            next_id=next_id,
            saved_at=data.get("savedAt"),
        )

    # ──────────────────── Internal helpers ────────────────────

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        """Write dict to JSON file atomically."""
        tmp_path = path.with_suffix(".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
                f.write("\n")
            tmp_path.replace(path)
        except OSError as e:
            logger.error("Failed to write %s: %s", path, e)
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    def _read_json(self, path: Path) -> dict[str, Any]:
        """Read the metadata document; unreadable means inconsistent."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise InconsistentPersistenceError(
                self._dir, f"unreadable {METADATA_FILENAME}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise InconsistentPersistenceError(self._dir, f"{METADATA_FILENAME} is not an object")
        return data


def _records_from_metadata(data: dict[str, Any], directory: Path) -> dict[int, ActionPattern]:
    """Rebuild the ordered record map, accepting the pre-id ``patterns`` list too."""
    records: dict[int, ActionPattern] = {}
    try:
        if "patternsWithIds" in data:
            for pattern_id, pattern in data["patternsWithIds"]:
                records[int(pattern_id)] = ActionPattern.from_dict(int(pattern_id), pattern)
        else:
            for position, pattern in enumerate(data.get("patterns", [])):
                records[position] = ActionPattern.from_dict(position, pattern)
    except (TypeError, ValueError, AttributeError) as e:
        raise InconsistentPersistenceError(directory, f"malformed pattern records: {e}") from e
    return records


def _header_fields(data: dict[str, Any], directory: Path) -> tuple[int | None, int, int]:
    """Return ``(dimensions, maxElements, nextId)`` from the metadata document."""
    try:
        dimensions = data.get("dimensions")
        if dimensions is not None:
            if isinstance(dimensions, bool) or not isinstance(dimensions, int):
                raise TypeError(f"dimensions must be an integer, got {dimensions!r}")
        max_elements = int(data.get("maxElements") or 0)
        next_id = int(data.get("nextId") or 0)
    except (TypeError, ValueError) as e:
        raise InconsistentPersistenceError(directory, f"malformed {METADATA_FILENAME}: {e}") from e
    return dimensions, max_elements, next_id
