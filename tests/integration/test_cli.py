"""Tests for the agentdb CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from agentdb import AgentDB, __version__
from agentdb.cli import app
from agentdb.storage.persistence import METADATA_FILENAME

runner = CliRunner()


def _record(db_path: Path, *args: str) -> None:
    result = runner.invoke(app, ["record", *args, "--path", str(db_path)])
    assert result.exit_code == 0, result.output


@pytest.fixture
def cli_db(db_path: Path) -> Path:
    """A saved database with three recorded actions."""
    _record(db_path, "fill", "-s", "#email", "-u", "site.com/signup")
    _record(db_path, "fill", "-s", "#email", "-u", "site.com/signup", "--failure")
    _record(db_path, "click", "-s", "#submit", "-u", "site.com/signup")
    return db_path


class TestRecord:
    """agentdb record"""

    def test_record_saves(self, db_path: Path) -> None:
        result = runner.invoke(
            app, ["record", "fill", "-s", "#email", "-u", "site.com", "--path", str(db_path)]
        )
        assert result.exit_code == 0
        assert "Recorded pattern 0" in result.output
        assert len(AgentDB.load(db_path)) == 1

    def test_record_json(self, db_path: Path) -> None:
        result = runner.invoke(app, ["record", "click", "--path", str(db_path), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"id": 0, "totalActions": 1}

    def test_record_metadata_types(self, db_path: Path) -> None:
        _record(
            db_path, "fill", "-m", "attempt=2", "-m", "ratio=0.5", "-m", "retry=true",
            "-m", "fieldType=email",
        )
        pattern = AgentDB.load(db_path).get(0)
        assert pattern is not None
        assert pattern.metadata == {
            "attempt": 2,
            "ratio": 0.5,
            "retry": True,
            "fieldType": "email",
        }

    def test_record_bad_metadata(self, db_path: Path) -> None:
        result = runner.invoke(app, ["record", "fill", "-m", "novalue", "--path", str(db_path)])
        assert result.exit_code == 1

    def test_record_failure_flag(self, db_path: Path) -> None:
        _record(db_path, "click", "--failure")
        assert AgentDB.load(db_path).get(0).success is False  # type: ignore[union-attr]


class TestQuery:
    """agentdb query"""

    def test_query_json(self, cli_db: Path) -> None:
        result = runner.invoke(
            app,
            ["query", "fill", "-s", "#email", "-u", "site.com/signup", "-p", str(cli_db), "-j"],
        )
        assert result.exit_code == 0
        results = json.loads(result.stdout)
        assert [r["id"] for r in results[:2]] == [0, 1]
        assert results[0]["similarity"] == pytest.approx(1.0, abs=1e-5)

    def test_query_success_only(self, cli_db: Path) -> None:
        result = runner.invoke(
            app, ["query", "fill", "-s", "#email", "--success-only", "-p", str(cli_db), "-j"]
        )
        assert result.exit_code == 0
        assert sorted(r["id"] for r in json.loads(result.stdout)) == [0, 2]

    def test_query_table(self, cli_db: Path) -> None:
        result = runner.invoke(app, ["query", "click", "-s", "#submit", "-p", str(cli_db)])
        assert result.exit_code == 0
        assert "#submit" in result.output

    def test_query_empty_database(self, db_path: Path) -> None:
        result = runner.invoke(app, ["query", "fill", "-p", str(db_path)])
        assert result.exit_code == 0
        assert "No similar patterns found." in result.output


class TestStats:
    """agentdb stats"""

    def test_stats_text(self, cli_db: Path) -> None:
        result = runner.invoke(app, ["stats", "-p", str(cli_db)])
        assert result.exit_code == 0
        assert "Total actions: 3" in result.output
        assert "Success rate: 66.7%" in result.output
        assert "fill: 2" in result.output

    def test_stats_json(self, cli_db: Path) -> None:
        result = runner.invoke(app, ["stats", "-p", str(cli_db), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["totalActions"] == 3
        assert data["actionTypes"] == {"fill": 2, "click": 1}
        assert data["topPatterns"][0]["pattern"] == "fill|#email"

    def test_stats_env_directory(
        self, cli_db: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("AGENTDB_DIR", str(cli_db))
        result = runner.invoke(app, ["stats", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["totalActions"] == 3

    def test_inconsistent_database(self, cli_db: Path) -> None:
        (cli_db / METADATA_FILENAME).unlink()
        result = runner.invoke(app, ["stats", "-p", str(cli_db)])
        assert result.exit_code == 1


class TestExportImport:
    """agentdb export / import"""

    def test_export_to_file_and_import(self, cli_db: Path, tmp_path: Path) -> None:
        export_file = tmp_path / "corpus.json"
        result = runner.invoke(app, ["export", "-o", str(export_file), "-p", str(cli_db)])
        assert result.exit_code == 0
        assert len(json.loads(export_file.read_text())["patternsWithIds"]) == 3

        other = tmp_path / "other"
        _record(other, "scroll")
        result = runner.invoke(app, ["import", str(export_file), "-p", str(other)])
        assert result.exit_code == 0
        assert "Imported 3 patterns (total 4)" in result.output
        assert [p.id for p in AgentDB.load(other).patterns()] == [0, 1, 2, 3]

    def test_export_stdout(self, cli_db: Path) -> None:
        result = runner.invoke(app, ["export", "-p", str(cli_db)])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["dimensions"] == 384

    def test_import_missing_file(self, db_path: Path, tmp_path: Path) -> None:
        result = runner.invoke(app, ["import", str(tmp_path / "nope.json"), "-p", str(db_path)])
        assert result.exit_code == 1

    def test_import_invalid_file(self, db_path: Path, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{oops", encoding="utf-8")
        result = runner.invoke(app, ["import", str(bad), "-p", str(db_path)])
        assert result.exit_code == 1


class TestMaintenance:
    """agentdb reindex / version"""

    def test_reindex(self, cli_db: Path) -> None:
        result = runner.invoke(app, ["reindex", "--max-elements", "20000", "-p", str(cli_db)])
        assert result.exit_code == 0
        assert AgentDB.load(cli_db).capacity == 20000

    def test_reindex_too_small(self, cli_db: Path) -> None:
        result = runner.invoke(app, ["reindex", "--max-elements", "1", "-p", str(cli_db)])
        assert result.exit_code == 1

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"agentdb v{__version__}" in result.output
