"""Tests for CLI commands."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from mfsearch.cli import _ensure_db_parent, _setup_logging, app
from mfsearch.index.storage import SQLiteStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MFSEARCH_EMBEDDING_PROVIDER", "MFSEARCH_EMBEDDING_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db(store) -> str:
    return str(store.db_path)


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        with patch("mfsearch.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        with patch("mfsearch.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestEnsureDbParent:
    def test_creates_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "subdir" / "test.db"
        _ensure_db_parent(db_path)
        assert db_path.parent.exists()


class TestSearchCommands:
    def test_search_prints_table(self, db) -> None:
        result = runner.invoke(app, ["search", "pumping wells", "--db", db])
        assert result.exit_code == 0
        assert "Score" in result.stdout
        assert "No matches found" not in result.stdout

    def test_search_no_matches(self, db) -> None:
        result = runner.invoke(app, ["search", "zzzzqqq", "--db", db])
        assert result.exit_code == 0
        assert "No matches found" in result.stdout

    def test_search_validation_error(self, db) -> None:
        result = runner.invoke(app, ["search", "wells", "--repository", "nope", "--db", db])
        assert result.exit_code == 1
        assert "Invalid repository" in result.stdout

    def test_missing_database(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["search", "wells", "--db", str(tmp_path / "missing.db")])
        assert result.exit_code == 2

    def test_code_json(self, db) -> None:
        result = runner.invoke(app, ["code", "pumping", "--search-type", "text", "--db", db])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["search_metadata"]["method_used"] == "text"

    def test_code_display_flags(self, db) -> None:
        result = runner.invoke(
            app, ["code", "pumping", "-r", "flopy", "--search-type", "text", "--source", "--no-github", "--db", db]
        )
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["search_metadata"]["display_options"] == ["source"]
        assert "github_url" not in payload["results"][0]
        assert payload["results"][0]["source_snippet"].startswith("class ModflowGwfwel")


class TestGetFileCommand:
    def test_prints_content(self, db) -> None:
        result = runner.invoke(app, ["get-file", "flopy", "mf6/modflow/mfgwfwel.py", "--db", db])
        assert result.exit_code == 0
        assert "class ModflowGwfwel:" in result.stdout

    def test_not_found_exits_nonzero(self, db) -> None:
        result = runner.invoke(app, ["get-file", "flopy", "missing.py", "--db", db])
        assert result.exit_code == 1
        assert result.stdout.startswith("Error: File not found")


class TestInfoCommand:
    def test_info(self, db) -> None:
        result = runner.invoke(app, ["info", "--db", db])
        assert result.exit_code == 0
        assert "## Tools" in result.stdout
        assert "## Collections" in result.stdout


class TestLoadCommand:
    def test_load_records(self, tmp_path: Path) -> None:
        records = tmp_path / "records.jsonl"
        records.write_text(
            json.dumps(
                {"type": "document", "collection": "pest", "path": "manual.md", "kind": "md", "title": "PEST"}
            )
            + "\n",
            encoding="utf-8",
        )
        db_path = tmp_path / "nested" / "out.db"

        result = runner.invoke(app, ["load", str(records), "--db", str(db_path)])

        assert result.exit_code == 0
        assert "Inserted: 1, updated: 0, failed: 0" in result.stdout
        store = SQLiteStore(db_path)
        try:
            assert store.get_stats()["pest"]["documents"] == 1
        finally:
            store.close()

    def test_missing_input_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["load", str(tmp_path / "missing.jsonl"), "--db", str(tmp_path / "x.db")])
        assert result.exit_code != 0


class TestServeCommand:
    def test_serve_runs_uvicorn(self, db, monkeypatch) -> None:
        monkeypatch.setenv("MFSEARCH_DB", "placeholder.db")
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--port", "9001", "--db", db])
        assert result.exit_code == 0
        mock_run.assert_called_once()
        assert mock_run.call_args[0][0] == "mfsearch.web.app:app"
        assert mock_run.call_args[1]["port"] == 9001
        assert os.environ["MFSEARCH_DB"] == db
