"""Tests for the command-line interface."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from context_forge.cli import app
from context_forge.config import Settings

runner = CliRunner()


@pytest.fixture
def project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """A configured project root that is not the working directory."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)
    root = tmp_path / "project"
    root.mkdir()
    (root / "app.js").write_text("function load() {}\n")
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)
    monkeypatch.setenv("CONTEXT_FORGE_ROOT", str(root))
    return root.resolve()


class TestProjectRoot:
    """Tests for resolving the root from settings."""

    def test_index_defaults_to_configured_root(self, project: Path) -> None:
        result = runner.invoke(app, ["index"])

        assert result.exit_code == 0, result.output
        assert (project / ".context-forge" / "state.db").exists()
        assert not (Path.cwd() / ".context-forge").exists()

    def test_commands_share_the_configured_store(self, project: Path) -> None:
        runner.invoke(app, ["index"])
        runner.invoke(app, ["remember", "Loads are lazy"])

        result = runner.invoke(app, ["stats", "--json"])

        assert result.exit_code == 0, result.output
        stats = json.loads(result.stdout)
        assert (stats["files"], stats["symbols"], stats["facts"]) == (1, 1, 1)
        assert not (Path.cwd() / ".context-forge").exists()

    def test_explicit_path_wins(self, project: Path, tmp_path: Path) -> None:
        other = tmp_path / "other"
        other.mkdir()
        (other / "b.py").write_text("def b():\n    pass\n")

        result = runner.invoke(app, ["index", str(other)])

        assert result.exit_code == 0, result.output
        assert (other / ".context-forge" / "state.db").exists()
        assert not (project / ".context-forge").exists()


class TestRemember:
    """Tests for storing facts and decisions."""

    def test_decision_refreshes_state_file(self, project: Path) -> None:
        result = runner.invoke(app, ["remember", "Use gRPC", "--decision", "-p", "5"])

        assert result.exit_code == 0, result.output
        state = json.loads((project / ".context-forge" / "STATE.json").read_text())
        assert [d["content"] for d in state["active_decisions"]] == ["Use gRPC"]

    def test_superseded_decision_drops_from_state_file(self, project: Path) -> None:
        runner.invoke(app, ["remember", "Use REST", "--decision"])
        listed = runner.invoke(app, ["decisions", "--json"])
        first = json.loads(listed.stdout)[0]["id"]

        runner.invoke(app, ["remember", "Use gRPC", "--decision", "--supersedes", first])

        state = json.loads((project / ".context-forge" / "STATE.json").read_text())
        assert [d["content"] for d in state["active_decisions"]] == ["Use gRPC"]

    def test_fact_does_not_write_state_file(self, project: Path) -> None:
        result = runner.invoke(app, ["remember", "Loads are lazy"])

        assert result.exit_code == 0, result.output
        assert not (project / ".context-forge" / "STATE.json").exists()

    def test_invalid_priority_fails_cleanly(self, project: Path) -> None:
        result = runner.invoke(app, ["remember", "x", "--priority", "9"])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestFind:
    """Tests for symbol lookup."""

    def test_filter_by_type(self, project: Path) -> None:
        runner.invoke(app, ["index"])

        result = runner.invoke(app, ["find", "load", "--type", "function", "--json"])

        assert result.exit_code == 0, result.output
        assert [s["name"] for s in json.loads(result.stdout)] == ["load"]

    def test_unknown_type_is_a_usage_error(self, project: Path) -> None:
        result = runner.invoke(app, ["find", "load", "--type", "bogus"])

        assert result.exit_code == 2
        assert isinstance(result.exception, SystemExit)
        assert "Unknown symbol type" in result.output
        assert "bogus" in result.output
