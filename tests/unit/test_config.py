"""Tests for environment-driven settings."""

from pathlib import Path

import pydantic
import pytest

from context_forge.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests.
    monkeypatch.chdir(tmp_path)


class TestSettings:
    """Tests for defaults, overrides, and derived paths."""

    def test_defaults(self, tmp_path: Path) -> None:
        settings = get_settings()

        assert settings.project_root == tmp_path.resolve()
        assert settings.CONTEXT_FORGE_DEBOUNCE_MS == 100
        assert settings.debounce_seconds == pytest.approx(0.1)
        assert settings.CONTEXT_FORGE_STALE_DAYS == 30
        assert settings.OLLAMA_URL == "http://localhost:11434"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("CONTEXT_FORGE_ROOT", str(tmp_path / "proj"))
        monkeypatch.setenv("CONTEXT_FORGE_DEBOUNCE_MS", "250")
        monkeypatch.setenv("OLLAMA_MODEL", "qwen2:0.5b")

        settings = get_settings()

        assert settings.project_root == (tmp_path / "proj").resolve()
        assert settings.debounce_seconds == pytest.approx(0.25)
        assert settings.OLLAMA_MODEL == "qwen2:0.5b"

    def test_env_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("CONTEXT_FORGE_STALE_DAYS=7\n")

        assert get_settings().CONTEXT_FORGE_STALE_DAYS == 7

    @pytest.mark.parametrize("debounce", [0, 5, 1001])
    def test_debounce_bounds(self, debounce: int) -> None:
        with pytest.raises(pydantic.ValidationError):
            get_settings(CONTEXT_FORGE_DEBOUNCE_MS=debounce)

    def test_derived_paths(self, tmp_path: Path) -> None:
        settings = get_settings(CONTEXT_FORGE_ROOT=tmp_path, CONTEXT_FORGE_STATE_DIR=".cf")

        assert settings.state_dir == tmp_path.resolve() / ".cf"
        assert settings.db_path == tmp_path.resolve() / ".cf" / "state.db"
        assert settings.state_file_path == tmp_path.resolve() / ".cf" / "STATE.json"
