"""Runtime settings, read from the environment and an optional .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from context_forge.core.storage import DEFAULT_STALE_DAYS, DEFAULT_STATE_DIR, get_default_db_path

STATE_FILENAME = "STATE.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CONTEXT_FORGE_ROOT: Path = Field(Path("."), description="Project root to index and watch")
    CONTEXT_FORGE_STATE_DIR: str = Field(
        DEFAULT_STATE_DIR, description="State directory name, relative to the project root"
    )
    CONTEXT_FORGE_LOG_LEVEL: str = Field("INFO", description="Root log level")
    CONTEXT_FORGE_DEBOUNCE_MS: int = Field(
        100, ge=10, le=1000, description="Watcher debounce window in milliseconds"
    )
    CONTEXT_FORGE_STALE_DAYS: float = Field(
        DEFAULT_STALE_DAYS, gt=0, description="Age after which unverified knowledge is stale"
    )
    OLLAMA_URL: str = Field("http://localhost:11434", description="Local model server")
    OLLAMA_MODEL: str = Field("llama3.1:8b", description="Model used for summarization")
    OLLAMA_TIMEOUT: float = Field(30.0, gt=0, description="Generation timeout in seconds")

    @property
    def project_root(self) -> Path:
        return self.CONTEXT_FORGE_ROOT.resolve()

    @property
    def state_dir(self) -> Path:
        return self.project_root / self.CONTEXT_FORGE_STATE_DIR

    @property
    def db_path(self) -> Path:
        return get_default_db_path(self.project_root, self.CONTEXT_FORGE_STATE_DIR)

    @property
    def state_file_path(self) -> Path:
        return self.state_dir / STATE_FILENAME

    @property
    def debounce_seconds(self) -> float:
        return self.CONTEXT_FORGE_DEBOUNCE_MS / 1000


def get_settings(**overrides: object) -> Settings:
    """Load settings now; keyword overrides win over the environment."""
    return Settings(**overrides)
