"""Collaborators shared by every tool handler."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from context_forge.config import Settings
from context_forge.core.indexer import Indexer, IgnoreRules
from context_forge.core.storage import DEFAULT_STALE_DAYS, KnowledgeStore
from context_forge.llm import OllamaClient
from context_forge.state_file import StateFile


@dataclass
class ToolContext:
    """Everything a handler may touch. Built once per server process."""

    store: KnowledgeStore
    indexer: Indexer
    state_file: StateFile
    ollama: OllamaClient
    project_root: Path
    stale_days: float = DEFAULT_STALE_DAYS

    @classmethod
    def from_settings(cls, settings: Settings, store: KnowledgeStore) -> ToolContext:
        root = settings.project_root
        return cls(
            store=store,
            indexer=Indexer(store, root, IgnoreRules.default(settings.CONTEXT_FORGE_STATE_DIR)),
            state_file=StateFile(settings.state_file_path, root),
            ollama=OllamaClient(
                base_url=settings.OLLAMA_URL,
                model=settings.OLLAMA_MODEL,
                timeout=settings.OLLAMA_TIMEOUT,
            ),
            project_root=root,
            stale_days=settings.CONTEXT_FORGE_STALE_DAYS,
        )

    def refresh_decisions(self) -> None:
        """Rewrite the snapshot's active decisions after a decision changes."""
        self.state_file.update_decisions(self.store.nodes.get_active_decisions())
