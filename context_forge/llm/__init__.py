"""Optional local-model support."""

from context_forge.llm.ollama import ConflictCheck, OllamaClient

__all__ = ["ConflictCheck", "OllamaClient"]
