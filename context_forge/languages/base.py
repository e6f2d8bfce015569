"""Protocol for symbol extractors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from context_forge.languages.models import ExtractResult


class SymbolExtractor(Protocol):
    """Protocol for symbol extractors."""

    def extract(self, text: str) -> ExtractResult:
        """Extract symbol matches and import targets from file text."""
        ...
