"""Data models for symbol extraction results."""

from __future__ import annotations

from dataclasses import dataclass, field

from context_forge.core.models import SymbolKind


@dataclass
class SymbolMatch:
    """A symbol matched in source text (before storage)."""

    name: str
    kind: SymbolKind
    start_line: int
    end_line: int
    signature: str | None = None


@dataclass
class ExtractResult:
    """Result of extracting one file."""

    symbols: list[SymbolMatch] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
