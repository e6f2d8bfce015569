"""
Symbol extraction: find declarations and imports in source text.

This module provides the extraction layer that turns file text into symbol
matches for the Incremental Indexer to persist.

Components:
    - SymbolExtractor: Protocol defining the extractor interface
    - PatternExtractor: Regex rule-driven extractor, one per language
    - ExtractResult: Container for symbol matches and import targets
    - Language / EXTENSION_LANGUAGES: Supported languages by file extension

The extractor produces:
    - Symbols: classes, functions, variables, exports, interfaces, types
    - Imports: module targets of ``import``/``from`` and ``require()``

Adding a new language:
    1. Add a Language member and its extensions to EXTENSION_LANGUAGES
    2. Add its ordered rule tuple to RULES
    3. Teach PatternExtractor.extract_imports its import forms
"""

from context_forge.languages.base import SymbolExtractor
from context_forge.languages.extractor import PatternExtractor, find_block_end, get_extractor
from context_forge.languages.models import ExtractResult, SymbolMatch
from context_forge.languages.patterns import (
    EXTENSION_LANGUAGES,
    Language,
    PatternRule,
    language_for_path,
)

__all__ = [
    "EXTENSION_LANGUAGES",
    "ExtractResult",
    "Language",
    "PatternExtractor",
    "PatternRule",
    "SymbolExtractor",
    "SymbolMatch",
    "find_block_end",
    "get_extractor",
    "language_for_path",
]
