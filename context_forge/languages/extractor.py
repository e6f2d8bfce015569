"""Line-oriented symbol extraction driven by regex pattern rules.

This is deliberately not a parser. Each line is tested against an ordered
list of rules for the file's language; every rule that matches yields a
symbol, so one line can produce several. When two rules capture the same
name on the same line the earlier rule wins. Block extent is estimated by
counting delimiters, which mis-bounds blocks whose opening line also holds
unrelated braces or colons (object literals, slices, type annotations).
"""

from __future__ import annotations

from context_forge.languages.models import ExtractResult, SymbolMatch
from context_forge.languages.patterns import (
    JS_IMPORT_FROM,
    JS_REQUIRE,
    PY_FROM_IMPORT,
    PY_IMPORT,
    RULES,
    Language,
)

BLOCK_OPENERS = frozenset("{:")
BLOCK_CLOSERS = frozenset("}")
# Lines assumed for a block whose delimiters never balance.
FALLBACK_BLOCK_SPAN = 10


class PatternExtractor:
    """Extracts symbols and imports for one language."""

    def __init__(self, language: Language | str) -> None:
        self.language = Language(language)
        self._rules = RULES[self.language]

    def extract(self, text: str) -> ExtractResult:
        """Extract symbol matches and deduplicated import targets from text."""
        lines = text.split("\n")
        return ExtractResult(
            symbols=self.extract_symbols(lines),
            imports=self.extract_imports(lines),
        )

    def extract_symbols(self, lines: list[str]) -> list[SymbolMatch]:
        matches: list[SymbolMatch] = []
        for index, line in enumerate(lines):
            seen: set[str] = set()
            for rule in self._rules:
                match = rule.regex.search(line)
                if match is None or not match.group(1):
                    continue
                name = match.group(1).strip()
                if not name or name in seen:
                    continue
                seen.add(name)
                matches.append(
                    SymbolMatch(
                        name=name,
                        kind=rule.kind,
                        start_line=index + 1,
                        end_line=find_block_end(lines, index),
                        signature=match.group(0).strip(),
                    )
                )
        return matches

    def extract_imports(self, lines: list[str]) -> list[str]:
        """Module-level import targets, first occurrence order, no duplicates."""
        imports: list[str] = []
        if self.language is Language.PYTHON:
            for line in lines:
                match = PY_FROM_IMPORT.search(line) or PY_IMPORT.search(line)
                if match:
                    imports.append(match.group(1).rstrip(","))
        else:
            for line in lines:
                for pattern in (JS_IMPORT_FROM, JS_REQUIRE):
                    match = pattern.search(line)
                    if match:
                        imports.append(match.group(1))
        return list(dict.fromkeys(imports))


def find_block_end(lines: list[str], start_index: int) -> int:
    """Estimate the 1-based last line of the block starting at ``start_index``.

    A single depth counter goes up on ``{`` or ``:`` and down on ``}``; the
    block ends on the line where depth returns to zero after going positive.
    Otherwise the block is assumed to span ``FALLBACK_BLOCK_SPAN`` lines.
    """
    depth = 0
    started = False
    for index in range(start_index, len(lines)):
        for char in lines[index]:
            if char in BLOCK_OPENERS:
                depth += 1
                started = True
            elif char in BLOCK_CLOSERS:
                depth -= 1
        if started and depth == 0:
            return index + 1
    return min(start_index + FALLBACK_BLOCK_SPAN, len(lines))


def get_extractor(language: Language | str) -> PatternExtractor:
    """Return the extractor for a language tag."""
    return PatternExtractor(language)
