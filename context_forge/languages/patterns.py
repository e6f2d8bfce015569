"""Per-language pattern rules for line-oriented symbol extraction."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath

from context_forge.core.models import SymbolKind


class Language(Enum):
    """Languages the extractor has rules for."""

    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"


EXTENSION_LANGUAGES: dict[str, Language] = {
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".py": Language.PYTHON,
}


def language_for_path(path: str | PurePath) -> Language | None:
    """Map a file's extension to a supported language, or None."""
    return EXTENSION_LANGUAGES.get(PurePath(path).suffix)


@dataclass(frozen=True)
class PatternRule:
    """A regex whose first group captures a symbol name of ``kind``."""

    regex: re.Pattern[str]
    kind: SymbolKind


def _rule(pattern: str, kind: SymbolKind) -> PatternRule:
    return PatternRule(re.compile(pattern), kind)


JS_RULES: tuple[PatternRule, ...] = (
    _rule(r"(?:export\s+)?class\s+(\w+)", SymbolKind.CLASS),
    _rule(r"(?:export\s+)?(?:async\s+)?function\s+(\w+)", SymbolKind.FUNCTION),
    _rule(r"(?:export\s+)?const\s+(\w+)\s*=\s*(?:async\s*)?\(", SymbolKind.FUNCTION),
    _rule(r"(?:export\s+)?const\s+(\w+)\s*=\s*(?:async\s*)?function", SymbolKind.FUNCTION),
    _rule(
        r"(?:export\s+)?(?:const|let|var)\s+(\w+)\s*=(?!\s*(?:async\s*)?\(|function)",
        SymbolKind.VARIABLE,
    ),
    _rule(r"export\s+\{\s*([^}]+)\s*\}", SymbolKind.EXPORT),
    _rule(r"export\s+default\s+(\w+)", SymbolKind.EXPORT),
)

TS_RULES: tuple[PatternRule, ...] = JS_RULES + (
    _rule(r"(?:export\s+)?interface\s+(\w+)", SymbolKind.INTERFACE),
    _rule(r"(?:export\s+)?type\s+(\w+)\s*=", SymbolKind.TYPE),
)

# Anchored at column 0: only module-level Python declarations are indexed.
PY_RULES: tuple[PatternRule, ...] = (
    _rule(r"^class\s+(\w+)", SymbolKind.CLASS),
    _rule(r"^(?:async\s+)?def\s+(\w+)", SymbolKind.FUNCTION),
    _rule(r"^(\w+)\s*=\s*(?!def|class)", SymbolKind.VARIABLE),
)

RULES: dict[Language, tuple[PatternRule, ...]] = {
    Language.JAVASCRIPT: JS_RULES,
    Language.TYPESCRIPT: TS_RULES,
    Language.PYTHON: PY_RULES,
}

PY_FROM_IMPORT = re.compile(r"^from\s+(\S+)\s+import")
PY_IMPORT = re.compile(r"^import\s+(\S+)")
JS_IMPORT_FROM = re.compile(r"""import\s+.*\s+from\s+['"]([^'"]+)['"]""")
JS_REQUIRE = re.compile(r"""require\s*\(\s*['"]([^'"]+)['"]\s*\)""")
