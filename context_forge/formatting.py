"""Plain-text renderings of store records for briefings and tool output."""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable, Sequence

from context_forge.core.models import CodeSymbol, SessionSummary, StateNode, SymbolKind

CHARS_PER_TOKEN = 4
MAX_SESSIONS_SHOWN = 3
ELLIPSIS = "..."

# Sections of a code map, in display order. Imports get their own section.
_CODE_MAP_SECTIONS = (
    (SymbolKind.CLASS, "Classes"),
    (SymbolKind.INTERFACE, "Interfaces"),
    (SymbolKind.TYPE, "Types"),
    (SymbolKind.FUNCTION, "Functions"),
    (SymbolKind.VARIABLE, "Variables"),
    (SymbolKind.EXPORT, "Exports"),
)


def generate_id() -> str:
    return str(uuid.uuid4())


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncate_text(text: str, max_tokens: int) -> str:
    """Cut text to roughly ``max_tokens`` tokens, marking the cut with an ellipsis."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return text
    return text[: max_chars - len(ELLIPSIS)] + ELLIPSIS


def format_date(node: StateNode) -> str:
    return node.timestamp.date().isoformat()


def format_tags(tags: Sequence[str]) -> str:
    return f" #{' #'.join(tags)}" if tags else ""


def format_node(node: StateNode, stale: bool = False) -> list[str]:
    """Render one node as a headline plus detail lines."""
    marker = " [STALE]" if stale else ""
    lines = [
        f"[{node.kind.value}] [P{node.priority}] {node.content}{format_tags(node.tags)}{marker}",
        f"  ID: {node.id} | Created: {format_date(node)}",
    ]
    if node.citations:
        lines.append(f"  Citations: {', '.join(node.citations)}")
    if node.related_to:
        lines.append(f"  Related to: {', '.join(node.related_to)}")
    return lines


def format_code_map(module_path: str, symbols: Iterable[CodeSymbol], imports: Sequence[str]) -> str:
    """Group a file's symbols by kind under a module heading."""
    lines = [f"Module: {module_path}", ""]

    if imports:
        lines.append("Imports:")
        lines.extend(f"  - {imp}" for imp in imports)
        lines.append("")

    grouped: dict[SymbolKind, list[CodeSymbol]] = {}
    for symbol in symbols:
        grouped.setdefault(symbol.kind, []).append(symbol)

    for kind, heading in _CODE_MAP_SECTIONS:
        group = grouped.get(kind)
        if not group:
            continue
        lines.append(f"{heading}:")
        for symbol in group:
            signature = f" - {symbol.signature}" if symbol.signature else ""
            lines.append(f"  - {symbol.name} (line {symbol.start_line}){signature}")
        lines.append("")

    return "\n".join(lines).strip()


def format_dependency_tree(
    label: str,
    dependencies: Sequence[str],
    dependents: Sequence[str],
    depth: int = 2,
) -> str:
    """List a symbol's imports and users, ``depth * 5`` entries per side."""
    shown = depth * 5
    lines = [f"Symbol: {label}"]

    for heading, arrow, items in (
        ("Dependencies (imports):", "<-", dependencies),
        ("Dependents (used by):", "->", dependents),
    ):
        if not items:
            continue
        lines.append(heading)
        lines.extend(f"  {arrow} {item}" for item in items[:shown])
        if len(items) > shown:
            lines.append(f"  ... and {len(items) - shown} more")

    return "\n".join(lines)


def format_decisions(decisions: Sequence[StateNode]) -> str:
    if not decisions:
        return "No active decisions recorded."
    lines = ["Active Project Decisions:"]
    lines.extend(f"  [{format_date(d)}] {d.content}" for d in decisions)
    return "\n".join(lines)


def format_session_summary(summaries: Sequence[SessionSummary]) -> str:
    """Render the most recent sessions, newest first."""
    if not summaries:
        return "No previous session history."
    lines = ["Previous Session Summary:"]
    for summary in summaries[:MAX_SESSIONS_SHOWN]:
        lines.append(f"\n[{summary.timestamp.isoformat()}]")
        lines.append(summary.summary)
        if summary.key_decisions:
            lines.append("Key decisions:")
            lines.extend(f"  - {decision}" for decision in summary.key_decisions)
    return "\n".join(lines)
