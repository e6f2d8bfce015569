"""Check that citations still point at real files and lines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from context_forge.core.models import StateNode, parse_citation


class CitationStatus(Enum):
    VALID = "valid"
    MISSING_FILE = "missing_file"
    LINE_CHANGED = "line_changed"


@dataclass
class CitationCheck:
    node_id: str
    citation: str
    status: CitationStatus

    def to_dict(self) -> dict[str, str]:
        return {"node_id": self.node_id, "citation": self.citation, "status": self.status.value}


def check_citation(project_root: Path, citation: str) -> CitationStatus:
    path, line = parse_citation(citation)
    full_path = project_root / path
    if not full_path.is_file():
        return CitationStatus.MISSING_FILE
    if line is None:
        return CitationStatus.VALID
    try:
        text = full_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return CitationStatus.MISSING_FILE
    if line > len(text.split("\n")):
        return CitationStatus.LINE_CHANGED
    return CitationStatus.VALID


def validate_citations(project_root: Path, nodes: list[StateNode]) -> list[CitationCheck]:
    """Check every citation of every node, in node then citation order."""
    return [
        CitationCheck(node.id, citation, check_citation(project_root, citation))
        for node in nodes
        for citation in node.citations
    ]
