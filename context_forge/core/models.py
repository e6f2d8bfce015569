"""Data models for Context Forge."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from context_forge.core.exceptions import ValidationError

MIN_PRIORITY = 1
MAX_PRIORITY = 5
DEFAULT_PRIORITY = 3


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_db_time(value: datetime) -> str:
    """Serialize a datetime as fixed-width UTC ISO-8601 so text order is time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: str | None) -> datetime | None:
    """Parse a stored timestamp, or None if absent."""
    if value is None:
        return None
    return datetime.fromisoformat(value)


def parse_citation(citation: str) -> tuple[str, int | None]:
    """Split ``path[:line]`` into its path and optional line number."""
    path, sep, line = citation.rpartition(":")
    if sep and path and line.isdigit():
        return path, int(line)
    return citation, None


def _load_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return list(json.loads(raw))


class NodeKind(Enum):
    """Kinds of knowledge nodes."""

    FACT = "fact"
    DECISION = "decision"
    SUMMARY = "summary"


class SymbolKind(Enum):
    """Kinds of lexically matched code declarations."""

    CLASS = "class"
    FUNCTION = "function"
    VARIABLE = "variable"
    IMPORT = "import"
    EXPORT = "export"
    INTERFACE = "interface"
    TYPE = "type"


@dataclass
class StateNode:
    """A fact, decision, or session summary."""

    id: str
    kind: NodeKind
    content: str
    timestamp: datetime
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    last_verified: datetime | None = None
    citations: list[str] = field(default_factory=list)
    related_to: list[str] = field(default_factory=list)
    priority: int = DEFAULT_PRIORITY
    supersedes: str | None = None
    metadata: dict[str, Any] | None = None

    @property
    def verification_clock(self) -> datetime:
        """The time staleness is measured from."""
        return self.last_verified or self.created_at or self.timestamp

    def is_stale(self, threshold_days: float, now: datetime | None = None) -> bool:
        """True when the node has not been verified within the threshold."""
        now = now or utc_now()
        return now - self.verification_clock > timedelta(days=threshold_days)

    def validate(self) -> None:
        """Reject malformed nodes before they reach the database."""
        if not self.id:
            raise ValidationError("Node id must not be empty")
        if not isinstance(self.kind, NodeKind):
            raise ValidationError(f"Unknown node kind: {self.kind!r}")
        if not self.content or not self.content.strip():
            raise ValidationError("Node content must not be empty")
        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise ValidationError(f"Priority must be an integer, got {self.priority!r}")
        if not MIN_PRIORITY <= self.priority <= MAX_PRIORITY:
            raise ValidationError(
                f"Invalid priority: {self.priority}. "
                f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}."
            )
        if self.supersedes is not None and self.supersedes == self.id:
            raise ValidationError(f"Node {self.id} cannot supersede itself")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "id": self.id,
            "type": self.kind.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_verified": self.last_verified.isoformat() if self.last_verified else None,
            "citations": list(self.citations),
            "related_to": list(self.related_to),
            "priority": self.priority,
            "supersedes": self.supersedes,
            "metadata": self.metadata,
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> StateNode:
        """Create a StateNode from a database row."""
        return cls(
            id=row["id"],
            kind=NodeKind(row["type"]),
            content=row["content"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            tags=_load_list(row["tags"]),
            created_at=from_db_time(row["created_at"]),
            last_verified=from_db_time(row["last_verified"]),
            citations=_load_list(row["citations"]),
            related_to=_load_list(row["related_to"]),
            priority=row["priority"],
            supersedes=row["supersedes"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else None,
        )


@dataclass
class CodeSymbol:
    """One declared program element found in an indexed file."""

    id: str
    name: str
    kind: SymbolKind
    file_path: str
    start_line: int
    end_line: int
    signature: str | None = None
    dependencies: list[str] = field(default_factory=list)
    # Reverse edges; nothing fills these yet.
    dependents: list[str] = field(default_factory=list)

    @staticmethod
    def make_id(file_path: str, name: str, start_line: int) -> str:
        """Deterministic id, so re-extraction replaces rather than duplicates."""
        return f"{file_path}:{name}:{start_line}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.kind.value,
            "file": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "signature": self.signature,
            "dependencies": list(self.dependencies),
            "dependents": list(self.dependents),
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> CodeSymbol:
        """Create a CodeSymbol from a database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            kind=SymbolKind(row["type"]),
            file_path=row["file_path"],
            start_line=row["start_line"],
            end_line=row["end_line"],
            signature=row["signature"],
            dependencies=_load_list(row["dependencies"]),
            dependents=_load_list(row["dependents"]),
        )


@dataclass
class FileIndex:
    """Indexing state of one tracked file."""

    path: str
    hash: str
    last_indexed: datetime
    symbols: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> FileIndex:
        """Create a FileIndex from a database row."""
        return cls(
            path=row["path"],
            hash=row["hash"],
            last_indexed=datetime.fromisoformat(row["last_indexed"]),
            symbols=_load_list(row["symbols"]),
        )


@dataclass
class SessionSummary:
    """A compressed record of one past session."""

    id: str
    timestamp: datetime
    token_count: int
    summary: str
    key_decisions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "token_count": self.token_count,
            "summary": self.summary,
            "key_decisions": list(self.key_decisions),
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> SessionSummary:
        """Create a SessionSummary from a database row."""
        return cls(
            id=row["id"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            token_count=row["token_count"],
            summary=row["summary"],
            key_decisions=_load_list(row["key_decisions"]),
        )


@dataclass
class WorkspaceInfo:
    """Version-control identity of the project."""

    repo_url: str | None = None
    repo_hash: str | None = None
    branch: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"repo_url": self.repo_url, "repo_hash": self.repo_hash, "branch": self.branch}


@dataclass
class SearchHit:
    """One free-text search result; score is assigned by the caller."""

    kind: str
    id: str
    content: str
    score: float | None = None


@dataclass
class StoreStats:
    """Aggregate counts over the store."""

    files: int
    symbols: int
    decisions: int
    facts: int


class IndexStats:
    """Statistics from an indexing operation."""

    def __init__(self) -> None:
        self.files: int = 0
        self.symbols: int = 0
        self.unchanged: int = 0
        self.removed: int = 0
        self.errors: list[str] = []

    def __repr__(self) -> str:
        return (
            f"IndexStats(files={self.files}, symbols={self.symbols}, "
            f"unchanged={self.unchanged}, removed={self.removed}, errors={len(self.errors)})"
        )
