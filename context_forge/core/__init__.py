"""
Core module: data models, exceptions, and storage.

This module provides the foundational types and persistence layer:

Models (models.py):
    - StateNode: A fact, decision, or session summary
    - CodeSymbol: A declaration matched in a source file
    - FileIndex: Digest and symbol ids recorded for one tracked file
    - NodeKind/SymbolKind: Enums for categorization

Exceptions (exceptions.py):
    - ContextForgeError: Base exception for all Context Forge errors
    - ValidationError: A write was rejected before anything was persisted
    - FileReadError / ParseError: A source file could not be read or decoded
    - StoreError: The database failed

Storage (storage/):
    - KnowledgeStore: Facade for all database operations
    - Uses SQLite for persistence in .context-forge/state.db

The indexer (indexer.py) and file watcher (watcher.py) build on these and
are imported from their own modules.
"""

from context_forge.core.exceptions import (
    ContextForgeError,
    FileReadError,
    ParseError,
    StoreError,
    ValidationError,
)
from context_forge.core.models import (
    CodeSymbol,
    FileIndex,
    IndexStats,
    NodeKind,
    SearchHit,
    SessionSummary,
    StateNode,
    StoreStats,
    SymbolKind,
    WorkspaceInfo,
)
from context_forge.core.storage import (
    KnowledgeStore,
    compute_content_hash,
    get_default_db_path,
)

__all__ = [
    # Models
    "StateNode",
    "CodeSymbol",
    "FileIndex",
    "SessionSummary",
    "WorkspaceInfo",
    "SearchHit",
    "StoreStats",
    "IndexStats",
    "NodeKind",
    "SymbolKind",
    # Exceptions
    "ContextForgeError",
    "ValidationError",
    "FileReadError",
    "ParseError",
    "StoreError",
    # Storage
    "KnowledgeStore",
    "compute_content_hash",
    "get_default_db_path",
]
