"""
Storage layer: SQLite persistence for project knowledge and the code index.

This module provides database operations split by concern:

Components:
    - KnowledgeStore: Main facade that coordinates all storage
    - NodeStorage: Facts, decisions, and summaries (state_nodes table)
    - SymbolStorage: CRUD operations for the code_symbols table
    - FileStorage: Track indexed files and their content hashes
    - SessionStorage: Append-only session summaries
    - WorkspaceStorage: Repository URL, commit, and branch

Database Schema:
    state_nodes: id, type, content, timestamp, supersedes, tags, citations,
                 related_to, priority, created_at, last_verified, metadata
    code_symbols: id, name, type, file_path, start_line, end_line, signature,
                  dependencies, dependents
    file_index: path, hash, last_indexed, symbols
    session_summaries: id, timestamp, token_count, summary, key_decisions
    workspace_info: repo_url, repo_hash, branch

The database is stored at .context-forge/state.db relative to the project root.
"""

from context_forge.core.storage.files import FileStorage, compute_content_hash
from context_forge.core.storage.nodes import DEFAULT_STALE_DAYS, NodeStorage
from context_forge.core.storage.repository import (
    DEFAULT_STATE_DIR,
    KnowledgeStore,
    get_default_db_path,
)
from context_forge.core.storage.sessions import SessionStorage
from context_forge.core.storage.symbols import SymbolStorage
from context_forge.core.storage.workspace import WorkspaceStorage

__all__ = [
    "KnowledgeStore",
    "NodeStorage",
    "SymbolStorage",
    "FileStorage",
    "SessionStorage",
    "WorkspaceStorage",
    "DEFAULT_STALE_DAYS",
    "DEFAULT_STATE_DIR",
    "compute_content_hash",
    "get_default_db_path",
]
