"""Knowledge store facade that coordinates all storage operations."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from context_forge.core.exceptions import StoreError
from context_forge.core.models import CodeSymbol, FileIndex, NodeKind, SearchHit, StoreStats
from context_forge.core.storage.files import FileStorage
from context_forge.core.storage.nodes import NodeStorage
from context_forge.core.storage.sessions import SessionStorage
from context_forge.core.storage.symbols import SymbolStorage
from context_forge.core.storage.workspace import WorkspaceStorage

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".context-forge"
DB_FILENAME = "state.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS state_nodes (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    content TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    supersedes TEXT,
    metadata TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    created_at TEXT,
    last_verified TEXT,
    citations TEXT NOT NULL DEFAULT '[]',
    related_to TEXT NOT NULL DEFAULT '[]',
    priority INTEGER NOT NULL DEFAULT 3
);

CREATE TABLE IF NOT EXISTS code_symbols (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    file_path TEXT NOT NULL,
    start_line INTEGER NOT NULL,
    end_line INTEGER NOT NULL,
    signature TEXT,
    dependencies TEXT NOT NULL,
    dependents TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS file_index (
    path TEXT PRIMARY KEY,
    hash TEXT NOT NULL,
    last_indexed TEXT NOT NULL,
    symbols TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS session_summaries (
    id TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    token_count INTEGER NOT NULL,
    summary TEXT NOT NULL,
    key_decisions TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS workspace_info (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    repo_url TEXT,
    repo_hash TEXT,
    branch TEXT,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_state_type ON state_nodes(type);
CREATE INDEX IF NOT EXISTS idx_state_timestamp ON state_nodes(timestamp);
CREATE INDEX IF NOT EXISTS idx_state_supersedes ON state_nodes(supersedes);
CREATE INDEX IF NOT EXISTS idx_symbol_name ON code_symbols(name);
CREATE INDEX IF NOT EXISTS idx_symbol_file ON code_symbols(file_path);
CREATE INDEX IF NOT EXISTS idx_symbol_type ON code_symbols(type);
"""


class KnowledgeStore:
    """Facade over nodes, symbols, file indexes, sessions, and workspace info.

    One connection is shared by every caller, including the file watcher's
    timer threads; a re-entrant lock serializes access and the outermost
    ``transaction()`` commits or rolls back.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._depth = 0

        self.nodes = NodeStorage(self.transaction)
        self.symbols = SymbolStorage(self.transaction)
        self.files = FileStorage(self.transaction)
        self.sessions = SessionStorage(self.transaction)
        self.workspace = WorkspaceStorage(self.transaction)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a database connection."""
        if self._conn is None:
            try:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self._db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.executescript(_SCHEMA)
            except (OSError, sqlite3.Error) as e:
                raise StoreError(f"Cannot open store at {self._db_path}: {e}") from e
            logger.debug("opened store %s", self._db_path)
            self._conn = conn
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection; nested calls join the outermost transaction."""
        with self._lock:
            conn = self._get_connection()
            self._depth += 1
            try:
                yield conn
                if self._depth == 1:
                    conn.commit()
            except sqlite3.Error as e:
                if self._depth == 1:
                    conn.rollback()
                raise StoreError(f"Database error: {e}") from e
            except BaseException:
                if self._depth == 1:
                    conn.rollback()
                raise
            finally:
                self._depth -= 1

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> KnowledgeStore:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()

    def replace_file(self, file_index: FileIndex, symbols: list[CodeSymbol]) -> None:
        """Swap a file's symbol set and index record as one unit."""
        with self.transaction():
            self.symbols.delete_by_file(file_index.path)
            self.symbols.save_many(symbols)
            self.files.save(file_index)

    def delete_file(self, path: str) -> None:
        """Delete a file's symbols and index record. Untracked paths are a no-op."""
        with self.transaction():
            self.symbols.delete_by_file(path)
            self.files.delete(path)

    def search(self, query: str) -> list[SearchHit]:
        """Case-insensitive substring search over node content and symbols."""
        with self.transaction():
            return self.nodes.search_content(query) + self.symbols.search_content(query)

    def get_stats(self) -> StoreStats:
        """Get counts of indexed files, symbols, decisions, and facts."""
        with self.transaction():
            return StoreStats(
                files=self.files.count(),
                symbols=self.symbols.count(),
                decisions=self.nodes.count(NodeKind.DECISION),
                facts=self.nodes.count(NodeKind.FACT),
            )

    def clear_index(self) -> None:
        """Drop all symbols and file records; knowledge nodes are kept."""
        with self.transaction():
            self.symbols.clear()
            self.files.clear()


def get_default_db_path(project_root: Path, state_dir: str = DEFAULT_STATE_DIR) -> Path:
    """Get the default database path for a project."""
    return project_root / state_dir / DB_FILENAME
