"""File index storage operations."""

from __future__ import annotations

import hashlib
import json
import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager

from context_forge.core.models import FileIndex, to_db_time


class FileStorage:
    """Storage operations for indexed files."""

    def __init__(
        self, transaction: Callable[[], AbstractContextManager[sqlite3.Connection]]
    ) -> None:
        self._transaction = transaction

    def save(self, file_index: FileIndex) -> None:
        """Insert or replace a file record."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO file_index (path, hash, last_indexed, symbols)
                VALUES (?, ?, ?, ?)
                """,
                (
                    file_index.path,
                    file_index.hash,
                    to_db_time(file_index.last_indexed),
                    json.dumps(file_index.symbols),
                ),
            )

    def get(self, path: str) -> FileIndex | None:
        """Get a file record, or None if not indexed."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM file_index WHERE path = ?", (path,)).fetchone()
        if row is None:
            return None
        return FileIndex.from_row(row)

    def all(self) -> list[FileIndex]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM file_index ORDER BY path").fetchall()
        return [FileIndex.from_row(row) for row in rows]

    def delete(self, path: str) -> None:
        """Delete a file record."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM file_index WHERE path = ?", (path,))

    def count(self) -> int:
        with self._transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM file_index").fetchone()[0]

    def clear(self) -> None:
        """Delete all file records."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM file_index")


def compute_content_hash(content: bytes) -> str:
    """Compute SHA-256 hash of a file's raw bytes."""
    return hashlib.sha256(content).hexdigest()
