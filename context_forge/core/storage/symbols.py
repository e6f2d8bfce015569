"""Code symbol storage operations."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager

from context_forge.core.models import CodeSymbol, SearchHit, SymbolKind


def _like_pattern(query: str) -> str:
    """Build a LIKE pattern that matches ``query`` literally as a substring."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SymbolStorage:
    """Storage operations for code symbols."""

    def __init__(
        self, transaction: Callable[[], AbstractContextManager[sqlite3.Connection]]
    ) -> None:
        self._transaction = transaction

    def save(self, symbol: CodeSymbol) -> None:
        """Insert or replace a symbol by id."""
        self.save_many([symbol])

    def save_many(self, symbols: list[CodeSymbol]) -> None:
        """Insert or replace several symbols in one transaction."""
        with self._transaction() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO code_symbols
                    (id, name, type, file_path, start_line, end_line, signature,
                     dependencies, dependents)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        s.id,
                        s.name,
                        s.kind.value,
                        s.file_path,
                        s.start_line,
                        s.end_line,
                        s.signature,
                        json.dumps(s.dependencies),
                        json.dumps(s.dependents),
                    )
                    for s in symbols
                ],
            )

    def get(self, symbol_id: str) -> CodeSymbol | None:
        """Get a symbol by id, or None if it doesn't exist."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM code_symbols WHERE id = ?", (symbol_id,)).fetchone()
        if row is None:
            return None
        return CodeSymbol.from_row(row)

    def get_by_file(self, file_path: str) -> list[CodeSymbol]:
        """Get all symbols in a file, in line order."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM code_symbols WHERE file_path = ? ORDER BY start_line",
                (file_path,),
            ).fetchall()
        return [CodeSymbol.from_row(row) for row in rows]

    def find(self, query: str, kind: SymbolKind | None = None) -> list[CodeSymbol]:
        """Search for symbols whose name contains ``query``."""
        with self._transaction() as conn:
            if kind is not None:
                rows = conn.execute(
                    "SELECT * FROM code_symbols WHERE name LIKE ? ESCAPE '\\' AND type = ? "
                    "ORDER BY name",
                    (_like_pattern(query), kind.value),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM code_symbols WHERE name LIKE ? ESCAPE '\\' ORDER BY name",
                    (_like_pattern(query),),
                ).fetchall()
        return [CodeSymbol.from_row(row) for row in rows]

    def all(self) -> list[CodeSymbol]:
        """Every stored symbol."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM code_symbols ORDER BY file_path, start_line"
            ).fetchall()
        return [CodeSymbol.from_row(row) for row in rows]

    def file_paths(self) -> list[str]:
        """Distinct paths that currently own symbols."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT DISTINCT file_path FROM code_symbols ORDER BY file_path"
            ).fetchall()
        return [row["file_path"] for row in rows]

    def search_content(self, query: str) -> list[SearchHit]:
        """Case-insensitive substring match on name or signature."""
        needle = query.lower()
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, type, name, file_path, signature FROM code_symbols
                WHERE instr(lower(name), ?) > 0 OR instr(lower(COALESCE(signature, '')), ?) > 0
                """,
                (needle, needle),
            ).fetchall()
        hits = []
        for row in rows:
            content = f"{row['type']}: {row['name']} in {row['file_path']}"
            if row["signature"]:
                content += f" - {row['signature']}"
            hits.append(SearchHit(kind="symbol", id=row["id"], content=content))
        return hits

    def delete_by_file(self, file_path: str) -> int:
        """Delete all symbols in a file. Returns count deleted."""
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM code_symbols WHERE file_path = ?", (file_path,))
        return cursor.rowcount

    def count(self) -> int:
        with self._transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM code_symbols").fetchone()[0]

    def clear(self) -> None:
        """Delete all symbols."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM code_symbols")
