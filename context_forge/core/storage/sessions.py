"""Session summary storage operations."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager

from context_forge.core.models import SessionSummary, to_db_time


class SessionStorage:
    """Append-only storage for session summaries."""

    def __init__(
        self, transaction: Callable[[], AbstractContextManager[sqlite3.Connection]]
    ) -> None:
        self._transaction = transaction

    def save(self, summary: SessionSummary) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO session_summaries
                    (id, timestamp, token_count, summary, key_decisions)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    summary.id,
                    to_db_time(summary.timestamp),
                    summary.token_count,
                    summary.summary,
                    json.dumps(summary.key_decisions),
                ),
            )

    def all(self) -> list[SessionSummary]:
        """All summaries, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM session_summaries ORDER BY timestamp DESC"
            ).fetchall()
        return [SessionSummary.from_row(row) for row in rows]
