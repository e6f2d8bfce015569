"""Workspace info storage (a single row)."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager

from context_forge.core.models import WorkspaceInfo, to_db_time, utc_now


class WorkspaceStorage:
    """Storage for the project's repository identity."""

    def __init__(
        self, transaction: Callable[[], AbstractContextManager[sqlite3.Connection]]
    ) -> None:
        self._transaction = transaction

    def save(self, info: WorkspaceInfo) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO workspace_info (id, repo_url, repo_hash, branch, updated_at)
                VALUES (1, ?, ?, ?, ?)
                """,
                (info.repo_url, info.repo_hash, info.branch, to_db_time(utc_now())),
            )

    def get(self) -> WorkspaceInfo | None:
        """Get the stored workspace info, or None if never recorded."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM workspace_info WHERE id = 1").fetchone()
        if row is None:
            return None
        return WorkspaceInfo(repo_url=row["repo_url"], repo_hash=row["repo_hash"], branch=row["branch"])
