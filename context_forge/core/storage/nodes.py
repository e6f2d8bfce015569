"""Knowledge node storage operations."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime, timedelta

from context_forge.core.exceptions import ValidationError
from context_forge.core.models import (
    NodeKind,
    SearchHit,
    StateNode,
    parse_citation,
    to_db_time,
    utc_now,
)

DEFAULT_STALE_DAYS = 30

_CLOCK = "COALESCE(last_verified, created_at, timestamp)"
_MEMORY_KINDS = "type IN ('fact', 'decision')"


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class NodeStorage:
    """Storage operations for facts, decisions, and summaries."""

    def __init__(
        self, transaction: Callable[[], AbstractContextManager[sqlite3.Connection]]
    ) -> None:
        self._transaction = transaction

    def save(self, node: StateNode) -> None:
        """Insert or fully replace a node by id.

        Raises:
            ValidationError: bad priority, kind, or content, or the node would
                (transitively) supersede itself. Nothing is written.
        """
        node.validate()
        with self._transaction() as conn:
            if node.supersedes is not None:
                self._check_supersession_chain(conn, node.id, node.supersedes)
            conn.execute(
                """
                INSERT OR REPLACE INTO state_nodes
                    (id, type, content, timestamp, supersedes, metadata, tags,
                     created_at, last_verified, citations, related_to, priority)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    node.id,
                    node.kind.value,
                    node.content,
                    to_db_time(node.timestamp),
                    node.supersedes,
                    json.dumps(node.metadata) if node.metadata is not None else None,
                    json.dumps(_unique(node.tags)),
                    to_db_time(node.created_at) if node.created_at else None,
                    to_db_time(node.last_verified) if node.last_verified else None,
                    json.dumps(node.citations),
                    json.dumps(node.related_to),
                    node.priority,
                ),
            )

    def _check_supersession_chain(
        self, conn: sqlite3.Connection, node_id: str, target: str
    ) -> None:
        """Walk the supersedes chain from target; reaching node_id is a cycle."""
        seen: set[str] = set()
        current: str | None = target
        while current is not None and current not in seen:
            if current == node_id:
                raise ValidationError(
                    f"Node {node_id} superseding {target} would create a supersession cycle"
                )
            seen.add(current)
            row = conn.execute(
                "SELECT supersedes FROM state_nodes WHERE id = ?", (current,)
            ).fetchone()
            current = row["supersedes"] if row is not None else None

    def get(self, node_id: str) -> StateNode | None:
        """Get a node by id, or None if it doesn't exist."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM state_nodes WHERE id = ?", (node_id,)).fetchone()
        if row is None:
            return None
        return StateNode.from_row(row)

    def get_active_decisions(self) -> list[StateNode]:
        """Decisions that no other node supersedes, highest priority then newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM state_nodes
                WHERE type = 'decision'
                AND id NOT IN (SELECT supersedes FROM state_nodes WHERE supersedes IS NOT NULL)
                ORDER BY priority DESC, timestamp DESC
                """
            ).fetchall()
        return [StateNode.from_row(row) for row in rows]

    def get_all_facts(self) -> list[StateNode]:
        """All fact nodes, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM state_nodes WHERE type = 'fact' ORDER BY timestamp DESC"
            ).fetchall()
        return [StateNode.from_row(row) for row in rows]

    def get_bootstrap_data(self) -> list[StateNode]:
        """Every fact and decision (never summaries) for the session-start payload."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM state_nodes WHERE {_MEMORY_KINDS} "
                "ORDER BY priority DESC, timestamp DESC"
            ).fetchall()
        return [StateNode.from_row(row) for row in rows]

    def search(
        self,
        tags: list[str] | None = None,
        min_priority: int | None = None,
        include_stale: bool = False,
        stale_days: float = DEFAULT_STALE_DAYS,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[StateNode]:
        """Filter facts and decisions by tags (match-any), priority, and staleness."""
        clauses = [_MEMORY_KINDS]
        params: list[object] = []

        if tags:
            placeholders = ", ".join("?" for _ in tags)
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(state_nodes.tags) "
                f"WHERE json_each.value IN ({placeholders}))"
            )
            params.extend(tags)

        if min_priority is not None:
            clauses.append("priority >= ?")
            params.append(min_priority)

        if not include_stale:
            cutoff = (now or utc_now()) - timedelta(days=stale_days)
            clauses.append(f"{_CLOCK} >= ?")
            params.append(to_db_time(cutoff))

        sql = (
            f"SELECT * FROM state_nodes WHERE {' AND '.join(clauses)} "
            "ORDER BY priority DESC, timestamp DESC"
        )
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [StateNode.from_row(row) for row in rows]

    def verify(self, node_id: str, now: datetime | None = None) -> bool:
        """Reset a node's staleness clock. Returns False if the id is unknown."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE state_nodes SET last_verified = ? WHERE id = ?",
                (to_db_time(now or utc_now()), node_id),
            )
        return cursor.rowcount > 0

    def get_stale(
        self, days: float = DEFAULT_STALE_DAYS, now: datetime | None = None
    ) -> list[StateNode]:
        """Facts and decisions not verified within ``days``, oldest first."""
        cutoff = (now or utc_now()) - timedelta(days=days)
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM state_nodes WHERE {_MEMORY_KINDS} AND {_CLOCK} < ? "
                f"ORDER BY {_CLOCK} ASC",
                (to_db_time(cutoff),),
            ).fetchall()
        return [StateNode.from_row(row) for row in rows]

    def get_by_citation(self, path_fragment: str) -> list[StateNode]:
        """Nodes citing a path that contains ``path_fragment``."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM state_nodes WHERE citations != '[]' ORDER BY timestamp DESC"
            ).fetchall()
        nodes = [StateNode.from_row(row) for row in rows]
        return [
            node
            for node in nodes
            if any(path_fragment in parse_citation(c)[0] for c in node.citations)
        ]

    def get_related(self, node_id: str) -> list[StateNode]:
        """Nodes listed in this node's ``related_to``, in link order.

        Links are one-directional and dangling ids are skipped.
        """
        node = self.get(node_id)
        if node is None:
            return []
        related = []
        for related_id in _unique(node.related_to):
            other = self.get(related_id)
            if other is not None:
                related.append(other)
        return related

    def search_content(self, query: str) -> list[SearchHit]:
        """Case-insensitive substring match on content, in scan order."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT id, type, content FROM state_nodes WHERE instr(lower(content), ?) > 0",
                (query.lower(),),
            ).fetchall()
        return [SearchHit(kind=row["type"], id=row["id"], content=row["content"]) for row in rows]

    def count(self, kind: NodeKind | None = None) -> int:
        """Count nodes, optionally of one kind."""
        with self._transaction() as conn:
            if kind is None:
                return conn.execute("SELECT COUNT(*) FROM state_nodes").fetchone()[0]
            return conn.execute(
                "SELECT COUNT(*) FROM state_nodes WHERE type = ?", (kind.value,)
            ).fetchone()[0]
