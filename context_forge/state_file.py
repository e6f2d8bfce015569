"""The human-readable STATE.json snapshot kept beside the database."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from context_forge.core.models import StateNode, utc_now

logger = logging.getLogger(__name__)

STATE_VERSION = "1.0.0"


@dataclass
class ProjectState:
    """Counts and active decisions at the time of the last update."""

    version: str
    project_root: str
    last_updated: datetime
    active_decisions: list[dict[str, Any]] = field(default_factory=list)
    file_count: int = 0
    symbol_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "project_root": self.project_root,
            "last_updated": self.last_updated.isoformat(),
            "active_decisions": self.active_decisions,
            "file_count": self.file_count,
            "symbol_count": self.symbol_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectState:
        return cls(
            version=data["version"],
            project_root=data["project_root"],
            last_updated=datetime.fromisoformat(data["last_updated"]),
            active_decisions=list(data.get("active_decisions", [])),
            file_count=int(data.get("file_count", 0)),
            symbol_count=int(data.get("symbol_count", 0)),
        )


class StateFile:
    """Reads and writes the snapshot at ``path``."""

    def __init__(self, path: Path, project_root: Path) -> None:
        self.path = path
        self._project_root = project_root

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> ProjectState | None:
        """Load the snapshot, or None if it is missing or unreadable."""
        if not self.path.exists():
            return None
        try:
            return ProjectState.from_dict(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("ignoring unreadable state file %s: %s", self.path, e)
            return None

    def save(self, state: ProjectState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")

    def create_default(self) -> ProjectState:
        return ProjectState(
            version=STATE_VERSION,
            project_root=str(self._project_root),
            last_updated=utc_now(),
        )

    def update(
        self,
        *,
        active_decisions: list[StateNode] | None = None,
        file_count: int | None = None,
        symbol_count: int | None = None,
    ) -> ProjectState:
        """Merge the given fields into the current snapshot and save it."""
        state = self.load() or self.create_default()
        changes: dict[str, Any] = {"last_updated": utc_now()}
        if active_decisions is not None:
            changes["active_decisions"] = [node.to_dict() for node in active_decisions]
        if file_count is not None:
            changes["file_count"] = file_count
        if symbol_count is not None:
            changes["symbol_count"] = symbol_count
        state = replace(state, **changes)
        self.save(state)
        return state

    def update_decisions(self, decisions: list[StateNode]) -> ProjectState:
        return self.update(active_decisions=decisions)
