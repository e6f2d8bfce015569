"""Write the store's knowledge to a shareable directory of JSON files."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from context_forge.core.exceptions import ValidationError
from context_forge.core.models import utc_now
from context_forge.core.storage import KnowledgeStore

logger = logging.getLogger(__name__)

EXPORT_DIRNAME = ".context-forge-export"


@dataclass
class ExportResult:
    directory: Path
    files: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"directory": str(self.directory), "files": dict(self.files)}


def resolve_export_dir(project_root: Path, output_path: str | Path | None = None) -> Path:
    """Resolve the export directory, which must stay inside the project root."""
    root = project_root.resolve()
    target = (root / output_path).resolve() if output_path else root
    if not target.is_relative_to(root):
        raise ValidationError(f"Invalid output path {output_path}: must be within the project root")
    return target / EXPORT_DIRNAME


def _write_json(path: Path, records: Any) -> None:
    path.write_text(json.dumps(records, indent=2), encoding="utf-8")


def export_context(
    store: KnowledgeStore,
    project_root: Path,
    output_path: str | Path | None = None,
    include_symbols: bool = False,
) -> ExportResult:
    """Export decisions, facts, sessions, workspace info and optionally symbols.

    Raises:
        ValidationError: ``output_path`` resolves outside the project root
    """
    directory = resolve_export_dir(project_root, output_path)
    directory.mkdir(parents=True, exist_ok=True)
    result = ExportResult(directory)

    decisions = [node.to_dict() for node in store.nodes.get_active_decisions()]
    facts = [node.to_dict() for node in store.nodes.get_all_facts()]
    sessions = [summary.to_dict() for summary in store.sessions.all()]

    _write_json(directory / "decisions.json", decisions)
    _write_json(directory / "facts.json", facts)
    _write_json(directory / "sessions.json", sessions)
    result.files.update(
        {"decisions.json": len(decisions), "facts.json": len(facts), "sessions.json": len(sessions)}
    )

    workspace = store.workspace.get()
    if workspace is not None:
        _write_json(directory / "workspace.json", workspace.to_dict())
        result.files["workspace.json"] = 1

    if include_symbols:
        symbols = [symbol.to_dict() for symbol in store.symbols.all()]
        _write_json(directory / "symbols.json", symbols)
        result.files["symbols.json"] = len(symbols)

    lines = [
        "# Context Forge Export",
        "",
        "This directory contains exported context data from Context Forge.",
        "",
        "## Files",
        "",
        f"- `decisions.json` - Architectural decisions ({len(decisions)} entries)",
        f"- `facts.json` - Project facts ({len(facts)} entries)",
        f"- `sessions.json` - Session summaries ({len(sessions)} entries)",
    ]
    if include_symbols:
        lines.append("- `symbols.json` - Code symbols index")
    if workspace is not None:
        lines.append("- `workspace.json` - Workspace/repo information")
    lines += [
        "",
        "## Usage",
        "",
        "This export can be committed to version control to share project context.",
        "To import, copy these files to your `.context-forge` directory.",
        "",
        f"Exported at: {utc_now().isoformat()}",
        "",
    ]
    (directory / "README.md").write_text("\n".join(lines), encoding="utf-8")
    result.files["README.md"] = 1

    logger.info("exported context to %s", directory)
    return result
