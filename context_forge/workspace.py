"""Detect the git identity of the project, if it has one."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from context_forge.core.models import WorkspaceInfo

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 5


def _git(project_root: Path, *args: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=project_root,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git %s failed: %s", " ".join(args), e)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def detect_workspace_info(project_root: Path) -> WorkspaceInfo | None:
    """Read remote URL, HEAD commit and branch. None outside a git work tree."""
    if _git(project_root, "rev-parse", "--is-inside-work-tree") != "true":
        return None
    return WorkspaceInfo(
        repo_url=_git(project_root, "remote", "get-url", "origin"),
        repo_hash=_git(project_root, "rev-parse", "HEAD"),
        branch=_git(project_root, "rev-parse", "--abbrev-ref", "HEAD"),
    )
