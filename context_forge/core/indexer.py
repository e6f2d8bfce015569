"""Indexer that keeps the symbol index in step with files on disk."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from context_forge.core.exceptions import FileReadError, ParseError
from context_forge.core.models import CodeSymbol, FileIndex, IndexStats, utc_now
from context_forge.core.storage import KnowledgeStore, compute_content_hash
from context_forge.core.storage.repository import DEFAULT_STATE_DIR
from context_forge.languages import get_extractor, language_for_path

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Path, int, int], None]

DEFAULT_IGNORE_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        ".next",
        "__pycache__",
        "coverage",
        ".vscode",
        ".idea",
    }
)

DEFAULT_IGNORE_FILES = frozenset({"package-lock.json", "yarn.lock", "pnpm-lock.yaml"})


@dataclass(frozen=True)
class IgnoreRules:
    """Directory and file names excluded from indexing and watching."""

    dirs: frozenset[str] = DEFAULT_IGNORE_DIRS
    files: frozenset[str] = DEFAULT_IGNORE_FILES
    skip_hidden: bool = True

    @classmethod
    def default(cls, state_dir: str = DEFAULT_STATE_DIR) -> IgnoreRules:
        """Default rules, plus the store's own state directory."""
        return cls(dirs=DEFAULT_IGNORE_DIRS | {state_dir})

    def with_dirs(self, extra: Iterable[str]) -> IgnoreRules:
        return IgnoreRules(
            dirs=self.dirs | frozenset(extra), files=self.files, skip_hidden=self.skip_hidden
        )

    def ignores_dir(self, name: str) -> bool:
        return name in self.dirs or (self.skip_hidden and name.startswith("."))

    def ignores_file(self, name: str) -> bool:
        return name in self.files or (self.skip_hidden and name.startswith("."))

    def ignores_path(self, relative: Path) -> bool:
        """Check every component of a root-relative path."""
        parts = relative.parts
        if not parts:
            return False
        if any(self.ignores_dir(part) for part in parts[:-1]):
            return True
        return self.ignores_file(parts[-1])


class Indexer:
    """Coordinates symbol extraction and storage for one project tree.

    Each file moves through ``unseen -> indexed -> (unchanged | reindexed) -> removed``.
    A file whose bytes hash to the recorded digest is never re-extracted.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        project_root: Path,
        ignore: IgnoreRules | None = None,
    ) -> None:
        self._store = store
        self._root = project_root.resolve()
        self.ignore = ignore or IgnoreRules.default()

    @property
    def project_root(self) -> Path:
        return self._root

    def index_project(
        self,
        force: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> IndexStats:
        """Index every supported file under the project root.

        A file that cannot be read or decoded is recorded in ``stats.errors``
        and the walk continues. Store failures propagate.
        Records for files that are no longer on disk (or are now ignored) are
        dropped after the walk.

        Args:
            force: If True, re-extract every file regardless of its digest
            on_progress: Optional callback for progress updates (file, current, total)

        Returns:
            IndexStats with counts of files and symbols processed
        """
        stats = IndexStats()
        files = self.collect_files()
        total_files = len(files)

        for i, file in enumerate(files):
            try:
                count, changed = self._index(file, force)
                stats.files += 1
                stats.symbols += count
                if not changed:
                    stats.unchanged += 1
            except (FileReadError, ParseError) as e:
                logger.warning("skipping %s: %s", file, e)
                stats.errors.append(str(e))

            if on_progress:
                on_progress(file, i + 1, total_files)

        stats.removed = self._prune(files)
        logger.info("indexed %s: %r", self._root, stats)
        return stats

    def index_file(self, path: Path, force: bool = False) -> int:
        """Index one file and return its symbol count.

        Unsupported extensions return 0 without touching the store. A
        byte-identical file returns the previously recorded count.

        Raises:
            FileReadError: the file cannot be read
            ParseError: the file is not valid UTF-8 text
        """
        count, _ = self._index(path, force)
        return count

    def _index(self, path: Path, force: bool) -> tuple[int, bool]:
        """Return the file's symbol count and whether it was (re)extracted."""
        path = self._absolute(path)
        language = language_for_path(path)
        if language is None:
            return 0, False

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise FileReadError(f"Cannot read {path}: {e}") from e

        digest = compute_content_hash(raw)
        relative = self.relative_path(path)

        existing = self._store.files.get(relative)
        if not force and existing is not None and existing.hash == digest:
            logger.debug("unchanged: %s", relative)
            return len(existing.symbols), False

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Cannot decode {path} as UTF-8: {e}") from e

        result = get_extractor(language).extract(text)
        unique: dict[str, CodeSymbol] = {}
        for match in result.symbols:
            symbol_id = CodeSymbol.make_id(relative, match.name, match.start_line)
            unique.setdefault(
                symbol_id,
                CodeSymbol(
                    id=symbol_id,
                    name=match.name,
                    kind=match.kind,
                    file_path=relative,
                    start_line=match.start_line,
                    end_line=match.end_line,
                    signature=match.signature,
                    dependencies=list(result.imports),
                ),
            )
        symbols = list(unique.values())

        file_index = FileIndex(
            path=relative,
            hash=digest,
            last_indexed=utc_now(),
            symbols=[symbol.id for symbol in symbols],
        )
        self._store.replace_file(file_index, symbols)
        logger.debug("indexed %s: %d symbols", relative, len(symbols))
        return len(symbols), True

    def _prune(self, files: list[Path]) -> int:
        """Drop index records for files no longer collected from the tree."""
        present = {self.relative_path(file) for file in files}
        removed = 0
        for record in self._store.files.all():
            if record.path not in present:
                logger.debug("pruning %s", record.path)
                self._store.delete_file(record.path)
                removed += 1
        return removed

    def remove_file(self, path: Path) -> None:
        """Forget a file's symbols and index record. Untracked paths are a no-op."""
        self._store.delete_file(self.relative_path(self._absolute(path)))

    def collect_files(self) -> list[Path]:
        """Supported files under the root, skipping ignored names, in sorted walk order."""
        files: list[Path] = []
        self._walk(self._root, files)
        return files

    def _walk(self, directory: Path, files: list[Path]) -> None:
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning("cannot list %s: %s", directory, e)
            return

        for entry in entries:
            if entry.is_dir() and not entry.is_symlink():
                if not self.ignore.ignores_dir(entry.name):
                    self._walk(entry, files)
            elif entry.is_file():
                if self.ignore.ignores_file(entry.name):
                    continue
                if language_for_path(entry) is not None:
                    files.append(entry)

    def should_ignore(self, path: Path) -> bool:
        """Whether a path is excluded by the ignore rules or outside the root."""
        try:
            relative = self._absolute(path).relative_to(self._root)
        except ValueError:
            return True
        return self.ignore.ignores_path(relative)

    def relative_path(self, path: Path) -> str:
        """Root-relative POSIX path used as the stored file key."""
        path = self._absolute(path)
        try:
            return path.relative_to(self._root).as_posix()
        except ValueError:
            return path.as_posix()

    def _absolute(self, path: Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self._root / path
        return path
