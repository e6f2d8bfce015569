"""Tests for error handling paths."""

import tempfile
from pathlib import Path

import pytest

from context_forge.core.exceptions import (
    ContextForgeError,
    FileReadError,
    LLMError,
    ParseError,
    StoreError,
    ValidationError,
)
from context_forge.core.indexer import Indexer
from context_forge.core.models import NodeKind, StateNode, utc_now
from context_forge.core.storage import KnowledgeStore, get_default_db_path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def store(temp_dir: Path):
    """Create a store for testing."""
    with KnowledgeStore(get_default_db_path(temp_dir)) as store:
        yield store


def make_node(node_id: str, **kwargs) -> StateNode:
    kwargs.setdefault("kind", NodeKind.FACT)
    kwargs.setdefault("content", f"content of {node_id}")
    return StateNode(id=node_id, timestamp=utc_now(), **kwargs)


class TestIndexerErrors:
    """Tests for indexer error handling."""

    def test_invalid_utf8_raises_parse_error(self, store: KnowledgeStore, temp_dir: Path) -> None:
        """Test that undecodable bytes raise ParseError."""
        file_path = temp_dir / "bad_encoding.js"
        file_path.write_bytes(b"\xff\xfe function \x80\x81")

        indexer = Indexer(store, temp_dir)
        with pytest.raises(ParseError) as exc_info:
            indexer.index_file(file_path)

        assert "UTF-8" in str(exc_info.value)
        assert store.files.get("bad_encoding.js") is None

    def test_missing_file_raises_file_read_error(
        self, store: KnowledgeStore, temp_dir: Path
    ) -> None:
        """Test that an unreadable supported file raises FileReadError."""
        indexer = Indexer(store, temp_dir)

        with pytest.raises(FileReadError) as exc_info:
            indexer.index_file(temp_dir / "missing.js")

        assert "missing.js" in str(exc_info.value)

    def test_index_project_collects_errors(self, store: KnowledgeStore, temp_dir: Path) -> None:
        """Test that index_project records bad files instead of raising."""
        (temp_dir / "good.js").write_text("function foo() {}")
        (temp_dir / "bad.js").write_bytes(b"\xff\xfe\xfa")

        stats = Indexer(store, temp_dir).index_project()

        # One file indexed successfully, one had an error
        assert stats.files == 1
        assert stats.symbols == 1
        assert len(stats.errors) == 1
        assert "bad.js" in stats.errors[0]


class TestStorageErrors:
    """Tests for storage error handling."""

    @pytest.mark.parametrize("priority", [0, 6, -1])
    def test_priority_out_of_range(self, store: KnowledgeStore, priority: int) -> None:
        """Test that priorities outside 1-5 are rejected and nothing is written."""
        with pytest.raises(ValidationError) as exc_info:
            store.nodes.save(make_node("p", priority=priority))

        assert "between 1 and 5" in str(exc_info.value)
        assert store.nodes.get("p") is None

    def test_empty_content_rejected(self, store: KnowledgeStore) -> None:
        with pytest.raises(ValidationError):
            store.nodes.save(make_node("blank", content="   "))

        assert store.nodes.count() == 0

    def test_self_supersession_rejected(self, store: KnowledgeStore) -> None:
        with pytest.raises(ValidationError):
            store.nodes.save(make_node("d1", kind=NodeKind.DECISION, supersedes="d1"))

    def test_supersession_cycle_rejected(self, store: KnowledgeStore) -> None:
        """Test that closing a supersession loop is refused."""
        store.nodes.save(make_node("a", kind=NodeKind.DECISION))
        store.nodes.save(make_node("b", kind=NodeKind.DECISION, supersedes="a"))

        with pytest.raises(ValidationError) as exc_info:
            store.nodes.save(make_node("a", kind=NodeKind.DECISION, supersedes="b"))

        assert "cycle" in str(exc_info.value)
        node = store.nodes.get("a")
        assert node is not None
        assert node.supersedes is None

    def test_unopenable_store_raises_store_error(self, temp_dir: Path) -> None:
        """Test that a database path under a regular file raises StoreError."""
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")

        store = KnowledgeStore(blocker / "state.db")
        with pytest.raises(StoreError):
            store.get_stats()

    def test_transaction_rolls_back(self, store: KnowledgeStore) -> None:
        """Test that an exception inside a transaction discards its writes."""
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.nodes.save(make_node("lost"))
                raise RuntimeError("boom")

        assert store.nodes.get("lost") is None

    def test_missing_lookups_are_not_errors(self, store: KnowledgeStore) -> None:
        """Test that absent ids return None or empty results."""
        assert store.nodes.get("nope") is None
        assert store.symbols.get("nope") is None
        assert store.nodes.get_related("nope") == []
        assert store.nodes.verify("nope") is False
        assert store.symbols.find("nonexistent") == []


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    @pytest.mark.parametrize(
        "error_class", [ValidationError, FileReadError, ParseError, StoreError, LLMError]
    )
    def test_is_context_forge_error(self, error_class: type) -> None:
        error = error_class("test")
        assert isinstance(error, ContextForgeError)
        assert isinstance(error, Exception)
