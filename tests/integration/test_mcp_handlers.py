"""Integration tests for the MCP tool handlers against a real store."""

import asyncio
import json
import tempfile
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from mcp.types import CallToolRequest, CallToolRequestParams, ListToolsRequest

from context_forge.core.exceptions import ValidationError
from context_forge.core.indexer import Indexer
from context_forge.core.models import NodeKind, StateNode, utc_now
from context_forge.core.storage import KnowledgeStore, get_default_db_path
from context_forge.llm import OllamaClient
from context_forge.mcp.context import ToolContext
from context_forge.mcp.handlers import HANDLERS, dispatch
from context_forge.mcp.server import TOOLS, create_server
from context_forge.state_file import StateFile


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td).resolve()


@pytest.fixture
def ctx(temp_dir: Path):
    """Create a tool context with a mocked local model."""
    with KnowledgeStore(get_default_db_path(temp_dir)) as store:
        ollama = MagicMock(spec=OllamaClient)
        ollama.is_available.return_value = False
        yield ToolContext(
            store=store,
            indexer=Indexer(store, temp_dir),
            state_file=StateFile(temp_dir / ".context-forge" / "STATE.json", temp_dir),
            ollama=ollama,
            project_root=temp_dir,
        )


@pytest.fixture
def indexed(ctx: ToolContext, temp_dir: Path) -> ToolContext:
    """Index a tiny project into the context's store."""
    (temp_dir / "src").mkdir()
    (temp_dir / "src" / "orders.ts").write_text(
        'import { db } from "./db";\n\nexport class OrderService {\n}\n'
    )
    (temp_dir / "src" / "users.ts").write_text("export function loadUser() {}\n")
    ctx.indexer.index_project()
    return ctx


def call(ctx: ToolContext, name: str, **arguments) -> dict:
    return dispatch(ctx, name, arguments)


class TestToolCatalog:
    """Tests for the advertised tool list."""

    def test_every_tool_has_a_handler(self) -> None:
        assert sorted(tool.name for tool in TOOLS) == sorted(HANDLERS)
        assert len(TOOLS) == 18

    def test_unknown_tool(self, ctx: ToolContext) -> None:
        assert call(ctx, "nope") == {"error": "Unknown tool: nope"}


class TestMemoryTools:
    """Tests for storing and retrieving knowledge."""

    def test_store_and_search(self, ctx: ToolContext) -> None:
        stored = call(ctx, "memory_store", content="Uploads are chunked", tags=["api"], priority=4)

        assert stored["stored"]["type"] == "fact"
        results = call(ctx, "memory_search", tags=["api", "video"])["results"]
        assert [r["content"] for r in results] == ["Uploads are chunked"]

    def test_store_rejects_bad_priority(self, ctx: ToolContext) -> None:
        with pytest.raises(ValidationError):
            call(ctx, "memory_store", content="x", priority=9)

        assert ctx.store.nodes.count() == 0

    def test_ask_ranks_by_priority(self, ctx: ToolContext) -> None:
        call(ctx, "memory_store", content="Auth tokens expire hourly", priority=2)
        call(ctx, "memory_store", content="Refresh tokens rotate", type="decision", priority=5)
        call(ctx, "memory_store", content="Unrelated", tags=["tokens"], priority=3)

        result = call(ctx, "memory_ask", question="How do tokens work?")

        assert result["keywords"] == ["tokens", "work"]
        assert [r["content"] for r in result["results"]] == [
            "Refresh tokens rotate",
            "Unrelated",
            "Auth tokens expire hourly",
        ]

    def test_ask_without_matches(self, ctx: ToolContext) -> None:
        result = call(ctx, "memory_ask", question="What about caching?")

        assert result["results"] == []
        assert "No memories found" in result["message"]

    def test_related_and_affected(self, ctx: ToolContext) -> None:
        base = call(ctx, "memory_store", content="DB is SQLite", citations=["src/db.ts:3"])
        base_id = base["stored"]["id"]
        other = call(ctx, "memory_store", content="WAL mode on", related_to=[base_id])

        related = call(ctx, "get_related_facts", fact_id=other["stored"]["id"])
        affected = call(ctx, "get_affected_facts", file_path="db.ts")

        assert [r["id"] for r in related["related"]] == [base_id]
        assert [r["id"] for r in affected["results"]] == [base_id]

    def test_unknown_fact_ids(self, ctx: ToolContext) -> None:
        for tool in ("verify_fact", "get_related_facts", "validate_citations"):
            assert "not found" in call(ctx, tool, fact_id="ghost")["error"]


class TestDecisionTools:
    """Tests for decisions and the STATE.json snapshot."""

    def test_commit_and_supersede(self, ctx: ToolContext) -> None:
        first = call(ctx, "commit_decision", fact="Use REST")["decision"]["id"]
        call(ctx, "commit_decision", fact="Use gRPC", supersedes_id=first)

        active = call(ctx, "fetch_active_decisions")

        assert [d["content"] for d in active["decisions"]] == ["Use gRPC"]
        assert "Active Project Decisions:" in active["brief"]
        assert active["tokens"] > 0
        state = ctx.state_file.load()
        assert [d["content"] for d in state.active_decisions] == ["Use gRPC"]

    def test_update_project_state(self, indexed: ToolContext) -> None:
        result = call(indexed, "update_project_state")

        assert result == {"file_count": 2, "symbol_count": 2, "active_decisions": 0}
        assert indexed.state_file.load().file_count == 2

    def test_resume_session(self, ctx: ToolContext) -> None:
        result = call(ctx, "resume_session")

        assert "No previous session history." in result["brief"]
        assert result["sessions"] == []


class TestStalenessTools:
    """Tests for bootstrap, staleness, and verification."""

    def test_bootstrap_marks_stale(self, ctx: ToolContext) -> None:
        old = utc_now() - timedelta(days=40)
        ctx.store.nodes.save(StateNode("old", NodeKind.FACT, "Old fact", old, created_at=old))
        call(ctx, "memory_store", content="New fact")

        result = call(ctx, "bootstrap")

        assert result["stale_count"] == 1
        assert {n["id"]: n["stale"] for n in result["nodes"]}["old"] is True
        assert "[STALE]" in result["brief"]

    def test_verify_clears_staleness(self, ctx: ToolContext) -> None:
        old = utc_now() - timedelta(days=40)
        ctx.store.nodes.save(StateNode("old", NodeKind.FACT, "Old fact", old, created_at=old))

        stale = call(ctx, "get_stale_facts")
        assert [r["id"] for r in stale["results"]] == ["old"]
        assert stale["results"][0]["days_old"] == 40

        call(ctx, "verify_fact", fact_id="old")

        assert call(ctx, "get_stale_facts")["results"] == []

    def test_validate_citations(self, ctx: ToolContext, temp_dir: Path) -> None:
        (temp_dir / "api.py").write_text("one\ntwo\n")
        call(ctx, "memory_store", content="ok", citations=["api.py:2"])
        call(ctx, "memory_store", content="bad", citations=["api.py:50", "gone.py"])

        result = call(ctx, "validate_citations")

        assert result["valid"] == 1
        assert sorted(i["status"] for i in result["invalid"]) == ["line_changed", "missing_file"]


class TestCodeTools:
    """Tests for code map, search, and dependency tools."""

    def test_codebase_map_exact(self, indexed: ToolContext) -> None:
        result = call(indexed, "get_codebase_map", module_path="src/orders.ts")

        assert result["imports"] == ["./db"]
        assert "Classes:" in result["map"]

    def test_codebase_map_fragment(self, indexed: ToolContext) -> None:
        assert call(indexed, "get_codebase_map", module_path="users")["module"] == "src/users.ts"

        ambiguous = call(indexed, "get_codebase_map", module_path="src/")
        assert ambiguous["matches"] == ["src/orders.ts", "src/users.ts"]

        assert "error" in call(indexed, "get_codebase_map", module_path="nowhere")

    def test_search_semantics_scores(self, indexed: ToolContext) -> None:
        call(indexed, "memory_store", content="OrderService owns checkout")

        result = call(indexed, "search_semantics", query="order")

        assert result["total"] == 2
        assert [r["score"] for r in result["results"]] == pytest.approx([1.0, 0.95])

    def test_dependency_graph(self, indexed: ToolContext) -> None:
        result = call(indexed, "get_dependency_graph", target="OrderService")

        tree = result["results"][0]["tree"]
        assert tree.startswith("Symbol: OrderService (src/orders.ts:3)")
        assert "<- ./db" in tree
        assert "error" in call(indexed, "get_dependency_graph", target="Missing")


class TestHistoryAndExport:
    """Tests for summarization and export."""

    def test_summarize_without_model(self, ctx: ToolContext) -> None:
        text = "hello\nWe decided to use Redis\nnoise\nimplement caching"

        result = call(ctx, "summarize_long_history", text=text)

        assert result["model_available"] is False
        assert result["summary"] == "We decided to use Redis\nimplement caching"
        assert ctx.store.sessions.all() == []

    def test_summarize_with_model(self, ctx: ToolContext) -> None:
        ctx.ollama.is_available.return_value = True
        ctx.ollama.summarize.return_value = "Chose Redis."
        ctx.ollama.extract_facts.return_value = ["Cache is Redis", "TTL is 5m"]

        result = call(ctx, "summarize_long_history", text="long chat", max_tokens=100)

        assert result["facts"] == ["Cache is Redis", "TTL is 5m"]
        ctx.ollama.summarize.assert_called_once_with("long chat", 100)
        sessions = ctx.store.sessions.all()
        assert sessions[0].summary == "Chose Redis."
        assert sessions[0].key_decisions == ["Cache is Redis", "TTL is 5m"]
        assert ctx.store.get_stats().facts == 2

    def test_export_rejects_escape(self, ctx: ToolContext) -> None:
        with pytest.raises(ValidationError):
            call(ctx, "export_context", output_path="../elsewhere")

    def test_export(self, ctx: ToolContext, temp_dir: Path) -> None:
        call(ctx, "commit_decision", fact="Use gRPC")

        result = call(ctx, "export_context")

        assert result["files"]["decisions.json"] == 1
        assert Path(result["directory"]) == temp_dir / ".context-forge-export"


class TestServer:
    """Tests for the MCP server wrapper."""

    def run(self, ctx: ToolContext, request) -> object:
        server = create_server(ctx)
        handler = server.request_handlers[type(request)]
        return asyncio.run(handler(request)).root

    def test_list_tools(self, ctx: ToolContext) -> None:
        result = self.run(ctx, ListToolsRequest(method="tools/list"))

        assert len(result.tools) == 18

    def test_errors_become_payloads(self, ctx: ToolContext) -> None:
        request = CallToolRequest(
            method="tools/call",
            params=CallToolRequestParams(
                name="memory_store", arguments={"content": "   "}
            ),
        )

        result = self.run(ctx, request)

        payload = json.loads(result.content[0].text)
        assert "must not be empty" in payload["error"]
