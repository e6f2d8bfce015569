"""MCP server implementation for Context Forge."""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from context_forge.config import Settings, get_settings
from context_forge.core.exceptions import ContextForgeError
from context_forge.core.storage import KnowledgeStore
from context_forge.core.watcher import FileWatcher
from context_forge.log import configure_logging
from context_forge.mcp.context import ToolContext
from context_forge.mcp.handlers import dispatch, handle_update_project_state
from context_forge.workspace import detect_workspace_info

logger = logging.getLogger(__name__)

SERVER_NAME = "context-forge"

_EMPTY = {"type": "object", "properties": {}}
_STRING_LIST = {"type": "array", "items": {"type": "string"}}
_PRIORITY = {
    "type": "integer",
    "minimum": 1,
    "maximum": 5,
    "description": "Importance from 1 (low) to 5 (critical), default 3",
}
_FACT_ID = {"type": "string", "description": "ID of the fact or decision"}

TOOLS = [
    Tool(
        name="bootstrap",
        description=(
            "Load every stored fact and decision at session start, with project "
            "statistics and stale entries marked."
        ),
        inputSchema=_EMPTY,
    ),
    Tool(
        name="get_codebase_map",
        description=(
            "Structural overview of a module: its classes, functions, imports and "
            "exports, without returning raw code."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "module_path": {
                    "type": "string",
                    "description": "Path to the module or file (relative to project root)",
                },
            },
            "required": ["module_path"],
        },
    ),
    Tool(
        name="search_semantics",
        description="Search code symbols, past decisions, and facts by substring.",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Symbol name, concept, or phrase"},
            },
            "required": ["query"],
        },
    ),
    Tool(
        name="memory_search",
        description="Find facts and decisions by tags (match any), minimum priority, and staleness.",
        inputSchema={
            "type": "object",
            "properties": {
                "tags": {**_STRING_LIST, "description": "Tags to match (any)"},
                "limit": {"type": "integer", "description": "Maximum results"},
                "include_stale": {
                    "type": "boolean",
                    "description": "Include entries not verified recently (default: false)",
                    "default": False,
                },
                "min_priority": _PRIORITY,
            },
        },
    ),
    Tool(
        name="memory_store",
        description="Store a fact or decision with tags, priority, citations, and related entries.",
        inputSchema={
            "type": "object",
            "properties": {
                "content": {"type": "string", "description": "The fact or decision text"},
                "type": {"type": "string", "enum": ["fact", "decision"], "default": "fact"},
                "tags": _STRING_LIST,
                "citations": {**_STRING_LIST, "description": 'Code references like "src/api.py:42"'},
                "related_to": {**_STRING_LIST, "description": "IDs of related entries"},
                "priority": _PRIORITY,
                "supersedes_id": {"type": "string", "description": "ID this entry replaces"},
            },
            "required": ["content"],
        },
    ),
    Tool(
        name="memory_ask",
        description="Answer a natural-language question from stored facts and decisions.",
        inputSchema={
            "type": "object",
            "properties": {
                "question": {"type": "string"},
                "limit": {"type": "integer", "default": 5},
            },
            "required": ["question"],
        },
    ),
    Tool(
        name="get_dependency_graph",
        description="Imports (upstream) and dependents (downstream) of a symbol.",
        inputSchema={
            "type": "object",
            "properties": {
                "target": {"type": "string", "description": "Symbol name (partial match)"},
            },
            "required": ["target"],
        },
    ),
    Tool(
        name="commit_decision",
        description=(
            "Permanently record an architectural or design decision so it persists "
            "across sessions."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "fact": {"type": "string", "description": "The decision to record"},
                "tags": _STRING_LIST,
                "citations": _STRING_LIST,
                "priority": _PRIORITY,
                "supersedes_id": {
                    "type": "string",
                    "description": "ID of a previous decision that this one replaces",
                },
            },
            "required": ["fact"],
        },
    ),
    Tool(
        name="fetch_active_decisions",
        description="Compact 'current truth' block of every decision not yet superseded.",
        inputSchema=_EMPTY,
    ),
    Tool(
        name="resume_session",
        description="Compressed brief of previous sessions and active decisions.",
        inputSchema=_EMPTY,
    ),
    Tool(
        name="verify_fact",
        description="Mark a fact or decision as still accurate, resetting its staleness clock.",
        inputSchema={
            "type": "object",
            "properties": {"fact_id": _FACT_ID},
            "required": ["fact_id"],
        },
    ),
    Tool(
        name="get_stale_facts",
        description="Facts and decisions not verified within a number of days.",
        inputSchema={
            "type": "object",
            "properties": {
                "days": {"type": "number", "description": "Age threshold in days (default: 30)"},
            },
        },
    ),
    Tool(
        name="validate_citations",
        description="Check that cited files exist and cited lines are within the file.",
        inputSchema={
            "type": "object",
            "properties": {
                "fact_id": {**_FACT_ID, "description": "Validate one entry (default: all)"},
            },
        },
    ),
    Tool(
        name="get_related_facts",
        description="Entries linked from a fact or decision.",
        inputSchema={
            "type": "object",
            "properties": {"fact_id": _FACT_ID},
            "required": ["fact_id"],
        },
    ),
    Tool(
        name="get_affected_facts",
        description="Facts and decisions that cite a file, for review after it changes.",
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "File path or fragment"},
            },
            "required": ["file_path"],
        },
    ),
    Tool(
        name="export_context",
        description="Export decisions, facts, and sessions to JSON files inside the project.",
        inputSchema={
            "type": "object",
            "properties": {
                "output_path": {
                    "type": "string",
                    "description": "Directory within the project root (default: root)",
                },
                "include_symbols": {"type": "boolean", "default": False},
            },
        },
    ),
    Tool(
        name="summarize_long_history",
        description=(
            "Compress conversation history with a local Ollama model and save the "
            "extracted facts. Falls back to line filtering when no model is running."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "Content to summarize"},
                "max_tokens": {"type": "integer", "default": 500},
            },
            "required": ["text"],
        },
    ),
    Tool(
        name="update_project_state",
        description="Rewrite STATE.json with current statistics and active decisions.",
        inputSchema=_EMPTY,
    ),
]


def create_server(ctx: ToolContext) -> Server:
    """Build an MCP server whose tools act on ``ctx``."""
    server = Server(SERVER_NAME)

    @server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return TOOLS

    @server.call_tool()  # type: ignore[untyped-decorator]
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Handle tool calls."""
        try:
            result = dispatch(ctx, name, arguments or {})
        except ContextForgeError as e:
            result = {"error": str(e)}
        except Exception as e:
            logger.exception("tool %s failed", name)
            result = {"error": str(e)}
        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    return server


def prepare(ctx: ToolContext) -> None:
    """Record workspace identity, bring the index up to date, and write STATE.json."""
    info = detect_workspace_info(ctx.project_root)
    if info is not None:
        ctx.store.workspace.save(info)

    try:
        stats = ctx.indexer.index_project()
        logger.info("indexed %d files, %d symbols", stats.files, stats.symbols)
    except ContextForgeError:
        logger.exception("indexing failed; continuing with the existing index")

    handle_update_project_state(ctx, {})


async def serve(settings: Settings | None = None) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    settings = settings or get_settings()
    configure_logging(settings.CONTEXT_FORGE_LOG_LEVEL)
    logger.info("project root: %s", settings.project_root)

    with KnowledgeStore(settings.db_path) as store:
        ctx = ToolContext.from_settings(settings, store)
        prepare(ctx)
        server = create_server(ctx)
        with FileWatcher(ctx.indexer, settings.debounce_seconds):
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())
