"""
MCP server for Context Forge.

Exposes project memory and the code-symbol index to LLMs via the Model
Context Protocol.

Tools:
    - bootstrap / resume_session / fetch_active_decisions: session briefings
    - memory_store / commit_decision: record facts and decisions
    - memory_search / memory_ask / search_semantics: retrieval
    - verify_fact / get_stale_facts / validate_citations: keep knowledge honest
    - get_related_facts / get_affected_facts: follow links and citations
    - get_codebase_map / get_dependency_graph: code structure
    - export_context / summarize_long_history / update_project_state: upkeep

Usage:
    Run: context-forge-mcp  (project root from CONTEXT_FORGE_ROOT or the cwd)
"""

import asyncio

from context_forge.mcp.server import serve as _serve


def serve() -> None:
    """Entry point for the MCP server."""
    asyncio.run(_serve())


__all__ = ["serve"]
