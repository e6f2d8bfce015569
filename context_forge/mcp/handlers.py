"""Tool handlers. Each takes the tool context and arguments and returns a JSON-ready dict."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from context_forge.citations import CitationStatus, validate_citations
from context_forge.core.models import NodeKind, SessionSummary, StateNode, utc_now
from context_forge.export import export_context
from context_forge.formatting import (
    estimate_tokens,
    format_code_map,
    format_decisions,
    format_dependency_tree,
    format_node,
    format_session_summary,
    generate_id,
    truncate_text,
)
from context_forge.mcp.context import ToolContext

logger = logging.getLogger(__name__)

Handler = Callable[[ToolContext, dict[str, Any]], dict[str, Any]]

MAX_SEARCH_RESULTS = 20
MAX_DEPENDENCY_TARGETS = 5
MAX_FALLBACK_LINES = 10
MAX_KEY_DECISIONS = 5
DEFAULT_SUMMARY_TOKENS = 500

_STOP_WORDS = frozenset({"how", "what", "where", "when", "why", "the", "and", "for", "can", "does"})
_PUNCTUATION = re.compile(r"[?.,!]")
_FALLBACK_MARKERS = ("decision", "implement", "use")


def _brief(text: str) -> dict[str, Any]:
    return {"brief": text, "tokens": estimate_tokens(text)}


def _not_found(node_id: str) -> dict[str, Any]:
    return {"error": f'Fact with ID "{node_id}" not found.'}


def _new_node(
    kind: NodeKind,
    content: str,
    tags: list[str] | None = None,
    citations: list[str] | None = None,
    related_to: list[str] | None = None,
    priority: int | None = None,
    supersedes: str | None = None,
) -> StateNode:
    now = utc_now()
    node = StateNode(
        id=generate_id(),
        kind=kind,
        content=content,
        timestamp=now,
        created_at=now,
        last_verified=now,
        tags=list(tags or []),
        citations=list(citations or []),
        related_to=list(related_to or []),
        supersedes=supersedes,
    )
    if priority is not None:
        node.priority = priority
    return node


def handle_bootstrap(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    """Every fact and decision, with stale ones marked."""
    store = ctx.store
    nodes = store.nodes.get_bootstrap_data()
    stats = store.get_stats()
    stale_ids = {node.id for node in store.nodes.get_stale(ctx.stale_days)}

    lines = [
        "=== Context Forge Bootstrap ===",
        "",
        f"Project Stats: {stats.files} files, {stats.symbols} symbols, "
        f"{stats.decisions} decisions, {stats.facts} facts",
        "",
    ]
    if stale_ids:
        lines += [
            f"{len(stale_ids)} fact(s) may be stale (not verified in {ctx.stale_days:g}+ days)",
            "",
        ]
    if not nodes:
        lines.append("No facts or decisions stored yet.")
    else:
        lines += ["=== Active Facts & Decisions ===", ""]
        for node in nodes:
            lines += format_node(node, stale=node.id in stale_ids)
            lines.append("")
    lines.append("=== End Bootstrap ===")

    return {
        "stats": vars(stats),
        "stale_count": len(stale_ids),
        "nodes": [{**node.to_dict(), "stale": node.id in stale_ids} for node in nodes],
        **_brief("\n".join(lines)),
    }


def handle_get_codebase_map(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    module_path = arguments["module_path"]
    symbols = ctx.store.symbols.get_by_file(module_path)

    if not symbols:
        matches = [path for path in ctx.store.symbols.file_paths() if module_path in path]
        if not matches:
            return {"error": f"No symbols found for module: {module_path}"}
        if len(matches) > 1:
            return {
                "message": "Multiple matches found. Please specify a more exact path.",
                "matches": matches,
            }
        module_path = matches[0]
        symbols = ctx.store.symbols.get_by_file(module_path)

    imports = symbols[0].dependencies if symbols else []
    return {
        "module": module_path,
        "imports": imports,
        "symbols": [symbol.to_dict() for symbol in symbols],
        "map": format_code_map(module_path, symbols, imports),
    }


def handle_search_semantics(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    """Substring search over knowledge and symbols with a positional score."""
    query = arguments["query"]
    hits = ctx.store.search(query)
    for i, hit in enumerate(hits):
        hit.score = max(0.1, 1 - i * 0.05)
    return {
        "query": query,
        "total": len(hits),
        "results": [vars(hit) for hit in hits[:MAX_SEARCH_RESULTS]],
    }


def handle_memory_search(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    nodes = ctx.store.nodes.search(
        tags=arguments.get("tags"),
        min_priority=arguments.get("min_priority"),
        include_stale=arguments.get("include_stale", False),
        stale_days=ctx.stale_days,
        limit=arguments.get("limit"),
    )
    return {"results": [node.to_dict() for node in nodes]}


def handle_memory_store(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    node = _new_node(
        NodeKind(arguments.get("type", NodeKind.FACT.value)),
        arguments["content"],
        tags=arguments.get("tags"),
        citations=arguments.get("citations"),
        related_to=arguments.get("related_to"),
        priority=arguments.get("priority"),
        supersedes=arguments.get("supersedes_id"),
    )
    ctx.store.nodes.save(node)
    ctx.refresh_decisions()
    return {"stored": node.to_dict()}


def _keywords(question: str) -> list[str]:
    words = _PUNCTUATION.sub("", question.lower()).split()
    return list(dict.fromkeys(w for w in words if len(w) > 2 and w not in _STOP_WORDS))


def handle_memory_ask(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    """Keyword search over content and tags, ranked by priority."""
    question = arguments["question"]
    limit = arguments.get("limit", 5)
    keywords = _keywords(question)

    found: dict[str, StateNode] = {}
    for keyword in keywords:
        for hit in ctx.store.nodes.search_content(keyword):
            if hit.kind in (NodeKind.FACT.value, NodeKind.DECISION.value) and hit.id not in found:
                node = ctx.store.nodes.get(hit.id)
                if node is not None:
                    found[node.id] = node
    if keywords:
        for node in ctx.store.nodes.search(tags=keywords, include_stale=True, limit=limit * 2):
            found.setdefault(node.id, node)

    ranked = sorted(found.values(), key=lambda n: n.priority, reverse=True)[:limit]
    result: dict[str, Any] = {
        "question": question,
        "keywords": keywords,
        "results": [node.to_dict() for node in ranked],
    }
    if not ranked:
        result["message"] = (
            f'No memories found related to: "{question}". '
            "Store relevant facts using memory_store with tags for better retrieval."
        )
    return result


def handle_get_dependency_graph(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    target = arguments["target"]
    symbols = ctx.store.symbols.find(target)
    if not symbols:
        return {"error": f"No symbol found matching: {target}"}

    results = []
    for symbol in symbols[:MAX_DEPENDENCY_TARGETS]:
        label = f"{symbol.name} ({symbol.file_path}:{symbol.start_line})"
        results.append(
            {
                "symbol": symbol.to_dict(),
                "tree": format_dependency_tree(label, symbol.dependencies, symbol.dependents),
            }
        )
    return {"results": results}


def handle_commit_decision(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    node = _new_node(
        NodeKind.DECISION,
        arguments["fact"],
        tags=arguments.get("tags"),
        citations=arguments.get("citations"),
        priority=arguments.get("priority"),
        supersedes=arguments.get("supersedes_id"),
    )
    ctx.store.nodes.save(node)
    ctx.refresh_decisions()
    return {"recorded": truncate_text(node.content, 100), "decision": node.to_dict()}


def handle_fetch_active_decisions(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    decisions = ctx.store.nodes.get_active_decisions()
    return {
        "decisions": [node.to_dict() for node in decisions],
        **_brief(format_decisions(decisions)),
    }


def handle_resume_session(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    summaries = ctx.store.sessions.all()
    decisions = ctx.store.nodes.get_active_decisions()
    stats = ctx.store.get_stats()
    text = "\n".join(
        [
            "=== Context Forge Session Resume ===",
            "",
            f"Project Stats: {stats.files} files, {stats.symbols} symbols indexed",
            "",
            format_decisions(decisions),
            "",
            format_session_summary(summaries),
            "",
            "=== End Context Brief ===",
        ]
    )
    return {
        "stats": vars(stats),
        "decisions": [node.to_dict() for node in decisions],
        "sessions": [summary.to_dict() for summary in summaries],
        **_brief(text),
    }


def handle_verify_fact(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    fact_id = arguments["fact_id"]
    now = utc_now()
    if not ctx.store.nodes.verify(fact_id, now):
        return _not_found(fact_id)
    return {"id": fact_id, "verified_at": now.isoformat()}


def handle_get_stale_facts(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    days = arguments.get("days", ctx.stale_days)
    now = utc_now()
    stale = ctx.store.nodes.get_stale(days, now)
    return {
        "days": days,
        "results": [
            {**node.to_dict(), "days_old": (now - node.verification_clock).days}
            for node in stale
        ],
    }


def handle_validate_citations(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    fact_id = arguments.get("fact_id")
    if fact_id:
        node = ctx.store.nodes.get(fact_id)
        if node is None:
            return _not_found(fact_id)
        nodes = [node]
    else:
        nodes = [node for node in ctx.store.nodes.get_bootstrap_data() if node.citations]

    checks = validate_citations(ctx.project_root, nodes)
    invalid = [check for check in checks if check.status is not CitationStatus.VALID]
    return {
        "valid": len(checks) - len(invalid),
        "invalid": [check.to_dict() for check in invalid],
    }


def handle_get_related_facts(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    fact_id = arguments["fact_id"]
    node = ctx.store.nodes.get(fact_id)
    if node is None:
        return _not_found(fact_id)
    related = ctx.store.nodes.get_related(fact_id)
    return {"fact": node.to_dict(), "related": [other.to_dict() for other in related]}


def handle_get_affected_facts(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    """Knowledge citing a file that is about to change or just changed."""
    file_path = arguments["file_path"]
    nodes = ctx.store.nodes.get_by_citation(file_path)
    return {"file_path": file_path, "results": [node.to_dict() for node in nodes]}


def handle_export_context(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    result = export_context(
        ctx.store,
        ctx.project_root,
        output_path=arguments.get("output_path"),
        include_symbols=arguments.get("include_symbols", False),
    )
    return result.to_dict()


def handle_summarize_long_history(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    """Condense history with the local model, or keep likely-relevant lines without it."""
    text = arguments["text"]
    max_tokens = arguments.get("max_tokens", DEFAULT_SUMMARY_TOKENS)

    if not ctx.ollama.is_available():
        kept = [line for line in text.split("\n") if any(m in line for m in _FALLBACK_MARKERS)]
        return {
            "model_available": False,
            "summary": "\n".join(kept[:MAX_FALLBACK_LINES]) or "No key content extracted.",
            "facts": [],
        }

    summary = ctx.ollama.summarize(text, max_tokens)
    facts = ctx.ollama.extract_facts(text)
    with ctx.store.transaction():
        for fact in facts:
            ctx.store.nodes.save(_new_node(NodeKind.FACT, fact))
        ctx.store.sessions.save(
            SessionSummary(
                id=generate_id(),
                timestamp=utc_now(),
                token_count=estimate_tokens(text),
                summary=summary,
                key_decisions=facts[:MAX_KEY_DECISIONS],
            )
        )
    logger.info("stored session summary with %d facts", len(facts))
    return {"model_available": True, "summary": summary, "facts": facts}


def handle_update_project_state(ctx: ToolContext, arguments: dict[str, Any]) -> dict[str, Any]:
    stats = ctx.store.get_stats()
    decisions = ctx.store.nodes.get_active_decisions()
    state = ctx.state_file.update(
        active_decisions=decisions, file_count=stats.files, symbol_count=stats.symbols
    )
    return {
        "file_count": state.file_count,
        "symbol_count": state.symbol_count,
        "active_decisions": len(decisions),
    }


HANDLERS: dict[str, Handler] = {
    "bootstrap": handle_bootstrap,
    "get_codebase_map": handle_get_codebase_map,
    "search_semantics": handle_search_semantics,
    "memory_search": handle_memory_search,
    "memory_store": handle_memory_store,
    "memory_ask": handle_memory_ask,
    "get_dependency_graph": handle_get_dependency_graph,
    "commit_decision": handle_commit_decision,
    "fetch_active_decisions": handle_fetch_active_decisions,
    "resume_session": handle_resume_session,
    "verify_fact": handle_verify_fact,
    "get_stale_facts": handle_get_stale_facts,
    "validate_citations": handle_validate_citations,
    "get_related_facts": handle_get_related_facts,
    "get_affected_facts": handle_get_affected_facts,
    "export_context": handle_export_context,
    "summarize_long_history": handle_summarize_long_history,
    "update_project_state": handle_update_project_state,
}


def dispatch(ctx: ToolContext, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Run a tool by name. Unknown names yield an error payload."""
    handler = HANDLERS.get(name)
    if handler is None:
        return {"error": f"Unknown tool: {name}"}
    return handler(ctx, arguments)
