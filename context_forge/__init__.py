"""
Context Forge: persistent project memory for AI coding assistants.

Context Forge keeps what an assistant learns about a project across sessions:
- Facts and decisions, with tags, priorities, citations and supersession
- A lightweight index of code symbols, kept current by a file watcher
- Session summaries and a compact "current truth" briefing

Usage:
    from context_forge.core import KnowledgeStore, get_default_db_path
    from context_forge.core.indexer import Indexer

    root = Path(".").resolve()
    with KnowledgeStore(get_default_db_path(root)) as store:
        indexer = Indexer(store, root)
        indexer.index_project()
"""

__version__ = "0.1.0"
