"""CLI entry point for Context Forge."""

import json
import time
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from context_forge.config import get_settings
from context_forge.core.exceptions import ContextForgeError
from context_forge.core.indexer import Indexer, IgnoreRules
from context_forge.core.models import NodeKind, StateNode, SymbolKind, utc_now
from context_forge.core.storage import KnowledgeStore, get_default_db_path
from context_forge.core.watcher import FileWatcher
from context_forge.export import export_context
from context_forge.formatting import format_tags, generate_id, truncate_text
from context_forge.log import configure_logging
from context_forge.state_file import StateFile

app = typer.Typer(
    name="context-forge",
    help="Persistent project memory and code-symbol index for AI assistants.",
    no_args_is_help=True,
)
console = Console()


def get_store(path: Path) -> KnowledgeStore:
    """Get or create the store for the given project root."""
    settings = get_settings()
    return KnowledgeStore(get_default_db_path(path, settings.CONTEXT_FORGE_STATE_DIR))


def project_root(path: Path | None = None) -> Path:
    """Resolve an explicit path, or fall back to the configured project root."""
    if path is None:
        return get_settings().project_root
    return path.resolve()


def get_indexer(store: KnowledgeStore, path: Path, exclude: list[str] | None = None) -> Indexer:
    rules = IgnoreRules.default(get_settings().CONTEXT_FORGE_STATE_DIR)
    if exclude:
        rules = rules.with_dirs(exclude)
    return Indexer(store, path, rules)


def fail(error: ContextForgeError) -> NoReturn:
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


def print_node(node: StateNode) -> None:
    console.print(
        f"[cyan]{node.id}[/cyan] [dim]\\[{node.kind.value}] P{node.priority}[/] "
        f"{node.content}[dim]{format_tags(node.tags)}[/]"
    )


@app.command()
def index(
    path: Annotated[
        Path | None, typer.Argument(help="Project root to index (default: CONTEXT_FORGE_ROOT)")
    ] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Re-index all files")] = False,
    exclude: Annotated[
        list[str] | None, typer.Option("--exclude", "-e", help="Extra directory names to skip")
    ] = None,
) -> None:
    """Index a project to build the symbol index."""
    path = project_root(path)

    with get_store(path) as store:
        indexer = get_indexer(store, path, exclude)

        if force:
            store.clear_index()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(f"Indexing [cyan]{path.name}[/]", total=None)

            def on_progress(file: Path, current: int, total: int) -> None:
                progress.update(task, total=total, completed=current)
                progress.update(task, description=f"[cyan]{indexer.relative_path(file)}[/]")

            try:
                stats = indexer.index_project(force=force, on_progress=on_progress)
            except ContextForgeError as e:
                fail(e)

        console.print("[green]Done![/green]")
        console.print(f"  Files indexed: {stats.files}")
        console.print(f"  Symbols found: {stats.symbols}")

        if stats.unchanged:
            console.print(f"  [dim]Unchanged: {stats.unchanged}[/]")
        if stats.removed:
            console.print(f"  [dim]Removed: {stats.removed}[/]")
        if stats.errors:
            console.print(f"  [red]Errors: {len(stats.errors)}[/red]")
            for error in stats.errors:
                console.print(f"    {error}")


@app.command()
def stats(
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show index and knowledge statistics."""
    path = project_root()

    with get_store(path) as store:
        result = store.get_stats()

        if output_json:
            print(json.dumps(vars(result)))
        else:
            console.print(f"Files indexed: {result.files}")
            console.print(f"Symbols: {result.symbols}")
            console.print(f"Decisions: {result.decisions}")
            console.print(f"Facts: {result.facts}")


@app.command()
def find(
    name: Annotated[str, typer.Argument(help="Name to search for")],
    symbol_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Filter by type: class, function, variable, ..."),
    ] = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Search for indexed symbols by name."""
    path = project_root()
    type_filter = None
    if symbol_type:
        try:
            type_filter = SymbolKind(symbol_type)
        except ValueError:
            choices = ", ".join(kind.value for kind in SymbolKind)
            raise typer.BadParameter(
                f"Unknown symbol type: {symbol_type} (choose from {choices})",
                param_hint="'--type'",
            ) from None

    with get_store(path) as store:
        symbols = store.symbols.find(name, type_filter)

        if output_json:
            print(json.dumps([s.to_dict() for s in symbols]))
        else:
            if not symbols:
                console.print(f"No matches for '[cyan]{name}[/cyan]'")
                return
            for symbol in symbols:
                console.print(f"[cyan]{symbol.name}[/cyan] ({symbol.kind.value})")
                console.print(f"  {symbol.file_path}:{symbol.start_line}-{symbol.end_line}")


@app.command()
def decisions(
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List active decisions, highest priority first."""
    path = project_root()

    with get_store(path) as store:
        active = store.nodes.get_active_decisions()

        if output_json:
            print(json.dumps([d.to_dict() for d in active]))
        elif not active:
            console.print("No active decisions recorded.")
        else:
            for node in active:
                print_node(node)


@app.command()
def remember(
    text: Annotated[str, typer.Argument(help="Fact or decision to store")],
    decision: Annotated[
        bool, typer.Option("--decision", "-d", help="Store as a decision")
    ] = False,
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag (repeatable)")] = None,
    priority: Annotated[int, typer.Option("--priority", "-p", help="Priority 1-5")] = 3,
    cite: Annotated[
        list[str] | None, typer.Option("--cite", "-c", help="Citation like src/api.py:10")
    ] = None,
    supersedes: Annotated[
        str | None, typer.Option("--supersedes", "-s", help="ID this entry replaces")
    ] = None,
) -> None:
    """Store a fact or decision."""
    path = project_root()
    now = utc_now()
    node = StateNode(
        id=generate_id(),
        kind=NodeKind.DECISION if decision else NodeKind.FACT,
        content=text,
        timestamp=now,
        created_at=now,
        last_verified=now,
        tags=tag or [],
        citations=cite or [],
        priority=priority,
        supersedes=supersedes,
    )

    with get_store(path) as store:
        try:
            store.nodes.save(node)
        except ContextForgeError as e:
            fail(e)
        if node.kind is NodeKind.DECISION:
            state_file = StateFile(get_settings().state_file_path, path)
            state_file.update_decisions(store.nodes.get_active_decisions())
    console.print(f"[green]Stored[/green] {node.kind.value} [cyan]{node.id}[/cyan]")


@app.command()
def stale(
    days: Annotated[
        float | None, typer.Option("--days", help="Age threshold in days")
    ] = None,
) -> None:
    """List facts and decisions that have not been verified recently."""
    path = project_root()
    threshold = days if days is not None else get_settings().CONTEXT_FORGE_STALE_DAYS

    with get_store(path) as store:
        nodes = store.nodes.get_stale(threshold)

    if not nodes:
        console.print(f"No stale facts (threshold: {threshold:g} days).")
        return
    now = utc_now()
    for node in nodes:
        age = (now - node.verification_clock).days
        console.print(
            f"[cyan]{node.id}[/cyan] {truncate_text(node.content, 80)} "
            f"[yellow]({age} days)[/]"
        )


@app.command()
def verify(
    node_id: Annotated[str, typer.Argument(help="ID of the fact or decision")],
) -> None:
    """Mark a fact or decision as still accurate."""
    path = project_root()

    with get_store(path) as store:
        found = store.nodes.verify(node_id)

    if not found:
        console.print(f"[red]Not found:[/red] {node_id}")
        raise typer.Exit(1)
    console.print(f"[green]Verified[/green] {node_id}")


@app.command()
def watch(
    path: Annotated[
        Path | None, typer.Argument(help="Project root to watch (default: CONTEXT_FORGE_ROOT)")
    ] = None,
) -> None:
    """Index, then keep the index current until interrupted."""
    settings = get_settings()
    configure_logging(settings.CONTEXT_FORGE_LOG_LEVEL)
    path = project_root(path)

    with get_store(path) as store:
        indexer = get_indexer(store, path)
        stats = indexer.index_project()
        console.print(f"Indexed {stats.files} files, {stats.symbols} symbols")

        with FileWatcher(indexer, settings.debounce_seconds):
            console.print(f"Watching [cyan]{path}[/] (Ctrl+C to stop)")
            try:
                while True:
                    time.sleep(1)
            except KeyboardInterrupt:
                console.print("[dim]Stopping[/]")


@app.command()
def export(
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Directory inside the project")
    ] = None,
    symbols: Annotated[bool, typer.Option("--symbols", help="Include the symbol index")] = False,
) -> None:
    """Export knowledge to .context-forge-export/ for sharing."""
    path = project_root()

    with get_store(path) as store:
        try:
            result = export_context(store, path, output, include_symbols=symbols)
        except ContextForgeError as e:
            fail(e)

    console.print(f"[green]Exported to[/green] {result.directory}")
    for name, count in result.files.items():
        console.print(f"  {name} [dim]({count})[/]")


@app.command()
def serve() -> None:
    """Run the MCP server over stdio."""
    from context_forge.mcp import serve as run_server

    run_server()


if __name__ == "__main__":
    app()
