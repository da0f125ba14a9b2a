"""Command line interface for mfsearch."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mfsearch.config import AppConfig
from mfsearch.errors import MfsearchError
from mfsearch.index.loader import load_files
from mfsearch.index.storage import SQLiteStore
from mfsearch.models import SearchResponse
from mfsearch.search.engine import SearchEngine
from mfsearch.tools import invoke_tool
from mfsearch.utils.text import single_line

console = Console()
app = typer.Typer(help="mfsearch - search MODFLOW/PEST documentation, code and tutorials")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _config(db: Optional[Path]) -> AppConfig:
    try:
        config = AppConfig.from_env()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if db is not None:
        config.db_path = db
    return config


def _open_engine(db: Optional[Path]) -> SearchEngine:
    config = _config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")
    return SearchEngine.from_config(config)


def _print_results(response: SearchResponse) -> None:
    if not response.results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Repository")
    table.add_column("Source")
    table.add_column("Path")
    table.add_column("Snippet")

    for result in response.results:
        snippet = single_line(result.snippet or result.metadata.get("content_preview") or result.title)
        table.add_row(
            f"{result.score:.4f}",
            result.collection,
            result.source_kind,
            escape(result.path),
            escape(snippet[:180]),
        )
    console.print(table)
    if response.acronyms_detected:
        expanded = ", ".join(f"{k} = {v}" for k, v in response.acronyms_detected.items())
        console.print(f"Acronyms expanded: {escape(expanded)}")


def _run_tool(db: Optional[Path], name: str, arguments: Dict[str, Any]) -> None:
    engine = _open_engine(db)
    try:
        text = asyncio.run(invoke_tool(engine, name, arguments))
    finally:
        engine.close()
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)
    if text.startswith("Error: "):
        raise typer.Exit(code=1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    repository: Optional[str] = typer.Option(None, "--repository", "-r", help="Restrict to one collection"),
    file_type: Optional[str] = typer.Option(None, "--file-type", help="Documentation file type filter"),
    limit: int = typer.Option(15, help="Number of results to display"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Full-text search across all stores."""
    _setup_logging(verbose)
    engine = _open_engine(db)
    try:
        response = asyncio.run(
            engine.search_docs(query, repository=repository, file_type=file_type, limit=limit)
        )
    except MfsearchError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        engine.close()
    _print_results(response)


@app.command()
def semantic(
    query: str = typer.Argument(..., help="Query text"),
    repository: Optional[str] = typer.Option(None, "--repository", "-r", help="Restrict to one collection"),
    limit: int = typer.Option(10, help="Number of results to display"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Embedding similarity search across all stores."""
    _setup_logging(verbose)
    engine = _open_engine(db)
    try:
        response = asyncio.run(engine.semantic_search_docs(query, repository=repository, limit=limit))
    except MfsearchError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        engine.close()
    _print_results(response)


@app.command()
def code(
    query: str = typer.Argument(..., help="Query text"),
    repository: Optional[str] = typer.Option(None, "--repository", "-r"),
    search_type: str = typer.Option("auto", "--search-type", help="auto, text, semantic or hybrid"),
    package_code: Optional[str] = typer.Option(None, "--package-code"),
    model_family: Optional[str] = typer.Option(None, "--model-family"),
    category: Optional[str] = typer.Option(None, "--category"),
    limit: int = typer.Option(10),
    scenarios: bool = typer.Option(False, "--scenarios", help="Include user scenarios"),
    concepts: bool = typer.Option(False, "--concepts", help="Include related concepts"),
    source: bool = typer.Option(False, "--source", help="Include the first 500 characters of source"),
    github: bool = typer.Option(True, "--github/--no-github", help="Include GitHub URLs"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search FloPy and pyEMU modules (JSON output)."""
    _setup_logging(verbose)
    _run_tool(
        db,
        "search_code",
        {
            "query": query,
            "repository": repository,
            "search_type": search_type,
            "package_code": package_code,
            "model_family": model_family,
            "category": category,
            "limit": limit,
            "include_scenarios": scenarios,
            "include_concepts": concepts,
            "include_source": source,
            "include_github": github,
        },
    )


@app.command()
def examples(
    query: str = typer.Argument(..., help="Query text"),
    repository: Optional[str] = typer.Option(None, "--repository", "-r"),
    search_type: str = typer.Option("auto", "--search-type", help="auto, text, semantic or hybrid"),
    complexity: Optional[str] = typer.Option(None, "--complexity"),
    model_type: Optional[str] = typer.Option(None, "--model-type"),
    workflow_type: Optional[str] = typer.Option(None, "--workflow-type"),
    limit: int = typer.Option(10),
    use_cases: bool = typer.Option(False, "--use-cases", help="Include use cases"),
    prerequisites: bool = typer.Option(False, "--prerequisites", help="Include prerequisites"),
    purpose: bool = typer.Option(False, "--purpose", help="Include the workflow purpose"),
    tags: bool = typer.Option(False, "--tags", help="Include tags"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search tutorials and notebooks (JSON output)."""
    _setup_logging(verbose)
    _run_tool(
        db,
        "search_examples",
        {
            "query": query,
            "repository": repository,
            "search_type": search_type,
            "complexity": complexity,
            "model_type": model_type,
            "workflow_type": workflow_type,
            "limit": limit,
            "include_use_cases": use_cases,
            "include_prerequisites": prerequisites,
            "include_purpose": purpose,
            "include_tags": tags,
        },
    )


@app.command()
def tutorials(
    query: str = typer.Argument(..., help="Query text"),
    limit: int = typer.Option(5),
    threshold: float = typer.Option(0.0, "--threshold", help="Minimum similarity (0-1)"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Find tutorials similar to a query."""
    _setup_logging(verbose)
    _run_tool(
        db,
        "semantic_search_tutorials",
        {"query": query, "limit": limit, "similarity_threshold": threshold},
    )


@app.command("get-file")
def get_file(
    repository: str = typer.Argument(..., help="Collection name"),
    filepath: str = typer.Argument(..., help="File path as shown in search results"),
    page: Optional[int] = typer.Option(None, "--page", help="Page of a large file"),
    force_full: bool = typer.Option(False, "--force-full", help="Return the whole file"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Print a file's content."""
    _setup_logging(verbose)
    _run_tool(
        db,
        "get_file_content",
        {"repository": repository, "filepath": filepath, "page": page, "force_full": force_full},
    )


@app.command()
def info(
    stats: bool = typer.Option(True, "--stats/--no-stats", help="Include per-collection counts"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Describe collections and tools."""
    _run_tool(db, "get_info", {"include_stats": stats})


@app.command()
def load(
    inputs: List[Path] = typer.Argument(..., help="JSON Lines files with pre-built records", exists=True),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Insert or replace pre-built document, module and workflow records."""
    _setup_logging(verbose)
    config = _config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    store = SQLiteStore(resolved_db)
    console.print(f"Loading into [bold]{escape(str(resolved_db))}[/bold]...")
    try:
        stats = load_files(store, inputs)
    finally:
        store.close()

    console.print(f"Inserted: {stats.inserted}, updated: {stats.updated}, failed: {stats.failed}")
    for message in stats.errors[:10]:
        console.print(f"[yellow]{escape(message)}[/yellow]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Start the HTTP tool server."""
    import uvicorn

    config = _config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Warning: database not found, searches will return nothing.[/yellow]")
    os.environ["MFSEARCH_DB"] = str(resolved_db)

    console.print(f"Starting tool server on http://{host}:{port} (database: {escape(str(resolved_db))})")
    uvicorn.run(
        "mfsearch.web.app:app",
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    app()
