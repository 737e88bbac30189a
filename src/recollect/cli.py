"""Command line interface for recollect."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from recollect.config import AppConfig
from recollect.models import Category
from recollect.service import MemoryService
from recollect.validators import InvalidRequest

console = Console()
app = typer.Typer(help="recollect - long-term memory and knowledge search for assistants")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_config(
    db: Optional[Path], knowledge: Optional[Path], history: Optional[Path]
) -> AppConfig:
    config = AppConfig.from_env()
    if db is not None:
        config.db_path = db
    if knowledge is not None:
        config.knowledge_path = knowledge
    if history is not None:
        config.history_path = history
    return config


def _open_service(
    db: Optional[Path], knowledge: Optional[Path], history: Optional[Path]
) -> MemoryService:
    return MemoryService.open(_build_config(db, knowledge, history), Path.cwd())


DbOption = typer.Option(None, "--db", help="SQLite database path")
KnowledgeOption = typer.Option(
    None, "--knowledge", help="Directory of markdown documents to index"
)
HistoryOption = typer.Option(None, "--history", help="Session history log (JSONL)")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def store(
    text: str = typer.Argument(..., help="Memory text"),
    category: Category = typer.Option(Category.OTHER, "--category", "-c", help="Memory category"),
    db: Path = DbOption,
    verbose: bool = VerboseOption,
) -> None:
    """Store a long-term memory."""
    _setup_logging(verbose)
    service = _open_service(db, None, None)
    try:
        result = service.store_memory(text, category)
    except InvalidRequest as exc:
        raise typer.BadParameter(exc.message, param_hint=exc.field) from exc
    finally:
        service.close()

    if result["created"]:
        console.print(f"Stored [bold]{result['id']}[/bold]")
    else:
        console.print(f"[yellow]Already stored as[/yellow] [bold]{result['id']}[/bold]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Number of results"),
    db: Path = DbOption,
    knowledge: Path = KnowledgeOption,
    history: Path = HistoryOption,
    verbose: bool = VerboseOption,
) -> None:
    """Search memories, knowledge documents and session history."""
    _setup_logging(verbose)
    service = _open_service(db, knowledge, history)
    try:
        results = service.search(query, limit)["results"]
    except InvalidRequest as exc:
        raise typer.BadParameter(exc.message, param_hint=exc.field) from exc
    finally:
        service.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score", no_wrap=True)
    table.add_column("Category", no_wrap=True)
    table.add_column("Id", no_wrap=True)
    table.add_column("Text")

    for result in results:
        snippet = result["text"].replace("\n", " ")
        table.add_row(f"{result['score']:.4f}", result["category"], result["id"], snippet[:180])

    console.print(table)


@app.command()
def forget(
    memory_id: str = typer.Argument(..., metavar="ID", help="Memory id"),
    db: Path = DbOption,
    verbose: bool = VerboseOption,
) -> None:
    """Delete a memory by id."""
    _setup_logging(verbose)
    service = _open_service(db, None, None)
    try:
        result = service.forget(memory_id)
    except InvalidRequest as exc:
        raise typer.BadParameter(exc.message, param_hint=exc.field) from exc
    finally:
        service.close()

    if result["deleted"]:
        console.print(f"Deleted {memory_id}.")
    else:
        console.print(f"[yellow]No memory with id {memory_id}.[/yellow]")


@app.command()
def sync(
    db: Path = DbOption,
    knowledge: Path = KnowledgeOption,
    verbose: bool = VerboseOption,
) -> None:
    """Re-index the knowledge directory now."""
    _setup_logging(verbose)
    service = _open_service(db, knowledge, None)
    try:
        if not service.indexer.enabled:
            console.print("[yellow]No knowledge directory configured.[/yellow]")
            return
        stats = service.sync()
    finally:
        service.close()

    console.print(
        f"Inserted: {stats.inserted}, updated: {stats.updated}, skipped: {stats.skipped}, "
        f"removed: {stats.removed}, failed: {stats.failed}"
    )


@app.command()
def stats(
    db: Path = DbOption,
    knowledge: Path = KnowledgeOption,
) -> None:
    """Show what is stored in the database."""
    service = _open_service(db, knowledge, None)
    try:
        info = service.stats()
    finally:
        service.close()

    table = Table(show_header=False)
    for key, value in info.items():
        table.add_row(key, str(value))
    console.print(table)

