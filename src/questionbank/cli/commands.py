"""CLI commands for questionbank.

Developer tooling over JSON files, for auditing and migrating stored data:
- reconcile: migrate an AnswerStore onto the current collection
- stats: accuracy and strength/weakness report for one AnswerStore
- merge: fold an extracted batch of items into a collection
- check: report duplicate identities in a stored collection
"""

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from questionbank.config.app_config import ConfigError, load_app_config
from questionbank.core.answer_matching import reconcile as do_reconcile
from questionbank.core.answers import AnswerStore, dump_answer_store, load_answer_store
from questionbank.core.batch_merge import merge_collection
from questionbank.core.collection import Collection, CollectionFormatError, Item
from questionbank.core.schemas import ItemPayloadList, PageDocumentList
from questionbank.core.statistics import ConceptPerformance, aggregate

app = typer.Typer(
    name="qbank",
    help="Question item identity and answer reconciliation tools.",
    no_args_is_help=True,
)

console = Console()


# =============================================================================
# HELPERS
# =============================================================================


def _read_json(path: Path) -> Any:
    """Read a JSON file, or exit with a readable error."""
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        console.print(f"[red]✗ Cannot read {path}: {e}[/red]")
        raise typer.Exit(code=1)


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _load_collection(path: Path) -> Collection:
    """Load page documents; accepts a list or {"pages": [...]}."""
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("pages", [])
    try:
        documents = PageDocumentList.validate_python(data)
        return Collection.from_pages(doc.to_raw() for doc in documents)
    except (ValidationError, CollectionFormatError) as e:
        console.print(f"[red]✗ Invalid collection file {path}:[/red]\n{e}")
        raise typer.Exit(code=1)


def _load_answers(path: Path) -> AnswerStore:
    """Load an AnswerStore; accepts the bare mapping or {"answers": {...}}."""
    data = _read_json(path)
    if isinstance(data, dict) and isinstance(data.get("answers"), dict):
        data = data["answers"]
    if not isinstance(data, dict):
        console.print(f"[red]✗ Answers file must contain a JSON object: {path}[/red]")
        raise typer.Exit(code=1)
    return load_answer_store(data)


def _load_config() -> None:
    try:
        load_app_config()
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)


def _concept_table(title: str, concepts: list[ConceptPerformance], color: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Category", style="cyan")
    table.add_column("Concept")
    table.add_column("Total", justify="right")
    table.add_column("Wrong", justify="right")
    table.add_column("Accuracy", justify="right", style=color)
    for concept in concepts:
        table.add_row(
            concept.category,
            concept.concept,
            str(concept.total),
            str(concept.wrong),
            f"{concept.accuracy:.0%}",
        )
    return table


# =============================================================================
# COMMANDS
# =============================================================================


@app.command()
def reconcile(
    collection_file: Path = typer.Argument(..., help="Collection page documents (JSON)"),
    answers_file: Path = typer.Argument(..., help="AnswerStore (JSON)"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write the cleaned AnswerStore here"
    ),
) -> None:
    """Migrate answer keys onto the current collection and drop stale ones."""
    _load_config()
    collection = _load_collection(collection_file)
    answers = _load_answers(answers_file)

    result = do_reconcile(answers, collection)
    stats = result.stats

    table = Table(title="Validation summary", show_header=True, header_style="bold")
    table.add_column("Counter", style="cyan")
    table.add_column("Value", justify="right")
    for name, value in stats.to_dict().items():
        table.add_row(name, str(value))
    console.print(table)

    if stats.failed:
        console.print(f"[yellow]⚠ {stats.failed} stale answer(s) dropped[/yellow]")

    if output is not None:
        _write_json(output, dump_answer_store(result.cleaned))
        console.print(f"[green]✓ Cleaned answers written:[/green] {output}")


@app.command()
def stats(
    collection_file: Path = typer.Argument(..., help="Collection page documents (JSON)"),
    answers_file: Path = typer.Argument(..., help="AnswerStore (JSON)"),
    category: str | None = typer.Option(
        None, "--category", "-c", help="Book category for untyped items"
    ),
    title: str | None = typer.Option(None, "--title", "-t", help="Book title"),
) -> None:
    """Show accuracy, strengths and weaknesses for one AnswerStore."""
    _load_config()
    collection = _load_collection(collection_file)
    answers = _load_answers(answers_file)

    result = do_reconcile(answers, collection)
    report = aggregate(result.cleaned, collection, book_category=category, book_title=title)

    console.print(
        f"[bold]Accuracy:[/bold] {report.accuracy:.1%} "
        f"({report.correct}/{report.total})"
    )
    if result.stats.failed:
        console.print(f"  [dim]stale answers ignored:[/dim] {result.stats.failed}")

    console.print(_concept_table("Strengths", report.strengths, "green"))
    console.print(_concept_table("Weaknesses", report.weaknesses, "red"))


@app.command()
def merge(
    collection_file: Path = typer.Argument(..., help="Collection page documents (JSON)"),
    incoming_file: Path = typer.Argument(..., help="Extracted items (JSON list)"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write merged page documents here (default: overwrite)"
    ),
    replace: bool = typer.Option(
        False, "--replace", help="Start from an empty collection instead of merging"
    ),
) -> None:
    """Merge a batch of extracted items, renaming colliding labels."""
    _load_config()
    collection = _load_collection(collection_file) if collection_file.exists() else Collection()

    raw_incoming = _read_json(incoming_file)
    try:
        payloads = ItemPayloadList.validate_python(raw_incoming)
        incoming = [Item.from_dict(p.model_dump(exclude_none=True)) for p in payloads]
        merged = merge_collection(
            collection, incoming, mode="replace" if replace else "merge"
        )
    except (ValidationError, CollectionFormatError) as e:
        console.print(f"[red]✗ Cannot merge {incoming_file}:[/red]\n{e}")
        raise typer.Exit(code=1)

    target = output or collection_file
    _write_json(target, merged.to_pages())
    console.print(
        f"[green]✓ Merged {len(incoming)} item(s):[/green] "
        f"{len(merged)} total on {len(merged.pages())} page(s)"
    )
    unplaced = len(incoming) + (0 if replace else len(collection)) - len(merged)
    if unplaced:
        console.print(f"[yellow]⚠ {unplaced} item(s) left out: no free label suffix[/yellow]")
    console.print(f"  [dim]path:[/dim] {target}")


@app.command()
def check(
    collection_file: Path = typer.Argument(..., help="Collection page documents (JSON)"),
) -> None:
    """Report duplicate identities in a stored collection."""
    collection = _load_collection(collection_file)
    duplicates = collection.duplicate_identities()

    if not duplicates:
        console.print(
            f"[green]✓ {len(collection)} item(s), all identities unique[/green]"
        )
        return

    console.print(f"[red]✗ {len(duplicates)} duplicated identity(ies):[/red]")
    for identity in duplicates:
        console.print(f"  - {identity}")
    raise typer.Exit(code=1)
