"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from pdf_chapters.commands.extract import (
    execute_extract,
    execute_search,
    resolve_reference,
)
from pdf_chapters.config import ExtractionSettings
from pdf_chapters.core.sources import LocalStorage, primary_fetch
from pdf_chapters.core.structure import inspect
from pdf_chapters.errors import ExtractionError
from pdf_chapters.models.extraction import ResultTier
from pdf_chapters.store.json_store import JsonDocumentStore

app = typer.Typer(
    name="pdf-chapters",
    help="Recover page counts and chapter tables from PDF documents.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

# Store subcommand group
store_app = typer.Typer(help="Inspect recorded extraction results")
app.add_typer(store_app, name="store")

StorageRootOption = Annotated[
    Optional[Path],
    typer.Option(
        "--storage-root",
        help="Directory holding storage buckets; enables bucket:key sources",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show pipeline logging"),
]


def configure_logging(verbose: bool) -> None:
    """Route pipeline logging to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    # Keep PDF library noise down even in verbose mode
    logging.getLogger("pdfminer").setLevel(logging.ERROR)
    logging.getLogger("pypdf").setLevel(logging.ERROR)


@app.command()
def extract(
    source: Annotated[
        str,
        typer.Argument(help="PDF path, http(s) URL, or bucket:key (with --storage-root)"),
    ],
    document_id: Annotated[
        Optional[str],
        typer.Option("--document-id", "-d", help="Record results against this document"),
    ] = None,
    store_dir: Annotated[
        Optional[Path],
        typer.Option("--store", help="Directory of the document store"),
    ] = None,
    storage_root: StorageRootOption = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the response payload as JSON"),
    ] = False,
    max_pages: Annotated[
        Optional[int],
        typer.Option("--max-pages", help="Only read the first N pages", min=1),
    ] = None,
    toc_fallback: Annotated[
        bool,
        typer.Option(
            "--toc-fallback",
            help="Read chapters from the table of contents when no headings are found",
        ),
    ] = False,
    timeout: Annotated[
        float,
        typer.Option("--timeout", help="Fetch and load timeout in seconds", min=1),
    ] = 30.0,
    verbose: VerboseOption = False,
) -> None:
    """Extract the page count and chapter table of a PDF."""
    configure_logging(verbose)

    if document_id and store_dir is None:
        err_console.print("[red]Error: --document-id requires --store[/]")
        raise typer.Exit(1)

    settings = ExtractionSettings(
        fetch_timeout=timeout,
        load_timeout=timeout,
        max_pages=max_pages,
        toc_fallback=toc_fallback,
    )

    try:
        result = execute_extract(
            source,
            settings,
            console,
            document_id=document_id,
            store_dir=store_dir,
            storage_root=storage_root,
            as_json=as_json,
        )
    except ValueError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/]")
        raise typer.Exit(1)

    if result.tier == ResultTier.UNEXTRACTABLE:
        raise typer.Exit(1)


@app.command()
def pages(
    source: Annotated[str, typer.Argument(help="PDF path, URL, or bucket:key")],
    storage_root: StorageRootOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the structural page count without parsing the document."""
    configure_logging(verbose)
    settings = ExtractionSettings()

    try:
        reference = resolve_reference(source, storage_root)
        data = primary_fetch(settings).fetch(
            reference, storage=LocalStorage(storage_root) if storage_root else None
        )
    except (ExtractionError, ValueError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/]")
        raise typer.Exit(1)

    page_count = inspect(data, settings.bytes_per_page)
    console.print(
        f"[bold]{page_count.count}[/] pages [dim]({page_count.confidence.value})[/]"
    )


@app.command()
def search(
    source: Annotated[str, typer.Argument(help="PDF path, URL, or bucket:key")],
    keywords: Annotated[list[str], typer.Argument(help="Keywords to look for")],
    storage_root: StorageRootOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List chapters whose title or text mentions any keyword."""
    configure_logging(verbose)

    try:
        matches = execute_search(
            source, keywords, ExtractionSettings(), console, storage_root=storage_root
        )
    except ValueError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/]")
        raise typer.Exit(1)

    if not matches:
        raise typer.Exit(1)


@store_app.command("show")
def store_show(
    document_id: Annotated[str, typer.Argument(help="Document identifier")],
    store_dir: Annotated[
        Path,
        typer.Option("--store", help="Directory of the document store"),
    ] = Path("."),
) -> None:
    """Print the fields recorded for a document."""
    record = JsonDocumentStore(store_dir.resolve()).get(document_id)
    if record is None:
        err_console.print(f"[red]No record for {escape(document_id)}[/]")
        raise typer.Exit(1)

    typer.echo(record.model_dump_json(indent=2))


@store_app.command("list")
def store_list(
    store_dir: Annotated[
        Path,
        typer.Option("--store", help="Directory of the document store"),
    ] = Path("."),
) -> None:
    """List all recorded documents."""
    records = JsonDocumentStore(store_dir.resolve()).list_records()

    if not records:
        console.print("[dim]No records[/]")
        return

    table = Table(title="Documents", show_header=True, header_style="bold cyan")
    table.add_column("Document", style="white")
    table.add_column("Record", style="dim", width=12)

    for document_id, stem in records:
        table.add_row(escape(document_id), stem[:12])

    console.print(table)


if __name__ == "__main__":
    app()
