"""Extract command implementation."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from pdf_chapters.config import ExtractionSettings
from pdf_chapters.core.orchestrator import ChapterExtractor
from pdf_chapters.core.search import find_relevant_chapters
from pdf_chapters.core.sources import (
    DocumentReference,
    LocalStorage,
    StorageObject,
    is_url,
)
from pdf_chapters.models.document import Chapter
from pdf_chapters.models.extraction import ExtractionResult, ResultTier
from pdf_chapters.store.json_store import JsonDocumentStore

TIER_STYLES = {
    ResultTier.FULL: "green",
    ResultTier.PAGE_COUNT_ONLY: "yellow",
    ResultTier.UNEXTRACTABLE: "red",
}


def resolve_reference(source: str, storage_root: Path | None) -> DocumentReference:
    """Interpret SOURCE as a URL, a bucket:key object, or a local path."""
    if is_url(source):
        return source
    if storage_root is not None and ":" in source and not Path(source).exists():
        return StorageObject.parse(source)
    return Path(source)


def build_extractor(
    settings: ExtractionSettings,
    store_dir: Path | None = None,
    storage_root: Path | None = None,
) -> ChapterExtractor:
    return ChapterExtractor(
        settings=settings,
        store=JsonDocumentStore(store_dir) if store_dir else None,
        storage=LocalStorage(storage_root) if storage_root else None,
    )


def display_chapters(chapters: list[Chapter], console: Console, title: str = "Chapters") -> None:
    """Display the chapter table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white")
    table.add_column("Pages", justify="right", style="cyan")
    table.add_column("Words", justify="right", style="green")

    for chapter in chapters:
        if chapter.page_start is None:
            pages = "-"
        elif chapter.page_end is None or chapter.page_end == chapter.page_start:
            pages = str(chapter.page_start)
        else:
            pages = f"{chapter.page_start}-{chapter.page_end}"
        table.add_row(str(chapter.number), escape(chapter.title), pages, f"{chapter.word_count:,}")

    console.print(table)


def display_result(result: ExtractionResult, source: str, console: Console) -> None:
    """Display a summary panel followed by the chapter table."""
    style = TIER_STYLES[result.tier]
    info_lines = [
        f"[bold]{escape(source)}[/]",
        f"[dim]Result:[/] [{style}]{result.tier.value.replace('_', ' ')}[/]",
    ]

    if result.page_count:
        info_lines.append(
            f"[dim]Pages:[/] {result.page_count.count} "
            f"({result.page_count.confidence.value})"
        )
    if result.metadata:
        if result.metadata.title:
            info_lines.append(f"[dim]Title:[/] {escape(result.metadata.title)}")
        if result.metadata.author:
            info_lines.append(f"[dim]Author:[/] {escape(result.metadata.author)}")
    info_lines.append(f"[dim]Chapters:[/] {len(result.chapters)}")
    info_lines.append(f"[dim]Text length:[/] {result.full_text_length:,}")

    if result.warnings:
        info_lines.append("")
        for warning in result.warnings:
            info_lines.append(f"[yellow]! {escape(warning)}[/]")

    if result.requires_manual_entry:
        info_lines.append("")
        info_lines.append("[cyan]Chapters need to be entered manually.[/]")

    console.print(Panel("\n".join(info_lines), title="Extraction", border_style=style))

    if result.chapters:
        console.print()
        display_chapters(result.chapters, console)


def execute_extract(
    source: str,
    settings: ExtractionSettings,
    console: Console,
    document_id: str | None = None,
    store_dir: Path | None = None,
    storage_root: Path | None = None,
    as_json: bool = False,
) -> ExtractionResult:
    """Execute the extract command."""
    extractor = build_extractor(settings, store_dir, storage_root)
    reference = resolve_reference(source, storage_root)
    result = extractor.run_reference(reference, document_id=document_id)

    if as_json:
        typer.echo(result.to_response().to_json())
    else:
        display_result(result, source, console)

    return result


def execute_search(
    source: str,
    keywords: list[str],
    settings: ExtractionSettings,
    console: Console,
    storage_root: Path | None = None,
) -> list[Chapter]:
    """Extract chapters, then list the ones mentioning any keyword."""
    extractor = build_extractor(settings, storage_root=storage_root)
    result = extractor.run_reference(resolve_reference(source, storage_root))

    if not result.chapters:
        console.print("[yellow]No chapters could be extracted.[/]")
        return []

    matches = find_relevant_chapters(result.chapters, keywords)
    if not matches:
        console.print(f"[dim]No chapters mention: {', '.join(keywords)}[/]")
        return []

    display_chapters(matches, console, title=f"Chapters matching {', '.join(keywords)}")
    return matches
