"""Extract command implementation."""

import re
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from novel_ingest.config import IngestSettings
from novel_ingest.core.pipeline import ExtractionResult, VolumeLibrary


def default_identity(book_path: Path) -> str:
    """Derive a volume identity from the book filename."""
    clean_stem = re.sub(r"[^\w\s-]", "", book_path.stem).strip()
    return re.sub(r"[-\s]+", "_", clean_stem) or "volume"


def display_chapters(result: ExtractionResult, console: Console) -> None:
    """Display extracted chapters as a table."""
    table = Table(title="Chapters", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white")
    table.add_column("Source", style="dim")
    table.add_column("TOC", justify="center")

    for chapter in result.chapters:
        table.add_row(
            str(chapter.order + 1),
            escape(chapter.title),
            chapter.id,
            "✓" if chapter.source_toc_title else "",
        )

    console.print(table)


def execute_extract(
    book_path: Path,
    identity: str | None,
    settings: IngestSettings,
    force: bool,
    quiet: bool,
    console: Console,
) -> ExtractionResult:
    """Execute the extract command."""
    identity = identity or default_identity(book_path)
    library = VolumeLibrary(settings)

    result = None if force else library.load(identity)
    if result is not None and not quiet:
        console.print("[dim]Using cached extraction[/]")

    if result is None:
        data = book_path.read_bytes()
        if not quiet:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                progress.add_task(f"Extracting {book_path.name}...", total=None)
                result = library.extract(data, identity)
        else:
            result = library.extract(data, identity)

    if quiet:
        return result

    metadata = result.metadata
    book = metadata.book_metadata

    console.print()
    if result.is_empty:
        console.print(
            Panel(
                f"[yellow]No usable chapters found in {book_path.name}[/]\n\n"
                f"[dim]The archive was read, but every spine entry was boilerplate, "
                f"too short, or empty.[/]",
                title="Nothing Extracted",
                border_style="yellow",
            )
        )
        return result

    info_lines = [
        f"[bold]{book.title}[/]",
        f"[dim]Author(s):[/] {', '.join(book.authors) or 'Unknown'}",
        f"[dim]Identity:[/] {metadata.volume_identity}",
        f"[dim]Chapters:[/] {len(result.chapters)}",
        f"[dim]TOC entries:[/] {len(result.toc)}",
        f"[dim]Images:[/] {metadata.total_images}",
    ]
    if metadata.cover_path:
        info_lines.append(f"[dim]Cover:[/] {metadata.cover_path}")

    console.print(Panel("\n".join(info_lines), title="Volume Info", border_style="green"))
    console.print()
    display_chapters(result, console)

    console.print()
    console.print(
        f"[green]Extracted {len(result.chapters)} chapter(s) to "
        f"{library.cache.volume_dir(identity)}[/]"
    )
    return result
