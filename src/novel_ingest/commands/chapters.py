"""Chapters and cache command implementations."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from novel_ingest.core.pipeline import ExtractionResult, VolumeLibrary
from novel_ingest.models.epub import ParsedChapterView


def display_chapter_view(view: ParsedChapterView, console: Console) -> None:
    """Render one chapter's paragraph items."""
    flags = []
    if view.is_cover_page:
        flags.append("cover")
    if view.is_title_page:
        flags.append("title page")

    header = f"[bold]{escape(view.title)}[/]"
    if flags:
        header += f" [dim]({', '.join(flags)})[/]"

    lines = [header, ""]
    for item in view.items:
        if item.type == "title":
            continue
        if item.type == "image":
            alt = f" {escape(item.image_alt)}" if item.image_alt else ""
            lines.append(f"[cyan]\\[image{alt}][/] [dim]{item.image_uri}[/]")
        else:
            lines.append(escape(item.content))
        lines.append("")

    console.print(Panel("\n".join(lines).rstrip(), title=view.chapter_id, border_style="blue"))


def display_chapter_list(result: ExtractionResult, console: Console) -> None:
    table = Table(
        title=result.metadata.book_metadata.title,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white")
    table.add_column("Source", style="dim")
    table.add_column("Chars", justify="right", style="green")

    for chapter in result.chapters:
        table.add_row(
            str(chapter.order + 1),
            escape(chapter.title),
            chapter.id,
            f"{len(chapter.content):,}",
        )

    console.print(table)


def execute_chapters(
    library: VolumeLibrary,
    identity: str,
    show: int | None,
    console: Console,
) -> bool:
    """List cached chapters, or render one when ``show`` (1-based) is given.

    Returns False when the volume is not cached or the chapter does not exist.
    """
    result = library.load(identity)
    if result is None:
        console.print(f"[yellow]No valid cache for {identity}. Run 'novel-ingest extract' first.[/]")
        return False

    console.print()
    if show is None:
        display_chapter_list(result, console)
        return True

    view = library.chapter_view(identity, show - 1)
    if view is None:
        console.print(f"[red]Chapter {show} not found ({len(result.chapters)} available)[/]")
        return False

    display_chapter_view(view, console)
    return True


def execute_cache_list(library: VolumeLibrary, console: Console) -> None:
    """Show every cached volume with its validity."""
    volumes = library.cache.list_cached()
    if not volumes:
        console.print("[dim]No cached volumes[/]")
        return

    table = Table(title="Cached Volumes", show_header=True, header_style="bold cyan")
    table.add_column("Identity", style="white")
    table.add_column("Title")
    table.add_column("Chapters", justify="right", style="green")
    table.add_column("Images", justify="right")
    table.add_column("Extracted", style="dim")
    table.add_column("Valid", justify="center")

    for volume in volumes:
        table.add_row(
            volume.volume_identity,
            volume.title,
            str(volume.chapter_count),
            str(volume.total_images),
            volume.extracted_at.strftime("%Y-%m-%d"),
            "[green]✓[/]" if volume.is_valid else "[red]✗[/]",
        )

    console.print(table)
