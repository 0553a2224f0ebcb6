"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from novel_ingest.commands.chapters import execute_cache_list, execute_chapters
from novel_ingest.commands.extract import execute_extract
from novel_ingest.commands.validate import execute_repair, execute_validate
from novel_ingest.config import CACHE_DIR, IngestSettings
from novel_ingest.core.pipeline import VolumeLibrary
from novel_ingest.errors import IngestError

app = typer.Typer(
    name="novel-ingest",
    help="Extract EPUB volumes into a reusable chapter and image cache.",
    add_completion=False,
)

console = Console()

# Cache subcommand group
cache_app = typer.Typer(help="Cache management commands")
app.add_typer(cache_app, name="cache")

BookPath = Annotated[
    Path,
    typer.Argument(
        help="Path to the EPUB file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]

CacheDir = Annotated[
    Optional[Path],
    typer.Option(
        "--cache-dir",
        "-c",
        help=f"Cache directory (default: ./{CACHE_DIR})",
        file_okay=False,
        dir_okay=True,
    ),
]


def _settings(cache_dir: Path | None) -> IngestSettings:
    if cache_dir is None:
        return IngestSettings()
    return IngestSettings(cache_root=cache_dir)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging",
        ),
    ] = False,
) -> None:
    """Extract EPUB volumes into a reusable chapter and image cache."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )


@app.command()
def extract(
    book_path: BookPath,
    identity: Annotated[
        Optional[str],
        typer.Option(
            "--identity",
            "-i",
            help="Volume identity used as the cache key (default: from filename)",
        ),
    ] = None,
    cache_dir: CacheDir = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Force re-extraction, ignore cache",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress progress output",
        ),
    ] = False,
) -> None:
    """Extract chapters and images from an EPUB into the cache."""
    try:
        execute_extract(
            book_path=book_path,
            identity=identity,
            settings=_settings(cache_dir),
            force=force,
            quiet=quiet,
            console=console,
        )
    except IngestError as e:
        console.print(f"[red]Error: cannot extract {book_path.name}: {e}[/]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def validate(book_path: BookPath) -> None:
    """Check the structure of an EPUB and report every issue found."""
    try:
        result = execute_validate(book_path, console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if not result.is_valid:
        raise typer.Exit(1)


@app.command()
def repair(
    book_path: BookPath,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Where to write the repaired EPUB (default: {name}_repaired.epub)",
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """Fix a missing/invalid mimetype or missing container.xml."""
    try:
        result = execute_repair(book_path, output, console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if not result.success:
        raise typer.Exit(1)


@app.command()
def chapters(
    identity: Annotated[
        str,
        typer.Argument(help="Volume identity to read from the cache"),
    ],
    cache_dir: CacheDir = None,
    show: Annotated[
        Optional[int],
        typer.Option(
            "--show",
            "-s",
            help="Render chapter N (1-based) as paragraphs",
            min=1,
        ),
    ] = None,
) -> None:
    """List the cached chapters of a volume, or render one of them."""
    library = VolumeLibrary(_settings(cache_dir))
    try:
        found = execute_chapters(library, identity, show, console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if not found:
        raise typer.Exit(1)


@cache_app.command("list")
def cache_list(cache_dir: CacheDir = None) -> None:
    """List cached volumes."""
    execute_cache_list(VolumeLibrary(_settings(cache_dir)), console)


@cache_app.command("clear")
def cache_clear(
    identity: Annotated[
        Optional[str],
        typer.Argument(help="Volume identity to clear (default: all)"),
    ] = None,
    cache_dir: CacheDir = None,
) -> None:
    """Clear cached volumes."""
    library = VolumeLibrary(_settings(cache_dir))

    if identity is None:
        count = library.cache.clear_all()
        console.print(f"[green]Cleared {count} cached volume(s)[/]")
        return

    try:
        removed = library.delete(identity)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if removed:
        console.print(f"[green]Cleared cache for {identity}[/]")
    else:
        console.print(f"[yellow]No cache for {identity}[/]")


if __name__ == "__main__":
    app()
