"""Validate and repair command implementations."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from novel_ingest.core.validator import repair_epub, validate_epub
from novel_ingest.models.epub import RepairResult, ValidationResult


def display_validation(book_path: Path, result: ValidationResult, console: Console) -> None:
    """Display validation outcome as a panel."""
    if result.is_valid:
        lines = [f"[green]{book_path.name} is structurally valid[/]"]
        if result.package_path:
            lines.append(f"[dim]Package document:[/] {result.package_path}")
        if result.manifest is not None:
            lines.append(f"[dim]Manifest items:[/] {len(result.manifest)}")
        console.print(Panel("\n".join(lines), title="Validation", border_style="green"))
        return

    lines = [f"[red]{len(result.issues)} issue(s) found in {book_path.name}[/]", ""]
    lines.extend(f"[yellow]- {issue}[/]" for issue in result.issues)
    console.print(Panel("\n".join(lines), title="Validation", border_style="red"))


def execute_validate(book_path: Path, console: Console) -> ValidationResult:
    """Execute the validate command."""
    result = validate_epub(book_path.read_bytes())
    console.print()
    display_validation(book_path, result, console)
    return result


def default_repair_path(book_path: Path) -> Path:
    return book_path.with_name(f"{book_path.stem}_repaired{book_path.suffix}")


def execute_repair(book_path: Path, output: Path | None, console: Console) -> RepairResult:
    """Execute the repair command.

    The repaired archive is only written when something was actually changed.
    """
    result = repair_epub(book_path.read_bytes())
    console.print()

    if not result.success:
        console.print(Panel(f"[red]{result.message}[/]", title="Repair", border_style="red"))
        return result

    if not result.repaired:
        console.print(f"[green]{book_path.name}: {result.message}, nothing to repair[/]")
        return result

    target = output or default_repair_path(book_path)
    target.write_bytes(result.data or b"")
    console.print(
        Panel(
            f"[green]{result.message}[/]\n\n[dim]Written to:[/] {target}",
            title="Repair",
            border_style="green",
        )
    )
    return result
