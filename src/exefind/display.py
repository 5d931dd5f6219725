"""Rich terminal display for exefind."""

from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from exefind.config import Settings
from exefind.models import CacheStatus, ExecutableEntry
from exefind.scanner import is_accessible_dir

console = Console()


def stale_label(stale: bool) -> str:
    """Get styled label for cache freshness."""
    return "[yellow]Stale[/yellow]" if stale else "[green]Fresh[/green]"


def show_results(entries: list[ExecutableEntry], term: str = "") -> None:
    """Display search results."""
    if not entries:
        if term:
            console.print(f"[yellow]No programs matching '{escape(term)}'.[/yellow]")
        else:
            console.print("[yellow]No programs in cache.[/yellow]")
        return

    table = Table(title="Search Results", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Path")

    for entry in entries:
        table.add_row(escape(entry.name), escape(entry.path) if entry.path else "[dim]-[/dim]")

    console.print(table)
    console.print(f"[dim]{len(entries)} match(es)[/dim]")


def show_status(status: CacheStatus, settings: Settings) -> None:
    """Display cache status and effective settings."""
    table = Table(title="Cache Status", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Cache file", escape(status.path))
    table.add_row("Exists", "yes" if status.exists else "no")
    if status.modified_at is not None:
        table.add_row("Modified", status.modified_at.strftime("%Y-%m-%d %H:%M:%S"))
        table.add_row("Age", status.age_human)
    table.add_row("State", stale_label(status.stale))
    table.add_row("Max age", f"{settings.max_age.total_seconds() / 3600:g} h")
    for root in settings.root_directories:
        marker = "" if is_accessible_dir(root) else " [dim](missing)[/dim]"
        table.add_row("Root", f"{escape(str(root))}{marker}")

    console.print(table)


def show_refresh_result(entries: list[ExecutableEntry], cache_path: str) -> None:
    """Display result of a cache refresh."""
    console.print(f"[green]✓[/green] {len(entries)} programs saved to '{escape(cache_path)}'")


def show_scanning_progress() -> Progress:
    """Create spinner for scanning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
