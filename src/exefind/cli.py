"""CLI interface for exefind."""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from exefind import __version__
from exefind.cache import CacheManager
from exefind.config import Settings, load_config_from_file, load_settings
from exefind.display import (
    console,
    show_refresh_result,
    show_results,
    show_scanning_progress,
    show_status,
)
from exefind.errors import CacheError, ConfigError

# Create Typer app
app = typer.Typer(
    name="exefind",
    help="Find installed programs and search a cached list of them",
    add_completion=False,
)


def configure_logging(verbose: bool = False) -> None:
    """Route exefind log records through rich on stderr."""
    logger = logging.getLogger("exefind")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"exefind version {__version__}")
        raise typer.Exit()


def build_settings(
    settings_file: Optional[Path],
    cache_file: Optional[Path],
    roots: Optional[list[Path]],
    max_age_hours: Optional[float],
) -> Settings:
    """Combine an optional settings file with command line overrides."""
    settings = load_settings(settings_file) if settings_file else Settings()
    overrides: dict = {}
    if cache_file is not None:
        overrides["cache_path"] = cache_file
    if roots:
        overrides["root_directories"] = roots
    if max_age_hours is not None:
        overrides["max_age"] = timedelta(hours=max_age_hours)
    return settings.model_copy(update=overrides)


def _refresh_with_progress(manager: CacheManager, force: bool) -> bool:
    """Refresh (if needed) while showing a spinner. Returns True if refreshed."""
    if not force and not manager.is_stale():
        return False

    with show_scanning_progress() as progress:
        task = progress.add_task("Scanning for programs...", total=None)

        def update_progress(directory: str) -> None:
            progress.update(task, description=f"Scanning {escape(directory)}")

        entries = manager.refresh(progress_callback=update_progress)

    show_refresh_result(entries, str(manager.cache_path))
    return True


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    settings_file: Optional[Path] = typer.Option(
        None, "--settings", help="JSON settings file"
    ),
    cache_file: Optional[Path] = typer.Option(
        None, "--cache-file", help="Cache file location"
    ),
    roots: Optional[list[Path]] = typer.Option(
        None, "--root", "-r", help="Directory to scan (repeatable)"
    ),
    max_age_hours: Optional[float] = typer.Option(
        None, "--max-age-hours", min=0, help="Hours before the cache is rescanned"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
) -> None:
    """exefind - find installed programs."""
    configure_logging(verbose)

    try:
        settings = build_settings(settings_file, cache_file, roots, max_age_hours)
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    ctx.obj = CacheManager(settings)

    # If no command specified, show status
    if ctx.invoked_subcommand is None:
        status(ctx)


@app.command()
def refresh(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Rescan even if the cache is fresh"),
) -> None:
    """Rescan program directories when the cache is stale."""
    manager: CacheManager = ctx.obj

    try:
        refreshed = _refresh_with_progress(manager, force)
    except CacheError as e:
        console.print(f"[red]Refresh failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not refreshed:
        console.print("[green]Cache is fresh.[/green] [dim]Use --force to rescan anyway.[/dim]")


@app.command()
def search(
    ctx: typer.Context,
    term: str = typer.Argument("", help="Substring to look for (case-sensitive)"),
    no_refresh: bool = typer.Option(
        False, "--no-refresh", help="Search the cache as is, even when stale"
    ),
) -> None:
    """Search cached programs by name or path."""
    manager: CacheManager = ctx.obj

    try:
        if not no_refresh:
            _refresh_with_progress(manager, force=False)
        results = manager.search(term)
    except CacheError as e:
        console.print(f"[red]Search failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    show_results(results, term)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show cache file state and settings."""
    manager: CacheManager = ctx.obj
    show_status(manager.status(), manager.settings)


@app.command()
def config(
    path: Path = typer.Argument(..., help="JSON configuration file"),
) -> None:
    """Show the application configuration stored in a JSON file."""
    try:
        app_config = load_config_from_file(path)
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"app_specific_configuration_path: {escape(app_config.app_specific_configuration_path)}")


if __name__ == "__main__":
    app()
