#!/usr/bin/env python3
"""
Main CLI for Amalgam - file seek and clipboard trace.

Usage:
    amalgam seek "query"        - Search file names on a drive
    amalgam scopes              - List drives that can be searched
    amalgam trace               - Record clipboard activity until Ctrl+C
    amalgam history             - Show the saved clipboard history
    amalgam copy N              - Copy saved history entry N to the clipboard
    amalgam locate PATH         - Reveal a path in the file browser
    amalgam settings            - Show or change settings
"""

import asyncio
from pathlib import Path
from typing import List, Optional
import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.markup import escape
from loguru import logger

from ..daemon.config import AppSettings, Config
from ..daemon.bus import Event
from ..daemon.errors import ErrorReporter
from ..daemon.history import HistoryStore
from ..daemon.main import AmalgamDaemon, configure_logging, main as daemon_main
from ..daemon.models import ClipboardEntry, FileMatch
from ..daemon.persistence import HistoryPersistence, SettingsPersistence
from ..daemon.providers import (
    FileSystemSearchProvider,
    PyperclipWriter,
    SystemFileLocator,
    list_scopes,
)
from ..daemon.seek import SearchCoordinator

console = Console()


def load_config(ctx: click.Context) -> Config:
    config_path = ctx.obj.get("config_path")
    try:
        return Config.load(Path(config_path) if config_path else None)
    except FileNotFoundError as e:
        raise click.ClickException(str(e))


def preview(entry: ClipboardEntry, width: int = 80) -> str:
    if entry.kind.value == "image":
        return f"<image, {len(entry.content)} bytes>"
    text = " ⏎ ".join(entry.content.splitlines())
    if len(text) > width:
        text = text[:width - 3] + "..."
    return escape(text)


def ingested_entry(store: HistoryStore, event: Event) -> Optional[ClipboardEntry]:
    """The entry a ``history.changed`` ingest event refers to, if still held."""
    if event.data.get("reason") != "ingest":
        return None
    entry_id = event.data.get("entry_id")
    return next((e for e in store.entries if e.id == entry_id), None)


@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """Amalgam - file seek and clipboard trace."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    configure_logging("DEBUG" if verbose else "WARNING")


@cli.command()
@click.argument("query")
@click.option("--scope", "-s", help="Drive or folder to search (default: first drive)")
@click.option("--regex", "-r", is_flag=True, help="Treat query as a regular expression")
@click.option("--match-case", "-m", is_flag=True, help="Case-sensitive matching")
@click.pass_context
def seek(ctx, query: str, scope: Optional[str], regex: bool, match_case: bool):
    """Search for files and folders by name."""
    config = load_config(ctx)
    results = asyncio.run(seek_files(config, query, scope, regex, match_case))
    display_matches(query, results)


async def seek_files(
    config: Config,
    query: str,
    scope: Optional[str],
    use_regex: bool,
    case_sensitive: bool
) -> List[FileMatch]:
    """Run one search through the coordinator and wait for it to commit."""
    reporter = ErrorReporter()
    coordinator = SearchCoordinator(
        FileSystemSearchProvider(
            max_depth=config.search.max_depth,
            max_results=config.search.max_results
        ),
        scope=scope or list_scopes()[0],
        debounce_ms=0,
        error_reporter=reporter
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console
    ) as progress:
        progress.add_task(description=f"Searching {escape(coordinator.intent.scope)}...", total=None)
        coordinator.update_intent(
            query=query,
            use_regex=use_regex,
            case_sensitive=case_sensitive
        )
        state = await coordinator.settle()

    if reporter.errors:
        console.print(f"[red]Search failed:[/red] {escape(reporter.errors[-1].message)}")
    return list(state.results)


def display_matches(query: str, results: List[FileMatch]):
    """Display search results in a table."""
    if not results:
        console.print("[yellow]No results found[/yellow]")
        return

    table = Table(title=f"Matches for '{escape(query)}' ({len(results)})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Path", no_wrap=False)

    for r in results:
        table.add_row(escape(r.name), "folder" if r.is_dir else "file", escape(r.path))

    console.print(table)


@cli.command()
def scopes():
    """List drives that can be searched."""
    for i, scope in enumerate(list_scopes()):
        marker = " [dim](default)[/dim]" if i == 0 else ""
        console.print(f"  • {escape(scope)}{marker}")


@cli.command()
@click.option("--save/--no-save", default=None,
              help="Save history on exit without asking")
@click.pass_context
def trace(ctx, save: Optional[bool]):
    """Record clipboard activity until interrupted."""
    console.print("[cyan]Tracing clipboard, press Ctrl+C to stop...[/cyan]")

    def confirm_save() -> bool:
        if save is not None:
            return save
        return click.confirm("\nSave the clipboard history for next time?", default=True)

    def on_started(daemon: AmalgamDaemon) -> None:
        console.print(f"[dim]{len(daemon.history)} entries restored[/dim]")

        def show_latest(event: Event) -> None:
            entry = ingested_entry(daemon.history, event)
            if entry is not None:
                console.print(f"[green]+[/green] [magenta]{entry.kind.value:<9}[/magenta] {preview(entry)}")

        def show_alert(event: Event) -> None:
            console.print(f"[red]{event.data['title']}:[/red] {escape(event.data['message'])}")

        daemon.event_bus.subscribe("history.changed", show_latest)
        daemon.event_bus.subscribe("alert.raised", show_alert)

    try:
        asyncio.run(daemon_main(ctx.obj.get("config_path"), confirm_save, on_started))
    except KeyboardInterrupt:
        console.print("\n[yellow]Trace stopped by user[/yellow]")


@cli.command()
@click.option("--limit", "-l", default=20, help="Max entries to show")
@click.pass_context
def history(ctx, limit: int):
    """Show the saved clipboard history."""
    config = load_config(ctx)
    entries = asyncio.run(HistoryPersistence(config.history_path).load())

    if not entries:
        console.print("[yellow]No saved clipboard history[/yellow]")
        return

    table = Table(title=f"Clipboard History ({len(entries)})")
    table.add_column("#", justify="right")
    table.add_column("Kind", style="magenta")
    table.add_column("Content", no_wrap=False)

    for i, entry in enumerate(entries[:limit], 1):
        table.add_row(str(i), entry.kind.value, preview(entry))

    console.print(table)


@cli.command()
@click.argument("index", type=int)
@click.pass_context
def copy(ctx, index: int):
    """Copy saved history entry INDEX (1 = newest) to the clipboard."""
    config = load_config(ctx)
    if not asyncio.run(copy_entry(config, index)):
        ctx.exit(1)


async def copy_entry(config: Config, index: int) -> bool:
    reporter = ErrorReporter()
    store = HistoryStore(
        capacity=config.history.capacity,
        writer=PyperclipWriter(),
        error_reporter=reporter
    )
    store.restore(await HistoryPersistence(config.history_path).load())

    if not 1 <= index <= len(store):
        console.print(f"[red]No history entry #{index}[/red]")
        return False

    entry = store.entries[index - 1]
    if await store.copy(entry):
        console.print(f"[green]✓[/green] Copied: {preview(entry)}")
        return True

    alert = reporter.alerts[-1]
    console.print(f"[red]{alert.title}:[/red] {escape(alert.message)}")
    return False


@cli.command()
@click.argument("path", type=click.Path())
@click.pass_context
def locate(ctx, path: str):
    """Reveal PATH in the file browser."""
    reporter = ErrorReporter()
    store = HistoryStore(locator=SystemFileLocator(), error_reporter=reporter)
    if not asyncio.run(store.locate(path)):
        alert = reporter.alerts[-1]
        console.print(f"[red]{alert.title}:[/red] {escape(alert.message)}")
        ctx.exit(1)


@cli.command()
@click.option("--theme", type=click.Choice(["light", "dark", "system"]), help="Colour theme")
@click.option("--close-to-tray/--quit-on-close", default=None,
              help="Keep running in the tray when the window is closed")
@click.pass_context
def settings(ctx, theme: Optional[str], close_to_tray: Optional[bool]):
    """Show or change settings."""
    config = load_config(ctx)
    store = SettingsPersistence(config.settings_path)
    current = asyncio.run(store.load())

    if theme is None and close_to_tray is None:
        console.print(f"Theme: [cyan]{current.theme}[/cyan]")
        console.print(f"Close to tray: [cyan]{current.close_to_tray}[/cyan]")
        return

    updated = AppSettings(
        theme=theme or current.theme,
        close_to_tray=current.close_to_tray if close_to_tray is None else close_to_tray
    )
    if asyncio.run(store.save(updated)):
        console.print("[green]Settings saved[/green]")
    else:
        logger.error("Could not save settings")
        console.print(f"[red]Could not save settings to {config.settings_path}[/red]")
        ctx.exit(1)


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
