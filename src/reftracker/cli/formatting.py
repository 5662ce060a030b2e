"""Rich formatting helpers for the reftracker CLI.

Provides functions that format result models for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from reftracker.models.results import AddResult, RemoveResult, TrackerInfo


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_add_result(name: str, result: AddResult, console: Console) -> None:
    """Display the outcome of an add."""
    name = escape(name)
    if result.created:
        console.print(
            f"[green]Created[/green] tracker {name} with {len(result.added)} key(s)."
        )
    elif result.added:
        console.print(
            f"Added {len(result.added)} key(s) to {name}: "
            f"{escape(', '.join(result.added))}"
        )
    else:
        console.print(f"[dim]No keys added to {name}; all already tracked.[/dim]")


def format_remove_result(name: str, result: RemoveResult, console: Console) -> None:
    """Display the outcome of a remove."""
    name = escape(name)
    if result.deleted and result.removed:
        console.print(
            f"[yellow]Deleted[/yellow] tracker {name}; it holds no references."
        )
    elif result.deleted:
        console.print(f"[dim]Tracker {name} does not exist; nothing to remove.[/dim]")
    elif result.removed:
        console.print(
            f"Removed {len(result.removed)} key(s) from {name}: "
            f"{escape(', '.join(result.removed))}"
        )
    else:
        console.print(f"[dim]No keys removed from {name}; none tracked.[/dim]")


def format_tracker_info(info: TrackerInfo, console: Console) -> None:
    """Display a tracker's version, refcount, token and keys."""
    console.print(f"[bold]{escape(info.pool)}/{escape(info.name)}[/bold]")
    console.print(f"  Version:  {info.version}")
    console.print(f"  Refcount: [green]{info.refcount}[/green]")
    console.print(f"  Token:    [yellow]{info.token}[/yellow]")

    if not info.keys:
        console.print("[dim]No keys.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Key", style="cyan")
    for key in sorted(info.keys):
        table.add_row(escape(key))
    console.print(table)


def format_names(names: list[str], console: Console, *, empty: str) -> None:
    """Display one name per line, or *empty* if there are none."""
    if not names:
        console.print(f"[dim]{empty}[/dim]")
        return
    for name in names:
        console.print(escape(name), highlight=False)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
