"""`swarmlink mapping ...` commands."""

from __future__ import annotations

import typer
from rich.table import Table

from ..errors import SwarmlinkError
from .common import console, fail, load_config, make_mappings


def mapping_list_command() -> None:
    """Show agent session ↔ tmux session mappings."""
    store = make_mappings(load_config())
    mappings = store.list()
    if not mappings:
        console.print("[dim]No session mappings[/dim]")
        return

    table = Table(title="Session mappings")
    table.add_column("Agent session", style="cyan")
    table.add_column("tmux session")
    table.add_column("Created", style="dim")
    for mapping in mappings:
        table.add_row(mapping.remote_session_id, mapping.local_session_name, mapping.created_at)
    console.print(table)


def mapping_remove_command(
    remote_id: str = typer.Argument(..., help="Agent session id"),
) -> None:
    store = make_mappings(load_config())
    try:
        removed = store.remove(remote_id)
    except SwarmlinkError as e:
        fail(str(e))
    if removed is None:
        fail(f"No mapping for {remote_id}")
    console.print(f"[green]✓[/green] Removed mapping {remote_id} -> {removed.local_session_name}")


def mapping_clear_command() -> None:
    try:
        make_mappings(load_config()).clear()
    except SwarmlinkError as e:
        fail(str(e))
    console.print("[green]✓[/green] Session mappings cleared")
