"""`swarmlink session ...` commands."""

from __future__ import annotations

import typer
from rich.table import Table

from ..errors import SwarmlinkError
from .common import console, fail, load_config, make_tmux, resolve_session


def session_start_command(
    name: str = typer.Argument(..., help="Name for the new tmux session"),
) -> None:
    """Create a detached tmux session."""
    tmux = make_tmux(load_config())
    try:
        session = tmux.new_session(name)
    except SwarmlinkError as e:
        fail(f"Failed to start session '{name}': {e}")
    console.print(f"[green]✓[/green] Started session [bold]{session.name}[/bold] ({session.id})")


def session_stop_command(
    target: str = typer.Argument(..., help="Session id or name"),
) -> None:
    """Kill a tmux session."""
    tmux = make_tmux(load_config())
    try:
        session = resolve_session(tmux, target)
        if session is None:
            fail(f"Session not found: {target}")
        tmux.kill_session(session.id)
    except SwarmlinkError as e:
        fail(f"Failed to stop session '{target}': {e}")
    console.print(f"[green]✓[/green] Stopped session [bold]{session.name}[/bold]")


def session_list_command() -> None:
    """List tmux sessions with their windows and panes."""
    tmux = make_tmux(load_config())
    try:
        sessions = tmux.list_sessions()
    except SwarmlinkError as e:
        fail(f"Failed to list sessions: {e}")

    if not sessions:
        console.print("[dim]No tmux sessions[/dim]")
        return

    table = Table(title="tmux sessions")
    table.add_column("Session", style="cyan")
    table.add_column("Name")
    table.add_column("Attached")
    table.add_column("Windows", justify="right")
    table.add_column("Panes", justify="right")
    for session in sessions:
        pane_count = sum(len(w.panes) for w in session.windows)
        table.add_row(
            session.id,
            session.name,
            "yes" if session.attached else "no",
            str(len(session.windows)),
            str(pane_count),
        )
    console.print(table)


def session_attach_command(
    target: str = typer.Argument(..., help="Session id or name"),
) -> None:
    """Attach the current terminal to a tmux session."""
    tmux = make_tmux(load_config())
    try:
        session = resolve_session(tmux, target)
        if session is None:
            fail(f"Session not found: {target}")
        tmux.attach_session(session.id)
    except SwarmlinkError as e:
        fail(f"Failed to attach to '{target}': {e}")


def session_detach_command(
    target: str = typer.Argument(..., help="Session id or name"),
) -> None:
    """Detach clients from a tmux session."""
    tmux = make_tmux(load_config())
    try:
        session = resolve_session(tmux, target)
        if session is None:
            fail(f"Session not found: {target}")
        tmux.detach_session(session.id)
    except SwarmlinkError as e:
        fail(f"Failed to detach from '{target}': {e}")
    console.print(f"[green]✓[/green] Detached from [bold]{session.name}[/bold]")
