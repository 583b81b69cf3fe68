"""`swarmlink output ...` commands."""

from __future__ import annotations

import typer

from ..errors import SwarmlinkError
from .common import console, fail, load_config, make_log_reader


def output_read_command(
    session: str = typer.Argument(..., help="Session id used in the log file name"),
) -> None:
    """Print the whole session log."""
    reader = make_log_reader(load_config())
    try:
        text = reader.read_log(session)
    except SwarmlinkError as e:
        fail(str(e))
    if not text:
        console.print(f"[dim]No output logged for {session}[/dim]")
        return
    console.print(text, end="", markup=False, highlight=False)


def output_tail_command(
    session: str = typer.Argument(..., help="Session id used in the log file name"),
    lines: int = typer.Option(20, "--lines", "-n", help="Number of lines to show"),
) -> None:
    """Print the last lines of the session log."""
    reader = make_log_reader(load_config())
    try:
        tail = reader.tail_log(session, lines)
    except SwarmlinkError as e:
        fail(str(e))
    for line in tail:
        console.print(line, markup=False, highlight=False)


def output_watch_command(
    session: str = typer.Argument(..., help="Session id used in the log file name"),
) -> None:
    """Follow the session log until interrupted."""
    reader = make_log_reader(load_config())
    try:
        reader.watch_log(
            session, lambda line: console.print(line, markup=False, highlight=False)
        )
    except KeyboardInterrupt:
        return
    except SwarmlinkError as e:
        fail(str(e))
