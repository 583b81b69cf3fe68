"""`swarmlink queue ...` commands."""

from __future__ import annotations

import typer
from rich.table import Table

from ..delivery.dispatcher import QueueDispatcher
from ..errors import SwarmlinkError
from .common import console, fail, load_config, make_queue, make_tmux


def queue_stats_command() -> None:
    """Show pending, queued and failed message counts."""
    try:
        stats = make_queue(load_config()).stats()
    except SwarmlinkError as e:
        fail(str(e))

    table = Table(title="Message queue")
    table.add_column("State")
    table.add_column("Count", justify="right")
    table.add_row("pending (this process)", str(stats.pending))
    table.add_row("queued", str(stats.queued))
    table.add_row("failed", f"[red]{stats.failed}[/red]" if stats.failed else "0")
    console.print(table)


def queue_retry_command() -> None:
    """Bump the retry counter of undelivered messages and deliver them."""
    config = load_config()
    try:
        queue = make_queue(config)
        retried = queue.retry_failed()
        delivered, failed = QueueDispatcher(queue, make_tmux(config)).dispatch_pending()
    except SwarmlinkError as e:
        fail(str(e))
    console.print(f"Retried {retried}: delivered {delivered}, failed {failed}")


def queue_flush_command() -> None:
    """Deliver every queued message that still has retries left."""
    config = load_config()
    try:
        queue = make_queue(config)
        queue.load_existing()
        delivered, failed = QueueDispatcher(queue, make_tmux(config)).dispatch_pending()
    except SwarmlinkError as e:
        fail(str(e))
    console.print(f"Delivered {delivered}, failed {failed}")
    if failed:
        raise typer.Exit(1)


def queue_clear_command(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete every queued message. Irreversible."""
    if not yes and not typer.confirm("Delete all queued messages?"):
        raise typer.Exit(1)
    try:
        make_queue(load_config()).clear()
    except SwarmlinkError as e:
        fail(str(e))
    console.print("[green]✓[/green] Queue cleared")
