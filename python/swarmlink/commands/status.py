"""`swarmlink status`: tmux sessions, session logs, queue and agent reachability."""

from __future__ import annotations

import asyncio

import typer
from rich.table import Table

from ..agent.discovery import AgentDiscovery
from ..errors import SwarmlinkError
from ..tmux.client import tmux_available
from .common import console, load_config, make_log_reader, make_queue, make_tmux


def status_command(
    probe: bool = typer.Option(True, "--probe/--no-probe", help="Probe for an agent server"),
) -> None:
    """Summarize the local bridge state."""
    config = load_config()

    console.print("[bold]tmux[/bold]")
    if not tmux_available():
        console.print("  [yellow]tmux not installed[/yellow]")
    else:
        try:
            sessions = make_tmux(config).list_sessions()
        except SwarmlinkError as e:
            console.print(f"  [yellow]{e}[/yellow]")
            sessions = []
        if sessions:
            table = Table(show_header=True)
            table.add_column("Session", style="cyan")
            table.add_column("Name")
            table.add_column("Windows", justify="right")
            for session in sessions:
                table.add_row(session.id, session.name, str(len(session.windows)))
            console.print(table)
        else:
            console.print("  [dim]No sessions[/dim]")

    console.print("[bold]Logs[/bold]")
    reader = make_log_reader(config)
    try:
        log_ids = reader.list_session_logs()
    except SwarmlinkError as e:
        console.print(f"  [yellow]{e}[/yellow]")
        log_ids = []
    if log_ids:
        for session_id in log_ids:
            size = reader.get_log_size(session_id)
            console.print(f"  {reader.session_log_path(session_id)} [dim]({size} bytes)[/dim]")
    else:
        console.print(f"  [dim]No session logs in {config.log_dir}[/dim]")

    console.print("[bold]Queue[/bold]")
    try:
        stats = make_queue(config).stats()
        console.print(f"  queued {stats.queued}, failed {stats.failed}")
    except SwarmlinkError as e:
        console.print(f"  [yellow]{e}[/yellow]")

    if probe:
        console.print("[bold]Agent server[/bold]")
        discovery = AgentDiscovery(config.agent_server_url, timeout_s=config.discovery_timeout_s)
        status = asyncio.run(discovery.discover())
        if status.running:
            console.print(f"  [green]available[/green] at {status.url}")
        else:
            console.print(f"  [dim]{status.status.value}[/dim]")
