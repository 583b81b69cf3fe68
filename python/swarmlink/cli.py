"""swarmlink command-line entry point."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .commands.mapping import mapping_clear_command, mapping_list_command, mapping_remove_command
from .commands.message import (
    message_enqueue_command,
    message_route_command,
    message_send_command,
)
from .commands.output import output_read_command, output_tail_command, output_watch_command
from .commands.queue import (
    queue_clear_command,
    queue_flush_command,
    queue_retry_command,
    queue_stats_command,
)
from .commands.session import (
    session_attach_command,
    session_detach_command,
    session_list_command,
    session_start_command,
    session_stop_command,
)
from .commands.status import status_command
from .config import get_default_config_content

app = typer.Typer(help="Bridge agent sessions and tmux panes.", no_args_is_help=True)

session_app = typer.Typer(help="Manage tmux sessions.", no_args_is_help=True)
session_app.command("start")(session_start_command)
session_app.command("stop")(session_stop_command)
session_app.command("list")(session_list_command)
session_app.command("attach")(session_attach_command)
session_app.command("detach")(session_detach_command)

message_app = typer.Typer(help="Send messages to panes or agent sessions.", no_args_is_help=True)
message_app.command("send")(message_send_command)
message_app.command("route")(message_route_command)
message_app.command("enqueue")(message_enqueue_command)

output_app = typer.Typer(help="Read session logs.", no_args_is_help=True)
output_app.command("read")(output_read_command)
output_app.command("tail")(output_tail_command)
output_app.command("watch")(output_watch_command)

queue_app = typer.Typer(help="Inspect and drain the message queue.", no_args_is_help=True)
queue_app.command("stats")(queue_stats_command)
queue_app.command("retry")(queue_retry_command)
queue_app.command("flush")(queue_flush_command)
queue_app.command("clear")(queue_clear_command)

mapping_app = typer.Typer(help="Agent session to tmux session mappings.", no_args_is_help=True)
mapping_app.command("list")(mapping_list_command)
mapping_app.command("remove")(mapping_remove_command)
mapping_app.command("clear")(mapping_clear_command)

app.add_typer(session_app, name="session")
app.add_typer(message_app, name="message")
app.add_typer(output_app, name="output")
app.add_typer(queue_app, name="queue")
app.add_typer(mapping_app, name="mapping")
app.command("status")(status_command)


@app.command("config")
def config_command(
    default: bool = typer.Option(False, "--default", help="Print the default config file"),
) -> None:
    """Show the active configuration."""
    from .commands.common import console, load_config

    if default:
        console.print(get_default_config_content(), markup=False, highlight=False)
        return
    for key, value in load_config().to_dict().items():
        console.print(f"[bold]{key}[/bold]: {value}")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"swarmlink {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: ~/.swarmlink/config.yaml)"
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    if config is not None:
        os.environ["SWARMLINK_CONFIG"] = str(config)


if __name__ == "__main__":
    app()
