"""`swarmlink message ...` commands."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import typer

from ..agent.discovery import AgentDiscovery
from ..config import MessageMode, SwarmlinkConfig
from ..delivery.router import DeliveryResult, DeliveryRouter
from ..errors import SwarmlinkError
from .common import (
    console,
    fail,
    load_config,
    make_mappings,
    make_prompt_writer,
    make_queue,
    make_tmux,
)


def message_send_command(
    pane: str = typer.Argument(..., help="Target pane (e.g. %3 or work:0.0)"),
    text: List[str] = typer.Argument(..., help="Message text"),
) -> None:
    """Write the prompt file for a pane, then type the message into it."""
    config = load_config()
    message = " ".join(text)
    try:
        make_prompt_writer(config).send_prompt(pane, message)
    except SwarmlinkError as e:
        # The prompt file only tracks what was sent; injection goes ahead without it.
        console.print(f"[yellow]Warning:[/yellow] could not write prompt file for {pane}: {e}")
    try:
        make_tmux(config).send_keys_enter(pane, message)
    except SwarmlinkError as e:
        fail(f"Failed to send to {pane}: {e}")
    console.print(f"[green]✓[/green] Sent to pane {pane}")


async def _route(
    config: SwarmlinkConfig, remote_id: str, content: str, mode: MessageMode, as_prompt: bool
) -> DeliveryResult:
    router = DeliveryRouter(
        make_tmux(config),
        make_mappings(config),
        discovery=AgentDiscovery(
            config.agent_server_url, timeout_s=config.discovery_timeout_s
        ),
        auto_detect=config.auto_detect_agent,
        http_timeout_s=config.http_timeout_s,
    )
    try:
        if mode is not MessageMode.TERMINAL_ONLY:
            await router.initialize(config.agent_server_url)
        if as_prompt:
            return await router.send_prompt(remote_id, content, mode)
        return await router.send_message(remote_id, content, mode)
    finally:
        await router.aclose()


def message_route_command(
    remote_id: str = typer.Argument(..., help="Agent session id"),
    text: List[str] = typer.Argument(..., help="Message text"),
    mode: Optional[str] = typer.Option(
        None, "--mode", "-m", help="auto | agent | terminal (default: from config)"
    ),
    as_prompt: bool = typer.Option(
        True, "--prompt/--message", help="Use the prompt or the message endpoint"
    ),
) -> None:
    """Deliver through the agent API, falling back to the mapped tmux pane."""
    config = load_config()
    try:
        resolved_mode = MessageMode.parse(mode) if mode else config.mode
        result = asyncio.run(
            _route(config, remote_id, " ".join(text), resolved_mode, as_prompt)
        )
    except SwarmlinkError as e:
        fail(str(e))

    if result.pane_id:
        console.print(
            f"[green]✓[/green] Delivered via {result.channel.value} "
            f"to {result.session_name} ({result.pane_id})"
        )
    else:
        console.print(f"[green]✓[/green] Delivered via {result.channel.value}")


def message_enqueue_command(
    session: str = typer.Argument(..., help="tmux session name"),
    text: List[str] = typer.Argument(..., help="Message text"),
    agent: Optional[str] = typer.Option(
        None, "--agent", "-a", help="Also write a prompt file tagged with this agent name"
    ),
) -> None:
    """Stage a message in the durable queue for the session's default pane."""
    config = load_config()
    content = " ".join(text)
    try:
        queue = make_queue(config)
        if agent:
            message_id = queue.send_prompt_to_session(session, content, agent)
        else:
            message_id = queue.send_message(session, content)
    except SwarmlinkError as e:
        fail(f"Failed to queue message: {e}")
    console.print(f"[green]✓[/green] Queued message {message_id}")
