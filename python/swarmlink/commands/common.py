"""Shared wiring for CLI commands: config loading and component construction."""

from __future__ import annotations

from typing import NoReturn, Optional

import typer
from rich.console import Console

from ..config import SwarmlinkConfig
from ..errors import SwarmlinkError
from ..messaging.logs import LogReader
from ..messaging.prompts import PromptWriter
from ..messaging.queue import MessageQueue
from ..session_mapping import SessionMappingStore
from ..tmux.client import TmuxClient
from ..tmux.models import Session

console = Console()


def load_config() -> SwarmlinkConfig:
    try:
        return SwarmlinkConfig.load()
    except SwarmlinkError as e:
        fail(f"Invalid configuration: {e}")


def fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def make_tmux(config: SwarmlinkConfig) -> TmuxClient:
    return TmuxClient(config.tmux_server)


def make_prompt_writer(config: SwarmlinkConfig) -> PromptWriter:
    return PromptWriter(config.prompt_dir)


def make_queue(config: SwarmlinkConfig) -> MessageQueue:
    return MessageQueue(
        config.queue_dir, make_prompt_writer(config), max_retries=config.max_retries
    )


def make_mappings(config: SwarmlinkConfig) -> SessionMappingStore:
    return SessionMappingStore(config.mapping_file)


def make_log_reader(config: SwarmlinkConfig) -> LogReader:
    return LogReader(config.log_dir)


def resolve_session(tmux: TmuxClient, target: str) -> Optional[Session]:
    """Match a session by id first, then by name."""
    sessions = tmux.list_sessions()
    for session in sessions:
        if session.id == target:
            return session
    for session in sessions:
        if session.name == target:
            return session
    return None
