from .client import TmuxClient, classify_error, in_tmux, tmux_available
from .models import Command, CommandTarget, Pane, Response, Session, TargetKind, Window

__all__ = [
    "Command",
    "CommandTarget",
    "Pane",
    "Response",
    "Session",
    "TargetKind",
    "TmuxClient",
    "Window",
    "classify_error",
    "in_tmux",
    "tmux_available",
]
