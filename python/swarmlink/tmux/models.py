"""Typed snapshots of tmux entities and control commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NewType, Optional, Sequence

SessionId = NewType("SessionId", str)
WindowId = NewType("WindowId", str)
PaneId = NewType("PaneId", str)

WINDOW_SEPARATOR = "@"
PANE_SEPARATOR = "%"


def session_of_window(window_id: str) -> str:
    """Session id recovered from a window id (text before the first ``@``)."""
    return window_id.split(WINDOW_SEPARATOR, 1)[0]


def window_of_pane(pane_id: str) -> str:
    """Window id recovered from a pane id (text before the first ``%``)."""
    return pane_id.split(PANE_SEPARATOR, 1)[0]


@dataclass(frozen=True)
class Pane:
    id: PaneId
    window_id: WindowId
    session_id: SessionId
    current_path: Optional[str] = None
    pid: Optional[int] = None
    active: bool = False


@dataclass(frozen=True)
class Window:
    id: WindowId
    session_id: SessionId
    name: str
    panes: tuple[Pane, ...] = ()
    active: bool = False


@dataclass(frozen=True)
class Session:
    id: SessionId
    name: str
    windows: tuple[Window, ...] = ()
    attached: bool = False

    def first_pane(self) -> Optional[Pane]:
        for window in self.windows:
            if window.panes:
                return window.panes[0]
        return None


class TargetKind(str, Enum):
    SERVER = "server"
    SESSION = "session"
    WINDOW = "window"
    PANE = "pane"


@dataclass(frozen=True)
class CommandTarget:
    kind: TargetKind
    id: Optional[str] = None

    @classmethod
    def server(cls) -> "CommandTarget":
        return cls(TargetKind.SERVER)

    @classmethod
    def session(cls, session_id: str) -> "CommandTarget":
        return cls(TargetKind.SESSION, session_id)

    @classmethod
    def window(cls, window_id: str) -> "CommandTarget":
        return cls(TargetKind.WINDOW, window_id)

    @classmethod
    def pane(cls, pane_id: str) -> "CommandTarget":
        return cls(TargetKind.PANE, pane_id)


@dataclass(frozen=True)
class Command:
    verb: str
    target: CommandTarget = field(default_factory=CommandTarget.server)
    args: tuple[str, ...] = ()

    @classmethod
    def build(
        cls, verb: str, target: Optional[CommandTarget] = None, args: Sequence[str] = ()
    ) -> "Command":
        return cls(verb, target or CommandTarget.server(), tuple(args))


@dataclass(frozen=True)
class Response:
    """Result of a successful tmux invocation. ``output`` is None when stdout was empty.

    Failures never produce a ``Response``; ``execute`` raises a classified error instead.
    """

    output: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.output is None

    def text(self) -> str:
        return self.output or ""
