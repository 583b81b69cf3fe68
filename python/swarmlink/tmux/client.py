"""Structured tmux control client.

Every call shells out to the tmux binary and parses its ``-F`` formatted output into
``Session``/``Window``/``Pane`` snapshots. Nothing is cached: each query re-reads the
server state.

tmux has no structured error channel, so failures are classified by matching
substrings of stderr against ``ERROR_CLASSIFIERS``.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from typing import Optional, Sequence

from ..errors import (
    CommandError,
    NotConnectedError,
    NotFoundError,
    ProcessError,
    SwarmlinkError,
    TmuxTimeoutError,
)
from ..logging_config import setup_logger
from .models import (
    Command,
    CommandTarget,
    Pane,
    PaneId,
    Response,
    Session,
    SessionId,
    TargetKind,
    Window,
    WindowId,
    session_of_window,
    window_of_pane,
)

logger = setup_logger("swarmlink.tmux", "swarmlink.log")

SESSION_FORMAT = "#{session_id}:#{session_name}:#{session_attached}"
WINDOW_FORMAT = "#{window_id}:#{window_name}:#{window_active}"
PANE_FORMAT = "#{pane_id}:#{pane_current_path}:#{pane_pid}:#{pane_active}"

POLL_INTERVAL_S = 0.01

# First match wins. Matching is case-sensitive on the raw tmux message.
ERROR_CLASSIFIERS: list[tuple[str, type[SwarmlinkError]]] = [
    ("not found", NotFoundError),
    ("no such", NotFoundError),
    ("can't find", NotFoundError),
    ("not connected", NotConnectedError),
    ("no server running", NotConnectedError),
    ("error connecting to", NotConnectedError),
]


def tmux_available() -> bool:
    """Check whether the tmux binary is on PATH."""
    return shutil.which("tmux") is not None


def in_tmux() -> bool:
    """Check whether we are running inside a tmux client."""
    return bool(os.environ.get("TMUX"))


def classify_error(message: str) -> SwarmlinkError:
    """Map tmux error text to an error type. First matching needle wins."""
    for needle, error_cls in ERROR_CLASSIFIERS:
        if needle in message:
            return error_cls(message)
    return CommandError(message)


def _run_tmux(
    args: Sequence[str], *, binary: str = "tmux"
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [binary, *args],
        text=True,
        capture_output=True,
        check=False,
    )


def _parse_lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


def _split_fields(line: str, trailing: int) -> list[str] | None:
    """Split ``id:<middle>:<trailing...>``; the middle field absorbs stray colons."""
    parts = line.split(":")
    expected = 2 + trailing
    if len(parts) < expected:
        return None
    if len(parts) == expected:
        return parts
    middle = ":".join(parts[1 : len(parts) - trailing])
    return [parts[0], middle, *parts[len(parts) - trailing :]]


def _flag(value: str) -> bool:
    return value.strip() != "0"


def _response_from(proc: subprocess.CompletedProcess[str]) -> Response:
    stdout = proc.stdout or ""
    stderr = proc.stderr or ""
    if proc.returncode != 0:
        message = stderr.strip() or stdout.strip()
        raise classify_error(message)
    if not stdout.strip():
        return Response(output=None)
    return Response(output=stdout)


class TmuxClient:
    """Thin, stateless wrapper over the tmux CLI."""

    def __init__(self, server: Optional[str] = None, *, binary: str = "tmux"):
        self.server = server
        self.binary = binary

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    def build_args(self, command: Command) -> list[str]:
        """Argument vector after the binary: ``[-L server] verb [-t target] args...``."""
        args: list[str] = []
        if self.server:
            args.extend(["-L", self.server])
        args.append(command.verb)
        if command.target.kind is not TargetKind.SERVER and command.target.id is not None:
            args.extend(["-t", command.target.id])
        args.extend(command.args)
        return args

    def execute(self, command: Command) -> Response:
        """Run ``command`` synchronously; non-zero exit raises a classified error."""
        args = self.build_args(command)
        logger.debug(f"tmux {' '.join(args)}")
        try:
            proc = _run_tmux(args, binary=self.binary)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e
        return _response_from(proc)

    def execute_with_timeout(self, command: Command, timeout_s: float) -> Response:
        """Run ``command``; kill it and raise ``TmuxTimeoutError`` once ``timeout_s`` elapses."""
        args = [self.binary, *self.build_args(command)]
        try:
            proc = subprocess.Popen(
                args, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True
            )
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

        deadline = time.monotonic() + timeout_s
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=POLL_INTERVAL_S)
                break
            except subprocess.TimeoutExpired:
                if time.monotonic() >= deadline:
                    proc.kill()
                    proc.communicate()
                    logger.warning(f"tmux {command.verb} timed out after {timeout_s}s")
                    raise TmuxTimeoutError(
                        f"tmux {command.verb} did not finish within {timeout_s}s"
                    ) from None

        completed = subprocess.CompletedProcess(args, proc.returncode, stdout, stderr)
        return _response_from(completed)

    def _exec(self, verb: str, target: CommandTarget | None = None, *args: str) -> Response:
        return self.execute(Command.build(verb, target, args))

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_sessions(self) -> list[Session]:
        """List all sessions, each with its windows and their panes."""
        response = self._exec("list-sessions", None, "-F", SESSION_FORMAT)
        sessions: list[Session] = []
        for line in _parse_lines(response.text()):
            parts = _split_fields(line, trailing=1)
            if parts is None:
                continue
            session_id = SessionId(parts[0])
            sessions.append(
                Session(
                    id=session_id,
                    name=parts[1],
                    windows=tuple(self.list_windows(session_id)),
                    attached=_flag(parts[2]),
                )
            )
        return sessions

    def list_windows(self, session_id: str) -> list[Window]:
        """List windows of a session, with their panes."""
        response = self._exec(
            "list-windows", CommandTarget.session(session_id), "-F", WINDOW_FORMAT
        )
        windows: list[Window] = []
        for line in _parse_lines(response.text()):
            parts = _split_fields(line, trailing=1)
            if parts is None:
                continue
            window_id = WindowId(parts[0])
            windows.append(
                Window(
                    id=window_id,
                    session_id=SessionId(session_id),
                    name=parts[1],
                    panes=tuple(self.list_panes(window_id, session_id)),
                    active=_flag(parts[2]),
                )
            )
        return windows

    def list_panes(self, window_id: str, session_id: Optional[str] = None) -> list[Pane]:
        """List panes of a window; the owner defaults to the session encoded in ``window_id``."""
        owner = session_id if session_id is not None else session_of_window(window_id)
        response = self._exec("list-panes", CommandTarget.window(window_id), "-F", PANE_FORMAT)
        panes: list[Pane] = []
        for line in _parse_lines(response.text()):
            parts = _split_fields(line, trailing=2)
            if parts is None:
                continue
            pane_id, path, pid_raw, active_raw = parts
            try:
                pid: Optional[int] = int(pid_raw)
            except ValueError:
                pid = None
            panes.append(
                Pane(
                    id=PaneId(pane_id),
                    window_id=WindowId(window_id),
                    session_id=SessionId(owner),
                    current_path=path or None,
                    pid=pid,
                    active=_flag(active_raw),
                )
            )
        return panes

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_session(self, session_id: str) -> Optional[Session]:
        for session in self.list_sessions():
            if session.id == session_id:
                return session
        return None

    def find_session_by_name(self, name: str) -> Optional[Session]:
        for session in self.list_sessions():
            if session.name == name:
                return session
        return None

    def get_window(self, window_id: str) -> Optional[Window]:
        """Find a window by id, scanning every session when the id names no owner."""
        owner = session_of_window(window_id)
        if owner and owner != window_id:
            candidates = self.list_windows(owner)
        else:
            candidates = [w for s in self.list_sessions() for w in s.windows]
        for window in candidates:
            if window.id == window_id:
                return window
        return None

    def get_pane(self, pane_id: str) -> Optional[Pane]:
        """Find a pane by id, scanning every window when the id names no owner."""
        owner = window_of_pane(pane_id)
        if owner and owner != pane_id:
            candidates = self.list_panes(owner)
        else:
            candidates = [
                p for s in self.list_sessions() for w in s.windows for p in w.panes
            ]
        for pane in candidates:
            if pane.id == pane_id:
                return pane
        return None

    def find_pane_by_session_name(self, name: str) -> Optional[Pane]:
        """First pane of the first window of the first session called ``name``."""
        session = self.find_session_by_name(name)
        if session is None or not session.windows:
            return None
        first_window = session.windows[0]
        if not first_window.panes:
            return None
        return first_window.panes[0]

    @staticmethod
    def default_pane_target(session: str) -> str:
        return f"{session}:0.0"

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def new_session(self, name: str) -> Session:
        """Create a detached session and return it as tmux now reports it."""
        self._exec("new-session", None, "-s", name, "-d")
        session = self.find_session_by_name(name)
        if session is None:
            raise NotFoundError(f"Session '{name}' not found after creation")
        logger.info(f"Created tmux session {session.id} ({name})")
        return session

    def kill_session(self, session_id: str) -> None:
        self._exec("kill-session", CommandTarget.session(session_id))
        logger.info(f"Killed tmux session {session_id}")

    def rename_session(self, session_id: str, name: str) -> Session:
        """Rename a session and return the refreshed snapshot."""
        self._exec("rename-session", CommandTarget.session(session_id), name)
        session = self.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session '{session_id}' not found after rename")
        return session

    def attach_session(self, session_id: str) -> None:
        self._exec("attach-session", CommandTarget.session(session_id))

    def detach_session(self, session_id: str) -> None:
        """Detach every client attached to the session."""
        self._exec("detach-client", CommandTarget.session(session_id))

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------

    def new_window(self, session_id: str, name: str) -> Window:
        """Create a detached window in the session and return it."""
        self._exec("new-window", CommandTarget.session(session_id), "-n", name, "-d")
        for window in self.list_windows(session_id):
            if window.name == name:
                return window
        raise NotFoundError(f"Window '{name}' not found after creation")

    def kill_window(self, window_id: str) -> None:
        self._exec("kill-window", CommandTarget.window(window_id))

    def rename_window(self, window_id: str, name: str) -> Window:
        self._exec("rename-window", CommandTarget.window(window_id), name)
        window = self.get_window(window_id)
        if window is None:
            raise NotFoundError(f"Window '{window_id}' not found after rename")
        return window

    def select_window(self, window_id: str) -> None:
        self._exec("select-window", CommandTarget.window(window_id))

    def last_window(self, session_id: str) -> None:
        self._exec("last-window", CommandTarget.session(session_id))

    def next_window(self, session_id: str) -> None:
        self._exec("next-window", CommandTarget.session(session_id))

    def previous_window(self, session_id: str) -> None:
        self._exec("previous-window", CommandTarget.session(session_id))

    # ------------------------------------------------------------------
    # Panes
    # ------------------------------------------------------------------

    def _split(self, window_id: str, flag: str) -> Pane:
        self._exec("split-window", CommandTarget.window(window_id), "-d", flag)
        panes = self.list_panes(window_id)
        if not panes:
            raise NotFoundError(f"Pane not found after splitting window '{window_id}'")
        return panes[-1]

    def new_pane(self, window_id: str) -> Pane:
        """Split the window vertically; returns the new (last) pane."""
        return self._split(window_id, "-v")

    def split_pane_horizontal(self, window_id: str) -> Pane:
        """Split the window side by side; returns the new (last) pane."""
        return self._split(window_id, "-h")

    def kill_pane(self, pane_id: str) -> None:
        self._exec("kill-pane", CommandTarget.pane(pane_id))

    def select_pane(self, pane_id: str) -> None:
        self._exec("select-pane", CommandTarget.pane(pane_id))

    def resize_pane(
        self, pane_id: str, width: Optional[int] = None, height: Optional[int] = None
    ) -> None:
        if width is not None:
            self._exec("resize-pane", CommandTarget.pane(pane_id), "-x", str(width))
        if height is not None:
            self._exec("resize-pane", CommandTarget.pane(pane_id), "-y", str(height))

    def send_keys(self, pane_id: str, keys: str) -> None:
        """Type ``keys`` into the pane without pressing Enter."""
        self._exec("send-keys", CommandTarget.pane(pane_id), keys)

    def send_keys_enter(self, pane_id: str, keys: str) -> None:
        # Two separate commands; text may be typed but not submitted if the second fails.
        self.send_keys(pane_id, keys)
        self.send_keys(pane_id, "Enter")

    def capture_pane_output(self, pane_id: str, lines: Optional[int] = None) -> str:
        """Visible pane text, or the last ``lines`` of history when given."""
        args = ["-p"]
        if lines is not None:
            args.extend(["-S", f"-{lines}"])
        return self._exec("capture-pane", CommandTarget.pane(pane_id), *args).text()
