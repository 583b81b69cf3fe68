"""Read per-session and per-pane log files written by tmux ``pipe-pane``."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

from ..errors import NotFoundError, ProcessError
from ..logging_config import setup_logger

logger = setup_logger("swarmlink.logs", "swarmlink.log")

SESSION_LOG_PREFIX = "session_"
PANE_LOG_PREFIX = "pane_"
LOG_SUFFIX = ".log"


class LogReader:
    def __init__(self, log_dir: Path | str):
        self.log_dir = Path(log_dir)

    def session_log_path(self, session_id: str) -> Path:
        return self.log_dir / f"{SESSION_LOG_PREFIX}{session_id}{LOG_SUFFIX}"

    def pane_log_path(self, pane_id: str) -> Path:
        return self.log_dir / f"{PANE_LOG_PREFIX}{pane_id}{LOG_SUFFIX}"

    @staticmethod
    def _read(path: Path) -> str:
        if not path.exists():
            return ""
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    def read_log(self, session_id: str) -> str:
        """Whole session log; empty when the file does not exist."""
        return self._read(self.session_log_path(session_id))

    def read_log_lines(self, session_id: str) -> list[str]:
        return self.read_log(session_id).splitlines()

    def read_log_from(self, session_id: str, offset: int) -> list[str]:
        return self.read_log_lines(session_id)[max(0, offset) :]

    def read_pane_output(self, pane_id: str) -> str:
        return self._read(self.pane_log_path(pane_id))

    def tail_log(self, session_id: str, n: int) -> list[str]:
        lines = self.read_log_lines(session_id)
        if n <= 0:
            return []
        return lines[-n:]

    def search_log(self, session_id: str, pattern: str) -> list[str]:
        return [line for line in self.read_log_lines(session_id) if pattern in line]

    def get_log_size(self, session_id: str) -> int:
        path = self.session_log_path(session_id)
        if not path.exists():
            return 0
        try:
            return path.stat().st_size
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    def get_log_timestamp(self, session_id: str) -> int:
        """Modification time of the session log in epoch seconds."""
        path = self.session_log_path(session_id)
        if not path.exists():
            raise NotFoundError(f"Log file does not exist: {path}")
        try:
            return int(path.stat().st_mtime)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    def clear_log(self, session_id: str) -> None:
        try:
            self.session_log_path(session_id).write_text("", encoding="utf-8")
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    def delete_log(self, session_id: str) -> None:
        try:
            self.session_log_path(session_id).unlink(missing_ok=True)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    def list_session_logs(self) -> list[str]:
        if not self.log_dir.exists():
            return []
        try:
            names = sorted(p.name for p in self.log_dir.iterdir() if p.is_file())
        except OSError as e:
            raise ProcessError.from_os_error(e) from e
        return [
            name[len(SESSION_LOG_PREFIX) : -len(LOG_SUFFIX)]
            for name in names
            if name.startswith(SESSION_LOG_PREFIX) and name.endswith(LOG_SUFFIX)
        ]

    def watch_log(
        self,
        session_id: str,
        callback: Callable[[str], None],
        poll_interval_s: float = 0.1,
    ) -> None:
        """Feed new lines to ``callback`` forever.

        Starts at the beginning of the file. Never returns normally: the loop ends only
        when reading fails (raised as ``ProcessError``) or ``callback`` raises. Run it on
        a worker thread the caller can abandon.
        """
        path = self.session_log_path(session_id)
        if not path.exists():
            raise NotFoundError(f"Log file does not exist: {path}")

        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                pending = ""
                while True:
                    chunk = f.readline()
                    if not chunk:
                        time.sleep(poll_interval_s)
                        continue
                    pending += chunk
                    if not pending.endswith("\n"):
                        continue
                    callback(pending.rstrip("\n"))
                    pending = ""
        except OSError as e:
            logger.warning(f"Stopped watching {path}: {e}")
            raise ProcessError.from_os_error(e) from e
