"""Exclusive, non-blocking advisory lock on a file (fcntl.flock)."""

from __future__ import annotations

import fcntl
import os
from pathlib import Path
from typing import Optional

from .errors import ProcessError


class FileLock:
    """Acquire-or-fail lock. Never queues behind another holder."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.fd: Optional[int] = None

    @property
    def locked(self) -> bool:
        return self.fd is not None

    def acquire(self, blocking: bool = False) -> bool:
        """Returns False when another holder has the lock and ``blocking`` is False."""
        if self.fd is not None:
            return True

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.path), os.O_RDWR | os.O_CREAT, 0o644)
        flags = fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except BlockingIOError:
            os.close(fd)
            return False
        except OSError:
            os.close(fd)
            raise
        self.fd = fd
        return True

    def release(self) -> None:
        if self.fd is None:
            return
        try:
            fcntl.flock(self.fd, fcntl.LOCK_UN)
        finally:
            os.close(self.fd)
            self.fd = None

    def __enter__(self) -> "FileLock":
        try:
            acquired = self.acquire(blocking=False)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e
        if not acquired:
            raise ProcessError("BlockingIOError", f"File is locked: {self.path}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    def __del__(self):
        try:
            self.release()
        except OSError:
            pass


def try_with(path: Path | str, func):
    """Run ``func()`` while holding the lock for ``path``."""
    with FileLock(path):
        return func()
