"""Durable outbound message queue.

Each queued message is one pretty-printed JSON file ``<dest>-<id>.msg`` in the queue
directory, mirrored by an in-memory FIFO. Delivery is at-least-once: ``dequeue`` leaves
the file in place and the caller calls ``acknowledge`` after a successful send.
Files that were never acknowledged are picked up again by ``retry_failed`` until they
reach ``max_retries``, after which they only show up as ``failed`` in ``stats``.

A queue directory is owned by a single process; there is no cross-process locking.
"""

from __future__ import annotations

import json
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

from ..errors import InvalidStateError, ParseError, ProcessError
from ..logging_config import setup_logger
from ..tmux.client import TmuxClient
from ..tmux.models import Command, TargetKind
from .prompts import PromptMetadata, PromptWriter, safe_file_component

logger = setup_logger("swarmlink.queue", "swarmlink.log")

MESSAGE_FILE_SUFFIX = ".msg"
MAX_RETRIES = 3


@dataclass(frozen=True)
class Message:
    id: str
    pane_id: str
    content: str
    created_at: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pane_id": self.pane_id,
            "content": self.content,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        return cls(
            id=str(data["id"]),
            pane_id=str(data["pane_id"]),
            content=str(data["content"]),
            created_at=int(data.get("created_at", 0)),
        )


@dataclass
class QueuedMessage:
    message: Message
    queued_at: int = field(default_factory=lambda: int(time.time() * 1000))
    retries: int = 0

    @property
    def id(self) -> str:
        return self.message.id

    def should_retry(self, max_retries: int = MAX_RETRIES) -> bool:
        return self.retries < max_retries

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message.to_dict(),
            "queued_at": self.queued_at,
            "retries": self.retries,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueuedMessage":
        try:
            return cls(
                message=Message.from_dict(data["message"]),
                queued_at=int(data["queued_at"]),
                retries=int(data.get("retries", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Invalid queued message: {e}") from e


@dataclass(frozen=True)
class QueueStats:
    pending: int
    queued: int
    failed: int


class MessageQueue:
    def __init__(
        self,
        queue_dir: Path | str,
        prompt_writer: Optional[PromptWriter] = None,
        *,
        max_retries: int = MAX_RETRIES,
    ):
        self.queue_dir = Path(queue_dir)
        self.prompt_writer = prompt_writer
        self.max_retries = max_retries
        self._pending: deque[QueuedMessage] = deque()
        # Every id enqueued through this instance, delivered or not.
        self._issued: set[str] = set()
        self._lock = threading.Lock()
        try:
            self.queue_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def message_file(self, pane_id: str, message_id: str) -> Path:
        return self.queue_dir / (
            f"{safe_file_component(pane_id)}-{safe_file_component(message_id)}"
            f"{MESSAGE_FILE_SUFFIX}"
        )

    def _write(self, queued: QueuedMessage, path: Optional[Path] = None) -> Path:
        path = path or self.message_file(queued.message.pane_id, queued.id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(queued.to_dict(), f, indent=2)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e
        return path

    def _iter_files(self) -> Iterator[tuple[Path, Optional[QueuedMessage]]]:
        """Yield ``(path, message)``; ``message`` is None for an unreadable file."""
        if not self.queue_dir.exists():
            return
        try:
            paths = sorted(self.queue_dir.glob(f"*{MESSAGE_FILE_SUFFIX}"))
        except OSError as e:
            raise ProcessError.from_os_error(e) from e
        for path in paths:
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                raise ProcessError.from_os_error(e) from e
            try:
                yield path, QueuedMessage.from_dict(json.loads(text))
            except (json.JSONDecodeError, ParseError) as e:
                logger.warning(f"Skipping unreadable queue file {path.name}: {e}")
                yield path, None

    # ------------------------------------------------------------------
    # Enqueue
    # ------------------------------------------------------------------

    def enqueue(self, message: Message) -> QueuedMessage:
        """Persist and queue ``message``.

        Ids are unique per queue instance: an id issued earlier, or one whose file is
        still on disk (dequeued but unacknowledged, or failed), raises
        ``InvalidStateError``.
        """
        path = self.message_file(message.pane_id, message.id)
        with self._lock:
            if message.id in self._issued or path.exists():
                raise InvalidStateError(f"Message id already queued: {message.id}")
            self._issued.add(message.id)

        queued = QueuedMessage(message)
        try:
            self._write(queued, path)
        except ProcessError:
            with self._lock:
                self._issued.discard(message.id)
            raise
        with self._lock:
            self._pending.append(queued)
        logger.debug(f"Enqueued message {message.id} for {message.pane_id}")
        return queued

    def send_message(self, session: str, content: str) -> str:
        """Queue ``content`` for the session's default pane. Returns the message id."""
        message_id = str(uuid.uuid4())
        pane_id = TmuxClient.default_pane_target(session)
        self.enqueue(Message(id=message_id, pane_id=pane_id, content=content))
        return message_id

    def send_command(self, session: str, command: Command) -> str:
        if command.target.kind is not TargetKind.PANE:
            raise InvalidStateError("Command target not supported")
        return self.send_message(session, f"send-keys -t {command.target.id} {command.verb}")

    def send_prompt_to_session(self, session: str, prompt: str, agent: str) -> str:
        if self.prompt_writer is None:
            raise InvalidStateError("No prompt writer configured for this queue")
        pane_id = TmuxClient.default_pane_target(session)
        self.prompt_writer.send_prompt_with_metadata(
            pane_id, prompt, PromptMetadata(session_id=session, agent=agent)
        )
        return self.send_message(session, prompt)

    # ------------------------------------------------------------------
    # Consume
    # ------------------------------------------------------------------

    def dequeue(self) -> Optional[QueuedMessage]:
        with self._lock:
            return self._pending.popleft() if self._pending else None

    def peek(self) -> Optional[QueuedMessage]:
        with self._lock:
            return self._pending[0] if self._pending else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def is_empty(self) -> bool:
        return len(self) == 0

    def acknowledge(self, queued: QueuedMessage) -> None:
        """Delete the on-disk file after successful delivery."""
        path = self.message_file(queued.message.pane_id, queued.id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def load_existing(self) -> int:
        """Mirror retryable on-disk messages into memory without bumping ``retries``."""
        with self._lock:
            known = {q.id for q in self._pending}
        loaded = []
        for _path, queued in self._iter_files():
            if queued is None or queued.id in known:
                continue
            if queued.should_retry(self.max_retries):
                loaded.append(queued)
        with self._lock:
            self._pending.extend(loaded)
        return len(loaded)

    def retry_failed(self) -> int:
        retried = 0
        for path, queued in self._iter_files():
            if queued is None or not queued.should_retry(self.max_retries):
                continue
            queued.retries += 1
            self._write(queued, path)
            with self._lock:
                # An id still pending in memory is refreshed in place.
                for index, existing in enumerate(self._pending):
                    if existing.id == queued.id:
                        self._pending[index] = queued
                        break
                else:
                    self._pending.append(queued)
            retried += 1
        if retried:
            logger.info(f"Re-queued {retried} message(s) for retry")
        return retried

    def stats(self) -> QueueStats:
        queued = 0
        failed = 0
        for _path, message in self._iter_files():
            if message is None:
                continue
            if message.should_retry(self.max_retries):
                queued += 1
            else:
                failed += 1
        return QueueStats(pending=len(self), queued=queued, failed=failed)

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()
        if not self.queue_dir.exists():
            return
        try:
            for path in self.queue_dir.glob(f"*{MESSAGE_FILE_SUFFIX}"):
                path.unlink(missing_ok=True)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e
        logger.info(f"Cleared queue {self.queue_dir}")
