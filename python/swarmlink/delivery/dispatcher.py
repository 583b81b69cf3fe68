"""Drain the message queue into tmux panes."""

from __future__ import annotations

import asyncio
import time

from ..errors import SwarmlinkError
from ..logging_config import setup_logger
from ..messaging.queue import MessageQueue
from ..tmux.client import TmuxClient

logger = setup_logger("swarmlink.dispatcher", "swarmlink.log")


class QueueDispatcher:
    def __init__(
        self,
        queue: MessageQueue,
        tmux: TmuxClient,
        *,
        poll_interval_s: float = 0.5,
        retry_interval_s: float = 30.0,
    ):
        self.queue = queue
        self.tmux = tmux
        self.poll_interval_s = float(poll_interval_s)
        self.retry_interval_s = float(retry_interval_s)
        self.running = False
        self._last_retry = time.monotonic()

    def dispatch_pending(self) -> tuple[int, int]:
        """Inject every pending message. Returns ``(delivered, failed)``.

        A failed message keeps its file on disk so ``retry_failed`` can pick it up.
        """
        delivered = 0
        failed = 0
        while True:
            queued = self.queue.dequeue()
            if queued is None:
                break
            message = queued.message
            try:
                self.tmux.send_keys_enter(message.pane_id, message.content)
            except SwarmlinkError as e:
                failed += 1
                logger.warning(
                    f"Delivery of {message.id} to {message.pane_id} failed "
                    f"(attempt {queued.retries + 1}): {e}"
                )
                continue
            self.queue.acknowledge(queued)
            delivered += 1
        return delivered, failed

    async def start(self) -> None:
        self.running = True
        logger.info(f"Dispatcher started: queue={self.queue.queue_dir}")
        self.queue.load_existing()

        while self.running:
            try:
                if self.queue.is_empty():
                    if time.monotonic() - self._last_retry >= self.retry_interval_s:
                        self._last_retry = time.monotonic()
                        self.queue.retry_failed()
                    await asyncio.sleep(self.poll_interval_s)
                    continue
                self.dispatch_pending()
            except asyncio.CancelledError:
                break
            except SwarmlinkError as e:
                logger.error(f"Dispatcher loop error: {e}", exc_info=True)
                await asyncio.sleep(1.0)

        logger.info("Dispatcher stopped")

    async def stop(self) -> None:
        self.running = False
