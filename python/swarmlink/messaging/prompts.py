"""Prompt-file hand-off: one ``<pane>.prompt.input`` file per pane.

Writers and readers serialize on a sibling ``.lock`` file. The lock is acquired
non-blocking, so a concurrent holder makes the call fail immediately with
``ProcessError`` instead of waiting.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import NotFoundError, ProcessError
from ..file_lock import FileLock
from ..logging_config import setup_logger

logger = setup_logger("swarmlink.prompts", "swarmlink.log")

PROMPT_INPUT_SUFFIX = ".prompt.input"


def safe_file_component(value: str) -> str:
    return value.replace("/", "_")


@dataclass(frozen=True)
class PromptMetadata:
    session_id: str
    agent: str
    timestamp: int = field(default_factory=lambda: int(time.time()))

    def header(self) -> str:
        return f"# {self.session_id}\n# timestamp: {self.timestamp}\n# agent: {self.agent}\n\n"


class PromptWriter:
    def __init__(self, prompt_dir: Path | str):
        self.prompt_dir = Path(prompt_dir)

    def prompt_file(self, pane_id: str) -> Path:
        return self.prompt_dir / f"{safe_file_component(pane_id)}{PROMPT_INPUT_SUFFIX}"

    def _lock_for(self, path: Path) -> FileLock:
        return FileLock(path.with_name(path.name + ".lock"))

    def _write(self, pane_id: str, text: str) -> Path:
        path = self.prompt_file(pane_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock_for(path):
                path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ProcessError.from_os_error(e) from e
        logger.debug(f"Wrote prompt file {path}")
        return path

    def send_prompt(self, pane_id: str, prompt: str) -> Path:
        return self._write(pane_id, f"{prompt}\n")

    def send_prompt_with_metadata(
        self, pane_id: str, prompt: str, metadata: PromptMetadata
    ) -> Path:
        return self._write(pane_id, f"{metadata.header()}{prompt}\n")

    def read_prompt(self, pane_id: str) -> str:
        path = self.prompt_file(pane_id)
        if not path.exists():
            raise NotFoundError(f"Prompt file not found for pane {pane_id}")
        try:
            with self._lock_for(path):
                return path.read_text(encoding="utf-8")
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    def clear_prompt(self, pane_id: str) -> None:
        path = self.prompt_file(pane_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise ProcessError.from_os_error(e) from e
