"""Persisted map between agent session ids and tmux session names."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import ProcessError
from .logging_config import setup_logger

logger = setup_logger("swarmlink.mapping", "swarmlink.log")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class SessionMapping:
    remote_session_id: str
    local_session_name: str
    created_at: str = field(default_factory=_now_iso)


class SessionMappingStore:
    """One entry per remote id, written back to disk on every mutation.

    Concurrent processes sharing the file are last-writer-wins; there is no locking.
    """

    def __init__(self, storage_path: Path | str):
        self.storage_path = Path(storage_path)
        self._mappings: dict[str, SessionMapping] = self._load()

    def _load(self) -> dict[str, SessionMapping]:
        if not self.storage_path.exists():
            return {}
        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session map {self.storage_path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed session map {self.storage_path}")
            return {}

        mappings: dict[str, SessionMapping] = {}
        for remote_id, entry in data.items():
            if not isinstance(entry, dict) or "local_session_name" not in entry:
                continue
            mappings[remote_id] = SessionMapping(
                remote_session_id=remote_id,
                local_session_name=str(entry["local_session_name"]),
                created_at=str(entry.get("created_at") or _now_iso()),
            )
        return mappings

    def _save(self) -> None:
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.storage_path, "w", encoding="utf-8") as f:
                json.dump(
                    {k: asdict(v) for k, v in self._mappings.items()}, f, indent=2
                )
        except OSError as e:
            raise ProcessError.from_os_error(e) from e

    def insert(self, remote_id: str, local_name: str) -> SessionMapping:
        mapping = SessionMapping(remote_session_id=remote_id, local_session_name=local_name)
        self._mappings[remote_id] = mapping
        self._save()
        logger.info(f"Mapped session {remote_id} -> {local_name}")
        return mapping

    def get(self, remote_id: str) -> Optional[SessionMapping]:
        return self._mappings.get(remote_id)

    def lookup_by_remote(self, remote_id: str) -> Optional[str]:
        mapping = self._mappings.get(remote_id)
        return mapping.local_session_name if mapping else None

    def lookup_by_local(self, local_name: str) -> Optional[str]:
        """First remote id (in insertion order) mapped to ``local_name``."""
        for remote_id, mapping in self._mappings.items():
            if mapping.local_session_name == local_name:
                return remote_id
        return None

    def remove(self, remote_id: str) -> Optional[SessionMapping]:
        mapping = self._mappings.pop(remote_id, None)
        self._save()
        return mapping

    def list(self) -> list[SessionMapping]:
        return list(self._mappings.values())

    def clear(self) -> None:
        self._mappings.clear()
        self._save()

    def __len__(self) -> int:
        return len(self._mappings)

    def __contains__(self, remote_id: object) -> bool:
        return remote_id in self._mappings
