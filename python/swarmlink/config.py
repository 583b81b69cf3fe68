"""Configuration for swarmlink (~/.swarmlink/config.yaml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ParseError
from .logging_config import setup_logger

logger = setup_logger("swarmlink.config", "swarmlink.log")

DEFAULT_AGENT_URL = "http://127.0.0.1:4096"
DEFAULT_LOG_DIR = "/tmp/tmux_logs"


class MessageMode(str, Enum):
    """Which channel(s) the router may use."""

    AUTO = "auto"
    AGENT_ONLY = "agent"
    TERMINAL_ONLY = "terminal"

    @classmethod
    def parse(cls, value: "str | MessageMode") -> "MessageMode":
        if isinstance(value, MessageMode):
            return value
        normalized = (value or "").strip().lower()
        aliases = {"opencode": cls.AGENT_ONLY, "tmux": cls.TERMINAL_ONLY}
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise ParseError(f"Unknown message mode: {value!r}") from None


def default_config_path() -> Path:
    override = os.getenv("SWARMLINK_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".swarmlink" / "config.yaml"


def _default_state_dir() -> Path:
    return Path.home() / ".swarmlink"


@dataclass
class SwarmlinkConfig:
    """Runtime settings. Directories are passed explicitly to each component."""

    tmux_server: Optional[str] = None
    agent_server_url: str = DEFAULT_AGENT_URL
    auto_detect_agent: bool = True
    message_mode: str = MessageMode.AUTO.value
    state_dir: Path = field(default_factory=_default_state_dir)
    queue_dir: Optional[Path] = None
    prompt_dir: Optional[Path] = None
    mapping_file: Optional[Path] = None
    log_dir: Path = field(default_factory=lambda: Path(DEFAULT_LOG_DIR))
    http_timeout_s: float = 10.0
    discovery_timeout_s: float = 2.0
    max_retries: int = 3

    def __post_init__(self) -> None:
        self.state_dir = Path(self.state_dir).expanduser()
        self.log_dir = Path(self.log_dir).expanduser()
        if self.queue_dir is None:
            self.queue_dir = self.state_dir / "queue"
        if self.prompt_dir is None:
            self.prompt_dir = self.state_dir / "prompts"
        if self.mapping_file is None:
            self.mapping_file = self.state_dir / "sessions.json"
        self.queue_dir = Path(self.queue_dir).expanduser()
        self.prompt_dir = Path(self.prompt_dir).expanduser()
        self.mapping_file = Path(self.mapping_file).expanduser()

    @property
    def mode(self) -> MessageMode:
        return MessageMode.parse(self.message_mode)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SwarmlinkConfig":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known and v is not None}
        ignored = sorted(set(data) - known)
        if ignored:
            logger.debug(f"Ignoring unknown config keys: {', '.join(ignored)}")
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = str(value) if isinstance(value, Path) else value
        return out

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "SwarmlinkConfig":
        """Load config from YAML. A missing file yields defaults."""
        config_path = Path(path) if path else default_config_path()
        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ParseError(f"Invalid config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ParseError(f"Config file {config_path} must contain a mapping")
        return cls.from_dict(data)

    def save(self, path: Optional[Path] = None) -> Path:
        config_path = Path(path) if path else default_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        logger.info(f"Saved config to {config_path}")
        return config_path


def get_default_config_content() -> str:
    return f"""# swarmlink configuration

# Named tmux server socket (tmux -L <name>); leave empty for the default server
tmux_server: null

# Agent HTTP service
agent_server_url: "{DEFAULT_AGENT_URL}"
auto_detect_agent: true    # probe default URL, $SWARMLINK_AGENT_URL and ports 4096-4099
message_mode: "auto"       # auto | agent | terminal

# State
state_dir: "~/.swarmlink"
# queue_dir: "~/.swarmlink/queue"
# prompt_dir: "~/.swarmlink/prompts"
# mapping_file: "~/.swarmlink/sessions.json"
log_dir: "{DEFAULT_LOG_DIR}"

# Timeouts and retries
http_timeout_s: 10.0
discovery_timeout_s: 2.0
max_retries: 3
"""
