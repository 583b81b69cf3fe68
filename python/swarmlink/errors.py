"""Error taxonomy shared by every swarmlink component."""

from __future__ import annotations


class SwarmlinkError(RuntimeError):
    """Base class for swarmlink failures."""


class ProcessError(SwarmlinkError):
    """Subprocess or filesystem failure.

    ``kind`` carries the OS-level error class name (e.g. ``FileNotFoundError``).
    """

    def __init__(self, kind: str, message: str):
        super().__init__(f"{kind}: {message}")
        self.kind = kind
        self.message = message

    @classmethod
    def from_os_error(cls, exc: OSError) -> "ProcessError":
        return cls(type(exc).__name__, str(exc))


class ParseError(SwarmlinkError):
    """Malformed structured data (JSON, YAML, tabular output)."""


class CommandError(SwarmlinkError):
    """A command exited non-zero for an unclassified reason."""


class NotFoundError(SwarmlinkError):
    """The target entity does not exist."""


class InvalidStateError(SwarmlinkError):
    """The operation is not valid for the current target."""


class TmuxTimeoutError(SwarmlinkError):
    """A subprocess did not finish before its deadline."""


class NotConnectedError(SwarmlinkError):
    """No tmux server is reachable."""


class AgentAPIError(CommandError):
    """Non-2xx response from the agent HTTP API."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Agent API error: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class DeliveryError(SwarmlinkError):
    """A message could not be delivered under the active mode."""
