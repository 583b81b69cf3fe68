"""Async HTTP client for the agent service API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx

from ..errors import AgentAPIError, CommandError, ParseError
from ..logging_config import setup_logger

logger = setup_logger("swarmlink.agent", "swarmlink.log")

DEFAULT_TIMEOUT_S = 10.0


@dataclass(frozen=True)
class SessionInfo:
    id: str
    name: str
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionInfo":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )


@dataclass(frozen=True)
class SessionStatus:
    session_id: str
    status: str
    message_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionStatus":
        return cls(
            session_id=str(data["session_id"]),
            status=str(data["status"]),
            message_count=int(data.get("message_count") or 0),
        )


@dataclass(frozen=True)
class AgentToolUse:
    tool: str
    input: Any = None


@dataclass(frozen=True)
class AgentMessage:
    id: str
    session_id: str
    role: str
    content: str
    timestamp: str = ""
    tool_calls: tuple[AgentToolUse, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentMessage":
        calls = tuple(
            AgentToolUse(tool=str(c.get("tool") or ""), input=c.get("input"))
            for c in (data.get("tool_calls") or [])
            if isinstance(c, dict)
        )
        return cls(
            id=str(data["id"]),
            session_id=str(data.get("session_id") or ""),
            role=str(data.get("role") or ""),
            content=str(data.get("content") or ""),
            timestamp=str(data.get("timestamp") or ""),
            tool_calls=calls,
        )


@dataclass(frozen=True)
class SessionOutput:
    session_id: str
    messages: list[AgentMessage] = field(default_factory=list)
    last_activity: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionOutput":
        return cls(
            session_id=str(data["session_id"]),
            messages=[AgentMessage.from_dict(m) for m in (data.get("messages") or [])],
            last_activity=str(data.get("last_activity") or ""),
        )


def _decode(response: httpx.Response, builder: Callable[[Any], Any]) -> Any:
    try:
        return builder(response.json())
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise ParseError(f"Failed to parse JSON from {response.request.url}: {e}") from e


class AgentClient:
    """Agent service client. All request bodies are ``{"content": ...}``."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout_s, transport=transport
        )

    async def __aenter__(self) -> "AgentClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, *, json_body: Optional[dict[str, Any]] = None
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=json_body)
        except httpx.TimeoutException as e:
            raise CommandError(f"HTTP request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            raise CommandError(f"HTTP request failed: {e}") from e

        if not response.is_success:
            logger.warning(f"{method} {path} -> {response.status_code}")
            raise AgentAPIError(response.status_code, response.text)
        return response

    async def session_prompt(self, session_id: str, prompt: str) -> None:
        await self._request("POST", f"/session/{session_id}/prompt", json_body={"content": prompt})

    async def session_message(self, session_id: str, message: str) -> None:
        await self._request(
            "POST", f"/session/{session_id}/message", json_body={"content": message}
        )

    async def list_sessions(self) -> list[SessionInfo]:
        response = await self._request("GET", "/sessions")
        return _decode(response, lambda data: [SessionInfo.from_dict(s) for s in data])

    async def get_session_status(self, session_id: str) -> SessionStatus:
        response = await self._request("GET", f"/session/{session_id}/status")
        return _decode(response, SessionStatus.from_dict)

    async def get_session_output(self, session_id: str) -> SessionOutput:
        response = await self._request("GET", f"/session/{session_id}/messages")
        return _decode(response, SessionOutput.from_dict)

    async def get_messages(self, session_id: str, limit: Optional[int] = None) -> list[AgentMessage]:
        """Messages in server order, truncated to the first ``limit`` when given."""
        messages = (await self.get_session_output(session_id)).messages
        if limit is not None:
            messages = messages[: max(0, limit)]
        return messages

    async def tail_messages(self, session_id: str, n: int) -> list[AgentMessage]:
        messages = await self.get_messages(session_id)
        return messages[-n:] if n > 0 else []

    async def watch_messages(
        self,
        session_id: str,
        callback: Callable[[AgentMessage], None],
        poll_interval_s: float = 1.0,
    ) -> None:
        """Poll forever, passing each unseen message to ``callback``. Errors end the loop."""
        seen: set[str] = set()
        while True:
            for message in await self.get_messages(session_id):
                if message.id in seen:
                    continue
                seen.add(message.id)
                callback(message)
            await asyncio.sleep(poll_interval_s)

    async def get_session_summary(self, session_id: str) -> SessionOutput:
        response = await self._request("GET", f"/session/{session_id}")
        return _decode(response, SessionOutput.from_dict)

    async def health_check(self) -> bool:
        try:
            response = await self._client.get("/health")
        except httpx.RequestError as e:
            raise CommandError(f"HTTP request failed: {e}") from e
        return response.is_success
