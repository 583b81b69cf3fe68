"""Choose between the agent HTTP API and tmux pane injection for each delivery.

The agent attempt always resolves before any terminal fallback starts. Under
``MessageMode.AUTO`` an agent failure is logged and delivery falls back to the pane.
Under ``MessageMode.AGENT_ONLY`` it raises ``DeliveryError`` and records no mapping.
The identity map is only written on the terminal path.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..agent.client import DEFAULT_TIMEOUT_S, AgentClient
from ..agent.discovery import AgentDiscovery
from ..config import MessageMode
from ..errors import DeliveryError, NotFoundError, SwarmlinkError
from ..logging_config import setup_logger
from ..session_mapping import SessionMappingStore
from ..tmux.client import TmuxClient
from ..tmux.models import Pane

logger = setup_logger("swarmlink.router", "swarmlink.log")


class DeliveryChannel(str, Enum):
    AGENT = "agent"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class DeliveryResult:
    channel: DeliveryChannel
    remote_session_id: str
    pane_id: Optional[str] = None
    session_name: Optional[str] = None


AgentCall = Callable[[AgentClient, str, str], Awaitable[None]]


async def _agent_prompt(client: AgentClient, session_id: str, content: str) -> None:
    await client.session_prompt(session_id, content)


async def _agent_message(client: AgentClient, session_id: str, content: str) -> None:
    await client.session_message(session_id, content)


class DeliveryRouter:
    def __init__(
        self,
        tmux: TmuxClient,
        mappings: SessionMappingStore,
        *,
        agent_client: Optional[AgentClient] = None,
        discovery: Optional[AgentDiscovery] = None,
        auto_detect: bool = True,
        http_timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        self.tmux = tmux
        self.mappings = mappings
        self.agent_client = agent_client
        self.discovery = discovery
        self.auto_detect = auto_detect
        self.http_timeout_s = http_timeout_s
        self._initialized = agent_client is not None

    @property
    def agent_available(self) -> bool:
        return self.agent_client is not None

    async def initialize(self, server_url: Optional[str] = None) -> bool:
        """Resolve the agent endpoint once. Returns whether one is in use.

        When nothing answers, the router stays terminal-only for its lifetime.
        """
        if self._initialized:
            return self.agent_client is not None
        self._initialized = True

        url: Optional[str] = None
        if self.auto_detect and self.discovery is not None:
            url = await self.discovery.get_server_url(server_url)
        elif server_url:
            url = server_url

        if url is None:
            logger.info("No agent server found; delivering through tmux only")
            return False

        self.agent_client = AgentClient(url, timeout_s=self.http_timeout_s)
        logger.info(f"Using agent server {url}")
        return True

    async def aclose(self) -> None:
        if self.agent_client is not None:
            await self.agent_client.aclose()

    async def send_prompt(
        self, remote_id: str, content: str, mode: MessageMode | str = MessageMode.AUTO
    ) -> DeliveryResult:
        return await self._deliver(remote_id, content, MessageMode.parse(mode), _agent_prompt)

    async def send_message(
        self, remote_id: str, content: str, mode: MessageMode | str = MessageMode.AUTO
    ) -> DeliveryResult:
        return await self._deliver(remote_id, content, MessageMode.parse(mode), _agent_message)

    async def _deliver(
        self, remote_id: str, content: str, mode: MessageMode, call: AgentCall
    ) -> DeliveryResult:
        if mode is not MessageMode.TERMINAL_ONLY:
            if not self._initialized:
                await self.initialize()

            if self.agent_client is not None:
                try:
                    await call(self.agent_client, remote_id, content)
                    logger.debug(f"Delivered to {remote_id} via agent API")
                    return DeliveryResult(DeliveryChannel.AGENT, remote_id)
                except SwarmlinkError as e:
                    if mode is MessageMode.AGENT_ONLY:
                        raise DeliveryError(
                            f"Agent delivery failed for session {remote_id}: {e}"
                        ) from e
                    logger.warning(f"Agent delivery failed for {remote_id}, using tmux: {e}")
            elif mode is MessageMode.AGENT_ONLY:
                raise DeliveryError(f"No agent server available for session {remote_id}")

        return self._deliver_to_terminal(remote_id, content)

    def resolve_pane(self, remote_id: str) -> tuple[Pane, str]:
        """Pane and tmux session name for ``remote_id``: mapping first, then name search."""
        mapped = self.mappings.lookup_by_remote(remote_id)
        if mapped is not None:
            pane = self.tmux.find_pane_by_session_name(mapped)
            if pane is not None:
                return pane, mapped
            logger.info(f"Mapped session '{mapped}' for {remote_id} has no live pane")

        pane = self.tmux.find_pane_by_session_name(remote_id)
        if pane is None:
            raise NotFoundError(f"No tmux session found for session {remote_id}")
        return pane, remote_id

    def _deliver_to_terminal(self, remote_id: str, content: str) -> DeliveryResult:
        pane, session_name = self.resolve_pane(remote_id)
        self.tmux.send_keys_enter(pane.id, content)

        if self.mappings.lookup_by_remote(remote_id) != session_name:
            self.mappings.insert(remote_id, session_name)

        logger.debug(f"Delivered to {remote_id} via tmux pane {pane.id}")
        return DeliveryResult(
            DeliveryChannel.TERMINAL, remote_id, pane_id=pane.id, session_name=session_name
        )
