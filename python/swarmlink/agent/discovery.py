"""Locate a reachable agent server via its ``/health`` endpoint."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import httpx

from ..config import DEFAULT_AGENT_URL
from ..logging_config import setup_logger

logger = setup_logger("swarmlink.discovery", "swarmlink.log")

AGENT_URL_ENV = "SWARMLINK_AGENT_URL"
DEFAULT_PORTS = (4096, 4097, 4098, 4099)


class ServerStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AgentServerStatus:
    running: bool
    url: Optional[str]
    status: ServerStatus


class AgentDiscovery:
    """Probe order: default URL, ``$SWARMLINK_AGENT_URL``, then localhost ports."""

    def __init__(
        self,
        default_url: str = DEFAULT_AGENT_URL,
        *,
        timeout_s: float = 2.0,
        env_var: str = AGENT_URL_ENV,
        ports: Sequence[int] = DEFAULT_PORTS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.default_url = default_url
        self.timeout_s = timeout_s
        self.env_var = env_var
        self.ports = tuple(ports)
        self._transport = transport

    def candidate_urls(self) -> list[str]:
        urls: list[str] = []
        env_url = (os.environ.get(self.env_var) or "").strip()
        for url in (self.default_url, env_url, *(f"http://127.0.0.1:{p}" for p in self.ports)):
            if url and url not in urls:
                urls.append(url)
        return urls

    async def check_server(self, url: str) -> AgentServerStatus:
        if not url:
            return AgentServerStatus(False, None, ServerStatus.UNKNOWN)

        health_url = f"{url.rstrip('/')}/health"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self._transport
            ) as client:
                response = await client.get(health_url)
        except httpx.HTTPError as e:
            logger.debug(f"Health probe failed for {url}: {e}")
            return AgentServerStatus(False, url, ServerStatus.UNKNOWN)

        if response.is_success:
            return AgentServerStatus(True, url, ServerStatus.AVAILABLE)
        return AgentServerStatus(False, url, ServerStatus.UNAVAILABLE)

    async def check_default_server(self) -> AgentServerStatus:
        return await self.check_server(self.default_url)

    async def discover(self) -> AgentServerStatus:
        for url in self.candidate_urls():
            status = await self.check_server(url)
            if status.running:
                logger.info(f"Discovered agent server at {url}")
                return status
        return AgentServerStatus(False, None, ServerStatus.UNAVAILABLE)

    async def get_server_url(self, configured_url: Optional[str] = None) -> Optional[str]:
        """The configured URL if healthy, else the first discovered one."""
        if configured_url:
            status = await self.check_server(configured_url)
            if status.running:
                return configured_url
        discovered = await self.discover()
        return discovered.url if discovered.running else None
