from __future__ import annotations

import asyncio

import httpx

from swarmlink.agent.discovery import AGENT_URL_ENV, AgentDiscovery, ServerStatus


def transport_for(healthy: set[str], unhealthy: frozenset[str] = frozenset()):
    probed: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        origin = f"{request.url.scheme}://{request.url.netloc.decode()}"
        probed.append(origin)
        if origin in healthy:
            return httpx.Response(200)
        if origin in unhealthy:
            return httpx.Response(503)
        raise httpx.ConnectError("refused", request=request)

    return httpx.MockTransport(handler), probed


def test_discover_falls_through_to_localhost_ports(monkeypatch):
    monkeypatch.delenv(AGENT_URL_ENV, raising=False)
    transport, probed = transport_for({"http://127.0.0.1:4098"})
    discovery = AgentDiscovery("http://127.0.0.1:4096", transport=transport)

    status = asyncio.run(discovery.discover())

    assert status.running is True
    assert status.url == "http://127.0.0.1:4098"
    assert status.status is ServerStatus.AVAILABLE
    assert probed == ["http://127.0.0.1:4096", "http://127.0.0.1:4097", "http://127.0.0.1:4098"]


def test_environment_url_is_tried_before_ports(monkeypatch):
    monkeypatch.setenv(AGENT_URL_ENV, "http://agent.local:9000")
    transport, probed = transport_for({"http://agent.local:9000", "http://127.0.0.1:4097"})
    discovery = AgentDiscovery("http://127.0.0.1:4096", transport=transport)

    status = asyncio.run(discovery.discover())

    assert status.url == "http://agent.local:9000"
    assert probed == ["http://127.0.0.1:4096", "http://agent.local:9000"]


def test_nothing_reachable_is_unavailable(monkeypatch):
    monkeypatch.delenv(AGENT_URL_ENV, raising=False)
    transport, _ = transport_for(set())
    discovery = AgentDiscovery(transport=transport)

    status = asyncio.run(discovery.discover())

    assert status.running is False
    assert status.url is None
    assert status.status is ServerStatus.UNAVAILABLE
    assert asyncio.run(discovery.get_server_url("http://127.0.0.1:5000")) is None


def test_check_server_statuses():
    transport, _ = transport_for({"http://up.test"}, frozenset({"http://sick.test"}))
    discovery = AgentDiscovery(transport=transport)

    up = asyncio.run(discovery.check_server("http://up.test"))
    sick = asyncio.run(discovery.check_server("http://sick.test"))
    down = asyncio.run(discovery.check_server("http://down.test"))
    empty = asyncio.run(discovery.check_server(""))

    assert (up.running, up.status) == (True, ServerStatus.AVAILABLE)
    assert (sick.running, sick.status) == (False, ServerStatus.UNAVAILABLE)
    assert (down.running, down.url, down.status) == (False, "http://down.test", ServerStatus.UNKNOWN)
    assert (empty.url, empty.status) == (None, ServerStatus.UNKNOWN)


def test_configured_url_wins_when_healthy(monkeypatch):
    monkeypatch.delenv(AGENT_URL_ENV, raising=False)
    transport, probed = transport_for({"http://configured.test:7000", "http://127.0.0.1:4096"})
    discovery = AgentDiscovery(transport=transport)

    url = asyncio.run(discovery.get_server_url("http://configured.test:7000"))

    assert url == "http://configured.test:7000"
    assert probed == ["http://configured.test:7000"]


def test_check_default_server_probes_only_default_url(monkeypatch):
    monkeypatch.setenv(AGENT_URL_ENV, "http://agent.local:9000")
    transport, probed = transport_for({"http://agent.local:9000"})
    discovery = AgentDiscovery("http://127.0.0.1:4096", transport=transport)

    status = asyncio.run(discovery.check_default_server())

    assert status.running is False
    assert status.url == "http://127.0.0.1:4096"
    assert status.status is ServerStatus.UNKNOWN
    assert probed == ["http://127.0.0.1:4096"]
