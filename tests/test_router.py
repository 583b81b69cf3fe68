from __future__ import annotations

import asyncio

import pytest

from swarmlink.config import MessageMode
from swarmlink.delivery.router import DeliveryChannel, DeliveryRouter
from swarmlink.errors import CommandError, DeliveryError, NotFoundError
from swarmlink.session_mapping import SessionMappingStore
from swarmlink.tmux.models import Pane


class FakeTmux:
    def __init__(self, sessions: dict[str, str]):
        # session name -> first pane id
        self.sessions = sessions
        self.sent: list[tuple[str, str]] = []
        self.lookups: list[str] = []

    def find_pane_by_session_name(self, name: str):
        self.lookups.append(name)
        pane_id = self.sessions.get(name)
        if pane_id is None:
            return None
        return Pane(id=pane_id, window_id="@1", session_id="$1")

    def send_keys_enter(self, pane_id: str, text: str) -> None:
        self.sent.append((pane_id, text))


class FakeAgent:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[str, str, str]] = []
        self.closed = False

    async def session_prompt(self, session_id: str, content: str) -> None:
        self.calls.append(("prompt", session_id, content))
        if self.fail:
            raise CommandError("HTTP request failed: connection refused")

    async def session_message(self, session_id: str, content: str) -> None:
        self.calls.append(("message", session_id, content))
        if self.fail:
            raise CommandError("HTTP request failed: connection refused")

    async def aclose(self) -> None:
        self.closed = True


class NoServerDiscovery:
    def __init__(self):
        self.calls = 0

    async def get_server_url(self, configured_url=None):
        self.calls += 1
        return None


@pytest.fixture
def mappings(tmp_path):
    return SessionMappingStore(tmp_path / "sessions.json")


def test_auto_uses_agent_when_it_succeeds(mappings):
    tmux = FakeTmux({"r1": "%1"})
    agent = FakeAgent()
    router = DeliveryRouter(tmux, mappings, agent_client=agent)

    result = asyncio.run(router.send_prompt("r1", "hello"))

    assert result.channel is DeliveryChannel.AGENT
    assert agent.calls == [("prompt", "r1", "hello")]
    assert tmux.sent == []
    assert len(mappings) == 0


def test_auto_falls_back_to_terminal_and_records_mapping(mappings):
    tmux = FakeTmux({"r1": "%1"})
    agent = FakeAgent(fail=True)
    router = DeliveryRouter(tmux, mappings, agent_client=agent)

    result = asyncio.run(router.send_message("r1", "hello"))

    assert agent.calls == [("message", "r1", "hello")]
    assert result.channel is DeliveryChannel.TERMINAL
    assert result.pane_id == "%1"
    assert tmux.sent == [("%1", "hello")]
    assert mappings.lookup_by_remote("r1") == "r1"


def test_agent_only_failure_raises_without_terminal_fallback(mappings):
    tmux = FakeTmux({"r1": "%1"})
    router = DeliveryRouter(tmux, mappings, agent_client=FakeAgent(fail=True))

    with pytest.raises(DeliveryError):
        asyncio.run(router.send_prompt("r1", "hello", MessageMode.AGENT_ONLY))

    assert tmux.sent == []
    assert len(mappings) == 0


def test_agent_only_without_server_raises(mappings):
    tmux = FakeTmux({"r1": "%1"})
    router = DeliveryRouter(tmux, mappings, discovery=NoServerDiscovery())

    with pytest.raises(DeliveryError):
        asyncio.run(router.send_prompt("r1", "hello", "agent"))
    assert tmux.sent == []


def test_terminal_only_never_touches_agent(mappings):
    tmux = FakeTmux({"r1": "%1"})
    agent = FakeAgent()
    router = DeliveryRouter(tmux, mappings, agent_client=agent)

    result = asyncio.run(router.send_prompt("r1", "hello", MessageMode.TERMINAL_ONLY))

    assert result.channel is DeliveryChannel.TERMINAL
    assert agent.calls == []
    assert tmux.sent == [("%1", "hello")]


def test_mapping_is_cached_after_first_terminal_delivery(mappings, monkeypatch):
    tmux = FakeTmux({"r1": "%1"})
    router = DeliveryRouter(tmux, mappings, discovery=NoServerDiscovery())
    inserts: list[tuple[str, str]] = []
    original_insert = mappings.insert

    def counting_insert(remote_id, local_name):
        inserts.append((remote_id, local_name))
        return original_insert(remote_id, local_name)

    monkeypatch.setattr(mappings, "insert", counting_insert)

    asyncio.run(router.send_prompt("r1", "one"))
    asyncio.run(router.send_prompt("r1", "two"))

    assert tmux.sent == [("%1", "one"), ("%1", "two")]
    assert inserts == [("r1", "r1")]
    assert mappings.lookup_by_remote("r1") == "r1"


def test_mapped_session_is_preferred_over_remote_id(mappings):
    mappings.insert("r1", "work")
    tmux = FakeTmux({"work": "%7", "r1": "%1"})
    router = DeliveryRouter(tmux, mappings, auto_detect=False)

    result = asyncio.run(router.send_prompt("r1", "hello", MessageMode.TERMINAL_ONLY))

    assert result.pane_id == "%7"
    assert result.session_name == "work"
    assert tmux.lookups == ["work"]


def test_stale_mapping_falls_back_to_name_search(mappings):
    mappings.insert("r1", "gone")
    tmux = FakeTmux({"r1": "%1"})
    router = DeliveryRouter(tmux, mappings, auto_detect=False)

    result = asyncio.run(router.send_prompt("r1", "hello", MessageMode.TERMINAL_ONLY))

    assert tmux.lookups == ["gone", "r1"]
    assert result.pane_id == "%1"
    assert mappings.lookup_by_remote("r1") == "r1"


def test_unknown_session_is_not_found(mappings):
    router = DeliveryRouter(FakeTmux({}), mappings, auto_detect=False)

    with pytest.raises(NotFoundError):
        asyncio.run(router.send_prompt("r9", "hello"))
    assert len(mappings) == 0


def test_discovery_runs_once_per_router(mappings):
    tmux = FakeTmux({"r1": "%1"})
    discovery = NoServerDiscovery()
    router = DeliveryRouter(tmux, mappings, discovery=discovery)

    asyncio.run(router.send_prompt("r1", "one"))
    asyncio.run(router.send_message("r1", "two"))

    assert discovery.calls == 1
    assert router.agent_available is False
    assert len(tmux.sent) == 2


def test_aclose_closes_agent_client(mappings):
    agent = FakeAgent()
    router = DeliveryRouter(FakeTmux({}), mappings, agent_client=agent)

    asyncio.run(router.aclose())

    assert agent.closed is True
