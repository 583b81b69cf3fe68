from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from swarmlink.agent.client import AgentClient
from swarmlink.errors import AgentAPIError, CommandError, ParseError

MESSAGES = {
    "session_id": "s1",
    "last_activity": "2024-01-02T03:04:05Z",
    "messages": [
        {
            "id": f"m{i}",
            "session_id": "s1",
            "role": "assistant" if i % 2 else "user",
            "content": f"message {i}",
            "timestamp": "2024-01-02T03:04:05Z",
            "tool_calls": [{"tool": "bash", "input": {"cmd": "ls"}}] if i == 1 else [],
        }
        for i in range(4)
    ],
}


def make_client(handler) -> AgentClient:
    return AgentClient("http://agent.test/", transport=httpx.MockTransport(handler))


def test_prompt_and_message_post_content_body():
    seen: list[tuple[str, str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(204)

    async def run():
        async with make_client(handler) as client:
            await client.session_prompt("s1", "plan the refactor")
            await client.session_message("s1", "status?")

    asyncio.run(run())

    assert seen == [
        ("POST", "/session/s1/prompt", {"content": "plan the refactor"}),
        ("POST", "/session/s1/message", {"content": "status?"}),
    ]


def test_non_success_surfaces_status_and_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="agent busy")

    async def run():
        async with make_client(handler) as client:
            await client.session_prompt("s1", "hi")

    with pytest.raises(AgentAPIError) as excinfo:
        asyncio.run(run())
    assert excinfo.value.status_code == 503
    assert excinfo.value.body == "agent busy"
    assert "503" in str(excinfo.value)


def test_transport_failure_is_command_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run():
        async with make_client(handler) as client:
            await client.list_sessions()

    with pytest.raises(CommandError, match="HTTP request failed"):
        asyncio.run(run())


def test_list_sessions_and_status():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/sessions":
            return httpx.Response(
                200,
                json=[
                    {"id": "s1", "name": "alpha", "created_at": "a", "updated_at": "b"},
                    {"id": "s2", "name": "beta"},
                ],
            )
        if request.url.path == "/session/s1/status":
            return httpx.Response(
                200, json={"session_id": "s1", "status": "idle", "message_count": 4}
            )
        return httpx.Response(404, text="nope")

    async def run():
        async with make_client(handler) as client:
            return await client.list_sessions(), await client.get_session_status("s1")

    sessions, status = asyncio.run(run())

    assert [s.name for s in sessions] == ["alpha", "beta"]
    assert sessions[1].created_at == ""
    assert status.status == "idle"
    assert status.message_count == 4


def test_messages_limit_and_tail():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/session/s1/messages"
        return httpx.Response(200, json=MESSAGES)

    async def run():
        async with make_client(handler) as client:
            return (
                await client.get_messages("s1"),
                await client.get_messages("s1", limit=2),
                await client.tail_messages("s1", 1),
            )

    everything, limited, tail = asyncio.run(run())

    assert [m.id for m in everything] == ["m0", "m1", "m2", "m3"]
    assert everything[1].tool_calls[0].tool == "bash"
    assert everything[1].tool_calls[0].input == {"cmd": "ls"}
    assert [m.id for m in limited] == ["m0", "m1"]
    assert [m.id for m in tail] == ["m3"]


def test_invalid_json_is_parse_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    async def run():
        async with make_client(handler) as client:
            await client.get_session_status("s1")

    with pytest.raises(ParseError):
        asyncio.run(run())


def test_health_check_reflects_status_code():
    codes = iter([200, 500])

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/health"
        return httpx.Response(next(codes))

    async def run():
        async with make_client(handler) as client:
            return await client.health_check(), await client.health_check()

    assert asyncio.run(run()) == (True, False)


def test_watch_messages_reports_each_message_once_until_error():
    seen: list[str] = []
    requests = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal requests
        requests += 1
        if requests == 3:
            return httpx.Response(500, text="gone")
        return httpx.Response(200, json=MESSAGES)

    async def run():
        async with make_client(handler) as client:
            await client.watch_messages("s1", lambda m: seen.append(m.id), poll_interval_s=0)

    with pytest.raises(AgentAPIError):
        asyncio.run(run())

    assert requests == 3
    assert seen == ["m0", "m1", "m2", "m3"]


def test_session_summary_reads_session_resource():
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json=MESSAGES)

    async def run():
        async with make_client(handler) as client:
            return await client.get_session_summary("s1")

    summary = asyncio.run(run())

    assert paths == ["/session/s1"]
    assert summary.session_id == "s1"
    assert summary.last_activity == "2024-01-02T03:04:05Z"
    assert [m.id for m in summary.messages] == ["m0", "m1", "m2", "m3"]


def test_session_summary_missing_session_id_is_parse_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"messages": []})

    async def run():
        async with make_client(handler) as client:
            await client.get_session_summary("s1")

    with pytest.raises(ParseError):
        asyncio.run(run())
