from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from operator_mcp.api import (
    HEALTH_PATH,
    LaunchTicketRequest,
    OperatorApiClient,
    OperatorApiError,
)


LAUNCH_BODY = {
    "ticket_id": "FEAT-1",
    "terminal_name": "op-FEAT-1",
    "working_directory": "/w",
    "command": "c",
    "worktree_created": True,
    "branch": "feat/FEAT-1",
    "extra": "ignored",
}


def make_client(handler) -> OperatorApiClient:
    return OperatorApiClient("http://operator.test/", transport=httpx.MockTransport(handler))


def test_health_accepts_any_success() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(204)

    health = asyncio.run(make_client(handler).health())

    assert seen == [HEALTH_PATH]
    assert health.status == "ok"


def test_health_parses_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "healthy", "version": "0.9"})

    health = asyncio.run(make_client(handler).health())

    assert health.version == "0.9"


def test_health_failure_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(OperatorApiError) as excinfo:
        asyncio.run(make_client(handler).health())
    assert excinfo.value.status_code == 503


def test_transport_error_raises_without_retry() -> None:
    attempts: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(OperatorApiError):
        asyncio.run(make_client(handler).health())
    assert len(attempts) == 1


def test_launch_ticket_posts_request() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.raw_path.decode()
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=LAUNCH_BODY)

    request = LaunchTicketRequest(model="opus", yolo_mode=True, wrapper="mcp", resume_session_id="abc")
    response = asyncio.run(make_client(handler).launch_ticket("FEAT 1", request))

    assert captured["method"] == "POST"
    assert captured["path"] == "/api/v1/tickets/FEAT%201/launch"
    assert captured["body"] == {
        "provider": None,
        "model": "opus",
        "yolo_mode": True,
        "wrapper": "mcp",
        "retry_reason": None,
        "resume_session_id": "abc",
    }
    assert response.terminal_name == "op-FEAT-1"
    assert response.worktree_created is True


def test_launch_error_surfaces_message_verbatim() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"error": "conflict", "message": "Ticket FEAT-1 is already claimed"})

    with pytest.raises(OperatorApiError) as excinfo:
        asyncio.run(make_client(handler).launch_ticket("FEAT-1", LaunchTicketRequest(wrapper="mcp")))

    assert excinfo.value.message == "Ticket FEAT-1 is already claimed"
    assert excinfo.value.status_code == 409


def test_launch_error_without_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(OperatorApiError) as excinfo:
        asyncio.run(make_client(handler).launch_ticket("FEAT-1", LaunchTicketRequest(wrapper="mcp")))

    assert excinfo.value.message == "HTTP 500: Internal Server Error"


def test_malformed_launch_response_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ticket_id": "FEAT-1"})

    with pytest.raises(OperatorApiError):
        asyncio.run(make_client(handler).launch_ticket("FEAT-1", LaunchTicketRequest(wrapper="mcp")))
