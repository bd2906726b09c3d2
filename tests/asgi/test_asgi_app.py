"""Tests for the Starlette application."""

from collections.abc import Iterator
from functools import partial
from http import HTTPStatus

import httpx
import pytest
from starlette.testclient import TestClient, WebSocketTestSession
from starlette.websockets import WebSocketDisconnect

from huddle.asgi import create_app
from huddle.config import ServerConfig
from huddle.sql import SQLGateway

MEMORY = ServerConfig(database=":memory:")


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Client for an app that owns its in-memory database."""
    with TestClient(create_app(config=MEMORY)) as test_client:
        gateway = test_client.app.state.server.gateway
        test_client.portal.call(
            partial(
                gateway.create_project, "alice", member_ids=["bob"], project_id="p1"
            )
        )
        yield test_client


def join_and_say_hi(ws: WebSocketTestSession) -> None:
    """Join p1 and wait for the acked message, so the join is settled."""
    ws.send_json({"event": "join-room", "data": {"projectId": "p1"}})
    ws.send_json(
        {
            "event": "send-message",
            "data": {"projectId": "p1", "content": "hi"},
            "ackId": "hi",
        }
    )
    assert ws.receive_json()["event"] == "ack"
    assert ws.receive_json()["data"]["content"] == "hi"


@pytest.mark.anyio
async def test_health_reports_connected(gateway: SQLGateway) -> None:
    """Health endpoint pings the gateway."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=create_app(gateway)),
        base_url="http://test",
    ) as http:
        response = await http.get("/health")

    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["status"] == "ok"
    assert body["db"] == "connected"
    assert "timestamp" in body
    assert isinstance(body["uptime"], float)
    assert body["uptime"] >= 0


@pytest.mark.anyio
async def test_health_reports_unreachable_storage(gateway: SQLGateway) -> None:
    """Health endpoint returns 500 when the gateway cannot answer."""
    await gateway.close()
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=create_app(gateway)),
        base_url="http://test",
    ) as http:
        response = await http.get("/health")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    body = response.json()
    assert body["status"] == "error"
    assert body["db"] == "disconnected"
    assert body["uptime"] >= 0
    assert body["error"]


def test_lifespan_opens_database(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == HTTPStatus.OK


def test_connection_without_token_is_refused(client: TestClient) -> None:
    """The socket is accepted, then closed with the policy code and reason."""
    with client.websocket_connect("/realtime?userId=alice") as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 1008
    assert exc_info.value.reason == "Authentication error: No token provided"


def test_bearer_header_is_accepted(client: TestClient) -> None:
    with client.websocket_connect(
        "/realtime?userId=alice", headers={"Authorization": "Bearer t"}
    ) as ws:
        ws.send_json({"event": "dance"})
        assert ws.receive_json() == {
            "event": "error",
            "data": {"message": "Unknown event: dance"},
        }


def test_messages_flow_between_sockets(client: TestClient) -> None:
    with (
        client.websocket_connect("/realtime?token=t&userId=bob") as bob,
        client.websocket_connect("/realtime?token=t&userId=alice") as alice,
    ):
        join_and_say_hi(bob)

        alice.send_json({"event": "join-room", "data": {"projectId": "p1"}})
        alice.send_json(
            {
                "event": "send-message",
                "data": {"projectId": "p1", "content": "hello"},
                "ackId": "a1",
            }
        )
        assert alice.receive_json() == {
            "event": "ack",
            "ackId": "a1",
            "data": {"success": True},
        }
        assert alice.receive_json()["event"] == "new-message"

        joined = bob.receive_json()
        assert joined["event"] == "peer-joined"
        assert joined["data"]["userId"] == "alice"
        message = bob.receive_json()
        assert message["event"] == "new-message"
        assert message["data"]["sender"] == "alice"
        assert message["data"]["content"] == "hello"


def test_disconnect_notifies_room(client: TestClient) -> None:
    with client.websocket_connect("/realtime?token=t&userId=bob") as bob:
        join_and_say_hi(bob)
        with client.websocket_connect("/realtime?token=t&userId=alice") as alice:
            alice.send_json({"event": "join-room", "data": {"projectId": "p1"}})
            assert bob.receive_json()["event"] == "peer-joined"

        left = bob.receive_json()
        assert left["event"] == "peer-left"
        assert left["data"]["userId"] == "alice"


def test_custom_websocket_path() -> None:
    app = create_app(config=ServerConfig(database=":memory:", path="/ws"))
    with TestClient(app) as test_client:
        with test_client.websocket_connect("/ws?token=t&userId=alice") as ws:
            ws.send_json({"event": "join-room", "data": {}})
            assert ws.receive_json()["data"]["message"] == "Invalid payload"
