"""Tests for RealtimeServer connection handling."""

from collections.abc import AsyncIterator

import pytest

from huddle.marshaling import dumps
from huddle.server import RealtimeServer
from huddle.session import Handshake
from huddle.sql import SQLGateway

pytestmark = pytest.mark.anyio


async def frames_of(*raw: str) -> AsyncIterator[str]:
    for item in raw:
        yield item


class TestServe:
    async def test_refused_handshake_never_reads_frames(
        self, server: RealtimeServer, channel_factory
    ) -> None:
        consumed: list[str] = []

        async def frames() -> AsyncIterator[str]:
            consumed.append("read")
            yield "{}"

        channel = channel_factory()
        accepted = await server.serve(channel, Handshake(user_id="alice"), frames())

        assert accepted is False
        assert consumed == []
        assert channel.closed is not None
        assert channel.closed[0] == 1008

    async def test_runs_until_frames_end_then_tears_down(
        self, server: RealtimeServer, gateway: SQLGateway, connect, channel_factory
    ) -> None:
        await gateway.create_project("alice", member_ids=["bob"], project_id="p1")
        bob, bob_ch = await connect("bob")
        await bob.receive({"event": "join-room", "data": {"projectId": "p1"}})

        channel = channel_factory()
        accepted = await server.serve(
            channel,
            Handshake(token="t", user_id="alice"),
            frames_of(
                dumps({"event": "join-room", "data": {"projectId": "p1"}}),
                dumps(
                    {
                        "event": "send-message",
                        "data": {"projectId": "p1", "content": "hi"},
                        "ackId": "1",
                    }
                ),
            ),
        )

        assert accepted is True
        assert channel.names() == ["ack", "new-message"]
        assert bob_ch.names() == ["peer-joined", "new-message", "peer-left"]
        assert server.registry.members_of("project:p1") == frozenset(
            {bob.connection_id}
        )

    async def test_servers_do_not_share_rooms(
        self, gateway: SQLGateway, channel_factory
    ) -> None:
        first, second = RealtimeServer(gateway), RealtimeServer(gateway)
        await gateway.create_project("alice", project_id="p1")

        session = first.session(channel_factory())
        await session.open(Handshake(token="t", user_id="alice"))
        await session.receive({"event": "join-room", "data": {"projectId": "p1"}})

        assert "project:p1" in first.registry
        assert "project:p1" not in second.registry
