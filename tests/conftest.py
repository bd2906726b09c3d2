"""Shared fixtures for huddle tests."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import aiosqlite
import pytest

from huddle.server import RealtimeServer
from huddle.session import ConnectionSession, Handshake
from huddle.sql import SQLGateway


class RecordingChannel:
    """Channel that records every frame it is asked to send."""

    def __init__(self, *, fail: bool = False) -> None:
        self.frames: list[dict[str, Any]] = []
        self.closed: tuple[int, str | None] | None = None
        self.fail = fail

    async def send(self, frame: dict[str, Any]) -> None:
        if self.fail:
            msg = "socket closed"
            raise ConnectionError(msg)
        self.frames.append(frame)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = (code, reason)

    def events(self, name: str | None = None) -> list[dict[str, Any]]:
        """Frames with the given event name (all frames when None)."""
        return [f for f in self.frames if name is None or f["event"] == name]

    def names(self) -> list[str]:
        return [f["event"] for f in self.frames]


Connect = Callable[..., Awaitable[tuple[ConnectionSession, RecordingChannel]]]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def channel_factory() -> type[RecordingChannel]:
    return RecordingChannel


@pytest.fixture
async def sqlite_connection() -> AsyncGenerator[aiosqlite.Connection, None]:
    """Create an in-memory SQLite connection for testing."""
    conn = await aiosqlite.connect(":memory:")
    try:
        yield conn
    finally:
        await conn.close()


@pytest.fixture
async def gateway(
    sqlite_connection: aiosqlite.Connection,
) -> AsyncGenerator[SQLGateway, None]:
    async with SQLGateway(sqlite_connection) as gw:
        yield gw


@pytest.fixture
def server(gateway: SQLGateway) -> RealtimeServer:
    return RealtimeServer(gateway)


@pytest.fixture
def connect(server: RealtimeServer) -> Connect:
    """Open an authenticated session for a user on the test server."""

    async def _connect(
        user_id: str, *, fail: bool = False
    ) -> tuple[ConnectionSession, RecordingChannel]:
        channel = RecordingChannel(fail=fail)
        session = server.session(channel)
        await session.open(Handshake(token="token", user_id=user_id))
        return session, channel

    return _connect
