"""Transport-agnostic connection handling for one server instance."""

import logging
from collections.abc import AsyncIterable

from huddle.errors import AuthenticationMissing
from huddle.gateway import PersistenceGateway
from huddle.rooms import BroadcastDispatcher, Channel, RoomRegistry
from huddle.session import (
    ConnectionSession,
    EventRouter,
    Handshake,
    IdentityVerifier,
    SessionConfig,
    default_router,
)

logger = logging.getLogger(__name__)


class RealtimeServer:
    """Shared state of one server instance.

    Owns the room registry and dispatcher that all of its connections use,
    so two servers in one process never see each other's rooms.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        router: EventRouter | None = None,
        verifier: IdentityVerifier | None = None,
        session_config: SessionConfig | None = None,
    ) -> None:
        self.gateway = gateway
        self.registry = RoomRegistry()
        self.dispatcher = BroadcastDispatcher(self.registry)
        self.router = router or default_router()
        self._verifier = verifier
        self._session_config = session_config or SessionConfig()

    def session(self, channel: Channel) -> ConnectionSession:
        """Create an unauthenticated session bound to this server."""
        return ConnectionSession(
            channel,
            registry=self.registry,
            dispatcher=self.dispatcher,
            gateway=self.gateway,
            router=self.router,
            verifier=self._verifier,
            config=self._session_config,
        )

    async def serve(
        self,
        channel: Channel,
        handshake: Handshake,
        frames: AsyncIterable[str | bytes],
    ) -> bool:
        """Run one connection until its frames are exhausted.

        ``frames`` is only iterated after the handshake has been accepted.
        Returns False if the handshake was refused.
        """
        session = self.session(channel)
        try:
            await session.open(handshake)
        except AuthenticationMissing:
            return False

        try:
            async for raw in frames:
                await session.receive(raw)
        finally:
            await session.close()
        return True
