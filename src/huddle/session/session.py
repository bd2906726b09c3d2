"""Per-connection lifecycle."""

from __future__ import annotations

import logging
from collections import OrderedDict
from enum import Enum
from typing import Any
from uuid import uuid4

import anyio

from huddle.errors import AuthenticationMissing, HuddleError
from huddle.gateway import PersistenceGateway
from huddle.marshaling import (
    ERROR,
    PEER_LEFT,
    InboundFrame,
    decode_frame,
    encode_ack,
)
from huddle.models import AckResult, ErrorEvent, PeerLeft
from huddle.rooms import BroadcastDispatcher, Channel, RoomRegistry
from huddle.session.config import SessionConfig
from huddle.session.handshake import (
    ClaimedIdentityVerifier,
    Handshake,
    IdentityVerifier,
)
from huddle.session.router import DEFAULT_FAILURE_MESSAGE, EventRouter, Route
from huddle.session.types import InboundEvent, Outcome

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    DISCONNECTED = "disconnected"


class ConnectionSession:
    """Owns one persistent connection from handshake to teardown.

    States move UNAUTHENTICATED -> AUTHENTICATED -> DISCONNECTED and never
    back. The user id is fixed at the handshake; event payloads cannot
    change it.

    The transport must await ``receive`` for one frame before passing the
    next, which keeps events from one connection in arrival order and
    answers event N before event N+1 is looked at.

    Example:
        session = ConnectionSession(channel, registry=registry, ...)
        await session.open(handshake)
        try:
            async for raw in transport:
                await session.receive(raw)
        finally:
            await session.close()
    """

    def __init__(
        self,
        channel: Channel,
        *,
        registry: RoomRegistry,
        dispatcher: BroadcastDispatcher,
        gateway: PersistenceGateway,
        router: EventRouter,
        verifier: IdentityVerifier | None = None,
        config: SessionConfig | None = None,
        connection_id: str | None = None,
    ) -> None:
        self._channel = channel
        self._registry = registry
        self._dispatcher = dispatcher
        self._gateway = gateway
        self._router = router
        self._verifier = verifier or ClaimedIdentityVerifier()
        self._config = config or SessionConfig()
        self._connection_id = connection_id or uuid4().hex
        self._user_id: str | None = None
        self._state = SessionState.UNAUTHENTICATED
        # (event name, ack id) -> ack already sent for it
        self._acks: OrderedDict[tuple[str, str], AckResult] = OrderedDict()

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def gateway(self) -> PersistenceGateway:
        return self._gateway

    @property
    def rooms(self) -> frozenset[str]:
        """Rooms this connection currently occupies."""
        return self._registry.rooms_of(self._connection_id)

    def room_for(self, project_id: str) -> str:
        """Room name for a project."""
        return f"{self._config.room_prefix}{project_id}"

    def require_user(self) -> str:
        """User id of an authenticated session."""
        if self._user_id is None:
            raise AuthenticationMissing
        return self._user_id

    # Lifecycle

    async def open(self, handshake: Handshake) -> str:
        """Authenticate the handshake and attach the connection.

        Returns the trusted user id. On refusal the channel is closed and
        AuthenticationMissing is raised; no event will ever be processed.
        """
        if self._state is not SessionState.UNAUTHENTICATED:
            msg = f"Session is {self._state.value}"
            raise RuntimeError(msg)

        user_id = await self._verifier.verify(handshake)
        if user_id is None:
            self._state = SessionState.DISCONNECTED
            error = AuthenticationMissing()
            logger.info("Refused connection %s: %s", self._connection_id, error)
            try:
                await self._channel.close(self._config.refuse_code, error.message)
            except Exception:
                logger.debug("Closing refused connection failed", exc_info=True)
            raise error

        self._user_id = user_id
        self._registry.attach(self._connection_id, user_id, self._channel)
        self._state = SessionState.AUTHENTICATED
        logger.info("User %s connected as %s", user_id, self._connection_id)
        return user_id

    async def close(self) -> None:
        """Tear down the connection: leave every room and notify peers.

        Runs its effects exactly once; later calls return immediately.
        """
        if self._state is SessionState.DISCONNECTED:
            return
        was_authenticated = self._state is SessionState.AUTHENTICATED
        self._state = SessionState.DISCONNECTED
        if not was_authenticated:
            return

        rooms = self._registry.detach(self._connection_id)
        self._acks.clear()
        logger.info(
            "User %s disconnected (%s), left %d room(s)",
            self._user_id,
            self._connection_id,
            len(rooms),
        )
        with anyio.CancelScope(shield=True):
            for room in sorted(rooms):
                await self._dispatcher.broadcast(
                    room,
                    PEER_LEFT,
                    PeerLeft(
                        user_id=self.require_user(),
                        project_id=room.removeprefix(self._config.room_prefix),
                    ),
                )

    # Room membership used by handlers

    def join_room(self, room: str) -> bool:
        """Add this connection to a room. False if closed or already in it."""
        if self._state is not SessionState.AUTHENTICATED:
            return False
        return self._registry.join(room, self._connection_id)

    def leave_room(self, room: str) -> bool:
        """Remove this connection from a room. False if it was not there."""
        return self._registry.leave(room, self._connection_id)

    # Event processing

    async def receive(self, raw: str | bytes | dict[str, Any]) -> None:
        """Process one inbound frame to completion.

        Handler side effects, the answer to the sender and the room
        broadcasts run shielded from cancellation, so a transport dropping
        mid-event loses at most the answer, never the committed change or
        its broadcast.
        """
        if self._state is not SessionState.AUTHENTICATED:
            logger.debug("Ignoring frame on %s session", self._state.value)
            return

        try:
            frame = decode_frame(raw)
        except HuddleError as e:
            await self._send_error(e.message)
            return

        logger.debug(
            "Event %s from %s (ack=%s)", frame.event, self._user_id, frame.ack_id
        )
        route = self._router.route(frame.event)

        if route is not None and route.acknowledged and frame.ack_id is not None:
            cached = self._acks.get((frame.event, frame.ack_id))
            if cached is not None:
                logger.debug("Replaying ack %s for redelivered event", frame.ack_id)
                await self._send_ack(frame.ack_id, cached)
                return

        with anyio.CancelScope(shield=True):
            outcome = await self._router.dispatch(self._event_for(frame, route))
            await self._answer(frame, route, outcome)
            for broadcast in outcome.broadcasts:
                await self._dispatcher.broadcast(
                    broadcast.room,
                    broadcast.event,
                    broadcast.payload,
                    exclude=broadcast.exclude,
                )

    def _event_for(self, frame: InboundFrame, route: Route | None) -> InboundEvent:
        return InboundEvent(
            name=frame.event,
            session=self,
            data=frame.data,
            ack_id=frame.ack_id,
            failure_message=(
                route.failure_message if route else DEFAULT_FAILURE_MESSAGE
            ),
        )

    async def _answer(
        self, frame: InboundFrame, route: Route | None, outcome: Outcome
    ) -> None:
        """Tell the sender how its event went, before anyone else hears of it."""
        if route is not None and route.acknowledged and frame.ack_id is not None:
            result = AckResult(success=outcome.ok, error=outcome.error)
            self._remember((frame.event, frame.ack_id), result)
            await self._send_ack(frame.ack_id, result)
        elif outcome.error is not None:
            await self._send_error(outcome.error)

    def _remember(self, key: tuple[str, str], result: AckResult) -> None:
        self._acks[key] = result
        self._acks.move_to_end(key)
        while len(self._acks) > self._config.ack_cache_size:
            self._acks.popitem(last=False)

    async def _send_ack(self, ack_id: str, result: AckResult) -> None:
        await self._dispatcher.send_frame(
            self._connection_id, encode_ack(ack_id, result)
        )

    async def _send_error(self, message: str) -> None:
        await self._dispatcher.send_to(
            self._connection_id, ERROR, ErrorEvent(message=message)
        )
