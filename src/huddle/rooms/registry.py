"""Runtime room membership."""

import logging
from dataclasses import dataclass, field

from huddle.rooms.channel import Channel

logger = logging.getLogger(__name__)


@dataclass
class _Attachment:
    """State kept for one attached connection."""

    user_id: str
    channel: Channel
    rooms: set[str] = field(default_factory=set)


class RoomRegistry:
    """Authoritative mapping of room -> member connections.

    Created empty per server instance and never persisted; a reconnecting
    client must join its rooms again. Rooms with no members are evicted.

    All mutators are synchronous, so in a single event loop they never
    interleave with each other.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, set[str]] = {}
        self._connections: dict[str, _Attachment] = {}

    def attach(self, connection_id: str, user_id: str, channel: Channel) -> None:
        """Register an authenticated connection."""
        if connection_id in self._connections:
            msg = f"Connection {connection_id} is already attached"
            raise ValueError(msg)
        self._connections[connection_id] = _Attachment(user_id, channel)

    def detach(self, connection_id: str) -> frozenset[str]:
        """Forget a connection and remove it from every room.

        Returns the rooms it occupied. Detaching twice returns an empty set.
        """
        attachment = self._connections.pop(connection_id, None)
        if attachment is None:
            return frozenset()
        rooms = frozenset(attachment.rooms)
        for room in rooms:
            self._discard(room, connection_id)
        logger.debug("Detached %s from %d room(s)", connection_id, len(rooms))
        return rooms

    def join(self, room: str, connection_id: str) -> bool:
        """Add a connection to a room. Returns False if it was already there."""
        attachment = self._connections.get(connection_id)
        if attachment is None:
            msg = f"Connection {connection_id} is not attached"
            raise KeyError(msg)
        members = self._rooms.setdefault(room, set())
        if connection_id in members:
            return False
        members.add(connection_id)
        attachment.rooms.add(room)
        return True

    def leave(self, room: str, connection_id: str) -> bool:
        """Remove a connection from a room. Returns False if it was absent."""
        attachment = self._connections.get(connection_id)
        if attachment is not None:
            attachment.rooms.discard(room)
        return self._discard(room, connection_id)

    def _discard(self, room: str, connection_id: str) -> bool:
        members = self._rooms.get(room)
        if members is None or connection_id not in members:
            return False
        members.remove(connection_id)
        if not members:
            del self._rooms[room]
        return True

    def members_of(self, room: str) -> frozenset[str]:
        """Snapshot of the connections currently in a room."""
        return frozenset(self._rooms.get(room, ()))

    def rooms_of(self, connection_id: str) -> frozenset[str]:
        attachment = self._connections.get(connection_id)
        return frozenset(attachment.rooms) if attachment else frozenset()

    def user_of(self, connection_id: str) -> str | None:
        attachment = self._connections.get(connection_id)
        return attachment.user_id if attachment else None

    def channel_of(self, connection_id: str) -> Channel | None:
        attachment = self._connections.get(connection_id)
        return attachment.channel if attachment else None

    def __contains__(self, room: object) -> bool:
        return room in self._rooms

    def __len__(self) -> int:
        """Number of non-empty rooms."""
        return len(self._rooms)
