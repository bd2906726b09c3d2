"""Type definitions for session event handling."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from huddle.models import WireModel

if TYPE_CHECKING:
    from huddle.session.session import ConnectionSession


@dataclass(frozen=True)
class Broadcast:
    """A room event to fan out once the sender has been answered."""

    room: str
    event: str
    payload: WireModel
    exclude: str | None = None


@dataclass(frozen=True)
class Outcome:
    """Result of handling one inbound event.

    ``error`` is None on success. The session answers the sender first and
    only then performs ``broadcasts``.
    """

    error: str | None = None
    broadcasts: tuple[Broadcast, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, *broadcasts: Broadcast) -> Outcome:
        return cls(broadcasts=broadcasts)

    @classmethod
    def failure(cls, error: str) -> Outcome:
        return cls(error=error)


@dataclass(frozen=True)
class InboundEvent:
    """One client event on its way through the middleware chain."""

    name: str
    session: ConnectionSession
    data: dict[str, Any] = field(default_factory=dict)
    ack_id: str | None = None
    failure_message: str = "Request failed"

    @property
    def user_id(self) -> str | None:
        return self.session.user_id

    @property
    def connection_id(self) -> str:
        return self.session.connection_id


# Handler that receives an event and returns its outcome
HandlerFunc = Callable[[InboundEvent], Awaitable[Outcome]]

# Middleware wraps a handler
Middleware = Callable[[HandlerFunc], HandlerFunc]
