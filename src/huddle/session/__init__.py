"""Connection sessions and event routing."""

from huddle.session.config import SessionConfig
from huddle.session.handlers import default_router
from huddle.session.handshake import (
    ClaimedIdentityVerifier,
    Handshake,
    IdentityVerifier,
)
from huddle.session.middleware import recoverer
from huddle.session.router import EventRouter, Route
from huddle.session.session import ConnectionSession, SessionState
from huddle.session.types import (
    Broadcast,
    HandlerFunc,
    InboundEvent,
    Middleware,
    Outcome,
)

__all__ = [
    "Broadcast",
    "ClaimedIdentityVerifier",
    "ConnectionSession",
    "EventRouter",
    "HandlerFunc",
    "Handshake",
    "IdentityVerifier",
    "InboundEvent",
    "Middleware",
    "Outcome",
    "Route",
    "SessionConfig",
    "SessionState",
    "default_router",
    "recoverer",
]
