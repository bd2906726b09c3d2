"""Configuration for connection sessions."""

from dataclasses import dataclass


@dataclass
class SessionConfig:
    """Configuration for ConnectionSession."""

    room_prefix: str = "project:"
    """Prefix for room names. Project 'p1' broadcasts in room 'project:p1'."""

    ack_cache_size: int = 256
    """Acks remembered per connection for answering redelivered events."""

    refuse_code: int = 1008
    """Close code sent when the handshake is refused (policy violation)."""
