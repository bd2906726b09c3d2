"""Transport-facing connection protocol."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Channel(Protocol):
    """One persistent client connection, as seen by the dispatcher.

    Implementations wrap a concrete transport (a Starlette WebSocket, a test
    double). ``send`` may raise if the transport has gone away; callers
    treat delivery as best-effort.
    """

    async def send(self, frame: dict[str, Any]) -> None:
        """Deliver one already-encoded frame."""
        ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        """Terminate the connection."""
        ...
