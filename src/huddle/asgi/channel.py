"""Starlette WebSocket adapter."""

from collections.abc import AsyncIterator
from typing import Any

import anyio
from starlette.websockets import WebSocket, WebSocketState

from huddle.marshaling import dumps


class WebSocketChannel:
    """Channel backed by a Starlette WebSocket.

    Sends are serialized per socket; several rooms can target the same
    connection at once.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._send_lock = anyio.Lock()

    async def send(self, frame: dict[str, Any]) -> None:
        """Send one JSON text frame. Raises if the socket is gone."""
        async with self._send_lock:
            await self._websocket.send_text(dumps(frame))

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        """Close the socket unless it is already closed.

        A socket still in its handshake is accepted first: servers answer a
        close before accept with HTTP 403, and the client would never see
        ``code`` or ``reason``.
        """
        state = self._websocket.application_state
        if state == WebSocketState.DISCONNECTED:
            return
        if state == WebSocketState.CONNECTING:
            await self._websocket.accept()
        await self._websocket.close(code=code, reason=reason)

    async def frames(self) -> AsyncIterator[str | bytes]:
        """Accept the socket, then yield inbound frames until disconnect."""
        await self._websocket.accept()
        while True:
            message = await self._websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            text = message.get("text")
            yield text if text is not None else message.get("bytes") or b""
