"""Starlette application exposing the real-time endpoint."""

import logging
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import aiosqlite
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket

from huddle.asgi.channel import WebSocketChannel
from huddle.config import ServerConfig
from huddle.gateway import PersistenceGateway
from huddle.models import utcnow
from huddle.server import RealtimeServer
from huddle.session import (
    Handshake,
    IdentityVerifier,
    Middleware,
    SessionConfig,
    default_router,
)
from huddle.sql import SQLGateway

logger = logging.getLogger(__name__)

_STARTED = time.monotonic()


def _server(connection: WebSocket | Request) -> RealtimeServer:
    return connection.app.state.server


async def realtime_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint: one ConnectionSession per socket.

    Query parameters:
    - token: identity credential (or ``Authorization: Bearer`` header)
    - userId: claimed user id
    """
    server = _server(websocket)
    handshake = Handshake.from_request(websocket.query_params, websocket.headers)
    channel = WebSocketChannel(websocket)
    await server.serve(channel, handshake, channel.frames())


def uptime() -> float:
    """Seconds since the process loaded the app module."""
    return round(time.monotonic() - _STARTED, 3)


async def health(request: Request) -> JSONResponse:
    """Report whether the persistence layer answers."""
    server = _server(request)
    try:
        await server.gateway.ping()
    except Exception as e:
        logger.warning("Health check failed: %s", e)
        return JSONResponse(
            {
                "status": "error",
                "db": "disconnected",
                "timestamp": utcnow().isoformat(),
                "uptime": uptime(),
                "error": str(e),
            },
            status_code=500,
        )
    return JSONResponse(
        {
            "status": "ok",
            "db": "connected",
            "timestamp": utcnow().isoformat(),
            "uptime": uptime(),
        }
    )


def create_app(
    gateway: PersistenceGateway | None = None,
    *,
    config: ServerConfig | None = None,
    verifier: IdentityVerifier | None = None,
    session_config: SessionConfig | None = None,
    middlewares: Sequence[Middleware] = (),
) -> Starlette:
    """Build the ASGI application.

    Args:
        gateway: Persistence gateway to use. When omitted, the app opens the
            SQLite database named by ``config.database`` on startup and
            closes it on shutdown.
        config: Server configuration.
        verifier: Handshake identity verifier.
        session_config: Per-connection settings.
        middlewares: Extra middlewares around every event handler
            (e.g. ``huddle.otel.tracing()``).
    """
    config = config or ServerConfig()

    def build_server(gw: PersistenceGateway) -> RealtimeServer:
        return RealtimeServer(
            gw,
            router=default_router(*middlewares),
            verifier=verifier,
            session_config=session_config,
        )

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if gateway is not None:
            yield
            return

        logger.info("Opening database %s", config.database)
        async with aiosqlite.connect(config.database) as connection:
            async with SQLGateway(connection) as sql_gateway:
                app.state.server = build_server(sql_gateway)
                yield
        logger.info("Database %s closed", config.database)

    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            WebSocketRoute(config.path, realtime_endpoint),
        ],
        lifespan=lifespan,
    )
    if gateway is not None:
        app.state.server = build_server(gateway)
    return app
