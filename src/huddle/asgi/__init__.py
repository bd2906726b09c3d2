"""ASGI surface for huddle."""

from huddle.asgi.app import create_app, health, realtime_endpoint
from huddle.asgi.channel import WebSocketChannel

__all__ = ["WebSocketChannel", "create_app", "health", "realtime_endpoint"]
