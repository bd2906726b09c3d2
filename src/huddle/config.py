"""Server configuration."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

ENV_PREFIX = "HUDDLE_"


@dataclass
class ServerConfig:
    """Configuration for the ASGI application and its runner."""

    host: str = "127.0.0.1"
    """Interface the runner binds to."""

    port: int = 8000
    """Port the runner listens on."""

    database: str = "huddle.db"
    """SQLite database path, or ':memory:'."""

    log_level: str = "INFO"
    """Root logging level name."""

    path: str = "/realtime"
    """Route of the WebSocket endpoint."""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServerConfig":
        """Build a config from HUDDLE_* environment variables.

        Unset variables keep their defaults. Raises ValueError for a port
        that is not an integer.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        raw_port = env.get(f"{ENV_PREFIX}PORT")
        try:
            port = int(raw_port) if raw_port else defaults.port
        except ValueError as exc:
            msg = f"{ENV_PREFIX}PORT must be an integer, got {raw_port!r}"
            raise ValueError(msg) from exc

        path = env.get(f"{ENV_PREFIX}WS_PATH", defaults.path)
        if not path.startswith("/"):
            path = "/" + path

        return cls(
            host=env.get(f"{ENV_PREFIX}HOST", defaults.host),
            port=port,
            database=env.get(f"{ENV_PREFIX}DATABASE", defaults.database),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level).upper(),
            path=path,
        )
