"""Run the huddle ASGI app: ``python -m huddle``."""

import logging

import uvicorn

from huddle.asgi import create_app
from huddle.config import ServerConfig


def main() -> None:
    config = ServerConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("huddle")
    logger.info(
        "Starting huddle on %s:%s (websocket %s, database %s)",
        config.host,
        config.port,
        config.path,
        config.database,
    )
    uvicorn.run(
        create_app(config=config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
