"""Built-in middlewares."""

import logging

from huddle.errors import HuddleError, PersistenceFailure
from huddle.session.types import HandlerFunc, InboundEvent, Middleware, Outcome


def recoverer(
    logger: logging.Logger | None = None,
) -> Middleware:
    """Middleware that turns exceptions into failed outcomes.

    A HuddleError reports its own message. PersistenceFailure and any other
    exception are logged with traceback and reported with the event's
    generic failure message; the connection stays open either way.
    """
    log = logger or logging.getLogger("huddle.session")

    def middleware(next_handler: HandlerFunc) -> HandlerFunc:
        async def handler(event: InboundEvent) -> Outcome:
            try:
                return await next_handler(event)
            except PersistenceFailure as e:
                log.error(
                    "Storage failure handling %s from %s",
                    event.name,
                    event.user_id,
                    exc_info=e.cause,
                )
                return Outcome.failure(event.failure_message)
            except HuddleError as e:
                log.warning(
                    "Rejected %s from %s: %s", event.name, event.user_id, e.message
                )
                return Outcome.failure(e.message)
            except Exception:
                log.exception(
                    "Handler failed for %s from %s", event.name, event.user_id
                )
                return Outcome.failure(event.failure_message)

        return handler

    return middleware
