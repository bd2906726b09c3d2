"""EventRouter - maps inbound event names to their handler."""

import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, get_type_hints

from pydantic import ValidationError

from huddle.errors import ValidationFailed
from huddle.models import WireModel
from huddle.session.middleware import recoverer
from huddle.session.types import HandlerFunc, InboundEvent, Middleware, Outcome

EventHandler = Callable[..., Awaitable[Outcome]]

DEFAULT_FAILURE_MESSAGE = "Request failed"
HANDLER_PARAM_COUNT = 2


@dataclass(frozen=True)
class Route:
    """Registration for one event name."""

    name: str
    payload_type: type[WireModel]
    func: EventHandler
    acknowledged: bool = False
    failure_message: str = DEFAULT_FAILURE_MESSAGE


class EventRouter:
    """Dispatches inbound events to handlers.

    Each event name has exactly one handler. Middlewares wrap every handler
    in registration order (first added is outermost); a recoverer always
    sits innermost so handlers never raise out of dispatch.
    """

    def __init__(self, middlewares: Sequence[Middleware] = ()) -> None:
        self._routes: dict[str, Route] = {}
        self._middlewares: list[Middleware] = list(middlewares)
        self._pipelines: dict[str, HandlerFunc] = {}

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware around every handler."""
        self._middlewares.append(middleware)
        self._pipelines.clear()

    def handler(
        self,
        name: str,
        *,
        acknowledged: bool = False,
        failure_message: str = DEFAULT_FAILURE_MESSAGE,
    ) -> Callable[[EventHandler], EventHandler]:
        """Decorator to register the handler for an event name.

        The payload type is inferred from the first parameter's type hint;
        the second parameter receives the ConnectionSession.

        Usage:
            @router.handler("join-room")
            async def join_room(cmd: JoinRoom, session: ConnectionSession) -> Outcome:
                ...
        """

        def decorator(func: EventHandler) -> EventHandler:
            hints = get_type_hints(func)
            params = list(inspect.signature(func).parameters.keys())

            if len(params) < HANDLER_PARAM_COUNT:
                msg = f"Handler {func.__name__} must take (payload, session)"
                raise TypeError(msg)

            first_param = params[0]
            payload_type = hints.get(first_param)
            if not (
                isinstance(payload_type, type) and issubclass(payload_type, WireModel)
            ):
                msg = (
                    f"First parameter '{first_param}' of {func.__name__} "
                    "must be typed with a WireModel"
                )
                raise TypeError(msg)

            if name in self._routes:
                msg = f"Event {name!r} already has a handler"
                raise ValueError(msg)

            self._routes[name] = Route(
                name=name,
                payload_type=payload_type,
                func=func,
                acknowledged=acknowledged,
                failure_message=failure_message,
            )
            self._pipelines.pop(name, None)
            return func

        return decorator

    def route(self, name: str) -> Route | None:
        return self._routes.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    @property
    def events(self) -> frozenset[str]:
        return frozenset(self._routes)

    async def dispatch(self, event: InboundEvent) -> Outcome:
        """Run the event through its middleware chain and handler."""
        pipeline = self._pipelines.get(event.name)
        if pipeline is None:
            route = self._routes.get(event.name)
            if route is None:
                return Outcome.failure(f"Unknown event: {event.name}")
            pipeline = self._build(route)
            self._pipelines[event.name] = pipeline
        return await pipeline(event)

    def _build(self, route: Route) -> HandlerFunc:
        async def invoke(event: InboundEvent) -> Outcome:
            try:
                payload: Any = route.payload_type.model_validate(event.data)
            except ValidationError as exc:
                raise ValidationFailed from exc
            return await route.func(payload, event.session)

        handler: HandlerFunc = recoverer()(invoke)
        for middleware in reversed(self._middlewares):
            handler = middleware(handler)
        return handler
