"""Tracing middleware for session event handlers."""

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode, TracerProvider

from huddle.session.types import HandlerFunc, InboundEvent, Middleware, Outcome


def tracing(
    tracer_provider: TracerProvider | None = None,
    messaging_system: str = "huddle",
) -> Middleware:
    """Middleware that creates one span per inbound event.

    Args:
        tracer_provider: OpenTelemetry TracerProvider. Uses global if not set.
        messaging_system: Value for messaging.system attribute.

    Example:
        router = default_router(tracing())
    """
    provider = tracer_provider or trace.get_tracer_provider()
    tracer = provider.get_tracer("huddle.otel")

    def middleware(next_handler: HandlerFunc) -> HandlerFunc:
        async def handler(event: InboundEvent) -> Outcome:
            attributes: dict[str, str] = {
                "messaging.system": messaging_system,
                "messaging.operation.type": "process",
                "messaging.operation.name": "process",
                "messaging.destination.name": event.name,
                "messaging.client.id": event.connection_id,
            }
            if event.user_id is not None:
                attributes["enduser.id"] = event.user_id
            if event.ack_id is not None:
                attributes["messaging.message.id"] = event.ack_id

            with tracer.start_as_current_span(
                f"process {event.name}",
                kind=SpanKind.CONSUMER,
                attributes=attributes,
            ) as span:
                try:
                    outcome = await next_handler(event)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.set_attribute("error.type", type(e).__name__)
                    raise
                if outcome.ok:
                    span.set_status(Status(StatusCode.OK))
                else:
                    span.set_status(Status(StatusCode.ERROR, outcome.error))
                span.set_attribute("huddle.broadcasts", len(outcome.broadcasts))
                return outcome

        return handler

    return middleware
