"""Metrics middleware for session event handlers."""

import time
from typing import Any

from opentelemetry import metrics
from opentelemetry.metrics import MeterProvider

from huddle.session.types import HandlerFunc, InboundEvent, Middleware, Outcome


def metrics_middleware(
    meter_provider: MeterProvider | None = None,
    messaging_system: str = "huddle",
) -> Middleware:
    """Create a metrics middleware for event processing.

    Tracks:
    - huddle.event.duration: Processing time histogram
    - huddle.events.processed: Event count by name and outcome

    Args:
        meter_provider: OTEL MeterProvider (uses global if not provided).
        messaging_system: Value for messaging.system attribute.

    Returns:
        Middleware function.
    """
    provider = meter_provider or metrics.get_meter_provider()
    meter = provider.get_meter("huddle.otel")

    event_duration = meter.create_histogram(
        "huddle.event.duration",
        unit="s",
        description="Duration of inbound event handling",
    )
    processed_events = meter.create_counter(
        "huddle.events.processed",
        unit="{event}",
        description="Number of inbound events handled",
    )

    def middleware(handler: HandlerFunc) -> HandlerFunc:
        async def wrapper(event: InboundEvent) -> Outcome:
            attributes: dict[str, Any] = {
                "messaging.system": messaging_system,
                "huddle.event.name": event.name,
            }

            start = time.perf_counter()
            try:
                outcome = await handler(event)
                attributes["huddle.event.outcome"] = (
                    "success" if outcome.ok else "failure"
                )
                return outcome
            except Exception as e:
                attributes["huddle.event.outcome"] = "failure"
                attributes["error.type"] = type(e).__name__
                raise
            finally:
                processed_events.add(1, attributes)
                event_duration.record(time.perf_counter() - start, attributes)

        return wrapper

    return middleware
