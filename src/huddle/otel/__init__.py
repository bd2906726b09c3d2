"""OpenTelemetry instrumentation for huddle."""

from huddle.otel.metrics import metrics_middleware
from huddle.otel.middleware import tracing

__all__ = ["metrics_middleware", "tracing"]
