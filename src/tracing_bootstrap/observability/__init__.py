"""Log sink, OTLP trace export and Prometheus scrape endpoint."""

from tracing_bootstrap.observability.context import get_trace_context, with_otel_span
from tracing_bootstrap.observability.logging import (
    LEVEL_ATTRIBUTE,
    JsonFormatter,
    SpanEventHandler,
    add_span_event_handler,
    configure_logging,
)
from tracing_bootstrap.observability.metrics import (
    OTLP_EXPORT_ERRORS,
    OTLP_EXPORT_STATUS,
    MetricsServer,
    serve,
)
from tracing_bootstrap.observability.tracing import (
    LevelFilterSpanProcessor,
    build_resource,
    build_span_exporter,
    build_tracer_provider,
    get_tracer,
    span_level,
    traces_endpoint,
)


__all__ = [
    "LEVEL_ATTRIBUTE",
    "OTLP_EXPORT_ERRORS",
    "OTLP_EXPORT_STATUS",
    "JsonFormatter",
    "LevelFilterSpanProcessor",
    "MetricsServer",
    "SpanEventHandler",
    "add_span_event_handler",
    "build_resource",
    "build_span_exporter",
    "build_tracer_provider",
    "configure_logging",
    "get_trace_context",
    "get_tracer",
    "serve",
    "span_level",
    "traces_endpoint",
    "with_otel_span",
]
