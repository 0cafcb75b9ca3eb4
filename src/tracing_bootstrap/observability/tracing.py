"""OpenTelemetry trace export over OTLP."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcOTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpOTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from tracing_bootstrap.config import Level, TracingConfig
from tracing_bootstrap.errors import ExporterBuildError
from tracing_bootstrap.observability.logging import LEVEL_ATTRIBUTE
from tracing_bootstrap.observability.metrics import OTLP_EXPORT_ERRORS, OTLP_EXPORT_STATUS


if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

logger = logging.getLogger(__name__)

TRACER_NAME = "tracing_bootstrap"
HTTP_TRACES_PATH = "/v1/traces"

# Provider installed by the telemetry initializer, if export is enabled
_tracer_holder: dict[str, TracerProvider | None] = {"provider": None}


def span_level(span: ReadableSpan) -> Level:
    """Level recorded on a span; spans without one count as INFO."""
    raw = (span.attributes or {}).get(LEVEL_ATTRIBUTE)
    if raw is None:
        return Level.INFO
    try:
        return Level.parse(str(raw))
    except ValueError:
        return Level.INFO


class LevelFilterSpanProcessor(SpanProcessor):
    """Forward only spans at or above ``min_level`` to ``delegate``."""

    def __init__(self, delegate: SpanProcessor, min_level: Level) -> None:
        self._delegate = delegate
        self._min_level = min_level

    def on_start(self, span: Span, parent_context: Context | None = None) -> None:
        self._delegate.on_start(span, parent_context=parent_context)

    def on_end(self, span: ReadableSpan) -> None:
        if span_level(span) >= self._min_level:
            self._delegate.on_end(span)

    def shutdown(self) -> None:
        self._delegate.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._delegate.force_flush(timeout_millis)


def traces_endpoint(config: TracingConfig) -> str:
    """Endpoint handed to the exporter; HTTP export posts to ``/v1/traces``."""
    if config.protocol == "grpc":
        return config.endpoint
    endpoint = config.endpoint.rstrip("/")
    if endpoint.endswith(HTTP_TRACES_PATH):
        return endpoint
    return endpoint + HTTP_TRACES_PATH


def build_span_exporter(config: TracingConfig) -> SpanExporter:
    """Construct the OTLP span exporter. No connection is made here.

    Raises:
        ExporterBuildError: the exporter rejected its configuration
    """
    protocol_label = config.protocol
    endpoint = traces_endpoint(config)
    OTLP_EXPORT_STATUS.labels(protocol=protocol_label).set(0)

    try:
        if config.protocol == "grpc":
            exporter = GrpcOTLPSpanExporter(
                endpoint=endpoint,
                headers=config.headers or None,
                timeout=config.timeout_seconds,
            )
        else:
            exporter = HttpOTLPSpanExporter(
                endpoint=endpoint,
                headers=config.headers or None,
                timeout=config.timeout_seconds,
            )
    except Exception as exc:
        logger.error("Failed to configure OTLP exporter: %s", exc, exc_info=True)
        OTLP_EXPORT_ERRORS.labels(protocol=protocol_label).inc()
        raise ExporterBuildError(protocol_label, endpoint, str(exc)) from exc

    OTLP_EXPORT_STATUS.labels(protocol=protocol_label).set(1)
    return exporter


def build_resource(config: TracingConfig) -> Resource:
    return Resource.create(config.resource_attributes())


def build_tracer_provider(config: TracingConfig) -> TracerProvider:
    """Build a tracer provider batching level-filtered spans to the OTLP exporter."""
    exporter = build_span_exporter(config)
    provider = TracerProvider(resource=build_resource(config))
    batch = BatchSpanProcessor(exporter, export_timeout_millis=config.timeout_millis)
    provider.add_span_processor(LevelFilterSpanProcessor(batch, config.level))
    logger.debug(
        "OTLP trace export configured (%s) to %s at level %s",
        config.protocol,
        traces_endpoint(config),
        config.level.name,
    )
    return provider


def set_provider(provider: TracerProvider) -> None:
    """Make ``provider`` the one :func:`get_tracer` draws from."""
    _tracer_holder["provider"] = provider


def clear_provider() -> None:
    _tracer_holder["provider"] = None


def get_tracer(name: str = TRACER_NAME) -> Tracer:
    """Tracer from the installed provider, or the global (possibly no-op) one."""
    provider = _tracer_holder["provider"]
    if provider is None:
        return trace.get_tracer(name)
    return provider.get_tracer(name)
