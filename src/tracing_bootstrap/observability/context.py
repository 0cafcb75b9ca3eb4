"""Trace correlation ids for log records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry import trace


if TYPE_CHECKING:
    from opentelemetry.trace import Span


def with_otel_span(span: Span) -> dict[str, str]:
    """Extract hex trace and span ids from an OpenTelemetry span."""
    ctx = span.get_span_context()
    return {
        "trace_id": format(ctx.trace_id, "032x"),
        "span_id": format(ctx.span_id, "016x"),
    }


def get_trace_context() -> dict[str, str]:
    """Ids of the active span, or an empty dict outside of any recorded span."""
    span = trace.get_current_span()
    if not span.get_span_context().is_valid:
        return {}
    return with_otel_span(span)
