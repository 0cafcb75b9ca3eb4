"""Re-exports of the wrapped telemetry libraries.

Binaries import these from here instead of depending on the libraries
directly, so the versions in use are the ones this package was built with.
"""

import opentelemetry
from opentelemetry import context, trace
import opentelemetry.exporter.otlp.proto.grpc.trace_exporter as otlp_grpc
import opentelemetry.exporter.otlp.proto.http.trace_exporter as otlp_http
import opentelemetry.sdk as opentelemetry_sdk
import prometheus_client
from prometheus_client import Counter, Gauge, Histogram, Info, Summary


__all__ = [
    "Counter",
    "Gauge",
    "Histogram",
    "Info",
    "Summary",
    "context",
    "opentelemetry",
    "opentelemetry_sdk",
    "otlp_grpc",
    "otlp_http",
    "prometheus_client",
    "trace",
]
