"""Single-call startup for binaries.

``init()`` performs, in order:

1. read the log, tracing and metrics configuration from the environment
2. install the process-wide log sink, with OTLP export when
   ``OTEL_EXPORTER_OTLP_ENDPOINT`` is set
3. bind the Prometheus scrape endpoint on ``0.0.0.0:TRACING_METRICS_PORT``

A failing stage raises a :class:`~tracing_bootstrap.errors.BootstrapError`
whose ``stage`` names it, and later stages do not run. A ``BindError`` from
the last stage leaves the installed telemetry in place; it stays reachable
through :func:`~tracing_bootstrap.telemetry.get_installed`.
"""

from __future__ import annotations

from dataclasses import dataclass

from tracing_bootstrap.config import MetricsConfig, TelemetryConfig
from tracing_bootstrap.from_env import Environ
from tracing_bootstrap.observability.metrics import MetricsServer, serve
from tracing_bootstrap.telemetry import TelemetryGuard, install


@dataclass(slots=True)
class Telemetry:
    """Everything ``init()`` started. Keep it alive for the life of ``main``."""

    guard: TelemetryGuard
    metrics_server: MetricsServer | None = None


def init(
    *,
    service_name: str | None = None,
    service_version: str | None = None,
    environ: Environ | None = None,
) -> Telemetry:
    """Install logging, tracing and metrics from the environment.

    Raises:
        ConfigError: an export setting is malformed; nothing was installed
        InitError: telemetry is already installed or the exporter failed to build
        BindError: the metrics port could not be bound; telemetry is installed
    """
    config = TelemetryConfig.from_env(environ, service_name=service_name, service_version=service_version)
    guard = install(config.log, config.tracing)

    metrics_server = serve(config.metrics)
    return Telemetry(guard=guard, metrics_server=metrics_server)


def init_tracing_only(
    *,
    service_name: str | None = None,
    service_version: str | None = None,
    environ: Environ | None = None,
) -> Telemetry:
    """Install logging and tracing without starting the metrics server."""
    config = TelemetryConfig.from_env(environ, service_name=service_name, service_version=service_version)
    return Telemetry(guard=install(config.log, config.tracing))


def init_metrics(*, environ: Environ | None = None) -> MetricsServer:
    """Start only the metrics server.

    ``TRACING_METRICS_PORT`` defaults to 9000 when missing or unparseable.
    """
    return serve(MetricsConfig.from_env(environ))
