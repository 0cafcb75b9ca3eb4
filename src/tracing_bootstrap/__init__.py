"""Shared logging, OTLP tracing and Prometheus metrics setup for binaries.

Call :func:`init` once at startup::

    from tracing_bootstrap import init

    telemetry = init(service_name="my-binary")

then emit through :mod:`logging`, :func:`get_tracer` and the Prometheus
metric types re-exported from :mod:`tracing_bootstrap.deps`.
"""

from tracing_bootstrap.bootstrap import Telemetry, init, init_metrics, init_tracing_only
from tracing_bootstrap.config import Level, LogConfig, MetricsConfig, TelemetryConfig, TracingConfig
from tracing_bootstrap.errors import (
    AlreadyInstalledError,
    BindError,
    BootstrapError,
    ConfigError,
    ExporterBuildError,
    InitError,
)
from tracing_bootstrap.observability.metrics import MetricsServer, serve
from tracing_bootstrap.observability.tracing import get_tracer
from tracing_bootstrap.telemetry import TelemetryGuard, get_installed, install


__version__ = "0.1.0"

__all__ = [
    "AlreadyInstalledError",
    "BindError",
    "BootstrapError",
    "ConfigError",
    "ExporterBuildError",
    "InitError",
    "Level",
    "LogConfig",
    "MetricsConfig",
    "MetricsServer",
    "Telemetry",
    "TelemetryConfig",
    "TelemetryGuard",
    "TracingConfig",
    "__version__",
    "get_installed",
    "get_tracer",
    "init",
    "init_metrics",
    "init_tracing_only",
    "install",
    "serve",
]
