"""Prometheus scrape endpoint and exporter pipeline metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import threading
from typing import Any

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    start_http_server,
)

from tracing_bootstrap.config import MetricsConfig
from tracing_bootstrap.errors import BindError


logger = logging.getLogger(__name__)

DEFAULT_METRICS_ADDR = "0.0.0.0"

OTLP_EXPORT_ERRORS = Counter(
    "otlp_export_errors_total",
    "Total OTLP export configuration errors",
    ["protocol"],
)

OTLP_EXPORT_STATUS = Gauge(
    "otlp_exporter_enabled",
    "OTLP exporter enabled status (1=enabled, 0=disabled)",
    ["protocol"],
)


@dataclass(slots=True)
class MetricsServer:
    """Handle to the background scrape listener.

    The listener runs on a daemon thread for the rest of the process; there is
    no shutdown contract beyond process exit.
    """

    addr: str
    port: int
    _server: Any = field(repr=False)
    _thread: threading.Thread = field(repr=False)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()


def serve(
    config: MetricsConfig,
    *,
    addr: str = DEFAULT_METRICS_ADDR,
    registry: CollectorRegistry = REGISTRY,
) -> MetricsServer:
    """Bind the scrape endpoint and serve it from a background thread.

    Returns as soon as the socket is bound. A port of 0 binds an ephemeral
    port, reported on the returned handle.

    Raises:
        BindError: the socket could not be bound (port in use, permission denied)
    """
    try:
        server, thread = start_http_server(config.port, addr=addr, registry=registry)
    except OSError as exc:
        logger.error("Failed to bind metrics server on %s:%d: %s", addr, config.port, exc)
        raise BindError(addr, config.port, exc.strerror or str(exc)) from exc

    port = server.server_address[1]
    logger.info("Serving metrics on http://%s:%d/metrics", addr, port)
    return MetricsServer(addr=addr, port=port, _server=server, _thread=thread)
