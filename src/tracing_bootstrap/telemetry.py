"""Process-wide installation of the log sink and the OTLP export pipeline."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
import threading

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import set_tracer_provider

from tracing_bootstrap.config import LogConfig, TracingConfig
from tracing_bootstrap.errors import AlreadyInstalledError
from tracing_bootstrap.observability import tracing as tracing_module
from tracing_bootstrap.observability.logging import add_span_event_handler, configure_logging


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TelemetryGuard:
    """The installed telemetry pipeline.

    ``tracer_provider`` is ``None`` when OTLP export is disabled. The SDK
    flushes pending spans at interpreter exit; :meth:`shutdown` does so early.
    """

    log_config: LogConfig
    tracing_config: TracingConfig | None
    tracer_provider: TracerProvider | None
    log_handler: logging.Handler
    span_event_handler: logging.Handler | None = None

    @property
    def exporting(self) -> bool:
        return self.tracer_provider is not None

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        if self.tracer_provider is None:
            return True
        return self.tracer_provider.force_flush(timeout_millis)

    def shutdown(self) -> None:
        if self.tracer_provider is not None:
            self.tracer_provider.shutdown()


class GlobalTelemetryState:
    """One-time install guard for the process-wide telemetry pipeline.

    The first successful :meth:`install` wins for the lifetime of the process.
    Later calls raise :class:`AlreadyInstalledError` and leave the installed
    pipeline untouched. A failed build leaves the state uninstalled.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._guard: TelemetryGuard | None = None

    @property
    def installed(self) -> bool:
        return self._guard is not None

    @property
    def guard(self) -> TelemetryGuard | None:
        return self._guard

    def install(self, build: Callable[[], TelemetryGuard]) -> TelemetryGuard:
        with self._lock:
            if self._guard is not None:
                raise AlreadyInstalledError()
            self._guard = build()
            return self._guard

    def _reset(self) -> None:
        """Forget the installed pipeline. Test-only."""
        with self._lock:
            self._guard = None
            tracing_module.clear_provider()


_STATE = GlobalTelemetryState()


def _build(log_config: LogConfig, tracing_config: TracingConfig | None) -> TelemetryGuard:
    # The exporter is built first so a failure leaves logging untouched
    provider = tracing_module.build_tracer_provider(tracing_config) if tracing_config else None

    capture_level = int(tracing_config.level) if tracing_config else None
    log_handler = configure_logging(log_config, capture_level=capture_level)

    span_event_handler = None
    if provider is not None:
        span_event_handler = add_span_event_handler(int(tracing_config.level))
        set_tracer_provider(provider)
        tracing_module.set_provider(provider)

    return TelemetryGuard(
        log_config=log_config,
        tracing_config=tracing_config,
        tracer_provider=provider,
        log_handler=log_handler,
        span_event_handler=span_event_handler,
    )


def install(log_config: LogConfig, tracing_config: TracingConfig | None = None) -> TelemetryGuard:
    """Install the stdout log sink and, when configured, OTLP trace export.

    Must be called at most once per process, before any other thread starts
    emitting telemetry.

    Raises:
        AlreadyInstalledError: telemetry was already installed
        ExporterBuildError: the OTLP exporter could not be constructed
    """
    guard = _STATE.install(lambda: _build(log_config, tracing_config))
    if tracing_config is not None:
        logger.info(
            "Telemetry installed: OTLP %s export to %s at level %s (json=%s)",
            tracing_config.protocol,
            tracing_config.endpoint,
            tracing_config.level.name,
            log_config.json_enabled,
        )
    else:
        logger.info("Telemetry installed: logging only (json=%s)", log_config.json_enabled)
    return guard


def get_installed() -> TelemetryGuard | None:
    """The active pipeline, or ``None`` before :func:`install` succeeds."""
    return _STATE.guard
