"""Configuration objects loaded from the process environment.

Endpoint, protocol and headers of the OTLP exporter must be valid when they
are set: an operator who sets them expects export to work, so a bad value is
a :class:`~tracing_bootstrap.errors.ConfigError`. Every other setting falls
back to its default when malformed.
"""

from __future__ import annotations

from datetime import timedelta
from enum import IntEnum
import logging
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, Field

from tracing_bootstrap.errors import ConfigError
from tracing_bootstrap.from_env import (
    Environ,
    EnvVar,
    FromEnv,
    NestedEnv,
    parse_flag,
    parse_headers,
    parse_http_url,
    parse_millis,
    parse_str,
    parse_u16,
)


OTEL_ENDPOINT = "OTEL_EXPORTER_OTLP_ENDPOINT"
OTEL_PROTOCOL = "OTEL_EXPORTER_OTLP_PROTOCOL"
OTEL_HEADERS = "OTEL_EXPORTER_OTLP_HEADERS"
OTEL_LEVEL = "OTEL_LEVEL"
OTEL_TIMEOUT = "OTEL_TIMEOUT"
OTEL_ENVIRONMENT = "OTEL_ENVIRONMENT_NAME"
OTEL_SERVICE_NAME = "OTEL_SERVICE_NAME"
TRACING_METRICS_PORT = "TRACING_METRICS_PORT"
TRACING_LOG_JSON = "TRACING_LOG_JSON"
TRACING_LOG_LEVEL = "TRACING_LOG_LEVEL"

DEFAULT_METRICS_PORT = 9000
DEFAULT_OTEL_TIMEOUT = timedelta(milliseconds=1000)
DEFAULT_SERVICE_NAME = "unknown_service"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

OtlpProtocol = Literal["http/protobuf", "grpc"]


class Level(IntEnum):
    """Event severity, ordered TRACE < DEBUG < INFO < WARN < ERROR.

    Values are the matching :mod:`logging` levels so a ``Level`` can be passed
    anywhere a logging level is accepted.
    """

    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR

    @classmethod
    def parse(cls, raw: str) -> Level:
        """Parse a level name (case-insensitive) or its verbosity digit.

        Digits count verbosity upward: ``1`` is ERROR and ``5`` is TRACE.
        """
        value = raw.strip().upper()
        if value in _LEVEL_ALIASES:
            return _LEVEL_ALIASES[value]
        raise ValueError(f"unknown level {raw!r}, expected one of TRACE, DEBUG, INFO, WARN, ERROR")

    @classmethod
    def from_logging(cls, levelno: int) -> Level:
        """Map an arbitrary logging level onto the closest level at or below it."""
        for level in sorted(cls, reverse=True):
            if levelno >= level:
                return level
        return cls.TRACE


_LEVEL_ALIASES: dict[str, Level] = {
    "TRACE": Level.TRACE,
    "DEBUG": Level.DEBUG,
    "INFO": Level.INFO,
    "WARN": Level.WARN,
    "WARNING": Level.WARN,
    "ERROR": Level.ERROR,
    "1": Level.ERROR,
    "2": Level.WARN,
    "3": Level.INFO,
    "4": Level.DEBUG,
    "5": Level.TRACE,
}


def parse_protocol(raw: str) -> OtlpProtocol:
    value = raw.strip().lower()
    if value in ("http/protobuf", "http"):
        return "http/protobuf"
    if value == "grpc":
        return "grpc"
    raise ValueError(f"invalid OTLP protocol: {raw}")


class LogConfig(FromEnv, BaseModel):
    """Formatting and display floor of the stdout log sink."""

    model_config = {"extra": "forbid", "frozen": True}

    ENV_VARS: ClassVar[tuple[EnvVar[Any], ...]] = (
        EnvVar(
            TRACING_LOG_JSON,
            parse_flag,
            description="If set to any non-empty value, log lines are emitted as JSON",
            default=False,
        ),
        EnvVar(
            TRACING_LOG_LEVEL,
            Level.parse,
            description="Minimum level written to stdout, defaults to INFO",
            default=Level.INFO,
        ),
    )

    json_enabled: Annotated[
        bool,
        Field(
            description="Emit one JSON object per log line instead of human-readable text",
        ),
    ] = False

    level: Annotated[
        Level,
        Field(
            description="Display floor of the log stream",
        ),
    ] = Level.INFO

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> LogConfig:
        json_var, level_var = cls.ENV_VARS
        return cls(json_enabled=json_var.read(environ), level=level_var.read(environ))


class TracingConfig(FromEnv, BaseModel):
    """OTLP trace export settings.

    The variables read are:
    - ``OTEL_EXPORTER_OTLP_ENDPOINT`` - optional. URL to export to. When it is
      missing or empty, :meth:`load` returns ``None`` and export is disabled.
    - ``OTEL_EXPORTER_OTLP_PROTOCOL`` - optional. ``http/protobuf`` or ``grpc``.
    - ``OTEL_EXPORTER_OTLP_HEADERS`` - optional. ``key=value`` pairs.
    - ``OTEL_LEVEL`` - optional. Minimum level to export, defaults to DEBUG.
    - ``OTEL_TIMEOUT`` - optional. Export timeout in milliseconds, defaults to
      1000.
    - ``OTEL_ENVIRONMENT_NAME`` - optional. Value of the
      ``deployment.environment.name`` resource attribute.
    - ``OTEL_SERVICE_NAME`` - optional. Value of ``service.name``.
    """

    model_config = {"extra": "forbid", "frozen": True}

    ENV_VARS: ClassVar[tuple[EnvVar[Any], ...]] = (
        EnvVar(
            OTEL_ENDPOINT,
            parse_http_url,
            description="OTLP endpoint to send traces to, a url. If missing, disables OTLP exporting.",
            strict=True,
        ),
        EnvVar(
            OTEL_PROTOCOL,
            parse_protocol,
            description="OTLP transport, http/protobuf (default) or grpc",
            default="http/protobuf",
            strict=True,
        ),
        EnvVar(
            OTEL_HEADERS,
            parse_headers,
            description="Comma separated key=value headers sent with every export",
            strict=True,
        ),
        EnvVar(
            OTEL_LEVEL,
            Level.parse,
            description="OTLP level to export, defaults to DEBUG. Permissible values are: TRACE, DEBUG, INFO, WARN, ERROR",
            default=Level.DEBUG,
        ),
        EnvVar(
            OTEL_TIMEOUT,
            parse_millis,
            description="OTLP timeout in milliseconds, defaults to 1000",
            default=DEFAULT_OTEL_TIMEOUT,
        ),
        EnvVar(
            OTEL_ENVIRONMENT,
            parse_str,
            description="OTLP environment name, a string",
        ),
        EnvVar(
            OTEL_SERVICE_NAME,
            parse_str,
            description="Service name attached to exported spans",
        ),
    )

    endpoint: Annotated[
        str,
        Field(
            description="OTLP collector endpoint",
            examples=["http://localhost:4318", "http://localhost:4317"],
        ),
    ]

    protocol: Annotated[
        OtlpProtocol,
        Field(
            description="OTLP transport protocol",
        ),
    ] = "http/protobuf"

    headers: Annotated[
        dict[str, str],
        Field(
            description="Headers to include with OTLP requests",
        ),
    ] = Field(default_factory=dict)

    level: Annotated[
        Level,
        Field(
            description="Spans and events below this level are not exported",
        ),
    ] = Level.DEBUG

    timeout: Annotated[
        timedelta,
        Field(
            description="Per-batch export timeout",
        ),
    ] = DEFAULT_OTEL_TIMEOUT

    environment_name: Annotated[
        str | None,
        Field(
            description="deployment.environment.name resource attribute",
        ),
    ] = None

    service_name: Annotated[
        str,
        Field(
            description="service.name resource attribute",
        ),
    ] = DEFAULT_SERVICE_NAME

    service_version: Annotated[
        str | None,
        Field(
            description="service.version resource attribute",
        ),
    ] = None

    @property
    def timeout_millis(self) -> int:
        return int(self.timeout.total_seconds() * 1000)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout.total_seconds()

    def resource_attributes(self) -> dict[str, str]:
        attributes = {"service.name": self.service_name}
        if self.service_version:
            attributes["service.version"] = self.service_version
        if self.environment_name:
            attributes["deployment.environment.name"] = self.environment_name
        return attributes

    @classmethod
    def from_env(
        cls,
        environ: Environ | None = None,
        *,
        service_name: str | None = None,
        service_version: str | None = None,
    ) -> TracingConfig:
        """Load from the environment; the endpoint must be set.

        Raises:
            ConfigError: the endpoint is missing or malformed, or the protocol
                or headers are malformed
        """
        endpoint_var, protocol_var, headers_var, level_var, timeout_var, env_name_var, service_var = cls.ENV_VARS
        endpoint = endpoint_var.read(environ)
        if endpoint is None:
            raise ConfigError(OTEL_ENDPOINT, None, "variable is required to enable OTLP export")
        return cls(
            endpoint=endpoint,
            protocol=protocol_var.read(environ),
            headers=headers_var.read(environ) or {},
            level=level_var.read(environ),
            timeout=timeout_var.read(environ),
            environment_name=env_name_var.read(environ),
            service_name=service_var.read(environ) or service_name or DEFAULT_SERVICE_NAME,
            service_version=service_version,
        )

    @classmethod
    def load(
        cls,
        environ: Environ | None = None,
        *,
        service_name: str | None = None,
        service_version: str | None = None,
    ) -> TracingConfig | None:
        """Return the export configuration, or ``None`` when export is disabled.

        Export is disabled when ``OTEL_EXPORTER_OTLP_ENDPOINT`` is unset or
        empty. A malformed endpoint is never treated as disabled.
        """
        if not cls.ENV_VARS[0].is_present(environ):
            return None
        return cls.from_env(environ, service_name=service_name, service_version=service_version)


class MetricsConfig(FromEnv, BaseModel):
    """Prometheus scrape endpoint settings.

    ``TRACING_METRICS_PORT`` - optional. Defaults to 9000 if missing or
    unparseable.
    """

    model_config = {"extra": "forbid", "frozen": True}

    ENV_VARS: ClassVar[tuple[EnvVar[Any], ...]] = (
        EnvVar(
            TRACING_METRICS_PORT,
            parse_u16,
            description="Port on which to serve metrics, u16, defaults to 9000",
            default=DEFAULT_METRICS_PORT,
        ),
    )

    port: Annotated[
        int,
        Field(
            ge=0,
            le=65535,
            description="Port the metrics server listens on",
        ),
    ] = DEFAULT_METRICS_PORT

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> MetricsConfig:
        (port_var,) = cls.ENV_VARS
        return cls(port=port_var.read(environ))


class TelemetryConfig(FromEnv, BaseModel):
    """Everything ``init()`` reads: log sink, optional OTLP export and metrics.

    Tracing is ``None`` when ``OTEL_EXPORTER_OTLP_ENDPOINT`` is unset or empty.
    """

    model_config = {"extra": "forbid", "frozen": True}

    NESTED: ClassVar[tuple[NestedEnv, ...]] = (
        NestedEnv(LogConfig),
        NestedEnv(TracingConfig, optional=True),
        NestedEnv(MetricsConfig),
    )

    log: LogConfig
    tracing: TracingConfig | None = None
    metrics: MetricsConfig

    @classmethod
    def from_env(
        cls,
        environ: Environ | None = None,
        *,
        service_name: str | None = None,
        service_version: str | None = None,
    ) -> TelemetryConfig:
        """Load every section.

        Raises:
            ConfigError: an OTLP export setting is malformed
        """
        return cls(
            log=LogConfig.from_env(environ),
            tracing=TracingConfig.load(environ, service_name=service_name, service_version=service_version),
            metrics=MetricsConfig.from_env(environ),
        )
