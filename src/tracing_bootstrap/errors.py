"""Error hierarchy for the bootstrap stages.

Every error carries the ``stage`` that raised it so a caller of ``init()`` can
tell configuration, telemetry install and metrics bind failures apart with a
single ``except BootstrapError``.
"""

from __future__ import annotations


class BootstrapError(Exception):
    """Base class for all startup failures raised by this package."""

    stage = "bootstrap"


class ConfigError(BootstrapError, ValueError):
    """An environment variable is present but cannot be used."""

    stage = "config"

    def __init__(self, var: str, value: str | None, reason: str) -> None:
        self.var = var
        self.value = value
        self.reason = reason
        super().__init__(f"invalid value for {var}={value!r}: {reason}")


class InitError(BootstrapError, RuntimeError):
    """The process-wide telemetry pipeline could not be installed."""

    stage = "telemetry"


class AlreadyInstalledError(InitError):
    """Telemetry was already installed in this process."""

    def __init__(self) -> None:
        super().__init__("telemetry is already installed for this process")


class ExporterBuildError(InitError):
    """The OTLP export pipeline could not be constructed."""

    def __init__(self, protocol: str, endpoint: str, reason: str) -> None:
        self.protocol = protocol
        self.endpoint = endpoint
        super().__init__(f"failed to build OTLP {protocol} exporter for {endpoint}: {reason}")


class BindError(BootstrapError):
    """The metrics scrape endpoint could not bind its listening socket."""

    stage = "metrics"

    def __init__(self, addr: str, port: int, reason: str) -> None:
        self.addr = addr
        self.port = port
        self.reason = reason
        super().__init__(f"failed to bind metrics server on {addr}:{port}: {reason}")
