"""Shared test fixtures and configuration."""

import logging

import pytest

from tracing_bootstrap import telemetry as telemetry_module
from tracing_bootstrap.config import TelemetryConfig


# Every variable the package reads; cleared before each test
MANAGED_ENV_VARS = [info.var for info in TelemetryConfig.inventory()]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Start every test without any telemetry variables set."""
    for key in MANAGED_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_telemetry_state():
    """Forget the installed pipeline and restore the root logger afterwards."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    telemetry_module._STATE._reset()

    yield

    installed = telemetry_module.get_installed()
    if installed is not None:
        installed.shutdown()
    telemetry_module._STATE._reset()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


@pytest.fixture(autouse=True)
def global_tracer_providers(monkeypatch):
    """Capture providers passed to the OpenTelemetry global instead of setting them."""
    providers = []
    monkeypatch.setattr(telemetry_module, "set_tracer_provider", providers.append)
    return providers
