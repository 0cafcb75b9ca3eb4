"""Operator CLI for inspecting and exercising the telemetry configuration.

Usage:
    # List every variable that is read
    python -m tracing_bootstrap env

    # Resolve the configuration from the current environment
    python -m tracing_bootstrap check

    # Emit one span and one event every 5 seconds until SIGINT/SIGTERM
    OTEL_EXPORTER_OTLP_ENDPOINT=http://localhost:4318 python -m tracing_bootstrap demo
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
import signal
import sys
import threading
from typing import Any

import orjson

from tracing_bootstrap.bootstrap import init
from tracing_bootstrap.config import Level, TelemetryConfig, TracingConfig
from tracing_bootstrap.errors import BootstrapError, ConfigError
from tracing_bootstrap.observability.logging import LEVEL_ATTRIBUTE
from tracing_bootstrap.observability.tracing import get_tracer


logger = logging.getLogger(__name__)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tracing-bootstrap",
        description="Inspect and exercise telemetry configuration read from the environment",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("env", help="List the environment variables that are read")
    subparsers.add_parser("check", help="Resolve the configuration and print it as JSON")
    demo = subparsers.add_parser("demo", help="Install telemetry and emit spans and events periodically")
    demo.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Seconds between spans (default: 5)",
    )
    demo.add_argument(
        "--count",
        type=int,
        default=0,
        help="Stop after this many spans (default: run until signalled)",
    )
    return parser


def _print_inventory() -> int:
    for info in TelemetryConfig.inventory():
        optional = "optional" if info.optional else "required"
        sys.stdout.write(f"{info.var}\t{optional}\t{info.description}\n")
    return 0


def _describe_tracing(config: TracingConfig | None) -> dict[str, Any] | None:
    if config is None:
        return None
    payload = config.model_dump(mode="json")
    payload["level"] = config.level.name
    payload["timeout_ms"] = config.timeout_millis
    del payload["timeout"]
    payload["headers"] = dict.fromkeys(config.headers, "[REDACTED]")
    return payload


def _check() -> int:
    try:
        config = TelemetryConfig.from_env()
    except ConfigError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    payload = {
        "log": {"json_enabled": config.log.json_enabled, "level": config.log.level.name},
        "tracing": _describe_tracing(config.tracing),
        "metrics": config.metrics.model_dump(mode="json"),
    }
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_SORT_KEYS).decode("utf-8") + "\n")
    return 0


def _demo(interval: float, count: int) -> int:
    try:
        telemetry = init(service_name="tracing-bootstrap-demo")
    except BootstrapError as exc:
        sys.stderr.write(f"{exc.stage} stage failed: {exc}\n")
        return 1

    stop = threading.Event()

    def _handle_signal(_signum: int, _frame: Any) -> None:
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    tracer = get_tracer(__name__)
    counter = 0
    with tracer.start_as_current_span("outer span", attributes={LEVEL_ATTRIBUTE: Level.INFO.name}):
        while not stop.is_set() and (count <= 0 or counter < count):
            with tracer.start_as_current_span("inner span", attributes={LEVEL_ATTRIBUTE: Level.INFO.name}):
                stop.wait(interval)
                counter += 1
                logger.info("this is an event", extra={"counter": counter})

    logger.info("shutting down after %d spans", counter)
    telemetry.guard.shutdown()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    if args.command == "env":
        return _print_inventory()
    if args.command == "check":
        return _check()
    return _demo(args.interval, args.count)


if __name__ == "__main__":
    sys.exit(main())
