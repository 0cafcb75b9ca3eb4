"""Structured stdout logging with trace correlation."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import Any

from opentelemetry import trace
import orjson

from tracing_bootstrap.config import Level, LogConfig
from tracing_bootstrap.observability.context import get_trace_context


LEVEL_ATTRIBUTE = "level"

PLAIN_FORMAT = "%(asctime)s %(levelname)5s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_NOISY_LOGGERS = ("urllib3", "grpc", "opentelemetry")


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter with OpenTelemetry trace correlation."""

    REDACT_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization"})
    MAX_MESSAGE_LEN = 2000

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_trace_context()
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "message": self._truncate(record.getMessage()),
            "logger": record.name,
            "trace_id": ctx.get("trace_id", ""),
            "span_id": ctx.get("span_id", ""),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_"):
                log_entry[key] = self._redact(key, value)

        return orjson.dumps(log_entry, default=self._json_default).decode("utf-8")

    def _truncate(self, msg: str) -> str:
        if len(msg) > self.MAX_MESSAGE_LEN:
            return msg[: self.MAX_MESSAGE_LEN] + "..."
        return msg

    def _redact(self, key: str, value: Any) -> Any:
        if key.lower() in self.REDACT_KEYS:
            return "[REDACTED]"
        if isinstance(value, str) and len(value) > 500:
            return value[:500] + "..."
        return value

    def _json_default(self, value: Any) -> Any:
        if isinstance(value, set):
            try:
                return sorted(value)
            except TypeError:
                return list(value)
        if isinstance(value, Path):
            return str(value)
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8", errors="replace")
        if isinstance(value, Exception):
            return str(value)
        return repr(value)


class SpanEventHandler(logging.Handler):
    """Record log records as events on the active span.

    Installed only when OTLP export is enabled. Its handler level is the
    export floor, which may sit below the stdout display floor.
    """

    def emit(self, record: logging.LogRecord) -> None:
        span = trace.get_current_span()
        if not span.is_recording():
            return
        try:
            attributes: dict[str, Any] = {
                LEVEL_ATTRIBUTE: Level.from_logging(record.levelno).name,
                "target": record.name,
                "code.filepath": record.pathname,
                "code.lineno": record.lineno,
            }
            if record.exc_info and record.exc_info[1] is not None:
                exc = record.exc_info[1]
                attributes["exception.type"] = type(exc).__qualname__
                attributes["exception.message"] = str(exc)
            span.add_event(record.getMessage(), attributes=attributes)
        except Exception:
            self.handleError(record)


def configure_logging(config: LogConfig, *, capture_level: int | None = None) -> logging.Handler:
    """Route the root logger to stdout, replacing any existing handlers.

    Args:
        config: Formatting and display floor of the stdout sink
        capture_level: Lowest level any other handler needs to see; the root
            logger is opened up to it while stdout keeps ``config.level``

    Returns:
        The stdout handler
    """
    root = logging.getLogger()
    root_level = int(config.level) if capture_level is None else min(int(config.level), capture_level)
    root.setLevel(root_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(config.level)
    if config.json_enabled:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)

    # Reduce noise from exporter transports
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler


def add_span_event_handler(level: int) -> SpanEventHandler:
    """Attach a :class:`SpanEventHandler` at ``level`` to the root logger."""
    handler = SpanEventHandler(level=level)
    logging.getLogger().addHandler(handler)
    return handler
