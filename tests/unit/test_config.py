"""Unit tests for configuration loading."""

from datetime import timedelta
import logging

import pytest

from tracing_bootstrap.config import (
    DEFAULT_METRICS_PORT,
    OTEL_ENDPOINT,
    Level,
    LogConfig,
    MetricsConfig,
    TelemetryConfig,
    TracingConfig,
    parse_protocol,
)
from tracing_bootstrap.errors import ConfigError


pytestmark = pytest.mark.unit

URL = "http://localhost:4317"


class TestLevel:
    def test_ordering(self):
        assert Level.TRACE < Level.DEBUG < Level.INFO < Level.WARN < Level.ERROR

    def test_values_match_logging(self):
        assert Level.DEBUG == logging.DEBUG
        assert Level.WARN == logging.WARNING
        assert logging.getLevelName(int(Level.TRACE)) == "TRACE"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("TRACE", Level.TRACE),
            ("debug", Level.DEBUG),
            ("Info", Level.INFO),
            ("WARN", Level.WARN),
            ("warning", Level.WARN),
            ("error", Level.ERROR),
            ("1", Level.ERROR),
            ("5", Level.TRACE),
        ],
    )
    def test_parse(self, raw, expected):
        assert Level.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["loud", "6", "0", "OFF"])
    def test_parse_rejects(self, raw):
        with pytest.raises(ValueError, match="unknown level"):
            Level.parse(raw)

    def test_from_logging(self):
        assert Level.from_logging(logging.CRITICAL) is Level.ERROR
        assert Level.from_logging(25) is Level.INFO
        assert Level.from_logging(1) is Level.TRACE


class TestLogConfig:
    def test_defaults(self):
        config = LogConfig.from_env()
        assert config.json_enabled is False
        assert config.level is Level.INFO

    @pytest.mark.parametrize("value", ["1", "true", "0", "false"])
    def test_json_flag_is_presence_based(self, monkeypatch, value):
        monkeypatch.setenv("TRACING_LOG_JSON", value)
        assert LogConfig.from_env().json_enabled is True

    def test_empty_json_flag_is_unset(self, monkeypatch):
        monkeypatch.setenv("TRACING_LOG_JSON", "")
        assert LogConfig.from_env().json_enabled is False

    def test_log_level(self, monkeypatch):
        monkeypatch.setenv("TRACING_LOG_LEVEL", "warn")
        assert LogConfig.from_env().level is Level.WARN

    def test_malformed_log_level_defaults_to_info(self, monkeypatch):
        monkeypatch.setenv("TRACING_LOG_LEVEL", "chatty")
        assert LogConfig.from_env().level is Level.INFO


class TestTracingConfig:
    def test_load_returns_none_when_unset(self):
        assert TracingConfig.load() is None

    def test_load_returns_none_when_empty(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, "")
        assert TracingConfig.load() is None

    def test_env_read_defaults(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)

        config = TracingConfig.load()

        assert config is not None
        assert config.endpoint == URL
        assert config.protocol == "http/protobuf"
        assert config.level is Level.DEBUG
        assert config.timeout == timedelta(milliseconds=1000)
        assert config.timeout_millis == 1000
        assert config.environment_name is None
        assert config.headers == {}
        assert config.service_name == "unknown_service"

    def test_env_read_level(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_LEVEL", "WARN")
        assert TracingConfig.load().level is Level.WARN

    def test_env_read_timeout(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_TIMEOUT", "500")

        config = TracingConfig.load()

        assert config.timeout == timedelta(milliseconds=500)
        assert config.timeout_seconds == 0.5

    @pytest.mark.parametrize("value", ["0", "-5", "+0"])
    def test_non_positive_timeout_falls_back(self, monkeypatch, value):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_TIMEOUT", value)

        config = TracingConfig.load()

        assert config.timeout == timedelta(milliseconds=1000)
        assert config.timeout_millis == 1000

    def test_malformed_level_and_timeout_fall_back(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_LEVEL", "verbose")
        monkeypatch.setenv("OTEL_TIMEOUT", "soon")

        config = TracingConfig.load()

        assert config.level is Level.DEBUG
        assert config.timeout == timedelta(milliseconds=1000)

    @pytest.mark.parametrize("value", ["not-a-url", "not a url", "localhost:4317", "http://"])
    def test_invalid_url_is_a_config_error(self, monkeypatch, value):
        monkeypatch.setenv(OTEL_ENDPOINT, value)

        with pytest.raises(ConfigError) as exc_info:
            TracingConfig.load()

        assert exc_info.value.var == OTEL_ENDPOINT
        assert exc_info.value.value == value

    def test_from_env_requires_endpoint(self):
        with pytest.raises(ConfigError, match="required to enable OTLP export"):
            TracingConfig.from_env()

    def test_grpc_protocol(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_EXPORTER_OTLP_PROTOCOL", "grpc")
        assert TracingConfig.load().protocol == "grpc"

    def test_invalid_protocol_is_a_config_error(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_EXPORTER_OTLP_PROTOCOL", "carrier-pigeon")

        with pytest.raises(ConfigError, match="invalid OTLP protocol"):
            TracingConfig.load()

    def test_headers(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_EXPORTER_OTLP_HEADERS", "api-key=abc")
        assert TracingConfig.load().headers == {"api-key": "abc"}

    def test_invalid_headers_are_a_config_error(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_EXPORTER_OTLP_HEADERS", "api-key")

        with pytest.raises(ConfigError):
            TracingConfig.load()

    def test_service_name_precedence(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        assert TracingConfig.load(service_name="builder").service_name == "builder"

        monkeypatch.setenv("OTEL_SERVICE_NAME", "from-env")
        assert TracingConfig.load(service_name="builder").service_name == "from-env"

    def test_resource_attributes(self, monkeypatch):
        monkeypatch.setenv(OTEL_ENDPOINT, URL)
        monkeypatch.setenv("OTEL_ENVIRONMENT_NAME", "staging")

        config = TracingConfig.load(service_name="builder", service_version="1.2.3")

        assert config.resource_attributes() == {
            "service.name": "builder",
            "service.version": "1.2.3",
            "deployment.environment.name": "staging",
        }

    def test_resource_attributes_omit_unset_environment(self):
        config = TracingConfig(endpoint=URL)
        assert config.resource_attributes() == {"service.name": "unknown_service"}

    def test_explicit_environ_mapping(self):
        config = TracingConfig.load({OTEL_ENDPOINT: URL, "OTEL_LEVEL": "ERROR"})
        assert config.level is Level.ERROR

    def test_config_is_frozen(self):
        config = TracingConfig(endpoint=URL)
        with pytest.raises(ValueError):
            config.endpoint = "http://other:4318"


class TestParseProtocol:
    @pytest.mark.parametrize(("raw", "expected"), [("http", "http/protobuf"), ("HTTP/PROTOBUF", "http/protobuf")])
    def test_http_aliases(self, raw, expected):
        assert parse_protocol(raw) == expected


class TestMetricsConfig:
    def test_default_port(self):
        assert MetricsConfig.from_env().port == DEFAULT_METRICS_PORT == 9000

    def test_port(self, monkeypatch):
        monkeypatch.setenv("TRACING_METRICS_PORT", "9100")
        assert MetricsConfig.from_env().port == 9100

    @pytest.mark.parametrize("value", ["abc", "-1", "99999999", "65536", "", "9000.0"])
    def test_malformed_port_falls_back(self, monkeypatch, value):
        monkeypatch.setenv("TRACING_METRICS_PORT", value)
        assert MetricsConfig.from_env().port == 9000

    def test_model_rejects_out_of_range_port(self):
        with pytest.raises(ValueError):
            MetricsConfig(port=70000)


class TestTelemetryConfig:
    def test_defaults(self):
        config = TelemetryConfig.from_env({})

        assert config.log == LogConfig()
        assert config.tracing is None
        assert config.metrics == MetricsConfig(port=9000)

    def test_sections_read_from_one_environment(self):
        config = TelemetryConfig.from_env(
            {OTEL_ENDPOINT: URL, "TRACING_LOG_JSON": "1", "TRACING_METRICS_PORT": "9100"},
            service_name="builder",
        )

        assert config.log.json_enabled is True
        assert config.tracing.service_name == "builder"
        assert config.metrics.port == 9100

    def test_invalid_endpoint_is_a_config_error(self):
        with pytest.raises(ConfigError):
            TelemetryConfig.from_env({OTEL_ENDPOINT: "not-a-url"})

    def test_inventory_merges_sections_in_order(self):
        names = [info.var for info in TelemetryConfig.inventory()]

        expected = [info.var for cls in (LogConfig, TracingConfig, MetricsConfig) for info in cls.inventory()]
        assert names == expected

    def test_check_inventory_passes_on_empty_environment(self):
        assert TelemetryConfig.check_inventory({}) == []


def test_inventory_documents_every_variable():
    names = {info.var for info in TelemetryConfig.inventory()}
    assert names == {
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "OTEL_EXPORTER_OTLP_PROTOCOL",
        "OTEL_EXPORTER_OTLP_HEADERS",
        "OTEL_LEVEL",
        "OTEL_TIMEOUT",
        "OTEL_ENVIRONMENT_NAME",
        "OTEL_SERVICE_NAME",
        "TRACING_METRICS_PORT",
        "TRACING_LOG_JSON",
        "TRACING_LOG_LEVEL",
    }
    assert all(info.optional for info in TelemetryConfig.inventory())
    assert TracingConfig.check_inventory() == []
