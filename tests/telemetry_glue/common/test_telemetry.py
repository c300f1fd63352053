import json
import logging
from unittest import mock

import pytest

from telemetry_glue.common.telemetry import (
    JsonFormatter,
    NonTextPartsFilter,
    _configure_logging_handlers,
    get_meter,
    get_tracer,
    setup_telemetry,
    truncate,
)


def make_record(msg: str, level: int = logging.WARNING) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="path",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def test_get_tracer():
    with mock.patch(
        "telemetry_glue.common.telemetry.trace.get_tracer_provider"
    ) as mock_get_provider:
        mock_tracer = mock.Mock()
        mock_get_provider.return_value = mock_tracer

        tracer = get_tracer("test_module")

        mock_get_provider.assert_called_once()
        assert tracer == mock_tracer.get_tracer.return_value


def test_get_meter():
    with mock.patch("telemetry_glue.common.telemetry.metrics.get_meter") as mock_get_meter:
        meter = get_meter("test_module")

        mock_get_meter.assert_called_with("test_module")
        assert meter == mock_get_meter.return_value


def test_non_text_parts_filter():
    log_filter = NonTextPartsFilter()

    assert not log_filter.filter(
        make_record("Warning: there are non-text parts in the response: ['thought']")
    )
    assert log_filter.filter(make_record("Some other warning"))


def test_truncate():
    assert truncate("abc") == "abc"
    assert truncate("x" * 10, limit=4) == "xxxx... (truncated)"


def test_json_formatter():
    record = make_record("Collected 3 spans", level=logging.INFO)

    body = json.loads(JsonFormatter().format(record))

    assert body["severity"] == "INFO"
    assert body["logger"] == "test"
    assert body["message"] == "Collected 3 spans"
    assert "trace_id" not in body


def test_json_log_format(monkeypatch, restore_root_logger):
    monkeypatch.setenv("LOG_FORMAT", "json")

    _configure_logging_handlers(logging.DEBUG)

    (handler,) = restore_root_logger.handlers
    assert isinstance(handler.formatter, JsonFormatter)
    assert restore_root_logger.level == logging.DEBUG


class TestSetupTelemetry:
    @pytest.fixture
    def patched(self, monkeypatch):
        monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
        with mock.patch(
            "opentelemetry.instrumentation.logging.LoggingInstrumentor"
        ) as instrumentor, mock.patch(
            "telemetry_glue.common.telemetry.trace.set_tracer_provider"
        ) as set_tracer_provider, mock.patch(
            "telemetry_glue.common.telemetry.metrics.set_meter_provider"
        ) as set_meter_provider, mock.patch(
            "telemetry_glue.common.telemetry._configure_logging_handlers"
        ) as configure_logging:
            yield {
                "instrumentor": instrumentor,
                "set_tracer_provider": set_tracer_provider,
                "set_meter_provider": set_meter_provider,
                "configure_logging": configure_logging,
            }

    def test_log_level_from_env(self, monkeypatch, patched):
        monkeypatch.setenv("LOG_LEVEL", "debug")

        setup_telemetry()

        patched["configure_logging"].assert_called_once_with(logging.DEBUG)
        patched["instrumentor"].return_value.instrument.assert_called_once_with(
            set_logging_format=False
        )

    def test_unknown_log_level_keeps_default(self, monkeypatch, patched):
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        setup_telemetry(logging.WARNING)

        patched["configure_logging"].assert_called_once_with(logging.WARNING)
