"""Logging and OpenTelemetry setup for telemetry-glue."""

import json
import logging
import os
import sys
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.semconv.resource import ResourceAttributes

SERVICE_NAME = "telemetry-glue"

# Logged by google-genai when a response mixes text with other part types
_NON_TEXT_PARTS_WARNING = "there are non-text parts in the response"


class NonTextPartsFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return _NON_TEXT_PARTS_WARNING not in record.getMessage()


for _name in ("google_genai.types", "google_genai._api_client"):
    logging.getLogger(_name).addFilter(NonTextPartsFilter())


class GenAiAttributes:
    """GenAI Semantic Conventions (based on GenAI SIG)."""

    SYSTEM = "gen_ai.system"
    REQUEST_MODEL = "gen_ai.request.model"
    REQUEST_MAX_TOKENS = "gen_ai.request.max_tokens"
    REQUEST_TEMPERATURE = "gen_ai.request.temperature"
    RESPONSE_FINISH_REASONS = "gen_ai.response.finish_reasons"


def get_tracer(name: str) -> trace.Tracer:
    """Returns a tracer for the given module name."""
    return trace.get_tracer(name)


def get_meter(name: str) -> metrics.Meter:
    """Returns a meter for the given module name."""
    return metrics.get_meter(name)


def truncate(value: Any, limit: int = 200) -> str:
    """String form of ``value`` cut to ``limit`` characters."""
    val_str = str(value)
    if len(val_str) > limit:
        return val_str[:limit] + "... (truncated)"
    return val_str


class JsonFormatter(logging.Formatter):
    """Basic JSON log formatter with OTel correlation."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": self.formatTime(record, self.datefmt),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "func": record.funcName,
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            log_obj["trace_id"] = format(span_context.trace_id, "032x")
            log_obj["span_id"] = format(span_context.span_id, "016x")

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


def setup_telemetry(level: int = logging.INFO) -> None:
    """Configures tracing, metrics and logging.

    Configures:
    - Traces/Metrics: OTLP gRPC when OTEL_EXPORTER_OTLP_ENDPOINT is set,
      otherwise in-process SDK providers only
    - Logs: text (default) or JSON to stderr, selected by LOG_FORMAT

    Args:
        level: The logging level to use (default: INFO)
    """
    env_level = os.environ.get("LOG_LEVEL", "").upper()
    if env_level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        level = getattr(logging, env_level)

    from opentelemetry.instrumentation.logging import LoggingInstrumentor

    # Initialize Trace-Log correlation
    LoggingInstrumentor().instrument(set_logging_format=False)

    resource = Resource.create({ResourceAttributes.SERVICE_NAME: SERVICE_NAME})
    otlp_endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")

    current_tracer_provider = trace.get_tracer_provider()
    if not isinstance(current_tracer_provider, TracerProvider):
        tracer_provider = TracerProvider(resource=resource)
        if otlp_endpoint and os.environ.get("OTEL_TRACES_EXPORTER", "").lower() != "none":
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                OTLPSpanExporter,
            )

            tracer_provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
            )
        trace.set_tracer_provider(tracer_provider)

    if not isinstance(metrics.get_meter_provider(), MeterProvider):
        readers = []
        if otlp_endpoint and os.environ.get("OTEL_METRICS_EXPORTER", "").lower() != "none":
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )

            readers.append(
                PeriodicExportingMetricReader(
                    OTLPMetricExporter(endpoint=otlp_endpoint),
                    export_interval_millis=60000,
                )
            )
        metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=readers))

    _configure_logging_handlers(level)


def _configure_logging_handlers(level: int) -> None:
    """Internal helper to configure logging handlers.

    Logs go to stderr so stdout stays reserved for piped telemetry data.
    """
    log_format = os.environ.get("LOG_FORMAT", "TEXT").upper()

    if log_format == "JSON":
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
        logging.getLogger().handlers = [handler]
        logging.getLogger().setLevel(level)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s [trace_id=%(otelTraceID)s span_id=%(otelSpanID)s]: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            stream=sys.stderr,
            force=True,
        )
        logging.getLogger().setLevel(level)


def set_span_attribute(key: str, value: Any) -> None:
    """Sets an attribute on the current OTel span. Safe to call if no span active."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value)
