"""Common utilities shared by backends and providers."""

from .decorators import instrumented
from .telemetry import get_meter, get_tracer, set_span_attribute, setup_telemetry

__all__ = [
    "get_meter",
    "get_tracer",
    "instrumented",
    "set_span_attribute",
    "setup_telemetry",
]
