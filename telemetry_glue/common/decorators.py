"""Instrumentation decorator for backend queries and generation calls."""

import functools
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .telemetry import get_meter, get_tracer, truncate

logger = logging.getLogger(__name__)

tracer = get_tracer("telemetry_glue")
meter = get_meter("telemetry_glue")

operation_duration = meter.create_histogram(
    name="telemetry_glue.operation.duration",
    description="Duration of backend queries and generation calls",
    unit="ms",
)
operation_count = meter.create_counter(
    name="telemetry_glue.operation.count",
    description="Total number of backend queries and generation calls",
    unit="1",
)

# Arguments never written to logs or span attributes
_REDACTED_ARGS = {"self", "prompt", "api_key"}


def _describe_args(
    func: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]
) -> dict[str, str]:
    try:
        bound = inspect.signature(func).bind(*args, **kwargs)
        bound.apply_defaults()
    except TypeError:
        return {}
    return {
        k: truncate(repr(v))
        for k, v in bound.arguments.items()
        if k not in _REDACTED_ARGS
    }


def instrumented(operation: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Wraps a sync or async callable with an OTel span, metrics and logging.

    The span is named ``operation``; when the wrapped callable is a method of an
    object exposing ``name`` (a backend or provider), the name is recorded as
    ``telemetry_glue.component``. Exceptions are logged, recorded on the span
    and re-raised unchanged.

    Example:
        @instrumented("list_spans")
        def list_spans(self, req: ListSpansRequest) -> SpansResult:
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        def _start(args: tuple[Any, ...], kwargs: dict[str, Any]) -> tuple[str, dict[str, str]]:
            component = getattr(args[0], "name", "") if args else ""
            label = f"{component}.{operation}" if component else operation
            return label, _describe_args(func, args, kwargs)

        def _annotate(span: trace.Span, label: str, described: dict[str, str]) -> None:
            span.set_attribute("telemetry_glue.operation", operation)
            span.set_attribute("telemetry_glue.component", label.split(".")[0])
            for k, v in described.items():
                span.set_attribute(f"arg.{k}", v)
            logger.info(f"🔎 Call: '{label}' | Args: {described}")

        def _record(label: str, start_time: float, success: bool) -> None:
            duration_ms = (time.time() - start_time) * 1000
            attrs = {"operation": label, "success": str(success)}
            operation_duration.record(duration_ms, attrs)
            operation_count.add(1, attrs)

        def _fail(span: trace.Span, label: str, start_time: float, e: Exception) -> None:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"❌ Failed: '{label}' | Duration: {duration_ms:.2f}ms | Error: {e}",
                exc_info=True,
            )
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            label, described = _start(args, kwargs)
            start_time = time.time()
            success = True
            with tracer.start_as_current_span(label) as span:
                _annotate(span, label, described)
                try:
                    result = await func(*args, **kwargs)
                    logger.info(
                        f"✅ Success: '{label}' | Duration: {(time.time() - start_time) * 1000:.2f}ms"
                    )
                    return result
                except Exception as e:
                    success = False
                    _fail(span, label, start_time, e)
                    raise
                finally:
                    _record(label, start_time, success)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            label, described = _start(args, kwargs)
            start_time = time.time()
            success = True
            with tracer.start_as_current_span(label) as span:
                _annotate(span, label, described)
                try:
                    result = func(*args, **kwargs)
                    logger.info(
                        f"✅ Success: '{label}' | Duration: {(time.time() - start_time) * 1000:.2f}ms"
                    )
                    return result
                except Exception as e:
                    success = False
                    _fail(span, label, start_time, e)
                    raise
                finally:
                    _record(label, start_time, success)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
