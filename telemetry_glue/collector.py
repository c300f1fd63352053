"""Collects the telemetry of one trace from a span source and an optional log source."""

import logging

from .backends.base import Backend
from .exceptions import TelemetryGlueError
from .schema import CombinedData, ListLogsRequest, ListSpansRequest, LogEntry, TimeRange

logger = logging.getLogger(__name__)


class TelemetryCollector:
    """Spans are mandatory; logs are best-effort.

    A failure fetching spans propagates. A failure fetching logs is logged as a
    warning and the result carries zero logs.
    """

    def __init__(self, span_backend: Backend, log_backend: Backend | None = None) -> None:
        self.span_backend = span_backend
        self.log_backend = log_backend

    def collect(
        self,
        trace_id: str,
        time_range: TimeRange,
        span_limit: int | None = None,
        log_limit: int | None = None,
    ) -> CombinedData:
        spans = self.span_backend.list_spans(ListSpansRequest(trace_id, time_range, span_limit))

        logs: list[LogEntry] = []
        if self.log_backend is not None:
            try:
                logs = self.log_backend.list_logs(
                    ListLogsRequest(trace_id, time_range, log_limit)
                ).logs
            except TelemetryGlueError as e:
                logger.warning(
                    f"⚠️ Failed to fetch logs for trace {trace_id} from "
                    f"{self.log_backend.name}, continuing without logs: {e}"
                )

        data = CombinedData(spans=spans.spans, logs=logs)
        logger.info(f"Collected {data.summary()} for trace {trace_id}")
        return data
