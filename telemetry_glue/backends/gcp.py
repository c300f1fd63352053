"""Google Cloud adapter: Cloud Trace v1 for spans and traces, Cloud Logging for logs.

Cloud Trace filters only understand prefix (``key:value``) and exact
(``+key:value``) label matches. Wildcard searches therefore send the literal
text before the first ``*`` as a prefix filter and apply the full pattern
client-side with an anchored regex.
"""

import logging
import re
from datetime import datetime
from typing import Any
from urllib.parse import quote

from google.api_core import exceptions as google_exceptions
from google.cloud import trace_v1
from google.cloud.logging_v2.services.logging_service_v2 import LoggingServiceV2Client

from ..common import instrumented
from ..config import GcpConfig
from ..exceptions import MissingCredentialError, QueryExecutionError
from ..schema import (
    ListLogsRequest,
    ListSpansRequest,
    LogEntry,
    LogsResult,
    SearchValuesRequest,
    SearchValuesResult,
    Span,
    SpansResult,
    TimeRange,
    TopTracesRequest,
    TopTracesResult,
    TraceSummary,
    ensure_aware,
)
from .base import (
    EARLIEST,
    Backend,
    leading_literal,
    rank_by_duration,
    unique_in_order,
    wildcard_to_regex,
)
from .clients import get_logging_client, get_trace_client

logger = logging.getLogger(__name__)

CONSOLE_URL = "https://console.cloud.google.com"
DEFAULT_LOG_LIMIT = 100
# Upper bound on traces scanned when collecting attribute values
SEARCH_SCAN_LIMIT = 1000

SERVICE_LABELS = ("service.name", "g.co/gae/app/module", "/component")

_PLAIN_FILTER_VALUE = re.compile(r"^[a-zA-Z0-9./_-]+$")


def filter_term(key: str, value: str, exact: bool = False) -> str:
    """One Cloud Trace filter term (``key:value`` or ``+key:value``)."""
    if not _PLAIN_FILTER_VALUE.match(value):
        escaped_val = value.replace("\\", "\\\\").replace('"', '\\"')
        value = f'"{escaped_val}"'
    op = "+" if exact else ""
    return f"{op}{key}:{value}"


def _epoch_ms(dt: datetime) -> int:
    return int(ensure_aware(dt).timestamp() * 1000)


class GcpBackend(Backend):
    """Queries Cloud Trace and Cloud Logging of one Google Cloud project.

    Clients are taken from the shared lazy factory unless injected.
    """

    name = "gcp"

    def __init__(
        self,
        config: GcpConfig,
        trace_client: trace_v1.TraceServiceClient | None = None,
        logging_client: LoggingServiceV2Client | None = None,
    ) -> None:
        if not config.project_id:
            raise MissingCredentialError(
                "Google Cloud project ID is required", parameter="project_id", backend=self.name
            )
        self.project_id = config.project_id
        self._trace_client = trace_client
        self._logging_client = logging_client

    @property
    def trace_client(self) -> trace_v1.TraceServiceClient:
        if self._trace_client is None:
            self._trace_client = get_trace_client()
        return self._trace_client

    @property
    def logging_client(self) -> LoggingServiceV2Client:
        if self._logging_client is None:
            self._logging_client = get_logging_client()
        return self._logging_client

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @instrumented("search_values")
    def search_values(self, req: SearchValuesRequest) -> SearchValuesResult:
        req.time_range.validate()
        prefix = leading_literal(req.query)
        filter_str = filter_term(req.attribute, prefix) if prefix else ""
        pattern = wildcard_to_regex(req.query)

        candidates: list[str] = []
        for trace in self._list_traces(
            req.time_range, filter_str, SEARCH_SCAN_LIMIT, operation="search_values"
        ):
            for span in trace.spans:
                value = span.labels.get(req.attribute)
                if value is not None and pattern.match(value):
                    candidates.append(value)

        return SearchValuesResult(
            values=unique_in_order(candidates),
            web_link=self.trace_list_link(req.time_range),
        )

    @instrumented("top_traces")
    def top_traces(self, req: TopTracesRequest) -> TopTracesResult:
        req.time_range.validate()
        filter_str = filter_term(req.attribute, req.value, exact=True)

        traces = [
            self._to_trace_summary(trace)
            for trace in self._list_traces(
                req.time_range,
                filter_str,
                req.limit,
                operation="top_traces",
                order_by="duration desc",
            )
        ]
        return TopTracesResult(
            traces=rank_by_duration(traces, req.limit),
            web_link=self.trace_list_link(req.time_range),
        )

    @instrumented("list_spans")
    def list_spans(self, req: ListSpansRequest) -> SpansResult:
        req.time_range.validate()
        try:
            trace = self.trace_client.get_trace(project_id=self.project_id, trace_id=req.trace_id)
        except google_exceptions.GoogleAPICallError as e:
            raise QueryExecutionError(
                f"Failed to fetch trace: {e}",
                backend=self.name,
                operation="list_spans",
                trace_id=req.trace_id,
            ) from e

        start = ensure_aware(req.time_range.start)
        end = ensure_aware(req.time_range.end)
        spans = [
            self._to_span(trace.trace_id or req.trace_id, s)
            for s in trace.spans
            if start <= ensure_aware(s.start_time) <= end
        ]
        spans.sort(key=lambda s: s["timestamp"])
        if req.limit:
            spans = spans[: req.limit]

        return SpansResult(spans=spans, web_link=self.trace_link(req.trace_id))

    @instrumented("list_logs")
    def list_logs(self, req: ListLogsRequest) -> LogsResult:
        req.time_range.validate()
        trace_resource = f"projects/{self.project_id}/traces/{req.trace_id}"
        filter_str = (
            f'trace="{trace_resource}"'
            f' AND timestamp>="{ensure_aware(req.time_range.start).isoformat()}"'
            f' AND timestamp<="{ensure_aware(req.time_range.end).isoformat()}"'
        )
        limit = req.limit or DEFAULT_LOG_LIMIT
        request = {
            "resource_names": [f"projects/{self.project_id}"],
            "filter": filter_str,
            "order_by": "timestamp desc",
            "page_size": limit,
        }

        logs: list[LogEntry] = []
        try:
            for entry in self.logging_client.list_log_entries(request=request):
                logs.append(self._to_log_entry(entry))
                if len(logs) >= limit:
                    break
        except google_exceptions.GoogleAPICallError as e:
            raise QueryExecutionError(
                f"Failed to list log entries: {e}",
                backend=self.name,
                operation="list_logs",
                trace_id=req.trace_id,
            ) from e

        logs.sort(key=lambda entry: entry.timestamp or EARLIEST, reverse=True)
        return LogsResult(logs=logs, web_link=self.logs_link(req.trace_id))

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def trace_list_link(self, time_range: TimeRange) -> str:
        return (
            f"{CONSOLE_URL}/traces/list?project={self.project_id}"
            f"&start={_epoch_ms(time_range.start)}&end={_epoch_ms(time_range.end)}"
        )

    def trace_link(self, trace_id: str) -> str:
        return f"{CONSOLE_URL}/traces/list?project={self.project_id}&tid={trace_id}"

    def logs_link(self, trace_id: str) -> str:
        query = quote(f'trace="projects/{self.project_id}/traces/{trace_id}"', safe="/=")
        return f"{CONSOLE_URL}/logs/query;query={query}?project={self.project_id}"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _list_traces(
        self,
        time_range: TimeRange,
        filter_str: str,
        limit: int,
        operation: str,
        order_by: str = "",
    ) -> list[trace_v1.Trace]:
        request_kwargs: dict[str, Any] = {
            "project_id": self.project_id,
            "view": trace_v1.ListTracesRequest.ViewType.COMPLETE,
            "start_time": ensure_aware(time_range.start),
            "end_time": ensure_aware(time_range.end),
            "page_size": limit,
        }
        if filter_str:
            request_kwargs["filter"] = filter_str
        if order_by:
            request_kwargs["order_by"] = order_by

        traces: list[trace_v1.Trace] = []
        try:
            response = self.trace_client.list_traces(
                request=trace_v1.ListTracesRequest(**request_kwargs)
            )
            for trace in response:
                traces.append(trace)
                if len(traces) >= limit:
                    break
        except google_exceptions.GoogleAPICallError as e:
            raise QueryExecutionError(
                f"Failed to list traces: {e}",
                backend=self.name,
                operation=operation,
                filter=filter_str,
            ) from e
        return traces

    @staticmethod
    def _to_trace_summary(trace: trace_v1.Trace) -> TraceSummary:
        spans = list(trace.spans)
        attributes: dict[str, Any] = {"span_count": len(spans)}
        if not spans:
            return TraceSummary(trace_id=trace.trace_id, attributes=attributes)

        trace_start = min(ensure_aware(s.start_time) for s in spans)
        trace_end = max(ensure_aware(s.end_time) for s in spans)

        root = next((s for s in spans if not s.parent_span_id), spans[0])
        for label in SERVICE_LABELS:
            if label in root.labels:
                attributes["service.name"] = root.labels[label]
                break

        return TraceSummary(
            trace_id=trace.trace_id,
            start_time=trace_start,
            duration=(trace_end - trace_start).total_seconds(),
            attributes=attributes,
        )

    @staticmethod
    def _to_span(trace_id: str, span: trace_v1.TraceSpan) -> Span:
        start = ensure_aware(span.start_time)
        end = ensure_aware(span.end_time)
        result: Span = {f"label.{k}": v for k, v in span.labels.items()}
        result.update(
            {
                "id": str(span.span_id),
                "trace.id": trace_id,
                "name": span.name,
                "parent.id": str(span.parent_span_id) if span.parent_span_id else "",
                "timestamp": _epoch_ms(start),
                "duration.ms": (end - start).total_seconds() * 1000,
            }
        )
        for label in SERVICE_LABELS:
            if label in span.labels:
                result["service.name"] = span.labels[label]
                break
        return result

    @staticmethod
    def _to_log_entry(entry: Any) -> LogEntry:
        payload: dict[str, Any] = {}
        if entry.text_payload:
            message = entry.text_payload
        elif entry.json_payload:
            payload = dict(entry.json_payload)
            message = str(payload.pop("message", None) or payload.pop("msg", None) or "")
        elif entry.proto_payload and entry.proto_payload.type_url:
            message = f"[ProtoPayload] {entry.proto_payload.type_url}"
        else:
            message = ""

        attributes: dict[str, Any] = {
            "severity": entry.severity.name,
            "log_name": entry.log_name,
            "resource": {
                "type": entry.resource.type,
                "labels": dict(entry.resource.labels),
            },
        }
        for key, value in entry.labels.items():
            attributes[f"label_{key}"] = value
        if payload:
            attributes["payload"] = payload

        return LogEntry(
            timestamp=ensure_aware(entry.timestamp) if entry.timestamp else None,
            trace_id=entry.trace.rsplit("/", 1)[-1] if entry.trace else "",
            span_id=entry.span_id or "",
            message=message,
            attributes=attributes,
        )
