"""New Relic adapter: NRQL queries sent through the NerdGraph GraphQL API."""

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..common import instrumented
from ..config import NewRelicConfig
from ..exceptions import (
    InvalidCredentialError,
    MissingCredentialError,
    QueryExecutionError,
    ResponseShapeError,
)
from ..schema import (
    SPAN_ID_KEY,
    SPAN_TIMESTAMP_KEY,
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
    parse_timestamp,
    utcnow,
)
from .base import (
    EARLIEST,
    Backend,
    Clock,
    escape_literal,
    rank_by_duration,
    relative_minutes,
    unique_in_order,
    wildcard_to_like,
)

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "US": "https://api.newrelic.com/graphql",
    "EU": "https://api.eu.newrelic.com/graphql",
}
WEB_BASE_URL = "https://one.newrelic.com/nr1-core"

GRAPHQL_QUERY = """
query($accountId: Int!, $nrqlQuery: Nrql!) {
  actor {
    account(id: $accountId) {
      nrql(query: $nrqlQuery, timeout: 30) {
        results
      }
    }
  }
}"""

# Keys of a Log event lifted into LogEntry fields; the rest become attributes.
_LOG_FIELD_KEYS = ("timestamp", "trace.id", "span.id", "message")


def to_text(value: Any) -> str:
    """NRQL scalar to its display string (``true``, ``42``, ``1.5``)."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


class NewRelicBackend(Backend):
    """Queries Span and Log events of one New Relic account.

    Args:
        config: API key, account id and region.
        http_client: Optional pre-built client (tests inject a MockTransport).
        clock: Source of "now" for translating windows into relative minutes.
    """

    name = "newrelic"

    def __init__(
        self,
        config: NewRelicConfig,
        http_client: httpx.Client | None = None,
        clock: Clock = utcnow,
    ) -> None:
        if not config.api_key:
            raise MissingCredentialError(
                "New Relic API key is required", parameter="api_key", backend=self.name
            )
        if config.account_id in ("", None):
            raise MissingCredentialError(
                "New Relic account ID is required", parameter="account_id", backend=self.name
            )
        try:
            self.account_id = int(config.account_id)
        except (TypeError, ValueError):
            raise InvalidCredentialError(
                f"Invalid New Relic account ID: {config.account_id!r}",
                parameter="account_id",
                backend=self.name,
            ) from None

        region = config.region.upper()
        if region not in ENDPOINTS:
            raise InvalidCredentialError(
                f"Unknown New Relic region '{config.region}'. Supported: US, EU",
                parameter="region",
                backend=self.name,
            )
        self.endpoint = ENDPOINTS[region]

        self._api_key = config.api_key
        self._clock = clock
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=config.timeout)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @instrumented("search_values")
    def search_values(self, req: SearchValuesRequest) -> SearchValuesResult:
        req.time_range.validate()
        nrql = (
            f"SELECT uniques({req.attribute}) FROM Span "
            f"WHERE {req.attribute} LIKE '{wildcard_to_like(req.query)}' "
            f"{self._window(req.time_range)}"
        )
        rows = self._run_nrql(nrql, operation="search_values")

        unique_key = f"uniques.{req.attribute}"
        values: list[str] = []
        for row in rows:
            found = row.get(unique_key)
            if isinstance(found, list):
                values.extend(to_text(v) for v in found if v is not None)

        return SearchValuesResult(values=unique_in_order(values), web_link=self.web_link(nrql))

    @instrumented("top_traces")
    def top_traces(self, req: TopTracesRequest) -> TopTracesResult:
        req.time_range.validate()
        nrql = (
            "SELECT max(duration.ms) AS maxDuration, earliest(service.name) AS serviceName, "
            "count(*) AS spanCount, earliest(timestamp) AS startTime "
            f"FROM Span WHERE {req.attribute} = '{escape_literal(req.value)}' "
            f"{self._window(req.time_range)} "
            f"FACET trace.id ORDER BY maxDuration DESC LIMIT {req.limit}"
        )
        rows = self._run_nrql(nrql, operation="top_traces")
        traces = [self._to_trace_summary(row) for row in rows]
        return TopTracesResult(
            traces=rank_by_duration(traces, req.limit), web_link=self.web_link(nrql)
        )

    @instrumented("list_spans")
    def list_spans(self, req: ListSpansRequest) -> SpansResult:
        req.time_range.validate()
        nrql = (
            f"SELECT * FROM Span WHERE trace.id = '{escape_literal(req.trace_id)}' "
            f"{self._window(req.time_range)} "
            f"ORDER BY timestamp ASC LIMIT {req.limit or 'MAX'}"
        )
        rows = self._run_nrql(nrql, operation="list_spans")

        spans: list[Span] = []
        for row in rows:
            missing = [k for k in (SPAN_ID_KEY, SPAN_TIMESTAMP_KEY) if row.get(k) in (None, "")]
            if missing:
                raise ResponseShapeError(
                    f"Span row is missing required keys: {', '.join(missing)}",
                    backend=self.name,
                    operation="list_spans",
                    trace_id=req.trace_id,
                )
            spans.append(dict(row))

        spans.sort(key=lambda s: parse_timestamp(s[SPAN_TIMESTAMP_KEY]) or EARLIEST)
        return SpansResult(spans=spans, web_link=self.web_link(nrql))

    @instrumented("list_logs")
    def list_logs(self, req: ListLogsRequest) -> LogsResult:
        req.time_range.validate()
        nrql = (
            f"SELECT * FROM Log WHERE trace.id = '{escape_literal(req.trace_id)}' "
            f"{self._window(req.time_range)} "
            f"ORDER BY timestamp DESC LIMIT {req.limit or 'MAX'}"
        )
        rows = self._run_nrql(nrql, operation="list_logs")

        logs = [self._to_log_entry(row) for row in rows]
        logs.sort(key=lambda entry: entry.timestamp or EARLIEST, reverse=True)
        return LogsResult(logs=logs, web_link=self.web_link(nrql))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def web_link(self, nrql: str) -> str:
        """Deep link opening ``nrql`` in the New Relic query builder."""
        filters = json.dumps({"query": nrql}, separators=(",", ":"))
        return f"{WEB_BASE_URL}?account={self.account_id}&filters={quote(filters, safe='')}"

    def _window(self, time_range: TimeRange) -> str:
        since, until = relative_minutes(time_range, self._clock())
        return f"SINCE {since} minutes ago UNTIL {until} minutes ago"

    def _run_nrql(self, nrql: str, operation: str) -> list[dict[str, Any]]:
        """Executes one NRQL query and returns the ``results`` rows."""
        logger.debug(f"Executing NRQL query: {nrql}")
        payload = {
            "query": GRAPHQL_QUERY,
            "variables": {"accountId": self.account_id, "nrqlQuery": nrql},
        }
        try:
            response = self._client.post(
                self.endpoint,
                json=payload,
                headers={"API-Key": self._api_key, "Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise QueryExecutionError(
                f"NerdGraph returned HTTP {e.response.status_code}",
                backend=self.name,
                operation=operation,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise QueryExecutionError(
                f"Failed to execute NerdGraph query: {e}",
                backend=self.name,
                operation=operation,
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise ResponseShapeError(
                "NerdGraph response is not valid JSON", backend=self.name, operation=operation
            ) from e

        if isinstance(body, dict) and body.get("errors"):
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in body["errors"]
            )
            raise QueryExecutionError(
                f"NerdGraph query failed: {messages}", backend=self.name, operation=operation
            )

        return self._extract_results(body, operation)

    def _extract_results(self, body: Any, operation: str) -> list[dict[str, Any]]:
        node = body
        for key in ("data", "actor", "account", "nrql", "results"):
            if not isinstance(node, dict) or key not in node:
                raise ResponseShapeError(
                    f"'{key}' not found in NerdGraph response",
                    backend=self.name,
                    operation=operation,
                )
            node = node[key]
        if not isinstance(node, list):
            raise ResponseShapeError(
                "NerdGraph 'results' is not a list", backend=self.name, operation=operation
            )
        return [row for row in node if isinstance(row, dict)]

    @staticmethod
    def _to_trace_summary(row: dict[str, Any]) -> TraceSummary:
        trace_id = ""
        facet = row.get("facet")
        if isinstance(facet, list) and facet:
            trace_id = to_text(facet[0])
        elif facet is not None:
            trace_id = to_text(facet)
        if "trace.id" in row:
            trace_id = to_text(row["trace.id"])

        attributes: dict[str, Any] = {}
        if row.get("serviceName") is not None:
            attributes["service.name"] = to_text(row["serviceName"])
        if isinstance(row.get("spanCount"), (int, float)):
            attributes["span_count"] = int(row["spanCount"])

        duration_ms = row.get("maxDuration")
        return TraceSummary(
            trace_id=trace_id,
            start_time=parse_timestamp(row.get("startTime")),
            duration=float(duration_ms) / 1000 if isinstance(duration_ms, (int, float)) else 0.0,
            attributes=attributes,
        )

    @staticmethod
    def _to_log_entry(row: dict[str, Any]) -> LogEntry:
        return LogEntry(
            timestamp=parse_timestamp(row.get("timestamp")),
            trace_id=to_text(row.get("trace.id") or ""),
            span_id=to_text(row.get("span.id") or ""),
            message=to_text(row.get("message") or ""),
            attributes={k: v for k, v in row.items() if k not in _LOG_FIELD_KEYS},
        )
