"""Canonical telemetry model shared by every backend adapter.

This module defines:
- The canonical records (Span, LogEntry, TraceSummary, Value)
- The per-operation requests and results exchanged with backend adapters
- CombinedData, the per-run accumulator consumed by the prompt generator
- AnalysisResult, the packaged output of an analysis

Vendor-shaped payloads never leave the adapter boundary; everything past it
speaks these types. The pipe wire format is the JSON produced by
``CombinedData.to_wire()`` and the ``to_wire()`` of each result.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidTimeRangeError

# One unit of work in a trace. Keys are vendor-defined; adapters guarantee
# "id" and "timestamp" (epoch milliseconds).
Span: TypeAlias = dict[str, Any]

# Unit returned by attribute-value search.
Value: TypeAlias = str

SPAN_ID_KEY = "id"
SPAN_TIMESTAMP_KEY = "timestamp"

_RELATIVE_RE = re.compile(r"^(\d+)\s*([smhdw])$")
_RELATIVE_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}
_ABSOLUTE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def utcnow() -> datetime:
    """Returns the current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parses an epoch-millisecond number or an ISO-8601 string.

    Returns None for anything that cannot be interpreted as a point in time.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str) and value:
        try:
            return ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def _parse_absolute(text: str) -> datetime:
    try:
        return ensure_aware(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in _ABSOLUTE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise InvalidTimeRangeError(
        f"Unable to parse time '{text}'. Supported formats: RFC3339 "
        "(2024-01-15T10:00:00Z), ISO8601 (2024-01-15T10:00:00), date only (2024-01-15)",
        parameter="time_range",
        value=text,
    )


@dataclass(frozen=True)
class TimeRange:
    """Absolute query window. ``start`` must precede ``end``."""

    start: datetime
    end: datetime

    def validate(self) -> "TimeRange":
        """Raises InvalidTimeRangeError unless start < end."""
        if ensure_aware(self.start) >= ensure_aware(self.end):
            raise InvalidTimeRangeError(
                f"Start time ({self.start.isoformat()}) must be before end time "
                f"({self.end.isoformat()})",
                parameter="time_range",
            )
        return self

    @classmethod
    def last(cls, duration: timedelta, now: datetime | None = None) -> "TimeRange":
        """Window ending now and spanning ``duration``."""
        end = now or utcnow()
        return cls(start=end - duration, end=end)

    @classmethod
    def parse(cls, text: str | None, now: datetime | None = None) -> "TimeRange":
        """Parses ``'from,to'``, a relative duration (``30m``, ``2h``, ``7d``), or empty.

        An empty value means the last hour.
        """
        text = (text or "").strip()
        if not text:
            return cls.last(timedelta(hours=1), now)

        match = _RELATIVE_RE.match(text)
        if match:
            amount, unit = match.groups()
            return cls.last(timedelta(**{_RELATIVE_UNITS[unit]: int(amount)}), now)

        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 2:
            raise InvalidTimeRangeError(
                f"Time range must be in format 'from,to', got: {text}",
                parameter="time_range",
                value=text,
            )
        return cls(start=_parse_absolute(parts[0]), end=_parse_absolute(parts[1])).validate()


class AnalysisType(str, Enum):
    """Closed set of analysis kinds."""

    DURATION = "duration"
    ERROR = "error"


class LogEntry(BaseModel):
    """A single log record correlated (optionally) with a trace and span."""

    model_config = ConfigDict(extra="ignore")

    timestamp: datetime | None = Field(default=None, description="When the log was emitted")
    trace_id: str = Field(default="", description="Correlated trace identifier")
    span_id: str = Field(default="", description="Correlated span identifier")
    message: str = Field(default="", description="Log message text")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Open attribute mapping")


class TraceSummary(BaseModel):
    """Summary of one trace as returned by top-traces queries.

    ``duration`` is expressed in seconds (wire key ``duration_seconds``).
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    trace_id: str = Field(description="Unique trace identifier")
    start_time: datetime | None = Field(default=None, description="Trace start time")
    duration: float = Field(
        default=0.0, alias="duration_seconds", description="Trace duration in seconds"
    )
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="e.g. service.name, span_count"
    )

    @property
    def end_time(self) -> datetime | None:
        if self.start_time is None:
            return None
        return self.start_time + timedelta(seconds=self.duration)


# ============================================================================
# Backend requests
# ============================================================================


@dataclass(frozen=True)
class SearchValuesRequest:
    attribute: str  # e.g. "http.path"
    query: str  # e.g. "*user*"
    time_range: TimeRange


@dataclass(frozen=True)
class TopTracesRequest:
    attribute: str
    value: str  # exact match
    time_range: TimeRange
    limit: int = 10


@dataclass(frozen=True)
class ListSpansRequest:
    trace_id: str
    time_range: TimeRange
    limit: int | None = None


@dataclass(frozen=True)
class ListLogsRequest:
    trace_id: str
    time_range: TimeRange
    limit: int | None = None


# ============================================================================
# Backend results
# ============================================================================


class _WireModel(BaseModel):
    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict using wire key names."""
        return self.model_dump(mode="json", by_alias=True)


class SearchValuesResult(_WireModel):
    values: list[Value] = Field(default_factory=list)
    web_link: str = ""


class TopTracesResult(_WireModel):
    traces: list[TraceSummary] = Field(default_factory=list)
    web_link: str = ""


class SpansResult(_WireModel):
    spans: list[Span] = Field(default_factory=list)
    web_link: str = ""


class LogsResult(_WireModel):
    logs: list[LogEntry] = Field(default_factory=list)
    web_link: str = ""


BackendResult: TypeAlias = SearchValuesResult | TopTracesResult | SpansResult | LogsResult


# ============================================================================
# Combined data
# ============================================================================


class CombinedData(_WireModel):
    """Per-run accumulator of spans, logs, traces and values.

    Lists keep insertion order across merges; nothing is de-duplicated.
    """

    spans: list[Span] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)
    traces: list[TraceSummary] = Field(default_factory=list)
    values: list[Value] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.spans or self.logs or self.traces or self.values)

    def summary(self) -> str:
        """Short volume description, e.g. ``"3 spans, 2 logs"``."""
        parts = []
        if self.spans:
            parts.append(f"{len(self.spans)} spans")
        if self.logs:
            parts.append(f"{len(self.logs)} logs")
        if self.traces:
            parts.append(f"{len(self.traces)} traces")
        if self.values:
            parts.append(f"{len(self.values)} values")
        if not parts:
            return "no data"
        return ", ".join(parts)

    def time_range(self) -> tuple[datetime | None, datetime | None]:
        """Earliest and latest instants across all timestamped records.

        Returns ``(None, None)`` when no record carries a usable timestamp.
        """
        instants: list[datetime] = []

        for span in self.spans:
            ts = parse_timestamp(span.get(SPAN_TIMESTAMP_KEY))
            if ts is not None:
                instants.append(ts)

        for log in self.logs:
            if log.timestamp is not None:
                instants.append(ensure_aware(log.timestamp))

        for trace in self.traces:
            if trace.start_time is not None:
                instants.append(ensure_aware(trace.start_time))
                instants.append(ensure_aware(trace.end_time))  # type: ignore[arg-type]

        if not instants:
            return None, None
        return min(instants), max(instants)

    def copy_with(self, **extra: list[Any]) -> "CombinedData":
        """Returns a new CombinedData with ``extra`` records appended per kind."""
        return CombinedData(
            spans=[*self.spans, *extra.get("spans", [])],
            logs=[*self.logs, *extra.get("logs", [])],
            traces=[*self.traces, *extra.get("traces", [])],
            values=[*self.values, *extra.get("values", [])],
        )


class AnalysisResult(_WireModel):
    """Packaged output of one analysis run."""

    analysis_type: AnalysisType
    summary: str = Field(description="Input volume summary")
    content: str = Field(description="Generated report text")
    provider: str
    model: str
