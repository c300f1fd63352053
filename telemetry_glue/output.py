"""Rendering of single-stage results and merged pipe data."""

import csv
import io
import json
from datetime import datetime
from enum import Enum
from typing import Any

from .exceptions import UnsupportedFormatError
from .schema import (
    BackendResult,
    CombinedData,
    LogsResult,
    SearchValuesResult,
    SpansResult,
    TopTracesResult,
    parse_timestamp,
)

MAX_SPAN_VALUE_LENGTH = 100
MAX_LOG_MESSAGE_LENGTH = 80

SPAN_CSV_COLUMNS = (
    ("span_id", "id"),
    ("trace_id", "trace.id"),
    ("name", "name"),
    ("parent_id", "parent.id"),
    ("timestamp", "timestamp"),
    ("duration_ms", "duration.ms"),
    ("service_name", "service.name"),
    ("operation", "operation.name"),
    ("resource", "resource.name"),
)


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"

    @classmethod
    def parse(cls, value: "str | OutputFormat | None") -> "OutputFormat":
        """Accepts ``table``, ``json`` or ``csv`` (case-insensitive); empty means table."""
        if isinstance(value, OutputFormat):
            return value
        text = (value or "table").lower()
        try:
            return cls(text)
        except ValueError:
            raise UnsupportedFormatError(
                f"Unsupported format: {value} (supported: json, csv, table)",
                parameter="format",
                value=value,
            ) from None


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _fmt_time(dt: datetime | None, fmt: str) -> str:
    return dt.strftime(fmt) if dt else ""


def _iso(dt: datetime | None) -> str:
    return dt.isoformat() if dt else ""


def to_json(data: Any) -> str:
    """Indented JSON of a result or CombinedData, using wire key names."""
    return json.dumps(data.to_wire(), indent=2, ensure_ascii=False)


# ============================================================================
# Table
# ============================================================================


def _values_table(result: SearchValuesResult) -> list[str]:
    lines = [f"Found {len(result.values)} unique values:"]
    lines.extend(f"  {value}" for value in result.values)
    return lines


def _traces_table(result: TopTracesResult) -> list[str]:
    lines = [f"Top {len(result.traces)} traces:"]
    for i, trace in enumerate(result.traces, start=1):
        started = _fmt_time(trace.start_time, "%Y-%m-%d %H:%M:%S")
        lines.append(f"{i}. {trace.trace_id} ({started}) - {trace.duration:.3f}s")
    return lines


def _span_value(key: str, value: Any) -> str:
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif value is None:
        text = "<nil>"
    elif isinstance(value, (int, float)) and key == "timestamp":
        text = f"{value:.0f} ({_fmt_time(parse_timestamp(value), '%Y-%m-%d %H:%M:%S')})"
    elif isinstance(value, (int, float)) and key == "duration.ms":
        text = f"{value:.3f} ms"
    elif isinstance(value, float):
        text = f"{value:.6g}"
    else:
        text = str(value)
    return truncate(text, MAX_SPAN_VALUE_LENGTH)


def _spans_table(result: SpansResult) -> list[str]:
    lines = [f"Found {len(result.spans)} spans:", ""]
    if not result.spans:
        lines.append("No spans found.")
        return lines

    for i, span in enumerate(result.spans, start=1):
        if i > 1:
            lines.append("")
        lines.append(f"=== Span {i} ===")
        for key in sorted(span):
            lines.append(f"  {key:<30}: {_span_value(key, span[key])}")
    return lines


def _logs_table(result: LogsResult) -> list[str]:
    lines = [f"Found {len(result.logs)} log entries:"]
    for log in result.logs:
        ts = log.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3] if log.timestamp else ""
        lines.append(f"  {ts}: {truncate(log.message, MAX_LOG_MESSAGE_LENGTH)}")
    return lines


def _combined_table(data: CombinedData) -> list[str]:
    return [
        "Combined telemetry data:",
        f"- Spans: {len(data.spans)}",
        f"- Logs: {len(data.logs)}",
        f"- Traces: {len(data.traces)}",
        f"- Values: {len(data.values)}",
    ]


def to_table(data: BackendResult | CombinedData) -> str:
    if isinstance(data, CombinedData):
        return "\n".join(_combined_table(data)) + "\n"
    if isinstance(data, SearchValuesResult):
        lines = _values_table(data)
    elif isinstance(data, TopTracesResult):
        lines = _traces_table(data)
    elif isinstance(data, SpansResult):
        lines = _spans_table(data)
    else:
        lines = _logs_table(data)

    if data.web_link:
        lines.extend(["", f"View in UI: {data.web_link}"])
    return "\n".join(lines) + "\n"


# ============================================================================
# CSV
# ============================================================================


def _span_csv_cell(key: str, value: Any) -> str:
    if value is None:
        return ""
    if key == "timestamp":
        return _iso(parse_timestamp(value))
    if key == "duration.ms" and isinstance(value, (int, float)):
        return f"{value:.3f}"
    return str(value)


def to_csv(result: BackendResult) -> str:
    """CSV for one single-stage result. The web link is not part of the CSV."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")

    if isinstance(result, SearchValuesResult):
        writer.writerow(["value"])
        writer.writerows([value] for value in result.values)
    elif isinstance(result, TopTracesResult):
        writer.writerow(["trace_id", "start_time", "duration_seconds"])
        for trace in result.traces:
            writer.writerow([trace.trace_id, _iso(trace.start_time), f"{trace.duration:.3f}"])
    elif isinstance(result, SpansResult):
        writer.writerow([header for header, _ in SPAN_CSV_COLUMNS])
        for span in result.spans:
            writer.writerow([_span_csv_cell(key, span.get(key)) for _, key in SPAN_CSV_COLUMNS])
    elif isinstance(result, LogsResult):
        writer.writerow(["timestamp", "trace_id", "span_id", "message"])
        for log in result.logs:
            writer.writerow([_iso(log.timestamp), log.trace_id, log.span_id, log.message])
    else:
        raise UnsupportedFormatError(
            f"CSV output is not supported for {type(result).__name__}", parameter="format"
        )
    return buf.getvalue()


def render(data: BackendResult | CombinedData, fmt: "str | OutputFormat") -> str:
    """Renders ``data`` in ``fmt``.

    CombinedData supports only table and json.

    Raises:
        UnsupportedFormatError: Unknown format, or csv requested for CombinedData.
    """
    output_format = OutputFormat.parse(fmt)
    if output_format is OutputFormat.JSON:
        return to_json(data) + "\n"
    if output_format is OutputFormat.TABLE:
        return to_table(data)
    if isinstance(data, CombinedData):
        raise UnsupportedFormatError(
            "CSV format is not supported for merged data. Use --format json or --format table.",
            parameter="format",
            value=output_format.value,
        )
    return to_csv(data)
