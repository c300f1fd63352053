import json
from datetime import timedelta

import pytest

from telemetry_glue.exceptions import UnsupportedFormatError
from telemetry_glue.output import OutputFormat, render, to_csv, to_table, truncate
from telemetry_glue.schema import (
    CombinedData,
    LogEntry,
    LogsResult,
    SearchValuesResult,
    SpansResult,
    TopTracesResult,
    TraceSummary,
)
from tests.fixtures.telemetry_data import FIXED_NOW


class TestOutputFormat:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("json", OutputFormat.JSON),
            ("CSV", OutputFormat.CSV),
            ("", OutputFormat.TABLE),
            (None, OutputFormat.TABLE),
            (OutputFormat.JSON, OutputFormat.JSON),
        ],
    )
    def test_parse(self, value, expected):
        assert OutputFormat.parse(value) is expected

    def test_parse_unknown(self):
        with pytest.raises(UnsupportedFormatError, match="supported: json, csv, table"):
            OutputFormat.parse("yaml")


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("a" * 20, 10) == "aaaaaaa..."


class TestTable:
    def test_values(self):
        result = SearchValuesResult(values=["/api/users", "/health"], web_link="https://x")
        assert to_table(result) == (
            "Found 2 unique values:\n  /api/users\n  /health\n\nView in UI: https://x\n"
        )

    def test_traces(self):
        result = TopTracesResult(
            traces=[TraceSummary(trace_id="abc", start_time=FIXED_NOW, duration=0.2)]
        )
        assert to_table(result) == "Top 1 traces:\n1. abc (2024-01-15 12:00:00) - 0.200s\n"

    def test_spans(self, sample_spans):
        text = to_table(SpansResult(spans=sample_spans[:1]))
        lines = text.splitlines()

        assert lines[0] == "Found 1 spans:"
        assert lines[2] == "=== Span 1 ==="
        assert f"  {'duration.ms':<30}: 850.000 ms" in lines
        assert f"  {'http.status_code':<30}: 500" in lines
        assert any(line.startswith(f"  {'timestamp':<30}: ") for line in lines)
        assert "(2024-01-15 11:30:00)" in text

    def test_no_spans(self):
        assert to_table(SpansResult()) == "Found 0 spans:\n\nNo spans found.\n"

    def test_long_span_values_truncated(self):
        text = to_table(SpansResult(spans=[{"id": "1", "timestamp": 0, "sql": "x" * 500}]))
        sql_line = next(line for line in text.splitlines() if line.strip().startswith("sql"))
        assert sql_line.endswith("x...")
        assert len(sql_line.split(": ", 1)[1]) == 100

    def test_logs(self):
        result = LogsResult(
            logs=[LogEntry(timestamp=FIXED_NOW + timedelta(milliseconds=5), message="m" * 200)]
        )
        lines = to_table(result).splitlines()
        assert lines[0] == "Found 1 log entries:"
        assert lines[1].startswith("  2024-01-15 12:00:00.005: ")
        assert lines[1].endswith("...")

    def test_combined(self, sample_combined):
        assert to_table(sample_combined) == (
            "Combined telemetry data:\n- Spans: 3\n- Logs: 2\n- Traces: 1\n- Values: 1\n"
        )


class TestCsv:
    def test_spans_use_fixed_columns(self, sample_spans):
        rows = to_csv(SpansResult(spans=sample_spans)).splitlines()
        assert rows[0] == (
            "span_id,trace_id,name,parent_id,timestamp,duration_ms,service_name,operation,resource"
        )
        assert rows[1].startswith("a1,4bf92f3577b34da6a3ce929d0e0e4736,GET /checkout,,")
        assert "2024-01-15T11:30:00+00:00,850.000,frontend,," in rows[1]

    def test_traces(self):
        result = TopTracesResult(
            traces=[TraceSummary(trace_id="abc", start_time=FIXED_NOW, duration=1.25)],
            web_link="https://ignored",
        )
        assert to_csv(result) == (
            "trace_id,start_time,duration_seconds\nabc,2024-01-15T12:00:00+00:00,1.250\n"
        )

    def test_values_quoted_when_needed(self):
        assert to_csv(SearchValuesResult(values=["a,b", "c"])) == 'value\n"a,b"\nc\n'


class TestRender:
    def test_json_uses_wire_keys(self):
        text = render(TopTracesResult(traces=[TraceSummary(trace_id="t", duration=2)]), "json")
        body = json.loads(text)
        assert body["traces"][0]["duration_seconds"] == 2.0
        assert body["web_link"] == ""

    def test_combined_json_has_all_keys(self):
        body = json.loads(render(CombinedData(values=["v"]), OutputFormat.JSON))
        assert body == {"spans": [], "logs": [], "traces": [], "values": ["v"]}

    def test_combined_csv_rejected(self, sample_combined):
        with pytest.raises(UnsupportedFormatError, match="not supported for merged data"):
            render(sample_combined, "csv")

    def test_single_stage_csv(self):
        assert render(SearchValuesResult(values=["x"]), "csv") == "value\nx\n"
