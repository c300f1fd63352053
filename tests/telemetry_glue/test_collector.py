import logging
from unittest.mock import MagicMock

import pytest

from telemetry_glue.backends.base import Backend
from telemetry_glue.collector import TelemetryCollector
from telemetry_glue.exceptions import QueryExecutionError
from telemetry_glue.schema import LogsResult, SpansResult


def make_backend(name: str) -> MagicMock:
    backend = MagicMock(spec=Backend)
    backend.name = name
    return backend


class TestTelemetryCollector:
    def test_spans_and_logs(self, sample_spans, sample_logs, time_range):
        spans = make_backend("newrelic")
        spans.list_spans.return_value = SpansResult(spans=sample_spans)
        logs = make_backend("gcp")
        logs.list_logs.return_value = LogsResult(logs=sample_logs)

        data = TelemetryCollector(spans, logs).collect("t1", time_range, span_limit=50)

        assert data.spans == sample_spans
        assert data.logs == sample_logs
        request = spans.list_spans.call_args.args[0]
        assert request.trace_id == "t1"
        assert request.limit == 50
        assert logs.list_logs.call_args.args[0].time_range == time_range

    def test_log_failure_yields_zero_logs(self, sample_spans, time_range, caplog):
        spans = make_backend("newrelic")
        spans.list_spans.return_value = SpansResult(spans=sample_spans)
        logs = make_backend("gcp")
        logs.list_logs.side_effect = QueryExecutionError("permission denied")

        with caplog.at_level(logging.WARNING, logger="telemetry_glue.collector"):
            data = TelemetryCollector(spans, logs).collect("t1", time_range)

        assert len(data.spans) == 3
        assert data.logs == []
        assert "continuing without logs" in caplog.text

    def test_span_failure_propagates(self, time_range):
        spans = make_backend("newrelic")
        spans.list_spans.side_effect = QueryExecutionError("timeout")
        logs = make_backend("gcp")

        with pytest.raises(QueryExecutionError):
            TelemetryCollector(spans, logs).collect("t1", time_range)
        logs.list_logs.assert_not_called()

    def test_without_log_source(self, sample_spans, time_range):
        spans = make_backend("newrelic")
        spans.list_spans.return_value = SpansResult(spans=sample_spans)

        data = TelemetryCollector(spans).collect("t1", time_range)

        assert data.logs == []
        spans.list_logs.assert_not_called()
