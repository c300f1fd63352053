import io
import json
from unittest.mock import MagicMock

import pytest

from telemetry_glue.exceptions import AggregationParseError, UnsupportedFormatError
from telemetry_glue.pipeline import PassthroughHandler
from telemetry_glue.schema import (
    CombinedData,
    LogsResult,
    SearchValuesResult,
    SpansResult,
    TopTracesResult,
    TraceSummary,
)


class TtyStream(io.StringIO):
    def isatty(self) -> bool:
        return True


def make_handler(upstream: str = "") -> tuple[PassthroughHandler, io.StringIO]:
    stdout = io.StringIO()
    return PassthroughHandler(stdin=io.StringIO(upstream), stdout=stdout), stdout


class TestReadUpstream:
    def test_terminal_stdin_is_not_read(self):
        stdin = TtyStream('{"values": ["should not be read"]}')
        handler = PassthroughHandler(stdin=stdin, stdout=io.StringIO())

        assert handler.read_upstream().is_empty()
        assert stdin.tell() == 0

    def test_blank_pipe(self):
        handler, _ = make_handler("\n")
        assert handler.read_upstream().is_empty()

    def test_piped_documents(self, sample_spans):
        handler, _ = make_handler(json.dumps({"spans": sample_spans}))
        assert len(handler.read_upstream().spans) == 3

    def test_malformed_pipe(self):
        handler, _ = make_handler("{broken\n")
        with pytest.raises(AggregationParseError):
            handler.read_upstream()


class TestMerge:
    def test_each_result_kind_appends_to_its_list(self, sample_spans, sample_logs):
        upstream = CombinedData(values=["v1"])

        assert PassthroughHandler.merge(upstream, SpansResult(spans=sample_spans)).spans == sample_spans
        assert PassthroughHandler.merge(upstream, LogsResult(logs=sample_logs)).logs == sample_logs
        merged = PassthroughHandler.merge(upstream, SearchValuesResult(values=["v1", "v2"]))
        assert merged.values == ["v1", "v1", "v2"]
        traces = [TraceSummary(trace_id="t")]
        assert PassthroughHandler.merge(upstream, TopTracesResult(traces=traces)).traces == traces

    def test_upstream_not_mutated(self):
        upstream = CombinedData(values=["v1"])
        PassthroughHandler.merge(upstream, SearchValuesResult(values=["v2"]))
        assert upstream.values == ["v1"]

    def test_unknown_result_type(self):
        with pytest.raises(TypeError):
            PassthroughHandler.merge(CombinedData(), MagicMock())


class TestRun:
    def test_first_stage_emits_native_output(self, sample_spans):
        handler, stdout = make_handler()

        text = handler.run(lambda: SpansResult(spans=sample_spans, web_link="https://x"), "json")

        body = json.loads(stdout.getvalue())
        assert text == stdout.getvalue()
        assert body["web_link"] == "https://x"
        assert set(body) == {"spans", "web_link"}

    def test_later_stage_emits_merged_superset(self, sample_spans, sample_logs):
        first_stage = json.dumps(SpansResult(spans=sample_spans, web_link="https://x").to_wire())
        handler, stdout = make_handler(first_stage + "\n")

        handler.run(lambda: LogsResult(logs=sample_logs), "json")

        body = json.loads(stdout.getvalue())
        assert set(body) == {"spans", "logs", "traces", "values"}
        assert len(body["spans"]) == 3
        assert len(body["logs"]) == 2

    def test_three_stage_chain(self, sample_spans, sample_logs):
        stage_one, out_one = make_handler()
        stage_one.run(lambda: SpansResult(spans=sample_spans), "json")

        stage_two, out_two = make_handler(out_one.getvalue())
        stage_two.run(lambda: LogsResult(logs=sample_logs), "json")

        stage_three, out_three = make_handler(out_two.getvalue())
        stage_three.run(lambda: SearchValuesResult(values=["/checkout"]), "table")

        assert out_three.getvalue() == (
            "Combined telemetry data:\n- Spans: 3\n- Logs: 2\n- Traces: 0\n- Values: 1\n"
        )

    def test_empty_result_still_forwards_upstream(self, sample_spans):
        handler, stdout = make_handler(json.dumps({"spans": sample_spans}))

        handler.run(lambda: LogsResult(), "json")

        assert len(json.loads(stdout.getvalue())["spans"]) == 3

    def test_csv_allowed_for_first_stage(self):
        handler, stdout = make_handler()
        handler.run(lambda: SearchValuesResult(values=["a"]), "csv")
        assert stdout.getvalue() == "value\na\n"

    def test_csv_rejected_with_upstream(self):
        handler, stdout = make_handler('{"values": ["a"]}')

        with pytest.raises(UnsupportedFormatError):
            handler.run(lambda: SearchValuesResult(values=["b"]), "csv")
        assert stdout.getvalue() == ""

    def test_bad_format_checked_before_fetch(self):
        handler, _ = make_handler()
        fetch = MagicMock()

        with pytest.raises(UnsupportedFormatError):
            handler.run(fetch, "xml")
        fetch.assert_not_called()
