"""Pipeline passthrough: lets chained invocations accumulate telemetry.

Each stage reads whatever an earlier stage wrote to its stdin, appends its own
result and writes either its native output (first stage) or the merged
superset (later stages). Example::

    telemetry-glue newrelic spans --trace-id abc --format json \\
        | telemetry-glue gcp logs --trace-id abc --format json \\
        | telemetry-glue analyze --type error
"""

import logging
import sys
from collections.abc import Callable
from typing import IO, Any

from .aggregator import DataAggregator
from .output import OutputFormat, render
from .schema import (
    BackendResult,
    CombinedData,
    LogsResult,
    SearchValuesResult,
    SpansResult,
    TopTracesResult,
)

logger = logging.getLogger(__name__)


def _is_interactive(stream: IO[Any]) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty()) if isatty else False
    except ValueError:
        # Closed stream
        return True


class PassthroughHandler:
    """Reads upstream pipe data, merges the current result and emits it."""

    def __init__(self, stdin: IO[Any] | None = None, stdout: IO[str] | None = None) -> None:
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout

    def read_upstream(self) -> CombinedData:
        """Aggregates upstream data; empty when stdin is a terminal or blank."""
        if _is_interactive(self.stdin):
            return CombinedData()

        aggregator = DataAggregator()
        aggregator.read_stream(self.stdin)
        upstream = aggregator.combined()
        logger.debug(f"Upstream data: {upstream.summary()}")
        return upstream

    @staticmethod
    def merge(upstream: CombinedData, result: BackendResult) -> CombinedData:
        """New CombinedData with ``result``'s records appended. Nothing is de-duplicated."""
        if isinstance(result, SpansResult):
            return upstream.copy_with(spans=result.spans)
        if isinstance(result, LogsResult):
            return upstream.copy_with(logs=result.logs)
        if isinstance(result, TopTracesResult):
            return upstream.copy_with(traces=result.traces)
        if isinstance(result, SearchValuesResult):
            return upstream.copy_with(values=result.values)
        raise TypeError(f"Unsupported result type: {type(result).__name__}")

    def emit(
        self, upstream: CombinedData, result: BackendResult, fmt: str | OutputFormat
    ) -> str:
        """Writes the native result (no upstream data) or the merged superset.

        The choice depends on whether upstream carried data, not on whether the
        merged set is empty, so an empty result after a non-empty stage still
        forwards the upstream records.

        Raises:
            UnsupportedFormatError: csv requested while upstream data is present.
        """
        if upstream.is_empty():
            text = render(result, fmt)
        else:
            merged = self.merge(upstream, result)
            logger.info(f"Forwarding merged data: {merged.summary()}")
            text = render(merged, fmt)

        self.stdout.write(text)
        self.stdout.flush()
        return text

    def run(self, fetch: Callable[[], BackendResult], fmt: str | OutputFormat) -> str:
        """Reads upstream, calls ``fetch`` for this stage's result and emits."""
        output_format = OutputFormat.parse(fmt)
        upstream = self.read_upstream()
        result = fetch()
        return self.emit(upstream, result, output_format)
