"""Aggregates piped telemetry documents into one CombinedData.

Input is either a single JSON object or newline-delimited JSON objects. Each
object may carry any subset of the keys ``spans``, ``logs``, ``traces`` and
``values``; every present key is decoded into canonical records and appended
in document order. A malformed line aborts the whole read.
"""

import json
import logging
from typing import IO, Any

from pydantic import TypeAdapter, ValidationError

from .exceptions import AggregationParseError
from .schema import CombinedData, LogEntry, Span, TraceSummary, Value

logger = logging.getLogger(__name__)

_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "spans": TypeAdapter(list[Span]),
    "logs": TypeAdapter(list[LogEntry]),
    "traces": TypeAdapter(list[TraceSummary]),
    "values": TypeAdapter(list[Value]),
}


class DataAggregator:
    """Accumulates canonical records from one or more JSON documents."""

    def __init__(self) -> None:
        self._records: dict[str, list[Any]] = {kind: [] for kind in _ADAPTERS}

    def read(self, buffer: bytes | str) -> None:
        """Parses ``buffer`` and appends its records.

        Empty or whitespace-only input contributes nothing and is not an error.
        Nothing is appended unless every line decodes.

        Raises:
            AggregationParseError: A line (or the whole document) is not a JSON
                object, or a section cannot be decoded.
        """
        if isinstance(buffer, bytes):
            try:
                buffer = buffer.decode("utf-8")
            except UnicodeDecodeError as e:
                raise AggregationParseError(f"Input is not valid UTF-8: {e}") from e

        text = buffer.strip()
        if not text:
            return

        try:
            document = json.loads(text)
        except json.JSONDecodeError:
            document = None
        if document is not None:
            self.add_document(document)
            return

        pending: list[dict[str, list[Any]]] = []
        for line_no, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                document = json.loads(line)
            except json.JSONDecodeError as e:
                raise AggregationParseError(
                    f"Failed to parse JSON line: {e.msg}", line=line_no
                ) from e
            try:
                pending.append(self._decode(document))
            except AggregationParseError as e:
                raise e.add_context(line=line_no)

        for decoded in pending:
            self._append(decoded)

    def read_stream(self, stream: IO[Any]) -> None:
        """Reads ``stream`` to the end and aggregates its content."""
        self.read(stream.read())

    def add_document(self, document: Any) -> None:
        """Merges one already-parsed JSON document."""
        self._append(self._decode(document))

    @staticmethod
    def _decode(document: Any) -> dict[str, list[Any]]:
        if not isinstance(document, dict):
            raise AggregationParseError(
                f"Expected a JSON object, got {type(document).__name__}"
            )

        decoded: dict[str, list[Any]] = {}
        for kind, adapter in _ADAPTERS.items():
            if kind not in document:
                continue
            section = document[kind]
            if section is None:
                continue
            try:
                decoded[kind] = adapter.validate_python(section)
            except ValidationError as e:
                raise AggregationParseError(
                    f"Failed to decode '{kind}': {e.error_count()} validation error(s)",
                    section=kind,
                ) from e
        return decoded

    def _append(self, decoded: dict[str, list[Any]]) -> None:
        for kind, records in decoded.items():
            self._records[kind].extend(records)
            logger.debug(f"Aggregated {len(records)} {kind}")

    def combined(self) -> CombinedData:
        """Snapshot of everything aggregated so far."""
        return CombinedData(
            spans=list(self._records["spans"]),
            logs=list(self._records["logs"]),
            traces=list(self._records["traces"]),
            values=list(self._records["values"]),
        )


def aggregate(buffer: bytes | str) -> CombinedData:
    """One-shot helper: aggregate ``buffer`` into a fresh CombinedData."""
    aggregator = DataAggregator()
    aggregator.read(buffer)
    return aggregator.combined()
