"""Shared test fixtures for telemetry-glue tests."""

from collections.abc import Callable
from datetime import timedelta
from typing import Any

import httpx
import pytest

from telemetry_glue.config import NewRelicConfig
from telemetry_glue.schema import CombinedData, LogEntry, TimeRange, TraceSummary
from tests.fixtures.telemetry_data import (
    FIXED_NOW,
    RecordingTransport,
    epoch_ms,
    nerdgraph_body,
)


# ============================================================================
# Time Fixtures
# ============================================================================


@pytest.fixture
def time_range() -> TimeRange:
    """The hour before FIXED_NOW."""
    return TimeRange(start=FIXED_NOW - timedelta(hours=1), end=FIXED_NOW)


@pytest.fixture
def inverted_range() -> TimeRange:
    return TimeRange(start=FIXED_NOW, end=FIXED_NOW - timedelta(hours=1))


# ============================================================================
# New Relic Fixtures
# ============================================================================


@pytest.fixture
def newrelic_config() -> NewRelicConfig:
    return NewRelicConfig(api_key="NRAK-TEST", account_id="1234567")


@pytest.fixture
def nerdgraph() -> Callable[[list[dict[str, Any]]], RecordingTransport]:
    """Factory for a transport answering every query with the given rows."""

    def _make(results: list[dict[str, Any]]) -> RecordingTransport:
        return RecordingTransport(lambda request: httpx.Response(200, json=nerdgraph_body(results)))

    return _make


# ============================================================================
# Telemetry Fixtures
# ============================================================================


@pytest.fixture
def sample_spans() -> list[dict[str, Any]]:
    """Three spans of one checkout trace, the last one failing."""
    trace_id = "4bf92f3577b34da6a3ce929d0e0e4736"
    base = epoch_ms(FIXED_NOW - timedelta(minutes=30))
    return [
        {
            "id": "a1",
            "trace.id": trace_id,
            "name": "GET /checkout",
            "timestamp": base,
            "duration.ms": 850.0,
            "service.name": "frontend",
            "http.status_code": 500,
        },
        {
            "id": "b2",
            "trace.id": trace_id,
            "parent.id": "a1",
            "name": "SELECT orders",
            "timestamp": base + 10,
            "duration.ms": 780.5,
            "service.name": "orders-db",
        },
        {
            "id": "c3",
            "trace.id": trace_id,
            "parent.id": "a1",
            "name": "charge",
            "timestamp": base + 800,
            "duration.ms": 40.0,
            "service.name": "payments",
            "error": True,
            "error.message": "card declined",
        },
    ]


@pytest.fixture
def sample_logs() -> list[LogEntry]:
    base = FIXED_NOW - timedelta(minutes=30)
    return [
        LogEntry(
            timestamp=base + timedelta(seconds=1),
            trace_id="4bf92f3577b34da6a3ce929d0e0e4736",
            span_id="c3",
            message="Payment failed: card declined",
            attributes={"severity": "ERROR"},
        ),
        LogEntry(
            timestamp=base,
            trace_id="4bf92f3577b34da6a3ce929d0e0e4736",
            message="Checkout started",
            attributes={"severity": "INFO"},
        ),
    ]


@pytest.fixture
def sample_combined(sample_spans, sample_logs) -> CombinedData:
    return CombinedData(
        spans=sample_spans,
        logs=sample_logs,
        traces=[
            TraceSummary(
                trace_id="4bf92f3577b34da6a3ce929d0e0e4736",
                start_time=FIXED_NOW - timedelta(minutes=30),
                duration=0.85,
            )
        ],
        values=["/checkout"],
    )
