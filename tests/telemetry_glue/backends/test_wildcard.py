from datetime import datetime, timedelta

import pytest

from telemetry_glue.backends.base import (
    leading_literal,
    matches_wildcard,
    rank_by_duration,
    relative_minutes,
    unique_in_order,
    wildcard_to_like,
)
from telemetry_glue.schema import TimeRange, TraceSummary
from tests.fixtures.telemetry_data import FIXED_NOW


@pytest.mark.parametrize(
    "pattern, expected",
    [
        ("*user*", "%user%"),
        ("user*", "user%"),
        ("*user", "%user"),
        ("*", "%"),
        ("/api/v1", "/api/v1"),
        ("it's*", "it''s%"),
    ],
)
def test_wildcard_to_like(pattern, expected):
    assert wildcard_to_like(pattern) == expected


@pytest.mark.parametrize(
    "pattern, value, expected",
    [
        ("*", "anything at all", True),
        ("*", "", True),
        ("*user*", "/api/users", True),
        ("*user*", "/health", False),
        ("user*", "/api/users", False),
        ("*users", "/api/users", True),
        ("/api/*", "/api/orders/1", True),
        ("a.c", "abc", False),
        ("exact", "exact", True),
    ],
)
def test_matches_wildcard(pattern, value, expected):
    assert matches_wildcard(pattern, value) is expected


def test_leading_literal():
    assert leading_literal("/api/*/items") == "/api/"
    assert leading_literal("*user") == ""
    assert leading_literal("plain") == "plain"


def test_unique_in_order():
    assert unique_in_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


class TestRankByDuration:
    def test_descending_and_capped(self):
        traces = [TraceSummary(trace_id=t, duration=d) for t, d in [("a", 1), ("b", 3), ("c", 2)]]
        assert [t.trace_id for t in rank_by_duration(traces, 2)] == ["b", "c"]

    def test_ties_keep_input_order(self):
        traces = [TraceSummary(trace_id=t, duration=1.0) for t in ("x", "y", "z")]
        assert [t.trace_id for t in rank_by_duration(traces, 10)] == ["x", "y", "z"]

    def test_zero_limit(self):
        assert rank_by_duration([TraceSummary(trace_id="a", duration=1)], 0) == []


class TestRelativeMinutes:
    def test_last_hour(self):
        window = TimeRange(start=FIXED_NOW - timedelta(hours=1), end=FIXED_NOW)
        assert relative_minutes(window, FIXED_NOW) == (60, 0)

    def test_rounds_outward(self):
        window = TimeRange(
            start=FIXED_NOW - timedelta(minutes=10, seconds=30),
            end=FIXED_NOW - timedelta(minutes=2, seconds=30),
        )
        assert relative_minutes(window, FIXED_NOW) == (11, 2)

    def test_future_end_clamped(self):
        window = TimeRange(start=FIXED_NOW - timedelta(minutes=5), end=FIXED_NOW + timedelta(minutes=5))
        assert relative_minutes(window, FIXED_NOW) == (5, 0)

    def test_naive_datetimes_treated_as_utc(self):
        naive_now = datetime(2024, 1, 15, 12, 0, 0)
        window = TimeRange(start=naive_now - timedelta(minutes=30), end=naive_now)
        assert relative_minutes(window, FIXED_NOW) == (30, 0)
