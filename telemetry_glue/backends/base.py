"""Backend adapter contract and the helpers shared by vendor adapters."""

import math
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from ..schema import (
    ListLogsRequest,
    ListSpansRequest,
    LogsResult,
    SearchValuesRequest,
    SearchValuesResult,
    SpansResult,
    TimeRange,
    TopTracesRequest,
    TopTracesResult,
    TraceSummary,
    ensure_aware,
    utcnow,
)

WILDCARD = "*"

Clock = Callable[[], datetime]

# Sort key for records whose timestamp cannot be parsed
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class Backend(ABC):
    """One observability vendor behind the four canonical queries.

    Every operation validates the request window before touching the network
    and returns canonical records plus a console deep link.
    """

    name: str = ""

    @abstractmethod
    def search_values(self, req: SearchValuesRequest) -> SearchValuesResult:
        """Distinct values of ``req.attribute`` matching the wildcard ``req.query``."""

    @abstractmethod
    def top_traces(self, req: TopTracesRequest) -> TopTracesResult:
        """Longest traces where ``req.attribute == req.value``, longest first."""

    @abstractmethod
    def list_spans(self, req: ListSpansRequest) -> SpansResult:
        """Spans of one trace, ordered by start timestamp ascending."""

    @abstractmethod
    def list_logs(self, req: ListLogsRequest) -> LogsResult:
        """Logs correlated with one trace, newest first."""

    def close(self) -> None:
        """Releases transport resources held by the adapter."""


# ============================================================================
# Wildcard patterns
# ============================================================================


def wildcard_to_like(pattern: str) -> str:
    """Translates ``*`` placeholders into a SQL LIKE pattern.

    Anchors are preserved: ``user*`` stays a prefix match and ``*user`` a
    suffix match. Single quotes are doubled for embedding in a quoted literal.
    """
    return escape_literal(pattern).replace(WILDCARD, "%")


def wildcard_to_regex(pattern: str) -> re.Pattern[str]:
    """Compiles a wildcard pattern into an anchored regular expression."""
    parts = [re.escape(part) for part in pattern.split(WILDCARD)]
    return re.compile("^" + ".*".join(parts) + "$", re.DOTALL)


def matches_wildcard(pattern: str, value: str) -> bool:
    return wildcard_to_regex(pattern).match(value) is not None


def leading_literal(pattern: str) -> str:
    """Text before the first ``*`` (the whole pattern when it has none)."""
    return pattern.split(WILDCARD, 1)[0]


def escape_literal(value: str) -> str:
    """Escapes a value for a single-quoted query literal."""
    return value.replace("'", "''")


# ============================================================================
# Result shaping
# ============================================================================


def unique_in_order(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def rank_by_duration(traces: list[TraceSummary], limit: int) -> list[TraceSummary]:
    """Longest first, capped at ``limit``.

    ``sorted`` is stable, so equal durations keep the vendor's order.
    """
    ranked = sorted(traces, key=lambda t: t.duration, reverse=True)
    return ranked[: max(limit, 0)]


def relative_minutes(time_range: TimeRange, now: datetime | None = None) -> tuple[int, int]:
    """Expresses an absolute window as whole minutes before ``now``.

    Returns ``(since, until)`` for ``SINCE <since> minutes ago UNTIL <until>
    minutes ago``. Both bounds are rounded outward, so the relative window
    always covers the absolute one. The result depends on the wall clock at
    call time: two calls for the same absolute window can produce different
    queries.
    """
    now = ensure_aware(now or utcnow())
    since = math.ceil((now - ensure_aware(time_range.start)).total_seconds() / 60)
    until = math.floor((now - ensure_aware(time_range.end)).total_seconds() / 60)
    return max(since, 0), max(until, 0)
