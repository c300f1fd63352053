"""Observability backend adapters."""

from .base import Backend, leading_literal, matches_wildcard, relative_minutes, wildcard_to_like
from .factory import create_backend, supported_backends
from .gcp import GcpBackend
from .newrelic import NewRelicBackend

__all__ = [
    "Backend",
    "GcpBackend",
    "NewRelicBackend",
    "create_backend",
    "leading_literal",
    "matches_wildcard",
    "relative_minutes",
    "supported_backends",
    "wildcard_to_like",
]
