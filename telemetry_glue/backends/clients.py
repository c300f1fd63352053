"""Lazy initialization for Google Cloud service clients."""

import threading
from typing import Any, TypeVar, cast

from google.cloud import trace_v1
from google.cloud.logging_v2.services.logging_service_v2 import LoggingServiceV2Client

T = TypeVar("T")

_clients: dict[str, Any] = {}
_lock = threading.Lock()


def _get_client(name: str, client_class: type[T]) -> T:
    """Helper for thread-safe lazy initialization of clients.

    Args:
        name: Unique name/key for the client instance.
        client_class: The client class to instantiate.

    Returns:
        The initialized client instance.
    """
    if name not in _clients:
        with _lock:
            if name not in _clients:
                _clients[name] = client_class()
    return cast(T, _clients[name])


def get_trace_client() -> trace_v1.TraceServiceClient:
    """Returns a singleton Cloud Trace client."""
    return _get_client("trace", trace_v1.TraceServiceClient)


def get_logging_client() -> LoggingServiceV2Client:
    """Returns a singleton Cloud Logging client."""
    return _get_client("logging", LoggingServiceV2Client)


def reset_clients() -> None:
    """Drops cached clients (used by tests)."""
    with _lock:
        _clients.clear()
