"""Builds backend adapters by name from explicit configuration."""

import logging
from collections.abc import Callable
from typing import Any

from ..config import GcpConfig, NewRelicConfig
from ..exceptions import UnsupportedBackendError
from .base import Backend
from .gcp import GcpBackend
from .newrelic import NewRelicBackend

logger = logging.getLogger(__name__)

_BUILDERS: dict[str, tuple[type, Callable[..., Backend]]] = {
    NewRelicBackend.name: (NewRelicConfig, NewRelicBackend),
    GcpBackend.name: (GcpConfig, GcpBackend),
}


def supported_backends() -> list[str]:
    """Names accepted by :func:`create_backend`."""
    return sorted(_BUILDERS)


def create_backend(name: str, config: Any, **kwargs: Any) -> Backend:
    """Creates the adapter registered under ``name``.

    Args:
        name: Backend name (``newrelic`` or ``gcp``).
        config: The matching config object (``NewRelicConfig`` or ``GcpConfig``).
        **kwargs: Passed through to the adapter (injected clients, clock).

    Raises:
        UnsupportedBackendError: Unknown name, or a config of the wrong type.
    """
    key = name.lower()
    if key not in _BUILDERS:
        raise UnsupportedBackendError(
            f"Unsupported backend '{name}'. Supported: {', '.join(supported_backends())}",
            parameter="backend",
            value=name,
        )

    config_type, builder = _BUILDERS[key]
    if not isinstance(config, config_type):
        raise UnsupportedBackendError(
            f"Backend '{key}' requires {config_type.__name__}, got {type(config).__name__}",
            parameter="config",
            backend=key,
        )

    logger.debug(f"Creating backend '{key}'")
    return builder(config, **kwargs)
