"""Exceptions raised by telemetry-glue.

Every error carries a ``context`` mapping with the offending parameter and the
operation that failed, so an outer layer (CLI, bot) can build an actionable
message and pick a non-zero exit code without parsing strings.

Hierarchy:
    TelemetryGlueError
    ├── MissingCredentialError
    │   └── InvalidCredentialError
    ├── InvalidTimeRangeError
    ├── UnsupportedAnalysisKindError
    ├── UnsupportedLanguageError
    ├── UnsupportedFormatError
    ├── UnsupportedBackendError
    ├── QueryExecutionError
    ├── ResponseShapeError
    ├── AggregationParseError
    └── GenerationError
        ├── BlockedPromptError
        ├── BlockedResponseError
        ├── EmptyResponseError
        ├── TransportError
        └── GenerationCancelledError
"""

from typing import Any


class TelemetryGlueError(Exception):
    """Base class for all telemetry-glue errors.

    Attributes:
        message: Human-readable error description.
        context: Structured details (e.g. ``parameter``, ``operation``, ``backend``).
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context)

    def add_context(self, **context: Any) -> "TelemetryGlueError":
        """Adds context without overwriting keys set closer to the failure."""
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class MissingCredentialError(TelemetryGlueError):
    """A required secret or identifier is absent at adapter/provider construction."""


class InvalidCredentialError(MissingCredentialError):
    """A credential is present but malformed (e.g. a non-numeric account id)."""


class InvalidTimeRangeError(TelemetryGlueError):
    """A time window whose start does not precede its end."""


class UnsupportedAnalysisKindError(TelemetryGlueError):
    """Analysis kind outside the closed set {duration, error}."""


class UnsupportedLanguageError(TelemetryGlueError):
    """Output language without an instruction block."""


class UnsupportedFormatError(TelemetryGlueError):
    """Output format not supported for the data shape being emitted."""


class UnsupportedBackendError(TelemetryGlueError):
    """Unknown backend or generation provider name."""


class QueryExecutionError(TelemetryGlueError):
    """Transport or vendor-side failure while executing a backend query."""


class ResponseShapeError(TelemetryGlueError):
    """Vendor payload does not match the nested shape expected for parsing."""


class AggregationParseError(TelemetryGlueError):
    """Piped input could not be parsed into canonical records."""


class GenerationError(TelemetryGlueError):
    """Base class for text-generation failures."""


class BlockedPromptError(GenerationError):
    """The prompt was flagged before generation started."""


class BlockedResponseError(GenerationError):
    """The sole candidate was withheld for safety reasons."""


class EmptyResponseError(GenerationError):
    """Generation finished without any extractable text."""


class TransportError(GenerationError):
    """Network or authentication failure talking to the generation service."""


class GenerationCancelledError(GenerationError):
    """The caller cancelled an in-flight generation."""


__all__ = [
    "AggregationParseError",
    "BlockedPromptError",
    "BlockedResponseError",
    "EmptyResponseError",
    "GenerationCancelledError",
    "GenerationError",
    "InvalidCredentialError",
    "InvalidTimeRangeError",
    "MissingCredentialError",
    "QueryExecutionError",
    "ResponseShapeError",
    "TelemetryGlueError",
    "TransportError",
    "UnsupportedAnalysisKindError",
    "UnsupportedBackendError",
    "UnsupportedFormatError",
    "UnsupportedLanguageError",
]
