import pytest

from telemetry_glue.exceptions import (
    BlockedPromptError,
    GenerationError,
    InvalidCredentialError,
    MissingCredentialError,
    QueryExecutionError,
    TelemetryGlueError,
)


def test_str_includes_context():
    err = QueryExecutionError("NerdGraph returned HTTP 401", backend="newrelic", status_code=401)

    assert err.message == "NerdGraph returned HTTP 401"
    assert str(err) == "NerdGraph returned HTTP 401 (backend=newrelic, status_code=401)"


def test_str_without_context():
    assert str(TelemetryGlueError("boom")) == "boom"


def test_add_context_keeps_inner_values():
    err = QueryExecutionError("failed", operation="list_spans")

    returned = err.add_context(operation="analyze", provider="gemini")

    assert returned is err
    assert err.context == {"operation": "list_spans", "provider": "gemini"}


@pytest.mark.parametrize(
    "error, base",
    [
        (InvalidCredentialError("bad account id"), MissingCredentialError),
        (BlockedPromptError("blocked"), GenerationError),
        (GenerationError("failed"), TelemetryGlueError),
    ],
)
def test_hierarchy(error, base):
    assert isinstance(error, base)
