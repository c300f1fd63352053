"""Prompt construction for duration and error analysis.

Section headers are fixed English text in every language; a non-default
language only appends an instruction block asking the model to write the
narrative in that language.
"""

import json
from typing import Any

from .exceptions import UnsupportedAnalysisKindError, UnsupportedLanguageError
from .schema import AnalysisType, CombinedData, LogEntry, Span

DEFAULT_LANGUAGE = "en"

DURATION_SECTIONS = (
    ("Performance Bottlenecks", "Identify the slowest operations and services"),
    ("Duration Outliers", "Analyze span durations and identify outliers"),
    ("Critical Path", "Identify the critical path through the system"),
    ("Resource Utilization", "Look for signs of resource contention or inefficiency"),
    ("Correlation with Logs", "Correlate performance issues with logs and error patterns"),
    ("Optimization Recommendations", "Provide specific, actionable recommendations"),
)

ERROR_SECTIONS = (
    ("Error Summary", "Summarize the errors found, grouped by type and service"),
    ("Root Cause Analysis", "Identify the most likely root cause of each error"),
    ("Error Propagation", "Trace how errors propagate between spans and services"),
    ("Impact Assessment", "Assess user-facing impact and affected operations"),
    ("Correlation with Logs", "Correlate failing spans with error logs and stack traces"),
    ("Remediation Recommendations", "Provide specific, actionable fixes"),
    ("Prevention", "Suggest monitoring, alerting or design changes to prevent recurrence"),
)

LANGUAGE_INSTRUCTIONS = {
    "ja": (
        "## Language Instructions\n"
        "Please write the analysis narrative in Japanese. Keep technical terms, metrics, "
        "identifiers and code snippets in English, and keep the section headers exactly "
        "as written above."
    ),
}

SUPPORTED_LANGUAGES = (DEFAULT_LANGUAGE, *LANGUAGE_INSTRUCTIONS)

# Span keys that may carry an HTTP status code, across vendors
STATUS_CODE_KEYS = (
    "http.status_code",
    "http.response.status_code",
    "http.statusCode",
    "response.status",
    "status_code",
    "label./http/status_code",
)
ERROR_MESSAGE_KEYS = (
    "error.message",
    "errorMessage",
    "exception.message",
    "otel.status_description",
)
ERROR_LOG_KEYWORDS = ("error", "exception", "fail", "fatal", "panic")


def _status_code(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def is_error_span(span: Span) -> bool:
    """True for HTTP status >= 400, an ``error`` flag, or a non-empty error message."""
    for key in STATUS_CODE_KEYS:
        code = _status_code(span.get(key))
        if code is not None and code >= 400:
            return True

    flag = span.get("error")
    if flag is True or (isinstance(flag, str) and flag.lower() == "true"):
        return True

    return any(span.get(key) for key in ERROR_MESSAGE_KEYS)


def is_error_log(log: LogEntry) -> bool:
    message = log.message.lower()
    return any(keyword in message for keyword in ERROR_LOG_KEYWORDS)


class PromptGenerator:
    """Turns CombinedData into an analysis prompt."""

    def generate(
        self,
        kind: AnalysisType | str,
        data: CombinedData,
        language: str = DEFAULT_LANGUAGE,
    ) -> str:
        """Builds the prompt for ``kind`` in ``language``.

        Raises:
            UnsupportedAnalysisKindError: ``kind`` is not duration or error.
            UnsupportedLanguageError: ``language`` has no instruction block.
        """
        analysis_type = self._analysis_type(kind)
        language = (language or DEFAULT_LANGUAGE).lower()
        if language not in SUPPORTED_LANGUAGES:
            raise UnsupportedLanguageError(
                f"Unsupported language '{language}'. Supported: {', '.join(SUPPORTED_LANGUAGES)}",
                parameter="language",
                value=language,
            )

        if analysis_type is AnalysisType.DURATION:
            prompt = self._duration_prompt(data)
        else:
            prompt = self._error_prompt(data)

        if language != DEFAULT_LANGUAGE:
            prompt += "\n\n" + LANGUAGE_INSTRUCTIONS[language]
        return prompt

    @staticmethod
    def _analysis_type(kind: AnalysisType | str) -> AnalysisType:
        try:
            return AnalysisType(kind)
        except ValueError:
            raise UnsupportedAnalysisKindError(
                f"Unsupported analysis type '{kind}'. Supported: duration, error",
                parameter="analysis_type",
                value=str(kind),
            ) from None

    def _duration_prompt(self, data: CombinedData) -> str:
        return "\n\n".join(
            [
                "You are an expert in observability and performance analysis. Please analyze "
                "the following telemetry data for performance issues and bottlenecks.",
                self._data_summary(data),
                self._requirements("performance analysis", DURATION_SECTIONS),
                self._output_format(),
                self._payload(data),
            ]
        )

    def _error_prompt(self, data: CombinedData) -> str:
        error_spans = sum(1 for span in data.spans if is_error_span(span))
        error_logs = sum(1 for log in data.logs if is_error_log(log))
        extra = [f"- Error spans: {error_spans}", f"- Error logs: {error_logs}"]

        return "\n\n".join(
            [
                "You are an expert in observability and incident analysis. Please analyze "
                "the following telemetry data for errors, failures and their root causes.",
                self._data_summary(data, extra),
                self._requirements("error analysis", ERROR_SECTIONS),
                self._output_format(),
                self._payload(data),
            ]
        )

    @staticmethod
    def _data_summary(data: CombinedData, extra: list[str] | None = None) -> str:
        lines = [
            "## Data Summary",
            f"- Spans: {len(data.spans)} entries",
            f"- Logs: {len(data.logs)} entries",
            f"- Traces: {len(data.traces)} entries",
            f"- Values: {len(data.values)} entries",
            *(extra or []),
        ]
        earliest, latest = data.time_range()
        if earliest is not None and latest is not None:
            lines.append(
                f"Time range: {earliest.isoformat()} to {latest.isoformat()} "
                f"(duration: {latest - earliest})"
            )
        return "\n".join(lines)

    @staticmethod
    def _requirements(title: str, sections: tuple[tuple[str, str], ...]) -> str:
        lines = [
            "## Analysis Requirements",
            f"Please provide a comprehensive {title} including:",
            "",
        ]
        for i, (header, description) in enumerate(sections, start=1):
            lines.append(f"{i}. **{header}**: {description}")
        return "\n".join(lines)

    @staticmethod
    def _output_format() -> str:
        return (
            "## Output Format\n"
            "Please structure your response as a markdown report with one section per "
            "numbered item above, using the section names exactly as given, with bullet "
            "points under each."
        )

    @staticmethod
    def _payload(data: CombinedData) -> str:
        payload = json.dumps(data.to_wire(), indent=2, ensure_ascii=False)
        return f"## Telemetry Data\n{payload}"
