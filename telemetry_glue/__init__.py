"""telemetry-glue: query observability backends, merge piped telemetry and analyze it."""

from .aggregator import DataAggregator
from .analyzer import Analyzer
from .collector import TelemetryCollector
from .pipeline import PassthroughHandler
from .prompts import PromptGenerator
from .schema import (
    AnalysisResult,
    AnalysisType,
    CombinedData,
    LogEntry,
    TimeRange,
    TraceSummary,
)

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "AnalysisType",
    "Analyzer",
    "CombinedData",
    "DataAggregator",
    "LogEntry",
    "PassthroughHandler",
    "PromptGenerator",
    "TelemetryCollector",
    "TimeRange",
    "TraceSummary",
]
