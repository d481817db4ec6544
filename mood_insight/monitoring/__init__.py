"""AI analysis metrics"""

from .metrics import CSV_HEADER, METRICS_KEY, AnalysisMetrics
from .models import (
    BackendStats,
    DataSize,
    ErrorCount,
    FailureOutcome,
    MetricEntry,
    PerformanceStats,
    RequestShape,
    SuccessOutcome,
)

__all__ = [
    "AnalysisMetrics",
    "BackendStats",
    "CSV_HEADER",
    "DataSize",
    "ErrorCount",
    "FailureOutcome",
    "METRICS_KEY",
    "MetricEntry",
    "PerformanceStats",
    "RequestShape",
    "SuccessOutcome",
]
