"""AI insight generation: models, prompts, parsing and error classification

Backends and the service live in ``mood_insight.ai.backends`` and
``mood_insight.ai.service``.
"""

from .config_repository import AnalysisConfigRepository
from .errors import (
    ApiKeyNotSetError,
    InsightError,
    InsightErrorKind,
    InsufficientDataError,
    InvalidCredentialsError,
    NetworkError,
    RateLimitExceededError,
    RequestError,
    RequestValidationError,
    ResponseParseError,
    UnknownInsightError,
    classify_exception,
    classify_status,
)
from .models import (
    AnalysisConfig,
    AnalysisFocus,
    AnalysisPeriod,
    AnalysisRequest,
    BackendConfig,
    BackendKind,
    CanonicalInsight,
    ComparisonOption,
    ConfigurationStatus,
    DetailLevel,
    InsightResult,
    ResponseMetadata,
    ResponseStyle,
    UsageInfo,
)
from .parser import extract_json_payload, parse_insight_text
from .prompts import PromptGenerator
from .request import assemble_request

__all__ = [
    "AnalysisConfig",
    "AnalysisConfigRepository",
    "AnalysisFocus",
    "AnalysisPeriod",
    "AnalysisRequest",
    "ApiKeyNotSetError",
    "BackendConfig",
    "BackendKind",
    "CanonicalInsight",
    "ComparisonOption",
    "ConfigurationStatus",
    "DetailLevel",
    "InsightError",
    "InsightErrorKind",
    "InsightResult",
    "InsufficientDataError",
    "InvalidCredentialsError",
    "NetworkError",
    "PromptGenerator",
    "RateLimitExceededError",
    "RequestError",
    "RequestValidationError",
    "ResponseMetadata",
    "ResponseParseError",
    "ResponseStyle",
    "UnknownInsightError",
    "UsageInfo",
    "assemble_request",
    "classify_exception",
    "classify_status",
    "extract_json_payload",
    "parse_insight_text",
]
