"""
Gemini API 直接呼び出しバックエンド

ローカルに保持した API キーで generateContent を呼び出し、
モデル出力のテキストを AI 応答パーサーで CanonicalInsight に変換する。
"""

import asyncio
import time
from typing import Any

from pydantic import BaseModel

from mood_insight.ai.errors import (
    ApiKeyNotSetError,
    InsightError,
    NetworkError,
    ResponseParseError,
    classify_exception,
    classify_status,
)
from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisRequest,
    BackendConfig,
    BackendKind,
    ConfigurationStatus,
    InsightResult,
    ResponseMetadata,
)
from mood_insight.ai.parser import parse_insight_text
from mood_insight.ai.prompts import PromptGenerator
from mood_insight.config import get_settings
from mood_insight.monitoring.metrics import AnalysisMetrics
from mood_insight.monitoring.models import DataSize
from mood_insight.network.http import HttpTransport
from mood_insight.network.response import HttpResponse
from mood_insight.utils.logger import log_api_usage
from mood_insight.utils.mixins import LoggerMixin

PROVIDER_ID = "gemini"
MIN_API_KEY_LENGTH = 10


class GeminiUsage(BaseModel):
    """プロセス内の Gemini API 使用量"""

    total_requests: int = 0
    total_tokens: int = 0
    error_count: int = 0


class GeminiDirectBackend(LoggerMixin):
    """Gemini API を直接呼び出すバックエンド"""

    kind = BackendKind.GEMINI_DIRECT

    def __init__(
        self,
        *,
        transport: HttpTransport,
        metrics: AnalysisMetrics,
        backend_config: BackendConfig | None = None,
        prompt_generator: PromptGenerator | None = None,
    ) -> None:
        self.settings = get_settings()
        self.transport = transport
        self.metrics = metrics
        self.backend_config = backend_config
        self.prompt_generator = prompt_generator or PromptGenerator()
        self.usage = GeminiUsage()

    def _api_key(self) -> str:
        secret = (
            self.backend_config.gemini_api_key
            if self.backend_config and self.backend_config.gemini_api_key
            else self.settings.gemini_api_key
        )
        return secret.get_secret_value().strip() if secret else ""

    @property
    def endpoint(self) -> str:
        base = self.settings.gemini_api_base.rstrip("/")
        return f"{base}/{self.settings.gemini_model}:generateContent"

    def is_configured(self) -> bool:
        return len(self._api_key()) >= MIN_API_KEY_LENGTH

    def get_configuration_status(self) -> ConfigurationStatus:
        api_key = self._api_key()
        if not api_key:
            return ConfigurationStatus.not_configured(
                "Gemini APIキーが設定されていません"
            )
        if len(api_key) < MIN_API_KEY_LENGTH:
            return ConfigurationStatus.invalid_credentials(
                PROVIDER_ID, "APIキーが無効です"
            )
        return ConfigurationStatus.configured_for(PROVIDER_ID)

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.settings.ai_temperature,
                "maxOutputTokens": self.settings.ai_max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

    async def generate_insight(
        self,
        request: AnalysisRequest,
        config: AnalysisConfig | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> InsightResult:
        """
        インサイトを生成

        Raises:
            ApiKeyNotSetError: API キー未設定
            InsightError: 通信・HTTP・解析エラー（分類済み）
        """
        api_key = self._api_key()
        if not api_key:
            raise ApiKeyNotSetError()

        config = config or AnalysisConfig()
        data_size = DataSize.of(request.activities, request.mood_records)
        prompt = self.prompt_generator.generate(request, config)

        self.logger.debug(
            "Calling Gemini API",
            model=self.settings.gemini_model,
            prompt_length=len(prompt),
            total_items=data_size.total_items,
        )

        started = time.perf_counter()
        try:
            response = await self.transport.post_json(
                self.endpoint,
                self.build_payload(prompt),
                params={"key": api_key},
                cancel_event=cancel_event,
            )
        except Exception as e:
            error = classify_exception(e)
            await self._record_failure(request, data_size, started, error)
            raise error from e

        if not response.ok:
            error = (
                NetworkError(response.body)
                if response.synthetic
                else classify_status(response.status, response.error_detail())
            )
            await self._record_failure(request, data_size, started, error)
            raise error

        try:
            text, tokens_used = self._extract_candidate(response)
            insight = parse_insight_text(
                text, start_date=request.start_date, end_date=request.end_date
            )
        except InsightError as e:
            await self._record_failure(request, data_size, started, e)
            raise

        processing_time_ms = self._elapsed_ms(started)
        self.usage.total_requests += 1
        self.usage.total_tokens += tokens_used or 0
        log_api_usage(
            "Gemini",
            {
                "tokens_used": tokens_used,
                "processing_time_ms": processing_time_ms,
                "total_requests": self.usage.total_requests,
            },
        )

        await self.metrics.record_success(
            self.kind,
            request.start_date,
            request.end_date,
            processing_time_ms,
            data_size,
            response_size=len(text),
            tokens_used=tokens_used,
        )

        return InsightResult(
            success=True,
            data=insight,
            metadata=ResponseMetadata(
                provider_id=PROVIDER_ID,
                processing_time_ms=processing_time_ms,
                tokens_used=tokens_used,
            ),
        )

    def _extract_candidate(self, response: HttpResponse) -> tuple[str, int | None]:
        """最初の候補の最初のパートのテキストとトークン数を取り出す"""
        try:
            body = response.json()
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self.logger.warning(
                "Gemini response has no candidate text", error_type=type(e).__name__
            )
            raise ResponseParseError() from e

        if not isinstance(text, str) or not text.strip():
            raise ResponseParseError()

        usage = body.get("usageMetadata") or {}
        tokens = usage.get("totalTokenCount")
        return text, tokens if isinstance(tokens, int) else None

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)

    async def _record_failure(
        self,
        request: AnalysisRequest,
        data_size: DataSize,
        started: float,
        error: InsightError,
    ) -> None:
        error_type = error.kind.value
        error_message = error.message
        self.usage.error_count += 1
        self.logger.error(
            "Gemini analysis failed", error_type=error_type, error=error_message
        )
        await self.metrics.record_failure(
            self.kind,
            request.start_date,
            request.end_date,
            self._elapsed_ms(started),
            data_size,
            error_type=error_type,
            error_message=error_message,
        )
