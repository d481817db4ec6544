"""
バックエンド API 経由の AI 分析

アプリのバックエンドに認証付きで分析を依頼する。バックエンドは構造化済みの結果を返すが、
アドバイスは 1 つの文字列なので分割し、ハイライトと励ましメッセージはここで補完する。
"""

import asyncio
import time

from pydantic import BaseModel, ValidationError

from mood_insight.ai.backends.base import AuthProvider, StaticAuthProvider
from mood_insight.ai.errors import (
    AUTH_MISSING_MESSAGE,
    InsightError,
    NetworkError,
    RequestError,
    ResponseParseError,
    classify_exception,
    classify_status,
)
from mood_insight.ai.highlights import (
    extract_highlights,
    select_motivational_message,
    split_recommendations,
)
from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisRequest,
    BackendConfig,
    BackendKind,
    CanonicalInsight,
    ConfigurationStatus,
    InsightResult,
    ResponseMetadata,
    UsageInfo,
)
from mood_insight.config import get_settings
from mood_insight.monitoring.metrics import AnalysisMetrics
from mood_insight.monitoring.models import DataSize
from mood_insight.network.http import HttpTransport
from mood_insight.utils.mixins import LoggerMixin

PROVIDER_ID = "backend-api"
DEFAULT_FAILURE_MESSAGE = "分析結果の取得に失敗しました"


class ProxyAnalysisData(BaseModel):
    overall_summary: str
    mood_insights: str
    activity_insights: str
    recommendations: str = ""


class ProxyAnalysisResponse(BaseModel):
    """POST /ai/analysis のレスポンス"""

    success: bool
    error: str | None = None
    data: ProxyAnalysisData | None = None
    usage_info: UsageInfo | None = None


class BackendProxyBackend(LoggerMixin):
    """バックエンド API 経由で分析するバックエンド"""

    kind = BackendKind.BACKEND_PROXY

    def __init__(
        self,
        *,
        transport: HttpTransport,
        metrics: AnalysisMetrics,
        auth_provider: AuthProvider | None = None,
        backend_config: BackendConfig | None = None,
    ) -> None:
        self.transport = transport
        self.metrics = metrics
        if auth_provider is None:
            token = (
                backend_config.backend_token.get_secret_value()
                if backend_config and backend_config.backend_token
                else None
            )
            auth_provider = StaticAuthProvider(token)
        self.auth_provider = auth_provider

        base_url = (
            backend_config.backend_base_url
            if backend_config and backend_config.backend_base_url
            else get_settings().backend_base_url
        )
        self.base_url = base_url.rstrip("/")

    def _token(self) -> str:
        return (self.auth_provider.get_bearer_token() or "").strip()

    def is_configured(self) -> bool:
        return bool(self._token())

    def get_configuration_status(self) -> ConfigurationStatus:
        if not self._token():
            return ConfigurationStatus.not_configured("認証情報が設定されていません")
        return ConfigurationStatus.configured_for(PROVIDER_ID)

    @staticmethod
    def build_request_body(
        request: AnalysisRequest, config: AnalysisConfig
    ) -> dict[str, str]:
        return {
            "start_date": request.start_date,
            "end_date": request.end_date,
            "analysis_focus": config.focus.name,
            "detail_level": config.detail_level.name,
            "response_style": config.response_style.name,
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

        バックエンドが success=false を返した場合は失敗結果を返し、
        それ以外の失敗は分類済みの InsightError を送出する。
        """
        config = config or AnalysisConfig()
        data_size = DataSize.of(request.activities, request.mood_records)
        started = time.perf_counter()

        token = self._token()
        if not token:
            error = RequestError(AUTH_MISSING_MESSAGE)
            await self._record_failure(request, data_size, started, error)
            raise error

        self.logger.debug(
            "Requesting backend analysis",
            start_date=request.start_date,
            end_date=request.end_date,
            focus=config.focus.name,
        )

        try:
            response = await self.transport.post_json(
                f"{self.base_url}/ai/analysis",
                self.build_request_body(request, config),
                headers={"Authorization": f"Bearer {token}"},
                cancel_event=cancel_event,
            )
        except Exception as e:
            error = classify_exception(e)
            await self._record_failure(request, data_size, started, error)
            raise error from e

        processing_time_ms = self._elapsed_ms(started)

        if not response.ok:
            detail = response.error_detail()
            error = (
                NetworkError(response.body)
                if response.synthetic
                else classify_status(response.status, detail)
            )
            await self._record_failure(request, data_size, started, error)
            raise error

        try:
            parsed = ProxyAnalysisResponse.model_validate_json(response.body)
        except ValidationError as e:
            error = ResponseParseError()
            await self._record_failure(request, data_size, started, error)
            raise error from e

        metadata = ResponseMetadata(
            provider_id=PROVIDER_ID,
            processing_time_ms=processing_time_ms,
            remaining_quota=(
                parsed.usage_info.daily_remaining if parsed.usage_info else None
            ),
        )

        if not parsed.success or parsed.data is None:
            message = parsed.error or DEFAULT_FAILURE_MESSAGE
            # バックエンドが拒否した分析はリクエストエラーとして集計する
            await self._record_failure(
                request, data_size, started, RequestError(message)
            )
            return InsightResult(success=False, error=message, metadata=metadata)

        data = parsed.data
        insight = CanonicalInsight(
            summary=data.overall_summary,
            mood_analysis=data.mood_insights,
            activity_analysis=data.activity_insights,
            recommendations=tuple(split_recommendations(data.recommendations)),
            highlights=tuple(extract_highlights(data.overall_summary)),
            motivational_message=select_motivational_message(data.recommendations),
            start_date=request.start_date,
            end_date=request.end_date,
            user_id=self.auth_provider.get_user_id(),
        )

        await self.metrics.record_success(
            self.kind,
            request.start_date,
            request.end_date,
            processing_time_ms,
            data_size,
            response_size=(
                len(data.overall_summary)
                + len(data.mood_insights)
                + len(data.activity_insights)
                + len(data.recommendations)
            ),
        )
        self.logger.info(
            "Backend analysis completed", processing_time_ms=processing_time_ms
        )
        return InsightResult(success=True, data=insight, metadata=metadata)

    async def get_usage_info(
        self, *, cancel_event: asyncio.Event | None = None
    ) -> UsageInfo:
        """バックエンドの AI 利用状況を取得"""
        token = self._token()
        if not token:
            raise RequestError(AUTH_MISSING_MESSAGE)

        try:
            response = await self.transport.get(
                f"{self.base_url}/ai/usage",
                headers={"Authorization": f"Bearer {token}"},
                cancel_event=cancel_event,
            )
        except Exception as e:
            raise classify_exception(e) from e

        if not response.ok:
            if response.synthetic:
                raise NetworkError(response.body)
            raise classify_status(response.status, response.error_detail())

        try:
            return UsageInfo.model_validate_json(response.body)
        except ValidationError as e:
            raise ResponseParseError() from e

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
        self.logger.error(
            "Backend analysis failed", error_type=error_type, error=error_message
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
