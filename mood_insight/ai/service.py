"""
AI インサイト生成サービス

データ量と設定を確認し、リクエストを組み立てて選択中のバックエンドに委譲する。
呼び出し側に届くのは InsightResult か InsightError（またはキャンセル）のみ。
"""

import asyncio
from collections.abc import Sequence

from mood_insight.ai.backends.base import InsightBackend
from mood_insight.ai.errors import (
    ApiKeyNotSetError,
    InsightError,
    InsufficientDataError,
    InvalidCredentialsError,
    classify_exception,
)
from mood_insight.ai.models import AnalysisConfig, BackendKind, InsightResult
from mood_insight.ai.request import assemble_request
from mood_insight.lifelog.models import Activity, MoodRecord
from mood_insight.utils.mixins import LoggerMixin

CONFIG_INCOMPLETE_MESSAGE = "AI設定が不完全です"


class InsightService(LoggerMixin):
    """AI インサイト生成のユースケース"""

    def __init__(self, backend: InsightBackend) -> None:
        self.backend = backend

    async def execute(
        self,
        start_date: str,
        end_date: str,
        activities: Sequence[Activity],
        mood_records: Sequence[MoodRecord],
        config: AnalysisConfig | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> InsightResult:
        """
        指定期間のインサイトを生成

        Raises:
            InsufficientDataError: 気分記録・活動記録がどちらも空
            ApiKeyNotSetError: バックエンドが未設定
            InsightError: その他の失敗（分類済み）
        """
        if not activities and not mood_records:
            raise InsufficientDataError()

        if not self.backend.is_configured():
            raise ApiKeyNotSetError()

        try:
            request = assemble_request(start_date, end_date, mood_records, activities)
            result = await self.backend.generate_insight(
                request, config or AnalysisConfig(), cancel_event=cancel_event
            )
        except InsightError:
            raise
        except Exception as e:
            self.logger.error(
                "Insight generation failed",
                backend=self.backend.kind.value,
                error_type=type(e).__name__,
            )
            raise classify_exception(e) from e

        self.logger.info(
            "Insight generated",
            backend=self.backend.kind.value,
            success=result.success,
            processing_time_ms=(
                result.metadata.processing_time_ms if result.metadata else None
            ),
        )
        return result

    def check_configuration(self) -> str:
        """設定完了ならメッセージを返し、未完了なら InsightError を送出"""
        status = self.backend.get_configuration_status()
        if status.configured and status.valid_credentials:
            return f"AI分析の設定が完了しています（{status.provider_id}）"
        message = status.error_message or CONFIG_INCOMPLETE_MESSAGE
        if status.configured:
            raise InvalidCredentialsError(message)
        raise ApiKeyNotSetError(message)

    @staticmethod
    async def compare_backends(
        backends: Sequence[InsightBackend],
        start_date: str,
        end_date: str,
        activities: Sequence[Activity],
        mood_records: Sequence[MoodRecord],
        config: AnalysisConfig | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[BackendKind, InsightResult | InsightError]:
        """複数のバックエンドで同じ分析を並行実行し、方式ごとの結果を返す"""

        async def run(backend: InsightBackend) -> InsightResult | InsightError:
            service = InsightService(backend)
            try:
                return await service.execute(
                    start_date,
                    end_date,
                    activities,
                    mood_records,
                    config,
                    cancel_event=cancel_event,
                )
            except InsightError as e:
                return e

        results = await asyncio.gather(*(run(backend) for backend in backends))
        return {
            backend.kind: result
            for backend, result in zip(backends, results, strict=True)
        }
