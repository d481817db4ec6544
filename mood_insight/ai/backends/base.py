"""
AI 分析バックエンドの共通インターフェース

実行方式（直接 Gemini / バックエンド API 経由）は実行時に ``create_backend`` で選択する。
"""

import asyncio
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisRequest,
    BackendConfig,
    BackendKind,
    ConfigurationStatus,
    InsightResult,
)

if TYPE_CHECKING:
    from mood_insight.monitoring.metrics import AnalysisMetrics
    from mood_insight.network.http import HttpTransport


class AuthProvider(Protocol):
    """認証情報の提供元（トークン取得・保存は外部の責務）"""

    def get_bearer_token(self) -> str | None: ...

    def get_user_id(self) -> str | None: ...


class StaticAuthProvider:
    """固定のトークンを返す認証プロバイダー（スクリプト・テスト用）"""

    def __init__(self, token: str | None = None, user_id: str | None = None):
        self._token = token
        self._user_id = user_id

    def get_bearer_token(self) -> str | None:
        return self._token

    def get_user_id(self) -> str | None:
        return self._user_id


@runtime_checkable
class InsightBackend(Protocol):
    """インサイト生成バックエンド"""

    kind: BackendKind

    async def generate_insight(
        self,
        request: AnalysisRequest,
        config: AnalysisConfig | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> InsightResult: ...

    def is_configured(self) -> bool: ...

    def get_configuration_status(self) -> ConfigurationStatus: ...


def create_backend(
    kind: BackendKind | str,
    *,
    transport: "HttpTransport",
    metrics: "AnalysisMetrics",
    auth_provider: AuthProvider | None = None,
    backend_config: BackendConfig | None = None,
) -> InsightBackend:
    """実行方式に応じたバックエンドを生成"""
    from mood_insight.ai.backends.gemini_client import GeminiDirectBackend
    from mood_insight.ai.backends.proxy_client import BackendProxyBackend

    if isinstance(kind, str):
        kind = BackendKind(kind.upper())

    if kind == BackendKind.GEMINI_DIRECT:
        return GeminiDirectBackend(
            transport=transport, metrics=metrics, backend_config=backend_config
        )
    return BackendProxyBackend(
        transport=transport,
        metrics=metrics,
        auth_provider=auth_provider or StaticAuthProvider(),
        backend_config=backend_config,
    )
