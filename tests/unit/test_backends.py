"""Test the Gemini direct and backend proxy implementations."""

import json

import pytest
from conftest import FakeTransport, json_response

from mood_insight.ai.backends import (
    BackendProxyBackend,
    GeminiDirectBackend,
    InsightBackend,
    StaticAuthProvider,
    create_backend,
)
from mood_insight.ai.errors import (
    AUTH_MISSING_MESSAGE,
    SERVER_TEMPORARY_MESSAGE,
    TIMEOUT_MESSAGE,
    ApiKeyNotSetError,
    InvalidCredentialsError,
    NetworkError,
    RateLimitExceededError,
    RequestError,
    ResponseParseError,
)
from mood_insight.ai.highlights import POSITIVE_MESSAGE
from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisFocus,
    BackendConfig,
    BackendKind,
    DetailLevel,
)
from mood_insight.ai.request import assemble_request
from mood_insight.config import override_settings
from mood_insight.monitoring.metrics import AnalysisMetrics
from mood_insight.network.response import HttpResponse
from mood_insight.storage.kv_store import InMemoryKeyValueStore

INSIGHT_JSON = {
    "summary": "安定した一週間でした",
    "moodAnalysis": "気分は平均3点",
    "activityAnalysis": "運動が中心",
    "recommendations": ["早寝する"],
    "highlights": ["運動を継続"],
    "motivationalMessage": "いい調子です",
}

USAGE_JSON = {
    "dailyUsed": 2,
    "dailyLimit": 5,
    "dailyRemaining": 3,
    "monthlyUsed": 10,
    "monthlyLimit": 100,
    "monthlyRemaining": 90,
    "provider": "gemini",
    "canUseToday": True,
    "nextResetDate": "2024-01-08",
}


def gemini_body(text: str, tokens: int | None = 321) -> dict:
    body: dict = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    if tokens is not None:
        body["usageMetadata"] = {"totalTokenCount": tokens}
    return body


@pytest.fixture
def analysis_request(mood_records, activities):
    return assemble_request("2024-01-01", "2024-01-07", mood_records, activities)


@pytest.fixture
def metrics():
    return AnalysisMetrics(InMemoryKeyValueStore())


def _gemini(transport, metrics, **kwargs) -> GeminiDirectBackend:
    return GeminiDirectBackend(transport=transport, metrics=metrics, **kwargs)


def _proxy(transport, metrics, token="token-123", user_id="user-9"):
    return BackendProxyBackend(
        transport=transport,
        metrics=metrics,
        auth_provider=StaticAuthProvider(token, user_id),
    )


class TestGeminiDirectBackend:
    @pytest.mark.asyncio
    async def test_success(self, analysis_request, metrics):
        text = f"```json\n{json.dumps(INSIGHT_JSON, ensure_ascii=False)}\n```"
        transport = FakeTransport(json_response(200, gemini_body(text)))
        backend = _gemini(transport, metrics)

        result = await backend.generate_insight(analysis_request)

        assert result.success
        assert result.data.summary == "安定した一週間でした"
        assert result.data.start_date == "2024-01-01"
        assert result.metadata.provider_id == "gemini"
        assert result.metadata.tokens_used == 321

        call = transport.calls[0]
        assert call["url"] == (
            "https://gemini.test/v1beta/models/gemini-test:generateContent"
        )
        assert call["params"] == {"key": "test-gemini-api-key"}
        generation_config = call["json"]["generationConfig"]
        assert generation_config["responseMimeType"] == "application/json"
        assert "## 📊 分析設定" in call["json"]["contents"][0]["parts"][0]["text"]

        entry = metrics.entries[0]
        assert entry.succeeded
        assert entry.backend_kind == BackendKind.GEMINI_DIRECT
        assert entry.outcome.tokens_used == 321
        assert entry.request.data_size.total_items == 5
        assert backend.usage.total_tokens == 321

    @pytest.mark.asyncio
    async def test_config_is_used_in_prompt(self, analysis_request, metrics):
        transport = FakeTransport(
            json_response(200, gemini_body(json.dumps(INSIGHT_JSON)))
        )
        config = AnalysisConfig(
            focus=AnalysisFocus.MOOD_FOCUSED, detail_level=DetailLevel.CONCISE
        )

        await _gemini(transport, metrics).generate_insight(analysis_request, config)

        prompt = transport.calls[0]["json"]["contents"][0]["parts"][0]["text"]
        assert "## 🎯 分析重点: 気分重視" in prompt
        assert "## 📝 詳細レベル: 簡潔" in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (429, RateLimitExceededError()),
            (401, InvalidCredentialsError()),
            (500, NetworkError(SERVER_TEMPORARY_MESSAGE)),
        ],
    )
    async def test_http_errors(self, analysis_request, metrics, status, expected):
        transport = FakeTransport(
            json_response(status, {"error": {"message": "upstream"}})
        )

        with pytest.raises(type(expected)) as exc_info:
            await _gemini(transport, metrics).generate_insight(analysis_request)

        assert exc_info.value == expected
        assert metrics.entries[0].outcome.error_type == expected.kind.value

    @pytest.mark.asyncio
    async def test_synthetic_response_keeps_message(self, analysis_request, metrics):
        transport = FakeTransport(
            HttpResponse(
                status=503, body="ネットワーク接続を確認してください", synthetic=True
            )
        )

        with pytest.raises(NetworkError) as exc_info:
            await _gemini(transport, metrics).generate_insight(analysis_request)

        assert exc_info.value.message == "ネットワーク接続を確認してください"
        assert metrics.entries[0].outcome.error_type == "NetworkError"

    @pytest.mark.asyncio
    async def test_transport_exception_is_classified(self, analysis_request, metrics):
        transport = FakeTransport(TimeoutError())

        with pytest.raises(NetworkError) as exc_info:
            await _gemini(transport, metrics).generate_insight(analysis_request)

        assert exc_info.value.message == TIMEOUT_MESSAGE
        assert metrics.entries[0].outcome.error_type == "NetworkError"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"candidates": []},
            gemini_body("これはJSONではありません"),
            gemini_body(json.dumps({"summary": "only summary"})),
        ],
    )
    async def test_unparsable_output(self, analysis_request, metrics, body):
        transport = FakeTransport(json_response(200, body))

        with pytest.raises(ResponseParseError):
            await _gemini(transport, metrics).generate_insight(analysis_request)

        assert metrics.entries[0].outcome.error_type == "ResponseParseError"

    @pytest.mark.asyncio
    async def test_missing_api_key(self, analysis_request, metrics):
        transport = FakeTransport()
        with override_settings(gemini_api_key=None):
            backend = _gemini(transport, metrics)

            with pytest.raises(ApiKeyNotSetError):
                await backend.generate_insight(analysis_request)

            status = backend.get_configuration_status()

        assert transport.calls == []
        assert not backend.is_configured()
        assert status.configured is False
        assert status.error_message == "Gemini APIキーが設定されていません"

    def test_short_key_is_invalid(self, metrics):
        backend = _gemini(
            FakeTransport(),
            metrics,
            backend_config=BackendConfig(
                mode=BackendKind.GEMINI_DIRECT, gemini_api_key="short"
            ),
        )

        status = backend.get_configuration_status()

        assert not backend.is_configured()
        assert status.configured is True
        assert status.valid_credentials is False


class TestBackendProxyBackend:
    @pytest.mark.asyncio
    async def test_success(self, analysis_request, metrics):
        body = {
            "success": True,
            "data": {
                "overall_summary": "睡眠が改善しました。普通の一週間。",
                "mood_insights": "気分は安定",
                "activity_insights": "運動が多い",
                "recommendations": "・早寝を続ける\n・散歩する",
            },
            "usage_info": USAGE_JSON,
        }
        transport = FakeTransport(json_response(200, body))

        result = await _proxy(transport, metrics).generate_insight(analysis_request)

        insight = result.data
        assert result.success
        assert insight.summary == "睡眠が改善しました。普通の一週間。"
        assert insight.recommendations == ("早寝を続ける", "散歩する")
        assert insight.highlights == ("睡眠が改善しました",)
        assert insight.motivational_message == POSITIVE_MESSAGE
        assert insight.user_id == "user-9"
        assert result.metadata.provider_id == "backend-api"
        assert result.metadata.remaining_quota == 3

        call = transport.calls[0]
        assert call["url"] == "https://backend.test/api/v1/ai/analysis"
        assert call["headers"] == {"Authorization": "Bearer token-123"}
        assert call["json"] == {
            "start_date": "2024-01-01",
            "end_date": "2024-01-07",
            "analysis_focus": "BALANCED",
            "detail_level": "STANDARD",
            "response_style": "FRIENDLY",
        }
        assert metrics.entries[0].succeeded

    @pytest.mark.asyncio
    async def test_missing_token(self, analysis_request, metrics):
        transport = FakeTransport()
        backend = _proxy(transport, metrics, token=None)

        with pytest.raises(RequestError) as exc_info:
            await backend.generate_insight(analysis_request)

        assert exc_info.value.message == AUTH_MISSING_MESSAGE
        assert transport.calls == []
        assert metrics.entries[0].outcome.error_type == "RequestError"
        assert not backend.is_configured()

    @pytest.mark.asyncio
    async def test_backend_reports_failure(self, analysis_request, metrics):
        transport = FakeTransport(
            json_response(200, {"success": False, "error": "本日の上限に達しました"})
        )

        result = await _proxy(transport, metrics).generate_insight(analysis_request)

        assert result.success is False
        assert result.data is None
        assert result.error == "本日の上限に達しました"
        assert metrics.entries[0].outcome.error_type == "RequestError"

    @pytest.mark.asyncio
    async def test_failure_without_message(self, analysis_request, metrics):
        transport = FakeTransport(json_response(200, {"success": False}))

        result = await _proxy(transport, metrics).generate_insight(analysis_request)

        assert result.error == "分析結果の取得に失敗しました"

    @pytest.mark.asyncio
    async def test_server_error(self, analysis_request, metrics):
        transport = FakeTransport(json_response(500, {"message": "db down"}))

        with pytest.raises(NetworkError) as exc_info:
            await _proxy(transport, metrics).generate_insight(analysis_request)

        assert exc_info.value.message == SERVER_TEMPORARY_MESSAGE
        failure = metrics.entries[0].outcome
        assert failure.error_type == "NetworkError"
        assert "db down" not in failure.error_message

    @pytest.mark.asyncio
    async def test_invalid_body(self, analysis_request, metrics):
        transport = FakeTransport(HttpResponse(status=200, body="<html></html>"))

        with pytest.raises(ResponseParseError):
            await _proxy(transport, metrics).generate_insight(analysis_request)

    @pytest.mark.asyncio
    async def test_usage_info(self, metrics):
        transport = FakeTransport(json_response(200, USAGE_JSON))

        usage = await _proxy(transport, metrics).get_usage_info()

        assert usage.daily_remaining == 3
        assert transport.calls[0]["method"] == "GET"
        assert transport.calls[0]["url"] == "https://backend.test/api/v1/ai/usage"

    @pytest.mark.asyncio
    async def test_usage_info_unauthorized(self, metrics):
        transport = FakeTransport(json_response(401, {"message": "expired"}))

        with pytest.raises(InvalidCredentialsError):
            await _proxy(transport, metrics).get_usage_info()

    def test_backend_config_supplies_token_and_url(self, metrics):
        config = BackendConfig(
            mode=BackendKind.BACKEND_PROXY,
            backend_token="abc-token",
            backend_base_url="https://proxy.test/api/",
        )

        backend = BackendProxyBackend(
            transport=FakeTransport(), metrics=metrics, backend_config=config
        )

        assert backend.base_url == "https://proxy.test/api"
        assert backend.is_configured()
        assert backend.get_configuration_status().provider_id == "backend-api"


class TestCreateBackend:
    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (BackendKind.GEMINI_DIRECT, GeminiDirectBackend),
            ("backend_proxy", BackendProxyBackend),
            ("GEMINI_DIRECT", GeminiDirectBackend),
        ],
    )
    def test_selects_implementation(self, metrics, kind, expected):
        backend = create_backend(kind, transport=FakeTransport(), metrics=metrics)

        assert isinstance(backend, expected)
        assert isinstance(backend, InsightBackend)

    def test_unknown_kind(self, metrics):
        with pytest.raises(ValueError):
            create_backend("openai", transport=FakeTransport(), metrics=metrics)
