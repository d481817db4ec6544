"""
共通フィクスチャと収集設定。

- テスト向けの環境変数を毎テスト自動設定し、設定キャッシュをクリア（autouse）
- ルートを `sys.path` に追加して `import mood_insight.*` を解決
- HTTP は実ネットワークを使わず、偽のトランスポートで置き換える
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

# プロジェクトルート（このファイルの親の親）をパスに追加
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from mood_insight.config import clear_settings_cache  # noqa: E402
from mood_insight.lifelog.models import Activity, MoodRecord  # noqa: E402
from mood_insight.network.response import HttpResponse  # noqa: E402


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """テスト用の環境変数を毎テストで設定。

    実際の秘密情報は使用せず、最小限のダミー値を設定します。
    """

    env: dict[str, str] = {
        "GEMINI_API_KEY": "test-gemini-api-key",
        "GEMINI_API_BASE": "https://gemini.test/v1beta/models",
        "GEMINI_MODEL": "gemini-test",
        "BACKEND_BASE_URL": "https://backend.test/api/v1",
        "DATA_DIR": str(tmp_path / "data"),
        "LOG_DIR": str(tmp_path / "logs"),
        "ENVIRONMENT": "testing",
    }

    for k, v in env.items():
        monkeypatch.setenv(k, v)
    monkeypatch.delenv("BACKEND_TOKEN", raising=False)

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mood_records() -> list[MoodRecord]:
    return [
        MoodRecord(id=1, date="2024-01-01", mood=4, note="よく眠れた"),
        MoodRecord(id=2, date="2024-01-03", mood=2, note="仕事が忙しかった"),
    ]


@pytest.fixture
def activities() -> list[Activity]:
    return [
        Activity(
            activity_id=1,
            title="ランニング",
            start="07:00",
            end="07:30",
            date="2024-01-01",
            category="運動",
        ),
        Activity(
            activity_id=2,
            title="読書",
            start="21:00",
            end="22:30",
            date="2024-01-02",
            category="学習",
        ),
        Activity(
            activity_id=3,
            title="筋トレ",
            start="18:00",
            end="19:00",
            date="2024-01-03",
            category="運動",
        ),
    ]


class FakeTransport:
    """キューに積んだレスポンスを順に返す HttpTransport の代替"""

    def __init__(self, *responses: HttpResponse | BaseException) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def _next(self) -> HttpResponse:
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def post_json(self, url: str, payload: Any, **kwargs: Any) -> HttpResponse:
        self.calls.append({"method": "POST", "url": url, "json": payload, **kwargs})
        return self._next()

    async def get(self, url: str, **kwargs: Any) -> HttpResponse:
        self.calls.append({"method": "GET", "url": url, **kwargs})
        return self._next()


def json_response(status: int, body: Any) -> HttpResponse:
    return HttpResponse(status=status, body=json.dumps(body, ensure_ascii=False))
