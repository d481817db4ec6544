"""
HTTP トランスポート

aiohttp セッションを保持し、AI エンドポイントへのリクエストにリトライポリシーを適用する。
401/403 は認証エラーチャネルへ通知する。
"""

import asyncio
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

import aiohttp

from mood_insight.config import get_settings
from mood_insight.network.auth_events import AuthErrorEvent, AuthEventChannel
from mood_insight.network.response import HttpResponse
from mood_insight.network.retry import AIRetryPolicy
from mood_insight.utils.mixins import LoggerMixin

AUTH_ERROR_STATUSES = (401, 403)
USER_AGENT = "MoodInsight/0.3"


class HttpTransport(LoggerMixin):
    """リトライ・認証通知付きの HTTP クライアント"""

    def __init__(
        self,
        *,
        retry_policy: AIRetryPolicy | None = None,
        auth_events: AuthEventChannel | None = None,
        timeout: float | None = None,
    ) -> None:
        self.retry_policy = retry_policy or AIRetryPolicy()
        self.auth_events = auth_events or AuthEventChannel()
        self.timeout = timeout or get_settings().http_timeout_seconds
        self._session: aiohttp.ClientSession | None = None

    async def get_session(self) -> aiohttp.ClientSession:
        """共有セッションを返す（未作成・クローズ済みなら作成）"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> HttpResponse:
        path = urlparse(url).path

        async def send() -> HttpResponse:
            session = await self.get_session()
            async with session.request(
                method, url, json=json, headers=headers, params=params
            ) as resp:
                body = await resp.text()
                return HttpResponse(
                    status=resp.status, body=body, headers=dict(resp.headers)
                )

        response = await self.retry_policy.execute(
            path, send, cancel_event=cancel_event
        )

        self.logger.debug(
            "HTTP request completed",
            method=method,
            path=path,
            status=response.status,
        )

        if response.status in AUTH_ERROR_STATUSES and not response.synthetic:
            await self.auth_events.publish(
                AuthErrorEvent(
                    status=response.status,
                    message=response.error_detail() or "Authentication failed",
                    path=path,
                )
            )
        return response

    async def post_json(
        self, url: str, payload: Any, **kwargs: Any
    ) -> HttpResponse:
        return await self.request("POST", url, json=payload, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> HttpResponse:
        return await self.request("GET", url, **kwargs)
