"""
AI エンドポイント用のリトライポリシー

- 対象は AI 関連パス（/ai/, /analysis, /gemini）のみ
- 5xx は指数バックオフで再試行、429 とその他 4xx は即座に返す
- 接続失敗・タイムアウトはネットワークが使える場合のみ再試行
- 待機は asyncio のスリープで行い、キャンセルイベントで中断できる
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from mood_insight.config import get_settings
from mood_insight.network.connectivity import ConnectivityChecker
from mood_insight.network.response import HttpResponse
from mood_insight.utils.mixins import LoggerMixin

AI_PATH_FRAGMENTS = ("/ai/", "/analysis", "/gemini")
RATE_LIMIT_STATUS = 429
SERVICE_UNAVAILABLE = 503

TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    aiohttp.ClientConnectorError,
    TimeoutError,
)

Sender = Callable[[], Awaitable[HttpResponse]]
Sleeper = Callable[[float], Awaitable[None]]
T = TypeVar("T")


class TransportFailure(Exception):
    """通信失敗と、その時点でネットワークが使えたかどうか"""

    def __init__(self, original: BaseException, network_available: bool):
        super().__init__(str(original))
        self.original = original
        self.network_available = network_available


def is_ai_endpoint(path: str) -> bool:
    return any(fragment in path for fragment in AI_PATH_FRAGMENTS)


def _should_retry_response(response: HttpResponse) -> bool:
    return response.is_server_error


def _should_retry_exception(exc: BaseException) -> bool:
    return isinstance(exc, TransportFailure) and exc.network_available


def _return_last_outcome(retry_state: RetryCallState) -> HttpResponse:
    outcome = retry_state.outcome
    assert outcome is not None
    if outcome.failed:
        raise outcome.exception()
    return outcome.result()


def transport_error_message(exc: BaseException) -> str:
    """通信失敗を利用者向けメッセージに変換"""
    if isinstance(exc, TimeoutError):
        return "接続タイムアウトが発生しました"
    if isinstance(exc, aiohttp.ClientConnectorError):
        return "ネットワーク接続を確認してください"
    return f"ネットワークエラーが発生しました: {exc}"


class AIRetryPolicy(LoggerMixin):
    """AI API 専用のリトライポリシー"""

    def __init__(
        self,
        connectivity: ConnectivityChecker | None = None,
        *,
        max_attempts: int | None = None,
        initial_delay_ms: int | None = None,
        max_delay_ms: int | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        settings = get_settings()
        self.connectivity = connectivity or ConnectivityChecker()
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.initial_delay_ms = initial_delay_ms or settings.retry_initial_delay_ms
        self.max_delay_ms = max_delay_ms or settings.retry_max_delay_ms
        self._sleep = sleep or asyncio.sleep

    async def execute(
        self,
        path: str,
        send: Sender,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> HttpResponse:
        """
        リクエストを実行し、必要に応じて再試行する

        Returns:
            成功・429・4xx のレスポンス、再試行を使い切った最後のレスポンス、
            または通信失敗から合成した 503 レスポンス

        Raises:
            asyncio.CancelledError: キャンセルイベントがセットされた
        """
        if not is_ai_endpoint(path):
            return await self._race_cancel(
                send(), cancel_event, "AI request cancelled"
            )

        attempt_number = 0

        async def attempt() -> HttpResponse:
            nonlocal attempt_number
            attempt_number += 1
            self._raise_if_cancelled(cancel_event)
            try:
                return await self._race_cancel(
                    send(), cancel_event, "AI request cancelled in flight"
                )
            except TRANSPORT_ERRORS as e:
                # 最終試行ではネットワーク確認は不要
                available = (
                    attempt_number < self.max_attempts
                    and await self.connectivity.is_available()
                )
                self.logger.warning(
                    "AI request transport failure",
                    path=path,
                    attempt=attempt_number,
                    error_type=type(e).__name__,
                    network_available=available,
                )
                raise TransportFailure(e, available) from e

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.initial_delay_ms / 1000,
                max=self.max_delay_ms / 1000,
            ),
            retry=(
                retry_if_result(_should_retry_response)
                | retry_if_exception(_should_retry_exception)
            ),
            sleep=self._cancellable_sleep(cancel_event),
            before_sleep=self._log_before_sleep(path),
            retry_error_callback=_return_last_outcome,
        )

        try:
            return await retrying(attempt)
        except TransportFailure as failure:
            message = transport_error_message(failure.original)
            self.logger.error(
                "AI request failed after retries",
                path=path,
                attempts=attempt_number,
                error_type=type(failure.original).__name__,
            )
            return HttpResponse(
                status=SERVICE_UNAVAILABLE, body=message, synthetic=True
            )

    @staticmethod
    def _raise_if_cancelled(cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise asyncio.CancelledError("AI request cancelled")

    @classmethod
    async def _race_cancel(
        cls,
        awaitable: Awaitable[T],
        cancel_event: asyncio.Event | None,
        message: str,
    ) -> T:
        """awaitable とキャンセルイベントを競わせ、イベントが先ならキャンセルする"""
        if cancel_event is None:
            return await awaitable

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (work, waiter):
                if not task.done():
                    task.cancel()
        # 両方完了していてもキャンセルを優先する
        if cancel_event.is_set():
            raise asyncio.CancelledError(message)
        return work.result()

    def _cancellable_sleep(self, cancel_event: asyncio.Event | None) -> Sleeper:
        async def sleep(seconds: float) -> None:
            await self._race_cancel(
                self._sleep(seconds),
                cancel_event,
                "AI request cancelled during backoff",
            )

        return sleep

    def _log_before_sleep(self, path: str) -> Callable[[RetryCallState], None]:
        def log(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome
            status = None
            if outcome is not None and not outcome.failed:
                status = outcome.result().status
            delay = retry_state.next_action.sleep if retry_state.next_action else 0
            self.logger.info(
                "Retrying AI request",
                path=path,
                attempt=retry_state.attempt_number,
                status=status,
                delay_seconds=delay,
            )

        return log
