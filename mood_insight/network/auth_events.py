"""
認証エラー通知チャネル

HTTP 層で 401/403 を受け取ったときに購読者へ通知する。セッションごとに 1 つ生成する。
"""

import inspect
from collections.abc import Awaitable, Callable

from pydantic import BaseModel

from mood_insight.utils.logger import sanitize_log_content
from mood_insight.utils.mixins import LoggerMixin


class AuthErrorEvent(BaseModel):
    """認証エラーイベント"""

    status: int
    message: str
    path: str = ""


AuthListener = Callable[[AuthErrorEvent], Awaitable[None] | None]


class AuthEventChannel(LoggerMixin):
    """認証エラーの購読・配信"""

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """リスナーを登録し、登録解除用の関数を返す"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def publish(self, event: AuthErrorEvent) -> None:
        """全リスナーにイベントを配信（リスナーの例外はログのみ）"""
        self.logger.warning(
            "Authentication error received",
            status=event.status,
            path=event.path,
            message=sanitize_log_content(event.message),
        )
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(
                    "Auth event listener failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                )
