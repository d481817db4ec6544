"""
ネットワーク接続確認
"""

import asyncio
import contextlib

from mood_insight.config import get_settings
from mood_insight.utils.mixins import LoggerMixin


class ConnectivityChecker(LoggerMixin):
    """既知のホストへ TCP 接続できるかでネットワークの可否を判定する"""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self.host = host or settings.connectivity_probe_host
        self.port = port or settings.connectivity_probe_port
        self.timeout = timeout or settings.connectivity_probe_timeout

    async def is_available(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self.timeout
            )
        except (OSError, TimeoutError) as e:
            self.logger.info(
                "Network unavailable", host=self.host, port=self.port, error=str(e)
            )
            return False

        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return True


class StaticConnectivity:
    """常に固定の結果を返す接続確認（テスト・オフライン実行用）"""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.checks = 0

    async def is_available(self) -> bool:
        self.checks += 1
        return self.available
