"""
キーバリューストア

メトリクスや分析設定の永続化に使う文字列ストア。
JSON ファイル版は 1 ファイルに全キーを保存し、書き込みは一時ファイル経由の置き換えで行う。
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

import aiofiles

from mood_insight.utils.mixins import LoggerMixin


@runtime_checkable
class KeyValueStore(Protocol):
    async def get_string(self, key: str) -> str | None: ...

    async def put_string(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """プロセス内のみのストア"""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get_string(self, key: str) -> str | None:
        return self.data.get(key)

    async def put_string(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore(LoggerMixin):
    """JSON ファイルに保存するストア"""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                content = await f.read()
            data = json.loads(content) if content.strip() else {}
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(
                "Failed to read key-value store", path=str(self.path), error=str(e)
            )
            return {}

        if not isinstance(data, dict):
            self.logger.warning(
                "Ignoring malformed key-value store", path=str(self.path)
            )
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    async def _write_all(self, data: dict[str, str]) -> None:
        serialized = json.dumps(data, indent=2, ensure_ascii=False)

        def _write() -> None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix="kv_", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                    tmp_file.write(serialized)
                    tmp_file.flush()
                    os.fsync(tmp_file.fileno())
                os.replace(temp_path, self.path)
            finally:
                if os.path.exists(temp_path):
                    try:
                        os.remove(temp_path)
                    except FileNotFoundError:
                        pass

        await asyncio.to_thread(_write)

    async def get_string(self, key: str) -> str | None:
        async with self._lock:
            data = await self._read_all()
        return data.get(key)

    async def put_string(self, key: str, value: str) -> None:
        async with self._lock:
            data = await self._read_all()
            data[key] = value
            await self._write_all(data)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await self._read_all()
            if key in data:
                del data[key]
                await self._write_all(data)
