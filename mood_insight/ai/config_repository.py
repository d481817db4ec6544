"""
分析設定の保存・読み込み
"""

from enum import Enum
from typing import TypeVar

from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisFocus,
    AnalysisPeriod,
    ComparisonOption,
    DetailLevel,
    ResponseStyle,
)
from mood_insight.storage.kv_store import KeyValueStore
from mood_insight.utils.error_handler import safe_with_default
from mood_insight.utils.mixins import LoggerMixin

E = TypeVar("E", bound=Enum)

# 保存キーと設定フィールドの対応
CONFIG_KEYS: dict[str, tuple[str, type[Enum]]] = {
    "period": ("analysis_period", AnalysisPeriod),
    "comparison_option": ("comparison_option", ComparisonOption),
    "focus": ("analysis_focus", AnalysisFocus),
    "detail_level": ("detail_level", DetailLevel),
    "response_style": ("response_style", ResponseStyle),
}


def _enum_or_default(enum_type: type[E], name: str | None, default: E) -> E:
    if name is None:
        return default
    try:
        return enum_type[name]
    except KeyError:
        return default


class AnalysisConfigRepository(LoggerMixin):
    """AnalysisConfig をキーバリューストアに保存する"""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def get_config(self) -> AnalysisConfig:
        """保存済み設定を返す（未保存・不明な値は既定値）"""
        defaults = AnalysisConfig()
        values = {}
        for field_name, (key, enum_type) in CONFIG_KEYS.items():
            stored = await self._get(key)
            values[field_name] = _enum_or_default(
                enum_type, stored, getattr(defaults, field_name)
            )
        return AnalysisConfig(**values)

    async def save_config(self, config: AnalysisConfig) -> None:
        for field_name, (key, _) in CONFIG_KEYS.items():
            await self.store.put_string(key, getattr(config, field_name).name)
        self.logger.info(
            "Analysis config saved",
            focus=config.focus.name,
            detail_level=config.detail_level.name,
            response_style=config.response_style.name,
        )

    async def clear_config(self) -> None:
        for key, _ in CONFIG_KEYS.values():
            await self.store.remove(key)

    async def reset_to_defaults(self) -> None:
        await self.save_config(AnalysisConfig())

    @safe_with_default("read analysis config", None)
    async def _get(self, key: str) -> str | None:
        return await self.store.get_string(key)
