"""Configuration settings for mood-insight with caching utilities."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from threading import RLock
from typing import Any, Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """AI insight pipeline settings"""

    model_config = SettingsConfigDict(
        env_file=[".env.test", ".env"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Gemini (直接呼び出し)
    gemini_api_key: SecretStr | None = None
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta/models"
    gemini_model: str = "gemini-2.5-flash"
    ai_temperature: float = 0.7
    ai_max_output_tokens: int = 2048

    # 自前バックエンド (プロキシ経由)
    backend_base_url: str = "https://api.sbm-app.com/api/v1"
    backend_token: SecretStr | None = None
    backend_user_id: str | None = None
    backend_kind: Literal["gemini_direct", "backend_proxy"] = "gemini_direct"

    # HTTP / リトライ
    http_timeout_seconds: float = 60.0
    retry_max_attempts: int = 3
    retry_initial_delay_ms: int = 1000
    retry_max_delay_ms: int = 10000

    # 接続確認 (リトライ前の疎通チェック)
    connectivity_probe_host: str = "8.8.8.8"
    connectivity_probe_port: int = 53
    connectivity_probe_timeout: float = 3.0

    # メトリクス・永続化
    metrics_max_entries: int = 100
    data_dir: Path = Path("./data")

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_dir: Path = Path("logs")

    # Environment
    environment: str = "personal"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment.lower() in ["development", "dev"]

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode"""
        return self.environment.lower() in ["testing", "test"]

    @property
    def store_path(self) -> Path:
        """Key-value store file used for metrics and analysis config"""
        return self.data_dir / "insight_store.json"


_lock = RLock()
_cached: Settings | None = None


def get_settings(*, refresh: bool = False) -> Settings:
    """キャッシュ済みの設定を返す（refresh=True で環境から読み直す）"""
    global _cached

    with _lock:
        if refresh or _cached is None:
            _cached = Settings()
        return _cached


def clear_settings_cache() -> None:
    """次回の get_settings で環境変数と .env を読み直させる"""
    global _cached

    with _lock:
        _cached = None


@contextmanager
def override_settings(**overrides: Any) -> Iterator[Settings]:
    """
    with ブロックの間だけ設定値を差し替える

    上書き値は通常の読み込みと同じく検証されるため、APIキーを文字列で
    渡せば SecretStr になり、型の合わない値は ValidationError になる。
    """
    global _cached

    with _lock:
        previous = _cached
        base = previous or Settings()
        patched = Settings.model_validate({**base.model_dump(), **overrides})
        _cached = patched

    try:
        yield patched
    finally:
        with _lock:
            _cached = previous
