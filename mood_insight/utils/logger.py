"""
Logging configuration for mood-insight
"""

import logging
import re
from typing import Any, cast

import structlog
from rich.console import Console
from rich.logging import RichHandler

from mood_insight.config import get_settings

LOG_FILE_NAME = "insight.log"

# 通信ライブラリのログは警告以上のみ
NOISY_LOGGERS = ("aiohttp", "asyncio")


def setup_logging() -> None:
    """Set up structured logging with rich formatting"""

    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logs_dir = settings.log_dir
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=True,
                show_path=True,
                markup=True,
                rich_tracebacks=True,
            ),
            logging.FileHandler(logs_dir / LOG_FILE_NAME, encoding="utf-8"),
        ],
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    use_json = settings.log_format == "json" and not settings.is_development

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            (
                structlog.processors.JSONRenderer(ensure_ascii=False)
                if use_json
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    return cast("structlog.stdlib.BoundLogger", structlog.get_logger(name))


def log_api_usage(api_name: str, usage_data: dict[str, Any]) -> None:
    """Log API usage for monitoring"""
    logger = get_logger("api_usage")
    logger.info(f"{api_name} API usage", **usage_data)


_SENSITIVE_PATTERNS = [
    r'token[=:\s]*["\']?[\w\-\.]{20,}["\']?',  # トークン
    r'key[=:\s]*["\']?[\w\-\.]{20,}["\']?',  # API キー
    r"Bearer\s+[\w\-\.]+",  # Authorization ヘッダー
    r"\b[A-Za-z0-9_\-]{30,}\b",  # 長い英数字文字列（トークンの可能性）
]


def sanitize_log_content(content: str, max_length: int = 50) -> str:
    """機密情報を含む可能性のあるコンテンツをサニタイズ"""
    sanitized = content

    for pattern in _SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, "[REDACTED]", sanitized, flags=re.IGNORECASE)

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    return sanitized
