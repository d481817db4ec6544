"""Utility modules for mood-insight"""

from .logger import (
    get_logger,
    log_api_usage,
    sanitize_log_content,
    setup_logging,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "log_api_usage",
    "sanitize_log_content",
]
