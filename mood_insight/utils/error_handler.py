"""ベストエフォート処理のエラーハンドリング

メトリクスの保存や分析設定の読み込みは、失敗しても分析そのものを止めない。
ここのデコレータは例外をログに残し、既定値を返す（reraise 指定時は再送出）。
"""

import functools
import inspect
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


def _log_failure(
    operation_name: str, func: Callable, exc: Exception, log_kwargs: dict[str, Any]
) -> None:
    logger.error(
        f"Failed to {operation_name}",
        function=func.__qualname__,
        error_type=type(exc).__name__,
        error=str(exc),
        **log_kwargs,
    )


def handle_errors(
    operation_name: str,
    default_return: Any = None,
    reraise: bool = False,
    **log_kwargs: Any,
):
    """
    同期・非同期どちらの関数にも使えるエラーハンドリングデコレータ

    Args:
        operation_name: ログに残す操作名（"persist metrics" など）
        default_return: 例外時の戻り値
        reraise: True の場合、ログ後に例外を再送出する
        **log_kwargs: ログに追加する情報
    """

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(operation_name, func, e, log_kwargs)
                    if reraise:
                        raise
                    return default_return

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_failure(operation_name, func, e, log_kwargs)
                if reraise:
                    raise
                return default_return

        return wrapper

    return decorator


def safe_with_default(operation_name: str, default_value: Any, **log_kwargs: Any):
    """失敗時に default_value を返すベストエフォート操作"""
    return handle_errors(operation_name, default_return=default_value, **log_kwargs)
