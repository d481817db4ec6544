"""
AI 分析のエラー分類

通信・HTTP・解析の失敗を閉じたドメインエラー体系に変換する。
どちらのバックエンドも同じテーブルを使うため、方式を切り替えても挙動は変わらない。
"""

import json
from collections.abc import Callable
from enum import Enum

import aiohttp
from pydantic import ValidationError


class InsightErrorKind(str, Enum):
    """ドメインエラーの種類"""

    API_KEY_NOT_SET = "ApiKeyNotSet"
    INSUFFICIENT_DATA = "InsufficientData"
    RATE_LIMIT_EXCEEDED = "RateLimitExceeded"
    INVALID_CREDENTIALS = "InvalidCredentials"
    RESPONSE_PARSE_ERROR = "ResponseParseError"
    NETWORK_ERROR = "NetworkError"
    REQUEST_ERROR = "RequestError"
    UNKNOWN_ERROR = "UnknownError"


class InsightError(Exception):
    """AI 分析のドメインエラー（利用者向けメッセージのみを保持）"""

    kind: InsightErrorKind = InsightErrorKind.UNKNOWN_ERROR
    default_message = "不明なエラーが発生しました"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, InsightError)
            and self.kind == other.kind
            and self.message == other.message
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.message))


class ApiKeyNotSetError(InsightError):
    kind = InsightErrorKind.API_KEY_NOT_SET
    default_message = "AI設定でAPIキーを設定してください"


class InsufficientDataError(InsightError):
    kind = InsightErrorKind.INSUFFICIENT_DATA
    default_message = "分析するデータが不足しています"


class RateLimitExceededError(InsightError):
    kind = InsightErrorKind.RATE_LIMIT_EXCEEDED
    default_message = "利用制限に達しました。しばらく後でお試しください"


class InvalidCredentialsError(InsightError):
    kind = InsightErrorKind.INVALID_CREDENTIALS
    default_message = "APIキーまたは認証情報が無効です。設定を確認してください"


class ResponseParseError(InsightError):
    kind = InsightErrorKind.RESPONSE_PARSE_ERROR
    default_message = "AI応答の解析に失敗しました"


class NetworkError(InsightError):
    kind = InsightErrorKind.NETWORK_ERROR
    default_message = "ネットワークエラーが発生しました"


class RequestError(InsightError):
    kind = InsightErrorKind.REQUEST_ERROR
    default_message = "リクエストエラーが発生しました"


class UnknownInsightError(InsightError):
    kind = InsightErrorKind.UNKNOWN_ERROR


class RequestValidationError(ValueError):
    """分析リクエストの日付指定が不正"""


# 利用者向けメッセージ
AUTH_MISSING_MESSAGE = "認証情報が見つかりません。再ログインしてください"
SERVER_TEMPORARY_MESSAGE = (
    "サーバーに一時的な問題が発生しています。しばらく待ってから再試行してください"
)
NO_CONNECTION_MESSAGE = "インターネット接続を確認してください"
TIMEOUT_MESSAGE = "通信タイムアウトが発生しました。しばらく待ってから再試行してください"

_INSUFFICIENT_HINTS = ("insufficient", "not enough", "データが不足", "データ不足")


def _bad_request(detail: str) -> InsightError:
    lowered = detail.lower()
    if any(hint in lowered for hint in _INSUFFICIENT_HINTS):
        return RequestError(
            "分析に必要なデータが不足しています。記録を追加してから再度お試しください"
        )
    if detail:
        return RequestError(f"リクエスト形式に問題があります: {detail}")
    return RequestError("リクエスト形式に問題があります")


StatusFactory = Callable[[str], InsightError]

STATUS_TABLE: dict[int, StatusFactory] = {
    400: _bad_request,
    401: lambda _detail: InvalidCredentialsError(),
    403: lambda _detail: RequestError("API利用権限がありません"),
    404: lambda _detail: RequestError("指定期間のデータが見つかりません"),
    429: lambda _detail: RateLimitExceededError(),
}


def classify_status(status: int, detail: str = "") -> InsightError:
    """HTTP ステータスコードをドメインエラーに変換"""
    factory = STATUS_TABLE.get(status)
    if factory is not None:
        return factory(detail)
    if 500 <= status <= 599:
        return NetworkError(SERVER_TEMPORARY_MESSAGE)
    return RequestError(f"API呼び出しエラー ({status})")


ExceptionFactory = Callable[[BaseException], InsightError]

# 先にマッチしたものが優先（サブクラスを親クラスより前に置く）
EXCEPTION_TABLE: list[tuple[tuple[type[BaseException], ...], ExceptionFactory]] = [
    (
        (RequestValidationError,),
        lambda _exc: RequestError("分析期間の指定が正しくありません"),
    ),
    (
        (json.JSONDecodeError, ValidationError),
        lambda _exc: ResponseParseError(),
    ),
    (
        (aiohttp.ClientConnectorError,),
        lambda _exc: NetworkError(NO_CONNECTION_MESSAGE),
    ),
    ((TimeoutError,), lambda _exc: NetworkError(TIMEOUT_MESSAGE)),
    (
        (aiohttp.ClientResponseError,),
        lambda exc: classify_status(exc.status, exc.message),  # type: ignore[attr-defined]
    ),
    (
        (aiohttp.ClientError, ConnectionError),
        lambda _exc: NetworkError("ネットワークエラーが発生しました"),
    ),
]


def classify_exception(exc: BaseException) -> InsightError:
    """例外をドメインエラーに変換（ドメインエラーはそのまま返す）"""
    if isinstance(exc, InsightError):
        return exc
    for exc_types, factory in EXCEPTION_TABLE:
        if isinstance(exc, exc_types):
            return factory(exc)
    return UnknownInsightError(str(exc) or exc.__class__.__name__)

