"""
AI 応答パーサー

モデル出力（コードブロック付き・素の JSON・前後に説明文付き JSON）から
JSON を取り出し、6 フィールドの CanonicalInsight に変換する。
"""

import json
import re

import structlog
from pydantic import ValidationError

from mood_insight.ai.errors import ResponseParseError, UnknownInsightError
from mood_insight.ai.models import CanonicalInsight, InsightPayload

logger = structlog.get_logger(__name__)

_FENCED_BLOCK = re.compile(
    r"```(?:json)?[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE
)


def extract_json_payload(raw: str) -> str:
    """
    テキストから JSON 部分を抽出

    優先順位:
    1. ``` で囲まれたコードブロック（json ラベルは任意）
    2. 最初の ``{`` から最後の ``}`` まで
    3. 前後の空白を除いたテキストそのもの
    """
    fenced = _FENCED_BLOCK.search(raw)
    if fenced:
        return fenced.group(1).strip()

    start = raw.find("{")
    end = raw.rfind("}")
    if start != -1 and end > start:
        return raw[start : end + 1]

    return raw.strip()


def parse_insight_text(
    raw: str,
    *,
    start_date: str = "",
    end_date: str = "",
    user_id: str | None = None,
) -> CanonicalInsight:
    """
    モデル出力テキストを CanonicalInsight に変換

    Raises:
        ResponseParseError: JSON 構文エラー、またはフィールドの欠落・型違い
        UnknownInsightError: それ以外の変換中の例外
    """
    candidate = extract_json_payload(raw)

    try:
        data = json.loads(candidate)
        payload = InsightPayload.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(
            "Failed to parse AI response",
            error_type=type(e).__name__,
            response_length=len(raw),
        )
        raise ResponseParseError() from e
    except Exception as e:
        logger.error("Unexpected error while mapping AI response", error=str(e))
        raise UnknownInsightError(f"AI応答の変換中にエラーが発生しました: {e}") from e

    return CanonicalInsight.from_payload(
        payload, start_date=start_date, end_date=end_date, user_id=user_id
    )
