"""
分析リクエスト組み立て
"""

from collections.abc import Sequence

import structlog
from pydantic import ValidationError

from mood_insight.ai.errors import InsufficientDataError, RequestValidationError
from mood_insight.ai.models import AnalysisRequest
from mood_insight.lifelog.models import Activity, MoodRecord
from mood_insight.lifelog.summary import parse_iso_date, summarize_period

logger = structlog.get_logger(__name__)


def assemble_request(
    start_date: str,
    end_date: str,
    mood_records: Sequence[MoodRecord],
    activities: Sequence[Activity],
) -> AnalysisRequest:
    """
    期間とレコードから AnalysisRequest を生成する

    Raises:
        InsufficientDataError: 気分記録・活動記録がどちらも空
        RequestValidationError: 日付形式が不正、または終了日が開始日より前
    """
    if not mood_records and not activities:
        raise InsufficientDataError()

    try:
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
    except ValueError as e:
        raise RequestValidationError(str(e)) from e

    if end < start:
        raise RequestValidationError(
            f"End date {end_date} is before start date {start_date}"
        )

    summary = summarize_period(start_date, end_date, mood_records, activities)

    try:
        request = AnalysisRequest(
            start_date=start_date,
            end_date=end_date,
            mood_records=tuple(mood_records),
            activities=tuple(activities),
            period_summary=summary,
        )
    except ValidationError as e:
        raise RequestValidationError(str(e)) from e

    logger.debug(
        "Analysis request assembled",
        start_date=start_date,
        end_date=end_date,
        mood_records=len(mood_records),
        activities=len(activities),
    )
    return request
