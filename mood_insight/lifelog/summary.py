"""
期間サマリー生成

気分記録・活動記録から日数、平均気分、最多カテゴリ、活動時間を集計する。
副作用のない純粋関数のみ。
"""

import re
from collections import Counter
from collections.abc import Sequence
from datetime import date, datetime

from .models import Activity, MoodRecord, PeriodSummary

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

MINUTES_PER_DAY = 24 * 60


def parse_iso_date(value: str) -> date:
    """``YYYY-MM-DD`` 形式の日付を厳密にパース（不正な場合は ValueError）"""
    if not isinstance(value, str) or not _DATE_PATTERN.match(value.strip()):
        raise ValueError(f"Invalid date format: {value!r}")
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def calculate_day_count(start_date: str, end_date: str) -> int:
    """開始日と終了日を含む日数。パースできない場合は 1 日として扱う"""
    try:
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
    except ValueError:
        return 1
    return (end - start).days + 1


def _to_minutes(value: str) -> int:
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time format: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def calculate_activity_hours(start: str, end: str) -> float:
    """活動時間（時間単位）。終了が開始より前なら日付をまたいだとみなす"""
    try:
        start_minutes = _to_minutes(start)
        end_minutes = _to_minutes(end)
    except ValueError:
        return 0.0

    if end_minutes >= start_minutes:
        duration = end_minutes - start_minutes
    else:
        duration = (MINUTES_PER_DAY - start_minutes) + end_minutes

    return duration / 60.0


def category_counts(activities: Sequence[Activity]) -> list[tuple[str, int]]:
    """カテゴリ別件数を件数の降順、同数ならカテゴリ名の昇順で返す"""
    counter = Counter(activity.category for activity in activities)
    return sorted(counter.items(), key=lambda item: (-item[1], item[0]))


def find_top_category(activities: Sequence[Activity]) -> str:
    """最多カテゴリ（同数の場合は名前順で先頭）"""
    counts = category_counts(activities)
    return counts[0][0] if counts else ""


def summarize_period(
    start_date: str,
    end_date: str,
    mood_records: Sequence[MoodRecord],
    activities: Sequence[Activity],
) -> PeriodSummary:
    """期間サマリーを生成"""
    average_mood = (
        sum(record.mood for record in mood_records) / len(mood_records)
        if mood_records
        else 0.0
    )

    total_hours = sum(
        calculate_activity_hours(activity.start, activity.end)
        for activity in activities
    )

    return PeriodSummary(
        start_date=start_date,
        end_date=end_date,
        day_count=calculate_day_count(start_date, end_date),
        average_mood=average_mood,
        mood_record_count=len(mood_records),
        total_activities=len(activities),
        top_category=find_top_category(activities),
        activity_hours=total_hours,
    )
