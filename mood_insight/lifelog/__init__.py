"""
ライフログ入力モデルと期間集計
"""

from .models import Activity, MoodLevel, MoodRecord, PeriodSummary
from .summary import (
    calculate_activity_hours,
    calculate_day_count,
    category_counts,
    find_top_category,
    parse_iso_date,
    summarize_period,
)

__all__ = [
    "Activity",
    "MoodLevel",
    "MoodRecord",
    "PeriodSummary",
    "calculate_activity_hours",
    "calculate_day_count",
    "category_counts",
    "find_top_category",
    "parse_iso_date",
    "summarize_period",
]
