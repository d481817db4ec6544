"""
ライフログ データモデル

AI 分析の入力となる気分記録・活動記録と、期間サマリーの定義
"""

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class MoodLevel(IntEnum):
    """気分レベル (1-5 スケール)"""

    VERY_BAD = 1
    BAD = 2
    NEUTRAL = 3
    GOOD = 4
    VERY_GOOD = 5


class MoodRecord(BaseModel):
    """気分記録"""

    model_config = ConfigDict(frozen=True)

    id: int = 0
    user_id: int = 0
    date: str  # "YYYY-MM-DD"
    mood: int = Field(ge=MoodLevel.VERY_BAD, le=MoodLevel.VERY_GOOD)
    note: str = ""
    created_at: str | None = None
    updated_at: str | None = None


class Activity(BaseModel):
    """活動記録"""

    model_config = ConfigDict(frozen=True)

    activity_id: int = 0
    user_id: int = 0
    title: str
    contents: str | None = None
    start: str  # 時刻 "HH:mm"
    end: str  # 時刻 "HH:mm"
    date: str  # 日付 "YYYY-MM-DD"
    category: str = "その他"
    category_sub: str | None = None


class PeriodSummary(BaseModel):
    """分析期間の集計値"""

    model_config = ConfigDict(frozen=True)

    start_date: str
    end_date: str
    day_count: int
    average_mood: float
    mood_record_count: int
    total_activities: int
    top_category: str
    activity_hours: float
