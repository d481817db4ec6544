"""
AI 分析メトリクスのデータモデル
"""

import uuid
from collections.abc import Sized
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from mood_insight.ai.models import BackendKind


class DataSize(BaseModel):
    """リクエストのデータ量"""

    model_config = ConfigDict(frozen=True)

    activities_count: int = 0
    mood_records_count: int = 0

    @property
    def total_items(self) -> int:
        return self.activities_count + self.mood_records_count

    @classmethod
    def of(cls, activities: Sized, mood_records: Sized) -> "DataSize":
        return cls(
            activities_count=len(activities), mood_records_count=len(mood_records)
        )


class RequestShape(BaseModel):
    """メトリクスに残すリクエスト情報（内容は含めない）"""

    model_config = ConfigDict(frozen=True)

    start_date: str
    end_date: str
    data_size: DataSize = Field(default_factory=DataSize)


class SuccessOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    processing_time_ms: int
    response_size: int = 0
    tokens_used: int | None = None


class FailureOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    processing_time_ms: int
    error_type: str
    error_message: str


Outcome = Annotated[SuccessOutcome | FailureOutcome, Field(discriminator="kind")]


class MetricEntry(BaseModel):
    """1 回の AI 分析呼び出しの記録"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=datetime.now)
    backend_kind: BackendKind
    request: RequestShape
    outcome: Outcome

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, SuccessOutcome)


class ErrorCount(BaseModel):
    error_type: str
    count: int


class BackendStats(BaseModel):
    """実行方式ごとの集計"""

    analyses: int = 0
    success_rate: float = 0.0
    avg_response_time_ms: float = 0.0


class PerformanceStats(BaseModel):
    """方式比較用のパフォーマンス統計"""

    total_analyses: int = 0
    backends: dict[BackendKind, BackendStats] = Field(default_factory=dict)
    common_errors: list[ErrorCount] = Field(default_factory=list)

    def for_backend(self, kind: BackendKind) -> BackendStats:
        return self.backends.get(kind, BackendStats())

    @classmethod
    def empty(cls) -> "PerformanceStats":
        return cls(backends={kind: BackendStats() for kind in BackendKind})
