"""
AI 分析用のデータモデル
"""

from datetime import datetime
from enum import Enum
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from mood_insight.lifelog.models import Activity, MoodRecord, PeriodSummary
from mood_insight.lifelog.summary import parse_iso_date


class _LabeledEnum(str, Enum):
    """表示名と説明を持つ列挙型"""

    display_name: str
    description: str
    emoji: str

    def __new__(
        cls, value: str, display_name: str, description: str, emoji: str = ""
    ) -> "_LabeledEnum":
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.display_name = display_name
        obj.description = description
        obj.emoji = emoji
        return obj


class AnalysisPeriod(_LabeledEnum):
    """分析期間"""

    LAST_7_DAYS = ("LAST_7_DAYS", "直近1週間", "過去7日間のデータを分析")


class ComparisonOption(_LabeledEnum):
    """比較モード"""

    NONE = ("NONE", "比較なし", "単独期間のみ分析")
    PREVIOUS_PERIOD = ("PREVIOUS_PERIOD", "前回同期間", "前回の同じ期間と比較")
    LAST_MONTH = ("LAST_MONTH", "先月", "先月の同期間と比較")
    LAST_YEAR = ("LAST_YEAR", "去年同期", "去年の同期間と比較")


class AnalysisFocus(_LabeledEnum):
    """分析の焦点"""

    MOOD_FOCUSED = ("MOOD_FOCUSED", "気分重視", "気分の変化や傾向を詳しく分析", "😊")
    ACTIVITY_FOCUSED = (
        "ACTIVITY_FOCUSED",
        "活動重視",
        "活動パターンや時間配分を詳しく分析",
        "⚡",
    )
    BALANCED = ("BALANCED", "バランス", "気分と活動を均等に分析", "⚖️")
    WELLNESS_FOCUSED = (
        "WELLNESS_FOCUSED",
        "ウェルネス重視",
        "健康や生活習慣の改善に重点",
        "🌱",
    )


class DetailLevel(_LabeledEnum):
    """詳細度"""

    CONCISE = ("CONCISE", "簡潔", "要点を短くまとめた分析")
    STANDARD = ("STANDARD", "標準", "バランスの取れた詳細度")
    DETAILED = ("DETAILED", "詳細", "深い洞察と具体的なアドバイス")


class ResponseStyle(_LabeledEnum):
    """回答の口調"""

    FRIENDLY = ("FRIENDLY", "親しみやすい", "温かく親近感のある口調", "😊")
    PROFESSIONAL = ("PROFESSIONAL", "専門的", "客観的で分析的な口調", "📊")
    ENCOURAGING = ("ENCOURAGING", "励まし重視", "前向きで応援するような口調", "💪")
    CASUAL = ("CASUAL", "カジュアル", "気軽で親しみやすい口調", "😎")


class BackendKind(str, Enum):
    """AI 分析の実行方式"""

    GEMINI_DIRECT = "GEMINI_DIRECT"  # 直接 Gemini API
    BACKEND_PROXY = "BACKEND_PROXY"  # バックエンド API 経由


class AnalysisConfig(BaseModel):
    """ユーザーが選択した分析設定"""

    model_config = ConfigDict(frozen=True)

    period: AnalysisPeriod = AnalysisPeriod.LAST_7_DAYS
    comparison_option: ComparisonOption = ComparisonOption.NONE
    focus: AnalysisFocus = AnalysisFocus.BALANCED
    detail_level: DetailLevel = DetailLevel.STANDARD
    response_style: ResponseStyle = ResponseStyle.FRIENDLY


class AnalysisRequest(BaseModel):
    """AI 分析リクエスト（1 回の分析につき 1 つ生成される不変オブジェクト）"""

    model_config = ConfigDict(frozen=True)

    start_date: str
    end_date: str
    mood_records: tuple[MoodRecord, ...] = ()
    activities: tuple[Activity, ...] = ()
    period_summary: PeriodSummary

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_date_format(cls, v: str) -> str:
        """日付が YYYY-MM-DD 形式の実在日付かチェック"""
        parse_iso_date(v)
        return v

    @model_validator(mode="after")
    def validate_range_and_data(self) -> "AnalysisRequest":
        """期間の前後関係とデータの有無をチェック"""
        if parse_iso_date(self.end_date) < parse_iso_date(self.start_date):
            raise ValueError("End date must be after or equal to start date")
        if not self.mood_records and not self.activities:
            raise ValueError(
                "At least one mood record or activity is required for analysis"
            )
        return self

    @property
    def total_items(self) -> int:
        return len(self.mood_records) + len(self.activities)


class InsightPayload(BaseModel):
    """AI が出力する JSON（6 フィールド固定）"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
        extra="ignore",
    )

    summary: str
    mood_analysis: str
    activity_analysis: str
    recommendations: list[str]
    highlights: list[str]
    motivational_message: str


class CanonicalInsight(BaseModel):
    """どのバックエンドでも最終的にこの形に揃えるインサイト"""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    summary: str
    mood_analysis: str
    activity_analysis: str
    recommendations: tuple[str, ...] = ()
    highlights: tuple[str, ...] = ()
    motivational_message: str = ""
    start_date: str = ""
    end_date: str = ""
    user_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_payload(
        cls,
        payload: InsightPayload,
        *,
        start_date: str = "",
        end_date: str = "",
        user_id: str | None = None,
    ) -> "CanonicalInsight":
        return cls(
            summary=payload.summary,
            mood_analysis=payload.mood_analysis,
            activity_analysis=payload.activity_analysis,
            recommendations=tuple(payload.recommendations),
            highlights=tuple(payload.highlights),
            motivational_message=payload.motivational_message,
            start_date=start_date,
            end_date=end_date,
            user_id=user_id,
        )


class ResponseMetadata(BaseModel):
    """レスポンスのメタ情報"""

    provider_id: str
    processing_time_ms: int
    tokens_used: int | None = None
    remaining_quota: int | None = None
    request_id: str | None = None


class InsightResult(BaseModel):
    """インサイト生成結果（success=True なら data 必須、False なら data なし）"""

    success: bool
    data: CanonicalInsight | None = None
    error: str | None = None
    metadata: ResponseMetadata | None = None

    @model_validator(mode="after")
    def validate_union(self) -> "InsightResult":
        if self.success and self.data is None:
            raise ValueError("Successful result requires data")
        if not self.success and self.data is not None:
            raise ValueError("Failed result must not carry data")
        return self


class ConfigurationStatus(BaseModel):
    """バックエンド設定状況"""

    configured: bool
    valid_credentials: bool
    provider_id: str
    error_message: str | None = None

    @classmethod
    def not_configured(cls, message: str = "AI設定が未完了です") -> "ConfigurationStatus":
        return cls(
            configured=False,
            valid_credentials=False,
            provider_id="none",
            error_message=message,
        )

    @classmethod
    def configured_for(cls, provider_id: str) -> "ConfigurationStatus":
        return cls(configured=True, valid_credentials=True, provider_id=provider_id)

    @classmethod
    def invalid_credentials(
        cls, provider_id: str, message: str
    ) -> "ConfigurationStatus":
        return cls(
            configured=True,
            valid_credentials=False,
            provider_id=provider_id,
            error_message=message,
        )


def mask_secret(value: str) -> str:
    """先頭と末尾 4 文字以外を * でマスク（8 文字以下は全てマスク）"""
    if len(value) > 8:
        return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"
    return "*" * len(value)


def _is_valid_url(url: str | None) -> bool:
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


class BackendConfig(BaseModel):
    """実行方式と資格情報"""

    mode: BackendKind
    gemini_api_key: SecretStr | None = None
    backend_base_url: str | None = None
    backend_token: SecretStr | None = None

    @property
    def masked_gemini_api_key(self) -> str | None:
        if self.gemini_api_key is None:
            return None
        return mask_secret(self.gemini_api_key.get_secret_value())

    @property
    def masked_backend_token(self) -> str | None:
        if self.backend_token is None:
            return None
        return mask_secret(self.backend_token.get_secret_value())

    def _has_gemini_key(self) -> bool:
        return bool(
            self.gemini_api_key and self.gemini_api_key.get_secret_value().strip()
        )

    def _has_backend_credentials(self) -> bool:
        return (
            bool(
                self.backend_token and self.backend_token.get_secret_value().strip()
            )
            and _is_valid_url(self.backend_base_url)
        )

    def is_valid(self) -> bool:
        """現在のモードに必要な資格情報が揃っているか"""
        if self.mode == BackendKind.GEMINI_DIRECT:
            return self._has_gemini_key()
        return self._has_backend_credentials()

    def can_migrate_to(self, target: BackendKind) -> bool:
        """別モードへ切り替え可能か"""
        if target == self.mode:
            return False
        if target == BackendKind.BACKEND_PROXY:
            return self._has_backend_credentials()
        return self._has_gemini_key()


class UsageInfo(BaseModel):
    """バックエンドの AI 利用状況 (/ai/usage)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    daily_used: int
    daily_limit: int
    daily_remaining: int
    monthly_used: int
    monthly_limit: int
    monthly_remaining: int
    provider: str
    can_use_today: bool
    next_reset_date: str
    debug_mode: bool = False
    is_debug_user: bool = False
    limits_enabled: bool = True

    @property
    def is_unlimited(self) -> bool:
        """デバッグまたは制限無効化により無制限利用可能かどうか"""
        return self.debug_mode or self.is_debug_user or not self.limits_enabled

    @property
    def needs_warning(self) -> bool:
        """残り回数がわずかで警告が必要かどうか"""
        return not self.is_unlimited and self.daily_remaining <= 1

    @property
    def usage_display_text(self) -> str:
        if self.debug_mode:
            return "🔧 デバッグモード: 無制限利用可能"
        if self.is_debug_user:
            return "🔧 デバッグユーザー: 無制限利用可能"
        if not self.limits_enabled:
            return "制限機能無効: 無制限利用可能"
        return (
            f"今日のAI分析回数: {self.daily_used}回 "
            f"残り{self.daily_remaining}回の分析が可能"
        )

    @property
    def progress_ratio(self) -> float:
        """プログレスバーの進捗率（0.0 - 1.0）"""
        if self.is_unlimited or self.daily_limit == 0:
            return 0.0
        return self.daily_used / self.daily_limit

