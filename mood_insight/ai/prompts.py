"""
AI 分析用プロンプト生成

分析設定（期間・比較・焦点・詳細度・口調）に応じて 1 本のプロンプト文字列を組み立てる。
ネットワークや状態を持たない純粋なテンプレート処理。
"""

import json

from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisFocus,
    AnalysisRequest,
    ComparisonOption,
    DetailLevel,
    ResponseStyle,
)
from mood_insight.lifelog.models import Activity, MoodRecord
from mood_insight.lifelog.summary import category_counts

MAX_MOOD_ENTRIES = 7
MAX_CATEGORIES = 5
MOOD_NOTE_LIMIT = 20


class PromptGenerator:
    """ライフ分析プロンプトジェネレーター"""

    STYLE_PREAMBLES: dict[ResponseStyle, str] = {
        ResponseStyle.FRIENDLY: (
            "あなたは親しみやすくて優秀なライフコーチです。温かく親近感のある口調で、\n"
            "まるで親しい友人のようにユーザーの生活データを分析し、"
            "励ましのあるアドバイスを提供してください。"
        ),
        ResponseStyle.PROFESSIONAL: (
            "あなたは専門的で客観的なライフアナリストです。データに基づいた冷静な分析と、\n"
            "科学的根拠のある実用的なアドバイスを、"
            "専門的だが理解しやすい口調で提供してください。"
        ),
        ResponseStyle.ENCOURAGING: (
            "あなたは前向きで応援上手なメンターです。ユーザーの努力を認め、可能性を信じ、\n"
            "どんな状況でも希望と勇気を与えるような、"
            "励ましに満ちたアドバイスを提供してください。"
        ),
        ResponseStyle.CASUAL: (
            "あなたは気軽で親しみやすいライフアドバイザーです。"
            "カジュアルで親しみやすい口調で、\n"
            "リラックスした雰囲気の中、実用的で取り入れやすいアドバイスを提供してください。"
        ),
    }

    COMPARISON_DIRECTIVES: dict[ComparisonOption, str] = {
        ComparisonOption.PREVIOUS_PERIOD: (
            "## 🔄 比較分析: 前回同期間\n"
            "前回の同じ長さの期間と比べて、気分と活動がどう変化したかにも触れてください。\n"
            "比較データが手元にない場合は、今回のデータから読み取れる変化の兆しを述べてください。"
        ),
        ComparisonOption.LAST_MONTH: (
            "## 🔄 比較分析: 先月\n"
            "先月の同じ期間と比べた傾向の違いにも触れてください。\n"
            "比較データが手元にない場合は、今回のデータから読み取れる変化の兆しを述べてください。"
        ),
        ComparisonOption.LAST_YEAR: (
            "## 🔄 比較分析: 去年同期\n"
            "去年の同じ時期と比べた季節的な傾向の違いにも触れてください。\n"
            "比較データが手元にない場合は、今回のデータから読み取れる変化の兆しを述べてください。"
        ),
    }

    FOCUS_DIRECTIVES: dict[AnalysisFocus, str] = {
        AnalysisFocus.MOOD_FOCUSED: (
            "## 🎯 分析重点: 気分重視\n"
            "気分の変化、傾向、パターンを詳しく分析し、"
            "気分改善のための具体的なアドバイスを提供してください。\n"
            "活動との関連性も重視し、どの活動が気分にどう影響するかを明確にしてください。"
        ),
        AnalysisFocus.ACTIVITY_FOCUSED: (
            "## ⚡ 分析重点: 活動重視\n"
            "活動パターン、時間配分、効率性を詳しく分析してください。\n"
            "どの活動が最も価値を生んでいるか、"
            "時間の使い方で改善できる点を具体的に指摘してください。"
        ),
        AnalysisFocus.WELLNESS_FOCUSED: (
            "## 🌱 分析重点: ウェルネス重視\n"
            "健康、生活習慣、ウェルビーイングの観点から分析してください。\n"
            "長期的な健康と幸福につながる生活パターンの改善提案を重視してください。"
        ),
        AnalysisFocus.BALANCED: (
            "## ⚖️ 分析重点: バランス重視\n"
            "気分と活動の両方を均等に分析し、"
            "全体的な生活バランスの観点からアドバイスしてください。"
        ),
    }

    DETAIL_DIRECTIVES: dict[DetailLevel, str] = {
        DetailLevel.CONCISE: (
            "## 📝 詳細レベル: 簡潔\n"
            "要点を絞り、短文で分かりやすく伝えてください。具体例は必要最小限に留めてください。"
        ),
        DetailLevel.STANDARD: (
            "## 📝 詳細レベル: 標準\n"
            "適度な詳細度で、理解しやすい説明と具体例を含めてください。"
        ),
        DetailLevel.DETAILED: (
            "## 📝 詳細レベル: 詳細\n"
            "深い洞察と豊富な具体例、ステップバイステップの詳しいアドバイスを提供してください。\n"
            "背景理由も含めて詳しく説明してください。"
        ),
    }

    ANSWER_POLICY = """## ✨ 回答方針
- 具体的で実行しやすい提案
- ポジティブな面を強調
- データが少ない場合は「データが限られているため推測になります」と伝える
- JSON形式を厳密に守る（ダブルクォート使用、エスケープ処理）
- 改行文字や特殊文字を避ける"""

    # (簡潔, 標準, 詳細) ごとの出力量
    SUMMARY_LENGTHS = {
        DetailLevel.CONCISE: 50,
        DetailLevel.STANDARD: 100,
        DetailLevel.DETAILED: 150,
    }
    ANALYSIS_LENGTHS = {
        DetailLevel.CONCISE: (80, 100),
        DetailLevel.STANDARD: (150, 200),
        DetailLevel.DETAILED: (200, 300),
    }
    RECOMMENDATION_COUNTS = {
        DetailLevel.CONCISE: 2,
        DetailLevel.STANDARD: 3,
        DetailLevel.DETAILED: 5,
    }
    HIGHLIGHT_COUNTS = {
        DetailLevel.CONCISE: 1,
        DetailLevel.STANDARD: 2,
        DetailLevel.DETAILED: 3,
    }
    MOTIVATIONAL_LENGTHS = {
        DetailLevel.CONCISE: 40,
        DetailLevel.STANDARD: 80,
        DetailLevel.DETAILED: 120,
    }

    def generate(
        self, request: AnalysisRequest, config: AnalysisConfig | None = None
    ) -> str:
        """分析リクエストと設定からプロンプトを生成"""
        config = config or AnalysisConfig()

        sections = [
            self.STYLE_PREAMBLES[config.response_style],
            self._settings_section(request, config),
        ]
        comparison = self.COMPARISON_DIRECTIVES.get(config.comparison_option)
        if comparison:
            sections.append(comparison)
        sections.extend(
            [
                self._overview_section(request),
                self._detail_section(request),
                self.FOCUS_DIRECTIVES[config.focus],
                self.DETAIL_DIRECTIVES[config.detail_level],
                self.ANSWER_POLICY,
                self._output_schema_section(config),
            ]
        )
        return "\n\n".join(section for section in sections if section)

    def _settings_section(
        self, request: AnalysisRequest, config: AnalysisConfig
    ) -> str:
        day_count = request.period_summary.day_count
        return "\n".join(
            [
                "## 📊 分析設定",
                f"- 期間: {config.period.display_name} "
                f"({request.start_date} ～ {request.end_date}、{day_count}日間)",
                f"- 比較: {config.comparison_option.display_name}",
                f"- 焦点: {config.focus.emoji} {config.focus.display_name}",
                f"- 詳細度: {config.detail_level.display_name}",
                f"- 口調: {config.response_style.emoji} "
                f"{config.response_style.display_name}",
            ]
        )

    def _overview_section(self, request: AnalysisRequest) -> str:
        mood_line = (
            f"気分記録: {self._summarize_moods(request.mood_records)}"
            if request.mood_records
            else "気分記録: データなし"
        )
        activity_line = (
            f"活動記録: {self._summarize_activities(request)}"
            if request.activities
            else "活動記録: データなし"
        )
        return f"## 📈 データ概要\n{mood_line}\n{activity_line}"

    @staticmethod
    def _summarize_moods(mood_records: tuple[MoodRecord, ...]) -> str:
        moods = [record.mood for record in mood_records]
        average = sum(moods) / len(moods)
        return (
            f"{len(moods)}件の記録、平均{average:.1f}点、"
            f"範囲: {min(moods)}～{max(moods)}点"
        )

    @staticmethod
    def _summarize_activities(request: AnalysisRequest) -> str:
        activities = request.activities
        summary = request.period_summary
        distinct = len({activity.category for activity in activities})
        top = summary.top_category or "不明"
        return (
            f"{len(activities)}件の活動、{distinct}カテゴリ、最多: {top}、"
            f"合計{summary.activity_hours:.1f}時間"
        )

    def _detail_section(self, request: AnalysisRequest) -> str:
        parts = ["## 📋 詳細データ"]
        if request.mood_records:
            parts.append(self._format_moods(request.mood_records))
        if request.activities:
            parts.append(self._format_categories(request.activities))
        return "\n".join(parts)

    @staticmethod
    def _format_moods(mood_records: tuple[MoodRecord, ...]) -> str:
        # 日付順に並べて最新 7 件
        recent = sorted(mood_records, key=lambda record: record.date)[
            -MAX_MOOD_ENTRIES:
        ]
        formatted = []
        for record in recent:
            note = record.note.strip()
            suffix = f" ({note[:MOOD_NOTE_LIMIT]})" if note else ""
            formatted.append(f"{record.date}: {record.mood}点{suffix}")
        return "### 気分記録詳細\n" + ", ".join(formatted)

    @staticmethod
    def _format_categories(activities: tuple[Activity, ...]) -> str:
        lines = [
            f"- {category}: {count}件"
            for category, count in category_counts(activities)[:MAX_CATEGORIES]
        ]
        return "### 活動記録詳細\n" + "\n".join(lines)

    def _output_schema_section(self, config: AnalysisConfig) -> str:
        level = config.detail_level
        normal_length, focused_length = self.ANALYSIS_LENGTHS[level]
        mood_length = (
            focused_length
            if config.focus == AnalysisFocus.MOOD_FOCUSED
            else normal_length
        )
        activity_length = (
            focused_length
            if config.focus == AnalysisFocus.ACTIVITY_FOCUSED
            else normal_length
        )

        schema = {
            "summary": f"期間全体の総評（{self.SUMMARY_LENGTHS[level]}文字以内）",
            "moodAnalysis": f"気分の傾向分析（{mood_length}文字以内）",
            "activityAnalysis": f"活動パターン分析（{activity_length}文字以内）",
            "recommendations": [
                f"アドバイス{i}"
                for i in range(1, self.RECOMMENDATION_COUNTS[level] + 1)
            ],
            "highlights": [
                f"良かった点{i}" for i in range(1, self.HIGHLIGHT_COUNTS[level] + 1)
            ],
            "motivationalMessage": (
                f"励ましメッセージ（{self.MOTIVATIONAL_LENGTHS[level]}文字以内）"
            ),
        }
        return (
            "## 🎯 出力形式\n"
            "以下の形式の**有効なJSON**オブジェクト 1 つだけで回答してください。"
            "前後に説明文やコードブロックを付けないでください：\n\n"
            + json.dumps(schema, ensure_ascii=False, indent=2)
        )
