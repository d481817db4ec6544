"""Test prompt generation."""

import json

import pytest

from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisFocus,
    ComparisonOption,
    DetailLevel,
    ResponseStyle,
)
from mood_insight.ai.prompts import PromptGenerator
from mood_insight.ai.request import assemble_request
from mood_insight.lifelog.models import Activity, MoodRecord


@pytest.fixture
def generator():
    return PromptGenerator()


@pytest.fixture
def request_data(mood_records, activities):
    return assemble_request("2024-01-01", "2024-01-07", mood_records, activities)


def _schema(prompt: str) -> dict:
    start = prompt.index("{", prompt.index("## 🎯 出力形式"))
    return json.loads(prompt[start:])


class TestPromptSections:
    def test_default_config_sections(self, generator, request_data):
        prompt = generator.generate(request_data)

        preamble = PromptGenerator.STYLE_PREAMBLES[ResponseStyle.FRIENDLY]
        assert prompt.startswith(preamble)
        assert "## 📊 分析設定" in prompt
        assert "2024-01-01 ～ 2024-01-07、7日間" in prompt
        assert "## 📈 データ概要" in prompt
        assert "## ⚖️ 分析重点: バランス重視" in prompt
        assert "## 📝 詳細レベル: 標準" in prompt
        assert "## ✨ 回答方針" in prompt
        assert "比較分析" not in prompt

    def test_overview_lines(self, generator, request_data):
        prompt = generator.generate(request_data)

        assert "気分記録: 2件の記録、平均3.0点、範囲: 2～4点" in prompt
        assert "活動記録: 3件の活動、2カテゴリ、最多: 運動、合計3.0時間" in prompt

    def test_missing_activities_say_no_data(self, generator, mood_records):
        request = assemble_request("2024-01-01", "2024-01-07", mood_records, [])

        prompt = generator.generate(request)

        assert "活動記録: データなし" in prompt
        assert "### 活動記録詳細" not in prompt

    @pytest.mark.parametrize(
        "option",
        [
            ComparisonOption.PREVIOUS_PERIOD,
            ComparisonOption.LAST_MONTH,
            ComparisonOption.LAST_YEAR,
        ],
    )
    def test_comparison_directive_present(self, generator, request_data, option):
        prompt = generator.generate(
            request_data, AnalysisConfig(comparison_option=option)
        )

        assert f"## 🔄 比較分析: {option.display_name}" in prompt

    def test_style_and_focus_switch(self, generator, request_data):
        config = AnalysisConfig(
            focus=AnalysisFocus.WELLNESS_FOCUSED,
            response_style=ResponseStyle.PROFESSIONAL,
            detail_level=DetailLevel.DETAILED,
        )

        prompt = generator.generate(request_data, config)

        assert prompt.startswith("あなたは専門的で客観的なライフアナリストです。")
        assert "## 🌱 分析重点: ウェルネス重視" in prompt
        assert "## 📝 詳細レベル: 詳細" in prompt


class TestDetailData:
    def test_only_latest_seven_moods(self, generator):
        moods = [
            MoodRecord(date=f"2024-01-{day:02d}", mood=3) for day in range(10, 0, -1)
        ]
        request = assemble_request("2024-01-01", "2024-01-10", moods, [])

        prompt = generator.generate(request)

        detail = prompt.split("### 気分記録詳細\n", 1)[1].split("\n", 1)[0]
        assert detail.split(", ")[0] == "2024-01-04: 3点"
        assert detail.count("点") == 7
        assert "2024-01-03" not in detail

    def test_note_is_truncated(self, generator):
        note = "あ" * 30
        mood = MoodRecord(date="2024-01-01", mood=5, note=note)
        request = assemble_request("2024-01-01", "2024-01-01", [mood], [])

        prompt = generator.generate(request)

        assert f"2024-01-01: 5点 ({'あ' * 20})" in prompt
        assert "あ" * 21 not in prompt

    def test_top_five_categories(self, generator):
        activities = [
            Activity(
                title="x", start="10:00", end="11:00", date="2024-01-01", category=c
            )
            for c in ["a", "a", "b", "c", "d", "e", "f", "f", "f"]
        ]
        request = assemble_request("2024-01-01", "2024-01-01", [], activities)

        prompt = generator.generate(request)

        detail = prompt.split("### 活動記録詳細\n", 1)[1]
        lines = detail.split("\n\n", 1)[0].splitlines()
        assert lines == ["- f: 3件", "- a: 2件", "- b: 1件", "- c: 1件", "- d: 1件"]


class TestOutputSchema:
    @pytest.mark.parametrize(
        ("level", "recommendations", "highlights", "summary_len"),
        [
            (DetailLevel.CONCISE, 2, 1, 50),
            (DetailLevel.STANDARD, 3, 2, 100),
            (DetailLevel.DETAILED, 5, 3, 150),
        ],
    )
    def test_placeholder_counts(
        self, generator, request_data, level, recommendations, highlights, summary_len
    ):
        config = AnalysisConfig(detail_level=level)
        schema = _schema(generator.generate(request_data, config))

        assert set(schema) == {
            "summary",
            "moodAnalysis",
            "activityAnalysis",
            "recommendations",
            "highlights",
            "motivationalMessage",
        }
        assert len(schema["recommendations"]) == recommendations
        assert schema["recommendations"][0] == "アドバイス1"
        assert len(schema["highlights"]) == highlights
        assert f"{summary_len}文字以内" in schema["summary"]

    def test_focused_section_gets_longer_limit(self, generator, request_data):
        schema = _schema(
            generator.generate(
                request_data, AnalysisConfig(focus=AnalysisFocus.MOOD_FOCUSED)
            )
        )

        assert "200文字以内" in schema["moodAnalysis"]
        assert "150文字以内" in schema["activityAnalysis"]
