"""
バックエンド応答の後処理

バックエンド API はアドバイスを 1 つの文字列で返し、ハイライトと励ましメッセージを返さない。
ここでそれらを補完する。
"""

import re

MAX_RECOMMENDATIONS = 5
MAX_HIGHLIGHTS = 3

HIGHLIGHT_KEYWORDS = ("改善", "向上", "良い", "注意", "重要", "おすすめ", "効果的")
POSITIVE_KEYWORDS = ("続ける", "維持", "良い", "素晴らしい", "順調")

POSITIVE_MESSAGE = "素晴らしい取り組みです！この調子で続けていきましょう 💪"
GENTLE_MESSAGE = "小さな変化から始めて、一歩ずつ前進していきましょう 🌱"

_BULLET_PREFIX = re.compile(r"^(?:[・\-*]\s*|\d+\.\s*)")


def split_recommendations(text: str | None) -> list[str]:
    """改行区切りのアドバイス文字列を最大 5 件のリストに分割"""
    if not text:
        return []

    items = []
    for line in text.splitlines():
        item = _BULLET_PREFIX.sub("", line.strip()).strip()
        if item:
            items.append(item)
        if len(items) >= MAX_RECOMMENDATIONS:
            break
    return items


def extract_highlights(summary: str | None) -> list[str]:
    """総評からキーワードを含む文を最大 3 件抽出"""
    if not summary:
        return []

    highlights = []
    for sentence in summary.split("。"):
        sentence = sentence.strip()
        if sentence and any(keyword in sentence for keyword in HIGHLIGHT_KEYWORDS):
            highlights.append(sentence)
        if len(highlights) >= MAX_HIGHLIGHTS:
            break
    return highlights


def select_motivational_message(recommendations: list[str] | str | None) -> str:
    """アドバイスの内容から励ましメッセージを選択"""
    if isinstance(recommendations, list):
        text = "\n".join(recommendations)
    else:
        text = recommendations or ""

    if any(keyword in text for keyword in POSITIVE_KEYWORDS):
        return POSITIVE_MESSAGE
    return GENTLE_MESSAGE
