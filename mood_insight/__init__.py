"""
mood-insight: 気分・活動記録から AI ライフインサイトを生成するパイプライン
"""

__version__ = "0.3.0"
