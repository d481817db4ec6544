"""HTTP レスポンスの値オブジェクト"""

import json
from typing import Any

from pydantic import BaseModel, Field


class HttpResponse(BaseModel):
    """読み取り済みの HTTP レスポンス"""

    status: int
    body: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    # リトライ層が通信失敗から合成したレスポンス
    synthetic: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status <= 599

    def json(self) -> Any:
        return json.loads(self.body)

    def error_detail(self) -> str:
        """エラーボディから message / error を取り出す（取れなければ本文）"""
        try:
            data = self.json()
        except ValueError:
            return self.body.strip()
        if isinstance(data, dict):
            for key in ("message", "error", "detail"):
                value = data.get(key)
                if isinstance(value, str):
                    return value
                if isinstance(value, dict) and isinstance(value.get("message"), str):
                    return value["message"]
        return self.body.strip()
