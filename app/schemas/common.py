# app/schemas/common.py
from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    code: str = Field(description="エラー種別（NOT_FOUND, VALIDATION_ERROR など）")
    message: str = Field(description="エラーメッセージ")
    details: dict[str, Any] | None = Field(default=None, description="補足情報")

    model_config = {
        "json_schema_extra": {
            "examples": [{"code": "NOT_FOUND", "message": "大学が見つかりません", "details": None}]
        }
    }


class OkResponse(BaseModel):
    ok: bool = Field(description="成功可否（true 固定）")

    model_config = {"json_schema_extra": {"examples": [{"ok": True}]}}


class CacheStatsResponse(BaseModel):
    hits: int = Field(description="キャッシュヒット数")
    misses: int = Field(description="キャッシュミス数")
    items: int = Field(description="保持中のエントリ数")


class ReadyResponse(OkResponse):
    cache: CacheStatsResponse | None = Field(default=None, description="キャッシュ統計")
