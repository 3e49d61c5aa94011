# app/utils/validation.py
"""入力値チェックの小さなヘルパー群（パスパラメータ・検索クエリ・文字列）。"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

from app.core.exceptions import InvalidInputError

SEARCH_QUERY_MAX_LENGTH = 100

MSG_QUERY_REQUIRED = "検索クエリは必須です"
MSG_QUERY_TOO_LONG = "検索クエリは100文字以内で入力してください"
MSG_QUERY_FORBIDDEN = "検索クエリに不正な文字が含まれています"
MSG_INVALID_ID = "IDは正の整数で指定してください"

_FORBIDDEN_QUERY_CHARS = frozenset(";%")
_DIGITS = re.compile(r"[0-9]+")
_WHITESPACE_RUN = re.compile(r"\s+")


def parse_id(raw: str, *, name: str = "id") -> int:
    """Parse a positive decimal identifier; signs, blanks and zero are rejected."""

    if not raw or not _DIGITS.fullmatch(raw):
        raise InvalidInputError(MSG_INVALID_ID, code="invalid_id").with_context("param", name)
    value = int(raw)
    if value <= 0:
        raise InvalidInputError(MSG_INVALID_ID, code="invalid_id").with_context("param", name)
    return value


def validate_search_query(q: str | None) -> str:
    query = (q or "").strip()
    if not query:
        raise InvalidInputError(MSG_QUERY_REQUIRED, code="query_required")
    if len(query) > SEARCH_QUERY_MAX_LENGTH:
        raise InvalidInputError(MSG_QUERY_TOO_LONG, code="query_too_long")
    if any(ch in _FORBIDDEN_QUERY_CHARS for ch in query):
        raise InvalidInputError(MSG_QUERY_FORBIDDEN, code="query_forbidden_character")
    # 保存時の名前と同じ正規化を掛けて照合する
    return normalize_name(query)


def normalize_name(value: str) -> str:
    """NFC + 全角スペースを半角化 + 連続空白の圧縮 + 前後トリム"""
    text = unicodedata.normalize("NFC", value).replace("　", " ")
    return _WHITESPACE_RUN.sub(" ", text).strip()


def has_control_characters(value: str) -> bool:
    return any(ord(ch) < 32 or 127 <= ord(ch) <= 159 for ch in value)


def length_within(value: str, max_length: int) -> bool:
    return 0 < len(value) <= max_length


def in_range(value: int | float, lower: int | float, upper: int | float) -> bool:
    return lower <= value <= upper


def is_one_of(value: str, choices: Iterable[str]) -> bool:
    return value in set(choices)
