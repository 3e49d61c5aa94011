"""Request bodies for /api/universities.

Structural typing only; domain rules (lengths, ranges, year bounds) are
checked by app.domain.validators so that errors carry rule ids.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SubjectItem(_Request):
    name: str = Field(description="科目名（20文字以内）")
    score: int = Field(description="配点（0以上）")
    display_order: int | None = Field(default=None, description="表示順（省略時は末尾）")


class SubjectCreateRequest(SubjectItem):
    test_type_id: int = Field(description="所属する試験種別ID")


class SubjectUpdateRequest(SubjectItem):
    version: int = Field(ge=0, description="楽観ロック用バージョン")


class SubjectBatchItem(SubjectItem):
    id: int | None = Field(default=None, description="既存科目ID（省略時は科目名で照合）")


class TestTypeRequest(_Request):
    name: str = Field(description="試験種別（共通 / 二次）")
    subjects: list[SubjectItem] = Field(default_factory=list, description="科目一覧")


class AdmissionInfoCreateRequest(_Request):
    academic_year: int = Field(description="学年度（2000〜2100）")
    valid_from: datetime = Field(description="有効期間開始（RFC 3339）")
    valid_until: datetime = Field(description="有効期間終了（RFC 3339）")
    enrollment: int = Field(default=0, description="募集人数")
    status: str = Field(default="draft", description="draft / published / archived")


class AdmissionInfoUpdateRequest(AdmissionInfoCreateRequest):
    version: int = Field(ge=0, description="楽観ロック用バージョン")


class AdmissionScheduleRequest(_Request):
    name: str = Field(description="日程名（前期 / 中期 / 後期）")
    display_order: int = Field(description="表示順（1〜3）")
    admission_infos: list[AdmissionInfoCreateRequest] = Field(default_factory=list)
    test_types: list[TestTypeRequest] = Field(default_factory=list)


class AdmissionScheduleUpdateRequest(_Request):
    name: str = Field(description="日程名（前期 / 中期 / 後期）")
    display_order: int = Field(description="表示順（1〜3）")
    version: int = Field(ge=0, description="楽観ロック用バージョン")


class MajorCreateRequest(_Request):
    name: str = Field(description="学科名（50文字以内）")
    admission_schedules: list[AdmissionScheduleRequest] = Field(default_factory=list)


class MajorUpdateRequest(_Request):
    name: str = Field(description="学科名（50文字以内）")
    version: int = Field(ge=0, description="楽観ロック用バージョン")


class DepartmentCreateRequest(_Request):
    name: str = Field(description="学部名（50文字以内）")
    majors: list[MajorCreateRequest] = Field(default_factory=list)


class DepartmentUpdateRequest(_Request):
    name: str = Field(description="学部名（50文字以内）")
    version: int = Field(ge=0, description="楽観ロック用バージョン")


class UniversityCreateRequest(_Request):
    name: str = Field(description="大学名（100文字以内）")
    departments: list[DepartmentCreateRequest] = Field(default_factory=list)

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "name": "津々大学",
                    "departments": [
                        {
                            "name": "医学部",
                            "majors": [
                                {
                                    "name": "医学科",
                                    "admission_schedules": [
                                        {
                                            "name": "前期",
                                            "display_order": 1,
                                            "test_types": [
                                                {
                                                    "name": "共通",
                                                    "subjects": [
                                                        {"name": "英語R", "score": 50},
                                                        {"name": "数学", "score": 100},
                                                    ],
                                                }
                                            ],
                                        }
                                    ],
                                }
                            ],
                        }
                    ],
                }
            ]
        },
    )


class UniversityUpdateRequest(_Request):
    name: str = Field(description="大学名（100文字以内）")
    version: int = Field(ge=0, description="楽観ロック用バージョン")
