"""DTOs for the university tree responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _NodeDTO(BaseModel):
    id: int = Field(description="ID")
    version: int = Field(description="楽観ロック用バージョン")
    created_at: str | None = Field(default=None, description="作成日時（RFC 3339）")
    updated_at: str | None = Field(default=None, description="更新日時（RFC 3339）")

    model_config = ConfigDict(from_attributes=True)


class SubjectDTO(_NodeDTO):
    test_type_id: int | None = Field(default=None, description="試験種別ID")
    name: str = Field(description="科目名")
    score: int = Field(description="配点")
    percentage: float = Field(description="配点比率（%）")
    display_order: int = Field(description="表示順")


class TestTypeDTO(_NodeDTO):
    admission_schedule_id: int | None = Field(default=None, description="入試日程ID")
    name: str = Field(description="試験種別（共通 / 二次）")
    subjects: list[SubjectDTO] = Field(default_factory=list, description="科目一覧")


class AdmissionInfoDTO(_NodeDTO):
    admission_schedule_id: int | None = Field(default=None, description="入試日程ID")
    academic_year: int = Field(description="学年度")
    valid_from: str = Field(description="有効期間開始")
    valid_until: str = Field(description="有効期間終了")
    enrollment: int = Field(description="募集人数")
    status: str = Field(description="draft / published / archived")


class AdmissionScheduleDTO(_NodeDTO):
    major_id: int | None = Field(default=None, description="学科ID")
    name: str = Field(description="日程名")
    display_order: int = Field(description="表示順")
    admission_infos: list[AdmissionInfoDTO] | None = Field(default=None, description="入試情報")
    test_types: list[TestTypeDTO] | None = Field(default=None, description="試験種別")


class MajorDTO(_NodeDTO):
    department_id: int | None = Field(default=None, description="学部ID")
    name: str = Field(description="学科名")
    admission_schedules: list[AdmissionScheduleDTO] | None = Field(
        default=None, description="入試日程（単体取得時は省略）"
    )


class DepartmentDTO(_NodeDTO):
    university_id: int | None = Field(default=None, description="大学ID")
    name: str = Field(description="学部名")
    majors: list[MajorDTO] | None = Field(default=None, description="学科（単体取得時は省略）")


class UniversityDTO(_NodeDTO):
    name: str = Field(description="大学名")
    departments: list[DepartmentDTO] = Field(default_factory=list, description="学部一覧")


class SearchMetaDTO(BaseModel):
    query: str = Field(description="正規化後の検索クエリ")
    count: int = Field(description="ヒット件数")
    timestamp: str = Field(description="応答時刻（RFC 3339）")


class UniversitySearchResponseDTO(BaseModel):
    data: list[UniversityDTO]
    meta: SearchMetaDTO


class SubjectResponseDTO(BaseModel):
    data: SubjectDTO


class BatchMetaDTO(BaseModel):
    count: int = Field(description="更新後の科目数")
    timestamp: str = Field(description="応答時刻（RFC 3339）")


class SubjectBatchResponseDTO(BaseModel):
    data: list[SubjectDTO]
    meta: BatchMetaDTO
