"""Plain domain records for the university / admission tree.

Nodes reference their parent by identifier only; trees are materialised by the
repository. ``id`` stays None until the first persist.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ScheduleName(StrEnum):
    EARLY = "前期"
    MIDDLE = "中期"
    LATE = "後期"


class TestTypeName(StrEnum):
    __test__ = False

    COMMON = "共通"
    SECONDARY = "二次"


class AdmissionStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


@dataclass(kw_only=True)
class Entity:
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    version: int = 1


@dataclass(kw_only=True)
class Subject(Entity):
    name: str
    score: int
    percentage: float = 0.0
    display_order: int | None = None
    test_type_id: int | None = None


@dataclass(kw_only=True)
class TestType(Entity):
    __test__ = False

    name: str
    admission_schedule_id: int | None = None
    subjects: list[Subject] = field(default_factory=list)


@dataclass(kw_only=True)
class AdmissionInfo(Entity):
    academic_year: int
    valid_from: datetime
    valid_until: datetime
    enrollment: int = 0
    status: str = AdmissionStatus.DRAFT.value
    admission_schedule_id: int | None = None


@dataclass(kw_only=True)
class AdmissionSchedule(Entity):
    name: str
    display_order: int
    major_id: int | None = None
    admission_infos: list[AdmissionInfo] = field(default_factory=list)
    test_types: list[TestType] = field(default_factory=list)


@dataclass(kw_only=True)
class Major(Entity):
    name: str
    department_id: int | None = None
    admission_schedules: list[AdmissionSchedule] = field(default_factory=list)


@dataclass(kw_only=True)
class Department(Entity):
    name: str
    university_id: int | None = None
    majors: list[Major] = field(default_factory=list)


@dataclass(kw_only=True)
class University(Entity):
    name: str
    departments: list[Department] = field(default_factory=list)
