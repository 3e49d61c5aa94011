"""Repository abstractions for the service layer."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from app.domain.entities import (
    AdmissionInfo,
    AdmissionSchedule,
    Department,
    Major,
    Subject,
    TestType,
    University,
)

# 階層レベル名（ロック順 = この並び）
LEVELS: tuple[str, ...] = (
    "universities",
    "departments",
    "majors",
    "admission_schedules",
    "admission_infos",
    "test_types",
    "subjects",
)


@dataclass
class TreePath:
    """Identifiers of one node and its ancestors."""

    university_id: int
    department_id: int | None = None
    major_id: int | None = None
    admission_schedule_id: int | None = None
    test_type_id: int | None = None

    def items(self) -> list[tuple[str, int]]:
        pairs = [
            ("universities", self.university_id),
            ("departments", self.department_id),
            ("majors", self.major_id),
            ("admission_schedules", self.admission_schedule_id),
            ("test_types", self.test_type_id),
        ]
        return [(table, ident) for table, ident in pairs if ident is not None]


class UniversityRepository(Protocol):
    # --- reads ---
    async def list_trees(self, university_ids: Sequence[int] | None = None) -> list[University]: ...

    async def get_tree(self, university_id: int) -> University | None: ...

    async def search_ids(self, query: str) -> list[int]: ...

    async def get_department(self, university_id: int, department_id: int) -> Department | None: ...

    async def get_major(self, department_id: int, major_id: int) -> Major | None: ...

    async def get_schedule(self, major_id: int, schedule_id: int) -> AdmissionSchedule | None: ...

    async def get_admission_info(self, schedule_id: int, info_id: int) -> AdmissionInfo | None: ...

    async def get_test_type(
        self, test_type_id: int, *, department_id: int | None = None
    ) -> TestType | None: ...

    async def get_subject(self, department_id: int, subject_id: int) -> Subject | None: ...

    async def path_of(self, table: str, entity_id: int) -> TreePath | None: ...

    async def exists(self, table: str, entity_id: int) -> bool: ...

    # --- writes ---
    async def lock(self, path: TreePath) -> bool: ...

    async def insert_university(self, university: University) -> University: ...

    async def insert_department(self, university_id: int, department: Department) -> Department: ...

    async def insert_major(self, department_id: int, major: Major) -> Major: ...

    async def insert_admission_info(self, schedule_id: int, info: AdmissionInfo) -> AdmissionInfo: ...

    async def insert_subject(self, test_type_id: int, subject: Subject) -> Subject: ...

    async def update_versioned(
        self, table: str, entity_id: int, expected_version: int, values: Mapping[str, Any]
    ) -> int | None: ...

    async def update_subject_row(self, subject_id: int, values: Mapping[str, Any]) -> None: ...

    async def soft_delete(self, table: str, entity_id: int, *, now: datetime) -> bool: ...

    async def live_subjects(self, test_type_id: int) -> list[Subject]: ...

    async def shift_subject_orders(self, test_type_id: int, offset: int) -> None: ...

    async def next_subject_order(self, test_type_id: int) -> int: ...

    async def write_percentages(self, percentages: Mapping[int, float]) -> None: ...
