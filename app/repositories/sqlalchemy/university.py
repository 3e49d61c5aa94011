"""SQLAlchemy implementation of the university tree repository.

Rows are converted into plain domain records here; nothing above this module
sees ORM objects. Trees are loaded level by level (one query per level) and
assembled in memory.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, union_all, update
from sqlalchemy.ext.asyncio import AsyncSession

from app import models as orm
from app.domain.entities import (
    AdmissionInfo,
    AdmissionSchedule,
    Department,
    Entity,
    Major,
    Subject,
    TestType,
    University,
)
from app.repositories.interfaces import TreePath, UniversityRepository
from app.utils.datetime import utcnow
from app.utils.validation import normalize_name

MODELS: dict[str, type[orm.Base]] = {
    "universities": orm.University,
    "departments": orm.Department,
    "majors": orm.Major,
    "admission_schedules": orm.AdmissionSchedule,
    "admission_infos": orm.AdmissionInfo,
    "test_types": orm.TestType,
    "subjects": orm.Subject,
}

# child table -> (parent table, FK column)
PARENTS: dict[str, tuple[str, str]] = {
    "departments": ("universities", "university_id"),
    "majors": ("departments", "department_id"),
    "admission_schedules": ("majors", "major_id"),
    "admission_infos": ("admission_schedules", "admission_schedule_id"),
    "test_types": ("admission_schedules", "admission_schedule_id"),
    "subjects": ("test_types", "test_type_id"),
}

# parent -> children, in lock order
CHILDREN: dict[str, tuple[str, ...]] = {
    "universities": ("departments",),
    "departments": ("majors",),
    "majors": ("admission_schedules",),
    "admission_schedules": ("admission_infos", "test_types"),
    "admission_infos": (),
    "test_types": ("subjects",),
    "subjects": (),
}

# 文字列は NFC 正規化して保存する（検索も NFC 前提）
_NAME_KEY = "name"

# 一時的に表示順を退避させるオフセット（一意インデックス回避）
SUBJECT_ORDER_SHIFT = 100_000


def _base(row: Any) -> dict[str, Any]:
    return {
        "id": row.id,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
        "deleted_at": row.deleted_at,
        "version": row.version,
    }


def _to_university(row: orm.University) -> University:
    return University(**_base(row), name=row.name)


def _to_department(row: orm.Department) -> Department:
    return Department(**_base(row), name=row.name, university_id=row.university_id)


def _to_major(row: orm.Major) -> Major:
    return Major(**_base(row), name=row.name, department_id=row.department_id)


def _to_schedule(row: orm.AdmissionSchedule) -> AdmissionSchedule:
    return AdmissionSchedule(
        **_base(row), name=row.name, display_order=row.display_order, major_id=row.major_id
    )


def _to_admission_info(row: orm.AdmissionInfo) -> AdmissionInfo:
    return AdmissionInfo(
        **_base(row),
        academic_year=row.academic_year,
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        enrollment=row.enrollment,
        status=row.status,
        admission_schedule_id=row.admission_schedule_id,
    )


def _to_test_type(row: orm.TestType) -> TestType:
    return TestType(**_base(row), name=row.name, admission_schedule_id=row.admission_schedule_id)


def _to_subject(row: orm.Subject) -> Subject:
    return Subject(
        **_base(row),
        name=row.name,
        score=row.score,
        percentage=row.percentage,
        display_order=row.display_order,
        test_type_id=row.test_type_id,
    )


def _stamp(entity: Entity, row: Any) -> None:
    entity.id = row.id
    entity.created_at = row.created_at
    entity.updated_at = row.updated_at
    entity.deleted_at = None
    entity.version = row.version


def _group(items: Iterable[Any], key: str) -> dict[int, list[Any]]:
    out: dict[int, list[Any]] = defaultdict(list)
    for item in items:
        out[getattr(item, key)].append(item)
    return out


class SqlAlchemyUniversityRepository(UniversityRepository):
    """Default SQLAlchemy-backed implementation."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ------------------------------------------------------------------ reads
    async def _children(self, model, parent_column, parent_ids: Sequence[int], order_by):
        if not parent_ids:
            return []
        stmt = (
            select(model)
            .where(parent_column.in_(parent_ids), model.deleted_at.is_(None))
            .order_by(*order_by)
            .execution_options(populate_existing=True)
        )
        return (await self._session.scalars(stmt)).all()

    async def list_trees(self, university_ids: Sequence[int] | None = None) -> list[University]:
        U = orm.University
        stmt = select(U).where(U.deleted_at.is_(None)).order_by(U.id)
        if university_ids is not None:
            if not university_ids:
                return []
            stmt = stmt.where(U.id.in_(university_ids))
        stmt = stmt.execution_options(populate_existing=True)
        universities = [_to_university(r) for r in (await self._session.scalars(stmt)).all()]
        if not universities:
            return []

        D, M, S = orm.Department, orm.Major, orm.AdmissionSchedule
        rows = await self._children(D, D.university_id, [u.id for u in universities], (D.id,))
        departments = [_to_department(r) for r in rows]
        by_parent = _group(departments, "university_id")
        for u in universities:
            u.departments = by_parent.get(u.id, [])

        rows = await self._children(M, M.department_id, [d.id for d in departments], (M.id,))
        majors = [_to_major(r) for r in rows]
        by_parent = _group(majors, "department_id")
        for d in departments:
            d.majors = by_parent.get(d.id, [])

        rows = await self._children(
            S, S.major_id, [m.id for m in majors], (S.display_order, S.id)
        )
        schedules = [_to_schedule(r) for r in rows]
        by_parent = _group(schedules, "major_id")
        for m in majors:
            m.admission_schedules = by_parent.get(m.id, [])

        schedule_ids = [s.id for s in schedules]
        AI, T, J = orm.AdmissionInfo, orm.TestType, orm.Subject
        rows = await self._children(
            AI, AI.admission_schedule_id, schedule_ids, (AI.created_at, AI.id)
        )
        infos = _group((_to_admission_info(r) for r in rows), "admission_schedule_id")
        rows = await self._children(T, T.admission_schedule_id, schedule_ids, (T.id,))
        test_types = [_to_test_type(r) for r in rows]
        by_parent = _group(test_types, "admission_schedule_id")
        for s in schedules:
            s.admission_infos = infos.get(s.id, [])
            s.test_types = by_parent.get(s.id, [])

        rows = await self._children(
            J, J.test_type_id, [t.id for t in test_types], (J.display_order, J.id)
        )
        subjects = _group((_to_subject(r) for r in rows), "test_type_id")
        for t in test_types:
            t.subjects = subjects.get(t.id, [])
        return universities

    async def get_tree(self, university_id: int) -> University | None:
        found = await self.list_trees([university_id])
        return found[0] if found else None

    async def search_ids(self, query: str) -> list[int]:
        U, D, M = orm.University, orm.Department, orm.Major
        by_university = select(U.id.label("university_id"), U.name.label("name")).where(
            U.deleted_at.is_(None), U.name.contains(query, autoescape=True)
        )
        by_department = (
            select(D.university_id.label("university_id"), D.name.label("name"))
            .join(U, U.id == D.university_id)
            .where(
                D.deleted_at.is_(None),
                U.deleted_at.is_(None),
                D.name.contains(query, autoescape=True),
            )
        )
        by_major = (
            select(D.university_id.label("university_id"), M.name.label("name"))
            .join(D, D.id == M.department_id)
            .join(U, U.id == D.university_id)
            .where(
                M.deleted_at.is_(None),
                D.deleted_at.is_(None),
                U.deleted_at.is_(None),
                M.name.contains(query, autoescape=True),
            )
        )
        rows = (await self._session.execute(union_all(by_university, by_department, by_major))).all()
        # LIKE は DB によって大文字小文字を区別しないため、ここで厳密に絞り込む
        return sorted({int(r.university_id) for r in rows if query in r.name})

    async def _one(self, stmt):
        row = (await self._session.scalars(stmt.execution_options(populate_existing=True))).first()
        return row

    async def get_department(self, university_id: int, department_id: int) -> Department | None:
        D = orm.Department
        row = await self._one(
            select(D).where(
                D.id == department_id, D.university_id == university_id, D.deleted_at.is_(None)
            )
        )
        return _to_department(row) if row else None

    async def get_major(self, department_id: int, major_id: int) -> Major | None:
        M = orm.Major
        row = await self._one(
            select(M).where(
                M.id == major_id, M.department_id == department_id, M.deleted_at.is_(None)
            )
        )
        return _to_major(row) if row else None

    async def get_schedule(self, major_id: int, schedule_id: int) -> AdmissionSchedule | None:
        S = orm.AdmissionSchedule
        row = await self._one(
            select(S).where(S.id == schedule_id, S.major_id == major_id, S.deleted_at.is_(None))
        )
        return _to_schedule(row) if row else None

    async def get_admission_info(self, schedule_id: int, info_id: int) -> AdmissionInfo | None:
        AI = orm.AdmissionInfo
        row = await self._one(
            select(AI).where(
                AI.id == info_id,
                AI.admission_schedule_id == schedule_id,
                AI.deleted_at.is_(None),
            )
        )
        return _to_admission_info(row) if row else None

    async def get_test_type(
        self, test_type_id: int, *, department_id: int | None = None
    ) -> TestType | None:
        T, S, M = orm.TestType, orm.AdmissionSchedule, orm.Major
        stmt = select(T).where(T.id == test_type_id, T.deleted_at.is_(None))
        if department_id is not None:
            stmt = (
                stmt.join(S, S.id == T.admission_schedule_id)
                .join(M, M.id == S.major_id)
                .where(
                    M.department_id == department_id,
                    S.deleted_at.is_(None),
                    M.deleted_at.is_(None),
                )
            )
        row = await self._one(stmt)
        if row is None:
            return None
        test_type = _to_test_type(row)
        test_type.subjects = await self.live_subjects(test_type_id)
        return test_type

    async def get_subject(self, department_id: int, subject_id: int) -> Subject | None:
        J, T, S, M = orm.Subject, orm.TestType, orm.AdmissionSchedule, orm.Major
        stmt = (
            select(J)
            .join(T, T.id == J.test_type_id)
            .join(S, S.id == T.admission_schedule_id)
            .join(M, M.id == S.major_id)
            .where(
                J.id == subject_id,
                M.department_id == department_id,
                J.deleted_at.is_(None),
                T.deleted_at.is_(None),
                S.deleted_at.is_(None),
                M.deleted_at.is_(None),
            )
        )
        row = await self._one(stmt)
        return _to_subject(row) if row else None

    async def path_of(self, table: str, entity_id: int) -> TreePath | None:
        ids: dict[str, int] = {}
        current, ident = table, entity_id
        while True:
            model = MODELS[current]
            parent = PARENTS.get(current)
            columns = [model.id] + ([getattr(model, parent[1])] if parent else [])
            row = (
                await self._session.execute(
                    select(*columns).where(model.id == ident, model.deleted_at.is_(None))
                )
            ).first()
            if row is None:
                return None
            ids[current] = ident
            if parent is None:
                break
            current, ident = parent[0], row[1]
        return TreePath(
            university_id=ids["universities"],
            department_id=ids.get("departments"),
            major_id=ids.get("majors"),
            admission_schedule_id=ids.get("admission_schedules"),
            test_type_id=ids.get("test_types"),
        )

    async def exists(self, table: str, entity_id: int) -> bool:
        model = MODELS[table]
        row = (
            await self._session.execute(
                select(model.id).where(model.id == entity_id, model.deleted_at.is_(None))
            )
        ).first()
        return row is not None

    async def live_subjects(self, test_type_id: int) -> list[Subject]:
        J = orm.Subject
        rows = await self._children(J, J.test_type_id, [test_type_id], (J.display_order, J.id))
        return [_to_subject(r) for r in rows]

    async def next_subject_order(self, test_type_id: int) -> int:
        J = orm.Subject
        current = await self._session.scalar(
            select(func.coalesce(func.max(J.display_order), 0)).where(
                J.test_type_id == test_type_id, J.deleted_at.is_(None)
            )
        )
        return int(current or 0) + 1

    # ----------------------------------------------------------------- writes
    async def lock(self, path: TreePath) -> bool:
        """Row-lock the path top-down (university first)."""
        for table, ident in path.items():
            model = MODELS[table]
            row = (
                await self._session.execute(
                    select(model.id)
                    .where(model.id == ident, model.deleted_at.is_(None))
                    .with_for_update()
                )
            ).first()
            if row is None:
                return False
        return True

    async def _add(self, row: Any) -> Any:
        now = utcnow()
        row.created_at = now
        row.updated_at = now
        row.version = 1
        self._session.add(row)
        await self._session.flush()
        return row

    async def insert_university(self, university: University) -> University:
        row = await self._add(orm.University(name=normalize_name(university.name)))
        _stamp(university, row)
        university.name = row.name
        for department in university.departments:
            await self.insert_department(row.id, department)
        return university

    async def insert_department(self, university_id: int, department: Department) -> Department:
        row = await self._add(
            orm.Department(university_id=university_id, name=normalize_name(department.name))
        )
        _stamp(department, row)
        department.name = row.name
        department.university_id = university_id
        for major in department.majors:
            await self.insert_major(row.id, major)
        return department

    async def insert_major(self, department_id: int, major: Major) -> Major:
        row = await self._add(orm.Major(department_id=department_id, name=normalize_name(major.name)))
        _stamp(major, row)
        major.name = row.name
        major.department_id = department_id
        for schedule in major.admission_schedules:
            await self._insert_schedule(row.id, schedule)
        return major

    async def _insert_schedule(self, major_id: int, schedule: AdmissionSchedule) -> None:
        row = await self._add(
            orm.AdmissionSchedule(
                major_id=major_id, name=schedule.name, display_order=schedule.display_order
            )
        )
        _stamp(schedule, row)
        schedule.major_id = major_id
        for info in schedule.admission_infos:
            await self.insert_admission_info(row.id, info)
        for test_type in schedule.test_types:
            await self._insert_test_type(row.id, test_type)

    async def insert_admission_info(self, schedule_id: int, info: AdmissionInfo) -> AdmissionInfo:
        row = await self._add(
            orm.AdmissionInfo(
                admission_schedule_id=schedule_id,
                academic_year=info.academic_year,
                valid_from=info.valid_from,
                valid_until=info.valid_until,
                enrollment=info.enrollment,
                status=info.status,
            )
        )
        _stamp(info, row)
        info.admission_schedule_id = schedule_id
        return info

    async def _insert_test_type(self, schedule_id: int, test_type: TestType) -> None:
        row = await self._add(orm.TestType(admission_schedule_id=schedule_id, name=test_type.name))
        _stamp(test_type, row)
        test_type.admission_schedule_id = schedule_id
        for subject in test_type.subjects:
            await self.insert_subject(row.id, subject)

    async def insert_subject(self, test_type_id: int, subject: Subject) -> Subject:
        row = await self._add(
            orm.Subject(
                test_type_id=test_type_id,
                name=normalize_name(subject.name),
                score=subject.score,
                percentage=subject.percentage,
                display_order=subject.display_order,
            )
        )
        _stamp(subject, row)
        subject.name = row.name
        subject.test_type_id = test_type_id
        return subject

    async def update_versioned(
        self, table: str, entity_id: int, expected_version: int, values: Mapping[str, Any]
    ) -> int | None:
        """Compare-and-set on ``version``; returns the new version or None if nothing matched."""
        model = MODELS[table]
        payload = dict(values)
        if _NAME_KEY in payload:
            payload[_NAME_KEY] = normalize_name(payload[_NAME_KEY])
        stmt = (
            update(model)
            .where(
                model.id == entity_id,
                model.version == expected_version,
                model.deleted_at.is_(None),
            )
            .values(**payload, version=model.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return expected_version + 1

    async def update_subject_row(self, subject_id: int, values: Mapping[str, Any]) -> None:
        J = orm.Subject
        payload = dict(values)
        if _NAME_KEY in payload:
            payload[_NAME_KEY] = normalize_name(payload[_NAME_KEY])
        await self._session.execute(
            update(J)
            .where(J.id == subject_id, J.deleted_at.is_(None))
            .values(**payload, version=J.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    async def shift_subject_orders(self, test_type_id: int, offset: int) -> None:
        J = orm.Subject
        await self._session.execute(
            update(J)
            .where(J.test_type_id == test_type_id, J.deleted_at.is_(None))
            .values(display_order=J.display_order + offset)
            .execution_options(synchronize_session=False)
        )

    async def write_percentages(self, percentages: Mapping[int, float]) -> None:
        J = orm.Subject
        for subject_id, percentage in percentages.items():
            await self._session.execute(
                update(J)
                .where(J.id == subject_id)
                .values(percentage=percentage)
                .execution_options(synchronize_session=False)
            )

    async def soft_delete(self, table: str, entity_id: int, *, now: datetime) -> bool:
        model = MODELS[table]
        result = await self._session.execute(
            update(model)
            .where(model.id == entity_id, model.deleted_at.is_(None))
            .values(deleted_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False
        await self._cascade(table, [entity_id], now)
        return True

    async def _cascade(self, table: str, parent_ids: Sequence[int], now: datetime) -> None:
        for child in CHILDREN[table]:
            model = MODELS[child]
            parent_column = getattr(model, PARENTS[child][1])
            child_ids = list(
                (
                    await self._session.scalars(
                        select(model.id)
                        .where(parent_column.in_(parent_ids), model.deleted_at.is_(None))
                        .order_by(model.id)
                        .with_for_update()
                    )
                ).all()
            )
            if not child_ids:
                continue
            await self._session.execute(
                update(model)
                .where(model.id.in_(child_ids))
                .values(deleted_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await self._cascade(child, child_ids, now)
