"""University tree use cases backed by the unit of work.

Every public coroutine takes an optional ``Deadline``; each write runs in one
transaction (one unit of work), retried on deadlock, and clears the read cache
after commit.
"""

from __future__ import annotations

import copy
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from typing import Any, TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError

from app.core.deadline import Deadline
from app.core.exceptions import (
    DeadlockError,
    DuplicateKeyError,
    InvalidYearError,
    NotFoundError,
    ValidationError,
)
from app.domain.entities import (
    AdmissionInfo,
    AdmissionSchedule,
    Department,
    Major,
    Subject,
    TestType,
    University,
)
from app.domain.validators import (
    DUPLICATE_RULES,
    RULE_ACADEMIC_YEAR,
    FieldViolation,
    check_batch_ids,
    check_department_subtree,
    check_major_subtree,
    check_status_transition,
    check_tree,
    recompute_percentages,
    validate,
)
from app.infra import db_errors
from app.infra.cache import KEY_ALL, KEY_ONE, KEY_SEARCH, TTLCache
from app.infra.retry import DEADLOCK_BACKOFF_SECONDS, async_retry
from app.infra.unit_of_work import UnitOfWork
from app.repositories.interfaces import TreePath, UniversityRepository
from app.repositories.sqlalchemy.university import SUBJECT_ORDER_SHIFT
from app.utils.datetime import utcnow
from app.utils.validation import normalize_name, validate_search_query

UnitOfWorkFactory = Callable[[], UnitOfWork]
T = TypeVar("T")

logger = structlog.get_logger(__name__)

MSG_STALE_VERSION = "他のユーザーによって更新されています。最新のデータを取得してください"

_NOT_FOUND_MESSAGES = {
    "universities": "大学が見つかりません",
    "departments": "学部が見つかりません",
    "majors": "学科が見つかりません",
    "admission_schedules": "入試日程が見つかりません",
    "admission_infos": "入試情報が見つかりません",
    "test_types": "試験種別が見つかりません",
    "subjects": "科目が見つかりません",
}


def not_found(table: str, entity_id: int | None, *, operation: str) -> NotFoundError:
    err = NotFoundError(_NOT_FOUND_MESSAGES.get(table), operation=operation, table=table)
    if entity_id is not None:
        err.with_context("id", entity_id)
    return err


def raise_for_violations(
    violations: Sequence[FieldViolation], *, operation: str, table: str
) -> None:
    """Map validator output onto the error taxonomy (year > duplicate > generic)."""
    if not violations:
        return
    year = [v for v in violations if v.rule == RULE_ACADEMIC_YEAR]
    if year:
        raise InvalidYearError(
            year[0].message, violations=list(violations), operation=operation, table=table
        )
    duplicate = [v for v in violations if v.rule in DUPLICATE_RULES]
    if duplicate:
        raise DuplicateKeyError(
            duplicate[0].message, code=duplicate[0].rule, operation=operation, table=table
        ).with_context("path", duplicate[0].path)
    first = violations[0]
    raise ValidationError(
        first.message,
        violations=list(violations),
        rule=first.rule,
        code=first.rule,
        operation=operation,
        table=table,
    )


def stale_version(table: str, entity_id: int, expected: int, *, operation: str) -> ValidationError:
    err = ValidationError(
        MSG_STALE_VERSION,
        rule="stale_version",
        code="stale_version",
        operation=operation,
        table=table,
    )
    err.with_context("id", entity_id).with_context("expected_version", expected)
    return err


def assign_subject_orders(subjects: Sequence[Subject], start: int = 1) -> None:
    """Give subjects without display_order the next free position after the largest given one."""
    given = [s.display_order for s in subjects if s.display_order is not None]
    next_order = max([start - 1, *given]) + 1
    for subject in subjects:
        if subject.display_order is None:
            subject.display_order = next_order
            next_order += 1


def prepare_subtree(node: University | Department | Major) -> None:
    """Fill derived fields (subject order, percentages) across a new subtree."""
    if isinstance(node, University):
        for d in node.departments:
            prepare_subtree(d)
        return
    if isinstance(node, Department):
        for m in node.majors:
            prepare_subtree(m)
        return
    for schedule in node.admission_schedules:
        for test_type in schedule.test_types:
            assign_subject_orders(test_type.subjects)
            recompute_percentages(test_type)


class UniversityService:
    """Transactional CRUD on the university tree."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        cache: TTLCache,
        *,
        default_timeout: float = 5.0,
        retry_delays: Sequence[float] = DEADLOCK_BACKOFF_SECONDS,
    ) -> None:
        self._uow_factory = uow_factory
        self._cache = cache
        self._default_timeout = default_timeout
        self._retry_delays = tuple(retry_delays)

    def deadline(self) -> Deadline:
        return Deadline(self._default_timeout)

    # ------------------------------------------------------------ plumbing
    async def _read(
        self,
        operation: str,
        table: str,
        fn: Callable[[UniversityRepository], Awaitable[T]],
        deadline: Deadline | None,
    ) -> T:
        async def _run() -> T:
            try:
                async with self._uow_factory() as uow:
                    return await fn(uow.universities)
            except SQLAlchemyError as exc:
                logger.error("db_error", operation=operation, table=table, error=str(exc))
                raise db_errors.translate(exc, operation=operation, table=table) from exc

        return await (deadline or self.deadline()).run(_run(), operation=operation)

    async def _write(
        self,
        operation: str,
        table: str,
        fn: Callable[[UniversityRepository], Awaitable[T]],
        deadline: Deadline | None,
    ) -> T:
        @async_retry(delays=self._retry_delays, retry_on=(DeadlockError,))
        async def _attempt() -> T:
            try:
                async with self._uow_factory() as uow:
                    return await fn(uow.universities)
            except SQLAlchemyError as exc:
                err = db_errors.translate(exc, operation=operation, table=table)
                if not isinstance(err, (DeadlockError, DuplicateKeyError)):
                    logger.error("db_error", operation=operation, table=table, error=str(exc))
                raise err from exc

        result = await (deadline or self.deadline()).run(_attempt(), operation=operation)
        self._cache.clear()
        return result

    async def _locked_path(
        self,
        repo: UniversityRepository,
        table: str,
        entity_id: int,
        *,
        operation: str,
        **expected: Any,
    ) -> TreePath:
        """Resolve a node's ancestry, check it matches the request path, lock it top-down."""
        path = await repo.path_of(table, entity_id)
        if path is None or any(
            v is not None and getattr(path, k) != v for k, v in expected.items()
        ):
            raise not_found(table, entity_id, operation=operation)
        if not await repo.lock(path):
            raise not_found(table, entity_id, operation=operation)
        return path

    async def _check_university(
        self, repo: UniversityRepository, university_id: int, *, operation: str, table: str
    ) -> None:
        tree = await repo.get_tree(university_id)
        if tree is None:
            raise not_found("universities", university_id, operation=operation)
        raise_for_violations(check_tree(tree), operation=operation, table=table)

    async def _rebalance(self, repo: UniversityRepository, test_type_id: int) -> TestType:
        test_type = await repo.get_test_type(test_type_id)
        if test_type is None:
            raise not_found("test_types", test_type_id, operation="rebalance")
        recompute_percentages(test_type)
        await repo.write_percentages({s.id: s.percentage for s in test_type.subjects})
        return test_type

    async def _cached(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        generation = self._cache.generation
        value = await loader()
        self._cache.set(key, value, generation=generation)
        return value

    # --------------------------------------------------------------- reads
    async def find_all(self, *, deadline: Deadline | None = None) -> list[University]:
        return await self._cached(
            KEY_ALL,
            lambda: self._read("find_all", "universities", lambda r: r.list_trees(), deadline),
        )

    async def find_by_id(self, university_id: int, *, deadline: Deadline | None = None) -> University:
        async def _load() -> University:
            found = await self._read(
                "find_by_id", "universities", lambda r: r.get_tree(university_id), deadline
            )
            if found is None:
                raise not_found("universities", university_id, operation="find_by_id")
            return found

        return await self._cached(KEY_ONE.format(id=university_id), _load)

    async def search(self, q: str | None, *, deadline: Deadline | None = None) -> list[University]:
        query = validate_search_query(q)

        async def _search(repo: UniversityRepository) -> list[University]:
            ids = await repo.search_ids(query)
            return await repo.list_trees(ids)

        return await self._cached(
            KEY_SEARCH.format(query=query),
            lambda: self._read("search", "universities", _search, deadline),
        )

    async def find_department(
        self, university_id: int, department_id: int, *, deadline: Deadline | None = None
    ) -> Department:
        found = await self._read(
            "find_department",
            "departments",
            lambda r: r.get_department(university_id, department_id),
            deadline,
        )
        if found is None:
            raise not_found("departments", department_id, operation="find_department")
        return found

    async def find_major(
        self, department_id: int, major_id: int, *, deadline: Deadline | None = None
    ) -> Major:
        found = await self._read(
            "find_major", "majors", lambda r: r.get_major(department_id, major_id), deadline
        )
        if found is None:
            raise not_found("majors", major_id, operation="find_major")
        return found

    async def find_admission_schedule(
        self, major_id: int, schedule_id: int, *, deadline: Deadline | None = None
    ) -> AdmissionSchedule:
        found = await self._read(
            "find_admission_schedule",
            "admission_schedules",
            lambda r: r.get_schedule(major_id, schedule_id),
            deadline,
        )
        if found is None:
            raise not_found("admission_schedules", schedule_id, operation="find_admission_schedule")
        return found

    async def find_subject(
        self, department_id: int, subject_id: int, *, deadline: Deadline | None = None
    ) -> Subject:
        found = await self._read(
            "find_subject", "subjects", lambda r: r.get_subject(department_id, subject_id), deadline
        )
        if found is None:
            raise not_found("subjects", subject_id, operation="find_subject")
        return found

    async def find_admission_info(
        self, schedule_id: int, info_id: int, *, deadline: Deadline | None = None
    ) -> AdmissionInfo:
        found = await self._read(
            "find_admission_info",
            "admission_infos",
            lambda r: r.get_admission_info(schedule_id, info_id),
            deadline,
        )
        if found is None:
            raise not_found("admission_infos", info_id, operation="find_admission_info")
        return found

    # ------------------------------------------------------- university
    async def create(self, university: University, *, deadline: Deadline | None = None) -> University:
        prepare_subtree(university)
        raise_for_violations(check_tree(university), operation="create", table="universities")

        created = await self._write(
            "create",
            "universities",
            lambda r: r.insert_university(copy.deepcopy(university)),
            deadline,
        )
        logger.info("university_created", university_id=created.id)
        return created

    async def update(self, university: University, *, deadline: Deadline | None = None) -> University:
        operation, table = "update", "universities"
        raise_for_violations(validate(university), operation=operation, table=table)
        university_id = university.id

        async def _op(repo: UniversityRepository) -> University:
            await self._locked_path(repo, table, university_id, operation=operation)
            new_version = await repo.update_versioned(
                table, university_id, university.version, {"name": university.name}
            )
            if new_version is None:
                raise stale_version(table, university_id, university.version, operation=operation)
            await self._check_university(repo, university_id, operation=operation, table=table)
            return await repo.get_tree(university_id)

        updated = await self._write(operation, table, _op, deadline)
        logger.info("university_updated", university_id=university_id, version=updated.version)
        return updated

    async def delete(self, university_id: int, *, deadline: Deadline | None = None) -> None:
        operation, table = "delete", "universities"

        async def _op(repo: UniversityRepository) -> None:
            await self._locked_path(repo, table, university_id, operation=operation)
            await repo.soft_delete(table, university_id, now=utcnow())

        await self._write(operation, table, _op, deadline)
        logger.info("university_deleted", university_id=university_id)

    # ------------------------------------------------------- department
    async def create_department(
        self, university_id: int, department: Department, *, deadline: Deadline | None = None
    ) -> Department:
        operation, table = "create", "departments"
        prepare_subtree(department)
        raise_for_violations(
            check_department_subtree(department), operation=operation, table=table
        )

        async def _op(repo: UniversityRepository) -> Department:
            await self._locked_path(repo, "universities", university_id, operation=operation)
            created = await repo.insert_department(university_id, copy.deepcopy(department))
            await self._check_university(repo, university_id, operation=operation, table=table)
            return created

        created = await self._write(operation, table, _op, deadline)
        logger.info("department_created", university_id=university_id, department_id=created.id)
        return created

    async def update_department(
        self, university_id: int, department: Department, *, deadline: Deadline | None = None
    ) -> Department:
        operation, table = "update", "departments"
        raise_for_violations(validate(department), operation=operation, table=table)
        department_id = department.id

        async def _op(repo: UniversityRepository) -> Department:
            await self._locked_path(
                repo, table, department_id, operation=operation, university_id=university_id
            )
            new_version = await repo.update_versioned(
                table, department_id, department.version, {"name": department.name}
            )
            if new_version is None:
                raise stale_version(table, department_id, department.version, operation=operation)
            await self._check_university(repo, university_id, operation=operation, table=table)
            return await repo.get_department(university_id, department_id)

        updated = await self._write(operation, table, _op, deadline)
        logger.info("department_updated", department_id=department_id, version=updated.version)
        return updated

    async def delete_department(
        self, university_id: int, department_id: int, *, deadline: Deadline | None = None
    ) -> None:
        operation, table = "delete", "departments"

        async def _op(repo: UniversityRepository) -> None:
            await self._locked_path(
                repo, table, department_id, operation=operation, university_id=university_id
            )
            await repo.soft_delete(table, department_id, now=utcnow())

        await self._write(operation, table, _op, deadline)
        logger.info("department_deleted", department_id=department_id)

    # ------------------------------------------------------------ major
    async def create_major(
        self,
        department_id: int,
        major: Major,
        *,
        university_id: int | None = None,
        deadline: Deadline | None = None,
    ) -> Major:
        operation, table = "create", "majors"
        prepare_subtree(major)
        raise_for_violations(check_major_subtree(major), operation=operation, table=table)

        async def _op(repo: UniversityRepository) -> Major:
            path = await self._locked_path(
                repo, "departments", department_id, operation=operation, university_id=university_id
            )
            created = await repo.insert_major(department_id, copy.deepcopy(major))
            await self._check_university(repo, path.university_id, operation=operation, table=table)
            return created

        created = await self._write(operation, table, _op, deadline)
        logger.info("major_created", department_id=department_id, major_id=created.id)
        return created

    async def update_major(
        self,
        department_id: int,
        major: Major,
        *,
        university_id: int | None = None,
        deadline: Deadline | None = None,
    ) -> Major:
        operation, table = "update", "majors"
        raise_for_violations(validate(major), operation=operation, table=table)
        major_id = major.id

        async def _op(repo: UniversityRepository) -> Major:
            path = await self._locked_path(
                repo,
                table,
                major_id,
                operation=operation,
                department_id=department_id,
                university_id=university_id,
            )
            new_version = await repo.update_versioned(
                table, major_id, major.version, {"name": major.name}
            )
            if new_version is None:
                raise stale_version(table, major_id, major.version, operation=operation)
            await self._check_university(repo, path.university_id, operation=operation, table=table)
            return await repo.get_major(department_id, major_id)

        updated = await self._write(operation, table, _op, deadline)
        logger.info("major_updated", major_id=major_id, version=updated.version)
        return updated

    async def delete_major(
        self,
        department_id: int,
        major_id: int,
        *,
        university_id: int | None = None,
        deadline: Deadline | None = None,
    ) -> None:
        operation, table = "delete", "majors"

        async def _op(repo: UniversityRepository) -> None:
            await self._locked_path(
                repo,
                table,
                major_id,
                operation=operation,
                department_id=department_id,
                university_id=university_id,
            )
            await repo.soft_delete(table, major_id, now=utcnow())

        await self._write(operation, table, _op, deadline)
        logger.info("major_deleted", major_id=major_id)

    # ------------------------------------------------ admission schedule
    async def update_admission_schedule(
        self,
        major_id: int,
        schedule: AdmissionSchedule,
        *,
        department_id: int | None = None,
        deadline: Deadline | None = None,
    ) -> AdmissionSchedule:
        operation, table = "update", "admission_schedules"
        raise_for_violations(validate(schedule), operation=operation, table=table)
        schedule_id = schedule.id

        async def _op(repo: UniversityRepository) -> AdmissionSchedule:
            path = await self._locked_path(
                repo,
                table,
                schedule_id,
                operation=operation,
                major_id=major_id,
                department_id=department_id,
            )
            new_version = await repo.update_versioned(
                table,
                schedule_id,
                schedule.version,
                {"name": schedule.name, "display_order": schedule.display_order},
            )
            if new_version is None:
                raise stale_version(table, schedule_id, schedule.version, operation=operation)
            await self._check_university(repo, path.university_id, operation=operation, table=table)
            return await repo.get_schedule(major_id, schedule_id)

        updated = await self._write(operation, table, _op, deadline)
        logger.info("admission_schedule_updated", schedule_id=schedule_id, version=updated.version)
        return updated

    # --------------------------------------------------- admission info
    async def create_admission_info(
        self,
        schedule_id: int,
        info: AdmissionInfo,
        *,
        major_id: int | None = None,
        deadline: Deadline | None = None,
    ) -> AdmissionInfo:
        operation, table = "create", "admission_infos"
        raise_for_violations(validate(info), operation=operation, table=table)

        async def _op(repo: UniversityRepository) -> AdmissionInfo:
            await self._locked_path(
                repo, "admission_schedules", schedule_id, operation=operation, major_id=major_id
            )
            return await repo.insert_admission_info(schedule_id, replace(info))

        created = await self._write(operation, table, _op, deadline)
        logger.info("admission_info_created", schedule_id=schedule_id, info_id=created.id)
        return created

    async def update_admission_info(
        self,
        schedule_id: int,
        info: AdmissionInfo,
        *,
        major_id: int | None = None,
        deadline: Deadline | None = None,
    ) -> AdmissionInfo:
        operation, table = "update", "admission_infos"
        raise_for_violations(validate(info), operation=operation, table=table)
        info_id = info.id

        async def _op(repo: UniversityRepository) -> AdmissionInfo:
            await self._locked_path(
                repo,
                table,
                info_id,
                operation=operation,
                admission_schedule_id=schedule_id,
                major_id=major_id,
            )
            current = await repo.get_admission_info(schedule_id, info_id)
            if current is None:
                raise not_found(table, info_id, operation=operation)
            if current.version != info.version:
                raise stale_version(table, info_id, info.version, operation=operation)
            raise_for_violations(
                check_status_transition(current.status, info.status),
                operation=operation,
                table=table,
            )
            new_version = await repo.update_versioned(
                table,
                info_id,
                info.version,
                {
                    "academic_year": info.academic_year,
                    "valid_from": info.valid_from,
                    "valid_until": info.valid_until,
                    "enrollment": info.enrollment,
                    "status": info.status,
                },
            )
            if new_version is None:
                raise stale_version(table, info_id, info.version, operation=operation)
            return await repo.get_admission_info(schedule_id, info_id)

        updated = await self._write(operation, table, _op, deadline)
        logger.info("admission_info_updated", info_id=info_id, status=updated.status)
        return updated

    async def delete_admission_info(
        self,
        schedule_id: int,
        info_id: int,
        *,
        major_id: int | None = None,
        deadline: Deadline | None = None,
    ) -> None:
        operation, table = "delete", "admission_infos"

        async def _op(repo: UniversityRepository) -> None:
            await self._locked_path(
                repo,
                table,
                info_id,
                operation=operation,
                admission_schedule_id=schedule_id,
                major_id=major_id,
            )
            await repo.soft_delete(table, info_id, now=utcnow())

        await self._write(operation, table, _op, deadline)
        logger.info("admission_info_deleted", info_id=info_id)

    # ---------------------------------------------------------- subject
    async def create_subject(
        self,
        department_id: int,
        test_type_id: int,
        subject: Subject,
        *,
        deadline: Deadline | None = None,
    ) -> Subject:
        operation, table = "create", "subjects"
        raise_for_violations(validate(subject), operation=operation, table=table)

        async def _op(repo: UniversityRepository) -> Subject:
            path = await self._locked_path(
                repo, "test_types", test_type_id, operation=operation, department_id=department_id
            )
            new = replace(subject, percentage=0.0)
            if new.display_order is None:
                new.display_order = await repo.next_subject_order(test_type_id)
            created = await repo.insert_subject(test_type_id, new)
            await self._rebalance(repo, test_type_id)
            await self._check_university(repo, path.university_id, operation=operation, table=table)
            return await repo.get_subject(department_id, created.id)

        created = await self._write(operation, table, _op, deadline)
        logger.info("subject_created", test_type_id=test_type_id, subject_id=created.id)
        return created

    async def update_subject(
        self, department_id: int, subject: Subject, *, deadline: Deadline | None = None
    ) -> Subject:
        operation, table = "update", "subjects"
        raise_for_violations(validate(subject), operation=operation, table=table)
        subject_id = subject.id

        async def _op(repo: UniversityRepository) -> Subject:
            path = await self._locked_path(
                repo, table, subject_id, operation=operation, department_id=department_id
            )
            values: dict[str, Any] = {"name": subject.name, "score": subject.score}
            if subject.display_order is not None:
                values["display_order"] = subject.display_order
            new_version = await repo.update_versioned(table, subject_id, subject.version, values)
            if new_version is None:
                raise stale_version(table, subject_id, subject.version, operation=operation)
            await self._rebalance(repo, path.test_type_id)
            await self._check_university(repo, path.university_id, operation=operation, table=table)
            return await repo.get_subject(department_id, subject_id)

        updated = await self._write(operation, table, _op, deadline)
        logger.info("subject_updated", subject_id=subject_id, version=updated.version)
        return updated

    async def delete_subject(
        self, department_id: int, subject_id: int, *, deadline: Deadline | None = None
    ) -> None:
        operation, table = "delete", "subjects"

        async def _op(repo: UniversityRepository) -> None:
            path = await self._locked_path(
                repo, table, subject_id, operation=operation, department_id=department_id
            )
            await repo.soft_delete(table, subject_id, now=utcnow())
            await self._rebalance(repo, path.test_type_id)
            await self._check_university(repo, path.university_id, operation=operation, table=table)

        await self._write(operation, table, _op, deadline)
        logger.info("subject_deleted", subject_id=subject_id)

    async def update_subjects_batch(
        self,
        test_type_id: int,
        subjects: Sequence[Subject],
        *,
        department_id: int | None = None,
        deadline: Deadline | None = None,
    ) -> list[Subject]:
        """Replace the subject set of one test type.

        Incoming subjects are matched to stored ones by id, or by name when the
        id is omitted; unmatched stored subjects are soft-deleted, unmatched
        incoming ones are inserted. Percentages are recomputed over the new set.
        """
        operation, table = "batch_update", "subjects"
        incoming = [replace(s) for s in subjects]
        for i, subject in enumerate(incoming):
            raise_for_violations(
                validate(subject, f"subjects[{i}]"), operation=operation, table=table
            )
        raise_for_violations(check_batch_ids(incoming), operation=operation, table=table)
        assign_subject_orders(incoming)

        async def _op(repo: UniversityRepository) -> list[Subject]:
            path = await self._locked_path(
                repo, "test_types", test_type_id, operation=operation, department_id=department_id
            )
            # 再試行のたびに呼び出し時点の値から作り直す
            work = [replace(s) for s in incoming]
            existing = await repo.live_subjects(test_type_id)
            by_id = {s.id: s for s in existing}
            by_name = {s.name: s for s in existing}

            matched: list[tuple[Subject, Subject]] = []
            created: list[Subject] = []
            used: set[int] = set()
            for subject in work:
                if subject.id is not None:
                    target = by_id.get(subject.id)
                    if target is None:
                        raise not_found(table, subject.id, operation=operation)
                else:
                    target = by_name.get(normalize_name(subject.name))
                if target is None or target.id in used:
                    created.append(subject)
                    continue
                used.add(target.id)
                matched.append((subject, target))

            now = utcnow()
            for stale in existing:
                if stale.id not in used:
                    await repo.soft_delete(table, stale.id, now=now)
            await repo.shift_subject_orders(test_type_id, SUBJECT_ORDER_SHIFT)
            for subject, target in matched:
                await repo.update_subject_row(
                    target.id,
                    {
                        "name": subject.name,
                        "score": subject.score,
                        "display_order": subject.display_order,
                    },
                )
            for subject in created:
                subject.id = None
                subject.percentage = 0.0
                await repo.insert_subject(test_type_id, subject)

            await self._rebalance(repo, test_type_id)
            await self._check_university(repo, path.university_id, operation=operation, table=table)
            return await repo.live_subjects(test_type_id)

        result = await self._write(operation, table, _op, deadline)
        logger.info(
            "subjects_batch_replaced",
            test_type_id=test_type_id,
            count=len(result),
        )
        return result


__all__ = ["UniversityService", "raise_for_violations", "not_found", "stale_version"]
