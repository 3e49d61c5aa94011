"""Mapping between request schemas, domain records and response DTOs."""

from __future__ import annotations

from typing import Any

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
from app.dto.university import (
    AdmissionInfoDTO,
    AdmissionScheduleDTO,
    DepartmentDTO,
    MajorDTO,
    SubjectDTO,
    TestTypeDTO,
    UniversityDTO,
)
from app.schemas import university as req
from app.utils.datetime import as_utc, to_rfc3339

# ---------------------------------------------------------------- inbound


def subject_from_request(body: req.SubjectItem, **extra: Any) -> Subject:
    return Subject(name=body.name, score=body.score, display_order=body.display_order, **extra)


def test_type_from_request(body: req.TestTypeRequest) -> TestType:
    return TestType(name=body.name, subjects=[subject_from_request(s) for s in body.subjects])


def admission_info_from_request(body: req.AdmissionInfoCreateRequest, **extra: Any) -> AdmissionInfo:
    return AdmissionInfo(
        academic_year=body.academic_year,
        valid_from=as_utc(body.valid_from),
        valid_until=as_utc(body.valid_until),
        enrollment=body.enrollment,
        status=body.status,
        **extra,
    )


def schedule_from_request(body: req.AdmissionScheduleRequest) -> AdmissionSchedule:
    return AdmissionSchedule(
        name=body.name,
        display_order=body.display_order,
        admission_infos=[admission_info_from_request(i) for i in body.admission_infos],
        test_types=[test_type_from_request(t) for t in body.test_types],
    )


def major_from_request(body: req.MajorCreateRequest) -> Major:
    return Major(
        name=body.name,
        admission_schedules=[schedule_from_request(s) for s in body.admission_schedules],
    )


def department_from_request(body: req.DepartmentCreateRequest) -> Department:
    return Department(name=body.name, majors=[major_from_request(m) for m in body.majors])


def university_from_request(body: req.UniversityCreateRequest) -> University:
    return University(
        name=body.name, departments=[department_from_request(d) for d in body.departments]
    )


# --------------------------------------------------------------- outbound


def _base(entity: Entity) -> dict[str, Any]:
    return {
        "id": int(entity.id or 0),
        "version": entity.version,
        "created_at": to_rfc3339(entity.created_at),
        "updated_at": to_rfc3339(entity.updated_at),
    }


def map_subject(subject: Subject) -> SubjectDTO:
    return SubjectDTO(
        **_base(subject),
        test_type_id=subject.test_type_id,
        name=subject.name,
        score=subject.score,
        percentage=subject.percentage,
        display_order=int(subject.display_order or 0),
    )


def map_test_type(test_type: TestType) -> TestTypeDTO:
    return TestTypeDTO(
        **_base(test_type),
        admission_schedule_id=test_type.admission_schedule_id,
        name=test_type.name,
        subjects=[map_subject(s) for s in test_type.subjects],
    )


def map_admission_info(info: AdmissionInfo) -> AdmissionInfoDTO:
    return AdmissionInfoDTO(
        **_base(info),
        admission_schedule_id=info.admission_schedule_id,
        academic_year=info.academic_year,
        valid_from=to_rfc3339(info.valid_from),
        valid_until=to_rfc3339(info.valid_until),
        enrollment=info.enrollment,
        status=info.status,
    )


def map_schedule(schedule: AdmissionSchedule, *, with_children: bool = True) -> AdmissionScheduleDTO:
    return AdmissionScheduleDTO(
        **_base(schedule),
        major_id=schedule.major_id,
        name=schedule.name,
        display_order=schedule.display_order,
        admission_infos=(
            [map_admission_info(i) for i in schedule.admission_infos] if with_children else None
        ),
        test_types=[map_test_type(t) for t in schedule.test_types] if with_children else None,
    )


def map_major(major: Major, *, with_children: bool = True) -> MajorDTO:
    return MajorDTO(
        **_base(major),
        department_id=major.department_id,
        name=major.name,
        admission_schedules=(
            [map_schedule(s) for s in major.admission_schedules] if with_children else None
        ),
    )


def map_department(department: Department, *, with_children: bool = True) -> DepartmentDTO:
    return DepartmentDTO(
        **_base(department),
        university_id=department.university_id,
        name=department.name,
        majors=[map_major(m) for m in department.majors] if with_children else None,
    )


def map_university(university: University) -> UniversityDTO:
    return UniversityDTO(
        **_base(university),
        name=university.name,
        departments=[map_department(d) for d in university.departments],
    )
