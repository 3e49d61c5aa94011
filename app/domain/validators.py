"""Pure validators for the admission tree.

``validate`` checks a single node's own fields, ``check_tree`` walks a whole
University and adds the cross-node invariants (percentage consistency,
schedule / ordering uniqueness, structural limits). Both return a list of
``FieldViolation``; an empty list means ok.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import timedelta
from functools import singledispatch

from app.domain.entities import (
    AdmissionInfo,
    AdmissionSchedule,
    AdmissionStatus,
    Department,
    Major,
    ScheduleName,
    Subject,
    TestType,
    TestTypeName,
    University,
)
from app.utils.validation import (
    has_control_characters,
    in_range,
    is_one_of,
    length_within,
    normalize_name,
)

UNIVERSITY_NAME_MAX = 100
DEPARTMENT_NAME_MAX = 50
MAJOR_NAME_MAX = 50
SUBJECT_NAME_MAX = 20

ACADEMIC_YEAR_MIN = 2000
ACADEMIC_YEAR_MAX = 2100
VALIDITY_MIN = timedelta(days=364)
VALIDITY_MAX = timedelta(days=366)
ENROLLMENT_MAX = 9999
SCORE_MAX = 1000

MAX_DEPARTMENTS = 50
MAX_MAJORS = 30
MAX_SUBJECTS = 20

PERCENTAGE_TOLERANCE = 1e-6
PERCENTAGE_SUM_TOLERANCE = 1e-4

# rule ids
RULE_REQUIRED = "required"
RULE_MAX_LENGTH = "max_length"
RULE_FORBIDDEN_CHARACTER = "forbidden_character"
RULE_CHOICE = "choice"
RULE_RANGE = "range"
RULE_ACADEMIC_YEAR = "academic_year_range"
RULE_VALIDITY_WINDOW = "validity_window"
RULE_PERCENTAGE = "percentage_consistency"
RULE_STATUS_TRANSITION = "status_transition"
RULE_LIMIT = "max_children"
RULE_DUPLICATE_SCHEDULE_NAME = "duplicate_schedule_name"
RULE_DUPLICATE_SCHEDULE_ORDER = "duplicate_schedule_order"
RULE_DUPLICATE_SUBJECT_ORDER = "duplicate_subject_order"
RULE_DUPLICATE_NAME = "duplicate_name"
RULE_DUPLICATE_ID = "duplicate_id"

DUPLICATE_RULES = frozenset(
    {
        RULE_DUPLICATE_SCHEDULE_NAME,
        RULE_DUPLICATE_SCHEDULE_ORDER,
        RULE_DUPLICATE_SUBJECT_ORDER,
        RULE_DUPLICATE_NAME,
        RULE_DUPLICATE_ID,
    }
)

# draft -> published -> archived, published -> draft (revert)
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    AdmissionStatus.DRAFT.value: frozenset({AdmissionStatus.PUBLISHED.value}),
    AdmissionStatus.PUBLISHED.value: frozenset(
        {AdmissionStatus.ARCHIVED.value, AdmissionStatus.DRAFT.value}
    ),
    AdmissionStatus.ARCHIVED.value: frozenset(),
}


@dataclass(frozen=True)
class FieldViolation:
    path: str
    rule: str
    message: str


def _join(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


def _check_name(value: str, path: str, label: str, max_length: int) -> list[FieldViolation]:
    if value is None or not normalize_name(value):
        return [FieldViolation(path, RULE_REQUIRED, f"{label}は必須です")]
    if has_control_characters(value):
        return [FieldViolation(path, RULE_FORBIDDEN_CHARACTER, f"{label}に不正な文字が含まれています")]
    if not length_within(normalize_name(value), max_length):
        return [
            FieldViolation(path, RULE_MAX_LENGTH, f"{label}は{max_length}文字以内で入力してください")
        ]
    return []


@singledispatch
def validate(entity: object, prefix: str = "") -> list[FieldViolation]:
    raise TypeError(f"no validator registered for {type(entity).__name__}")


@validate.register
def _(entity: University, prefix: str = "") -> list[FieldViolation]:
    return _check_name(entity.name, _join(prefix, "name"), "大学名", UNIVERSITY_NAME_MAX)


@validate.register
def _(entity: Department, prefix: str = "") -> list[FieldViolation]:
    return _check_name(entity.name, _join(prefix, "name"), "学部名", DEPARTMENT_NAME_MAX)


@validate.register
def _(entity: Major, prefix: str = "") -> list[FieldViolation]:
    return _check_name(entity.name, _join(prefix, "name"), "学科名", MAJOR_NAME_MAX)


@validate.register
def _(entity: AdmissionSchedule, prefix: str = "") -> list[FieldViolation]:
    out: list[FieldViolation] = []
    if not is_one_of(entity.name, (n.value for n in ScheduleName)):
        out.append(
            FieldViolation(
                _join(prefix, "name"), RULE_CHOICE, "日程名は前期・中期・後期のいずれかです"
            )
        )
    if entity.display_order is None or not in_range(entity.display_order, 1, 3):
        out.append(
            FieldViolation(
                _join(prefix, "display_order"), RULE_RANGE, "表示順は1から3の範囲で指定してください"
            )
        )
    return out


@validate.register
def _(entity: AdmissionInfo, prefix: str = "") -> list[FieldViolation]:
    out: list[FieldViolation] = []
    if not in_range(entity.academic_year, ACADEMIC_YEAR_MIN, ACADEMIC_YEAR_MAX):
        out.append(
            FieldViolation(
                _join(prefix, "academic_year"),
                RULE_ACADEMIC_YEAR,
                "学年度は2000年から2100年の間で指定してください",
            )
        )
    window = entity.valid_until - entity.valid_from
    if window <= timedelta(0) or not VALIDITY_MIN <= window <= VALIDITY_MAX:
        out.append(
            FieldViolation(
                _join(prefix, "valid_until"),
                RULE_VALIDITY_WINDOW,
                "有効期間は364日以上366日以内で指定してください",
            )
        )
    if not in_range(entity.enrollment, 0, ENROLLMENT_MAX):
        out.append(
            FieldViolation(
                _join(prefix, "enrollment"), RULE_RANGE, "募集人数は0から9999の範囲で指定してください"
            )
        )
    if not is_one_of(entity.status, ALLOWED_TRANSITIONS):
        out.append(
            FieldViolation(
                _join(prefix, "status"),
                RULE_CHOICE,
                "ステータスは draft・published・archived のいずれかです",
            )
        )
    return out


@validate.register
def _(entity: TestType, prefix: str = "") -> list[FieldViolation]:
    if not is_one_of(entity.name, (n.value for n in TestTypeName)):
        return [
            FieldViolation(_join(prefix, "name"), RULE_CHOICE, "試験種別は共通・二次のいずれかです")
        ]
    return []


@validate.register
def _(entity: Subject, prefix: str = "") -> list[FieldViolation]:
    out = _check_name(entity.name, _join(prefix, "name"), "科目名", SUBJECT_NAME_MAX)
    if entity.score is None or not in_range(entity.score, 0, SCORE_MAX):
        out.append(
            FieldViolation(
                _join(prefix, "score"), RULE_RANGE, "配点は0から1000の範囲で指定してください"
            )
        )
    if not in_range(entity.percentage, 0, 100):
        out.append(
            FieldViolation(
                _join(prefix, "percentage"), RULE_RANGE, "配点比率は0から100の範囲です"
            )
        )
    if entity.display_order is not None and entity.display_order < 1:
        out.append(
            FieldViolation(
                _join(prefix, "display_order"), RULE_RANGE, "表示順は1以上で指定してください"
            )
        )
    return out


def check_status_transition(current: str, new: str) -> list[FieldViolation]:
    # archived は終端。同じステータスへの更新も受け付けない
    if current == AdmissionStatus.ARCHIVED.value:
        return [
            FieldViolation(
                "status",
                RULE_STATUS_TRANSITION,
                "アーカイブ済みの入試情報は変更できません",
            )
        ]
    if current == new:
        return []
    if new not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        return [
            FieldViolation(
                "status",
                RULE_STATUS_TRANSITION,
                f"ステータスを {current} から {new} へ変更することはできません",
            )
        ]
    return []


def recompute_percentages(test_type: TestType) -> TestType:
    live = [s for s in test_type.subjects if s.deleted_at is None]
    total = sum(s.score for s in live)
    for subject in live:
        subject.percentage = (subject.score / total * 100) if total > 0 else 0.0
    return test_type


def _duplicates(values: Iterable[object]) -> set[object]:
    return {v for v, n in Counter(values).items() if n > 1}


def _check_percentages(test_type: TestType, prefix: str) -> list[FieldViolation]:
    live = [s for s in test_type.subjects if s.deleted_at is None]
    if not live:
        return []
    total = sum(s.score for s in live)
    violation = FieldViolation(
        _join(prefix, "subjects"), RULE_PERCENTAGE, "配点比率の合計が100になっていません"
    )
    if total == 0:
        return [] if all(s.percentage == 0 for s in live) else [violation]
    for s in live:
        if abs(s.percentage - s.score / total * 100) > PERCENTAGE_TOLERANCE:
            return [violation]
    if abs(sum(s.percentage for s in live) - 100) > PERCENTAGE_SUM_TOLERANCE:
        return [violation]
    return []


def _check_limit(count: int, limit: int, path: str, label: str) -> list[FieldViolation]:
    if count > limit:
        return [FieldViolation(path, RULE_LIMIT, f"{label}は{limit}件までです")]
    return []


def _check_duplicate_names(nodes: list, path: str, label: str) -> list[FieldViolation]:
    dup = _duplicates(normalize_name(n.name) for n in nodes if n.name)
    if dup:
        return [FieldViolation(path, RULE_DUPLICATE_NAME, f"{label}が重複しています")]
    return []


def _check_test_type(tt: TestType, prefix: str) -> list[FieldViolation]:
    out = validate(tt, prefix)
    subjects = [s for s in tt.subjects if s.deleted_at is None]
    path = _join(prefix, "subjects")
    out += _check_limit(len(subjects), MAX_SUBJECTS, path, "科目")
    for i, s in enumerate(subjects):
        out += validate(s, f"{path}[{i}]")
    out += _check_duplicate_names(subjects, path, "科目名")
    if _duplicates(s.display_order for s in subjects if s.display_order is not None):
        out.append(FieldViolation(path, RULE_DUPLICATE_SUBJECT_ORDER, "科目の表示順が重複しています"))
    out += _check_percentages(tt, prefix)
    return out


def _check_schedule(schedule: AdmissionSchedule, prefix: str) -> list[FieldViolation]:
    out = validate(schedule, prefix)
    for i, info in enumerate(x for x in schedule.admission_infos if x.deleted_at is None):
        out += validate(info, f"{prefix}.admission_infos[{i}]")
    for i, tt in enumerate(x for x in schedule.test_types if x.deleted_at is None):
        out += _check_test_type(tt, f"{prefix}.test_types[{i}]")
    return out


def _check_major(major: Major, prefix: str) -> list[FieldViolation]:
    out = validate(major, prefix)
    schedules = [s for s in major.admission_schedules if s.deleted_at is None]
    path = _join(prefix, "admission_schedules")
    if _duplicates(s.name for s in schedules):
        out.append(FieldViolation(path, RULE_DUPLICATE_SCHEDULE_NAME, "入試日程が重複しています"))
    if _duplicates(s.display_order for s in schedules):
        out.append(
            FieldViolation(path, RULE_DUPLICATE_SCHEDULE_ORDER, "入試日程の表示順が重複しています")
        )
    for i, s in enumerate(schedules):
        out += _check_schedule(s, f"{path}[{i}]")
    return out


def _check_department(department: Department, prefix: str) -> list[FieldViolation]:
    out = validate(department, prefix)
    majors = [m for m in department.majors if m.deleted_at is None]
    path = _join(prefix, "majors")
    out += _check_limit(len(majors), MAX_MAJORS, path, "学科")
    out += _check_duplicate_names(majors, path, "学科名")
    for i, m in enumerate(majors):
        out += _check_major(m, f"{path}[{i}]")
    return out


def check_tree(university: University) -> list[FieldViolation]:
    out = validate(university)
    departments = [d for d in university.departments if d.deleted_at is None]
    out += _check_limit(len(departments), MAX_DEPARTMENTS, "departments", "学部")
    out += _check_duplicate_names(departments, "departments", "学部名")
    for i, d in enumerate(departments):
        out += _check_department(d, f"departments[{i}]")
    return out


def check_department_subtree(department: Department, prefix: str = "") -> list[FieldViolation]:
    """check_tree for a department payload that is not yet attached to a university."""
    return _check_department(department, prefix)


def check_major_subtree(major: Major, prefix: str = "") -> list[FieldViolation]:
    return _check_major(major, prefix)


def check_batch_ids(subjects: Sequence[Subject], prefix: str = "subjects") -> list[FieldViolation]:
    """Reject a batch that names the same stored subject twice (first repeat only)."""
    seen: set[int] = set()
    for i, subject in enumerate(subjects):
        if subject.id is None:
            continue
        if subject.id in seen:
            return [
                FieldViolation(
                    f"{prefix}[{i}].id", RULE_DUPLICATE_ID, "同じ科目IDが複数回指定されています"
                )
            ]
        seen.add(subject.id)
    return []


__all__ = [
    "ALLOWED_TRANSITIONS",
    "DUPLICATE_RULES",
    "FieldViolation",
    "check_batch_ids",
    "check_department_subtree",
    "check_major_subtree",
    "check_status_transition",
    "check_tree",
    "recompute_percentages",
    "validate",
]
