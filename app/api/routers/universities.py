"""/api/universities routers that delegate to UniversityService via DI.

Path identifiers are received as strings and parsed with parse_id so that
"abc", "-1" or "0" are rejected as INVALID_INPUT (400) rather than 422.
"""

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import get_university_service, request_deadline
from app.core.deadline import Deadline
from app.dto import (
    AdmissionInfoDTO,
    AdmissionScheduleDTO,
    BatchMetaDTO,
    DepartmentDTO,
    MajorDTO,
    SearchMetaDTO,
    SubjectBatchResponseDTO,
    SubjectResponseDTO,
    UniversityDTO,
    UniversitySearchResponseDTO,
)
from app.dto.mappers import (
    admission_info_from_request,
    department_from_request,
    major_from_request,
    map_admission_info,
    map_department,
    map_major,
    map_schedule,
    map_subject,
    map_university,
    subject_from_request,
    university_from_request,
)
from app.domain.entities import AdmissionSchedule, Department, Major, University
from app.schemas.common import ErrorResponse
from app.schemas.university import (
    AdmissionInfoCreateRequest,
    AdmissionInfoUpdateRequest,
    AdmissionScheduleUpdateRequest,
    DepartmentCreateRequest,
    DepartmentUpdateRequest,
    MajorCreateRequest,
    MajorUpdateRequest,
    SubjectBatchItem,
    SubjectCreateRequest,
    SubjectUpdateRequest,
    UniversityCreateRequest,
    UniversityUpdateRequest,
)
from app.services.universities import UniversityService
from app.utils.datetime import to_rfc3339, utcnow
from app.utils.validation import parse_id, validate_search_query

router = APIRouter(prefix="/api/universities", tags=["universities"])

_ERRORS = {
    400: {"model": ErrorResponse, "description": "入力エラー"},
    404: {"model": ErrorResponse, "description": "Not Found"},
    409: {"model": ErrorResponse, "description": "重複"},
    504: {"model": ErrorResponse, "description": "タイムアウト"},
}


# ---------------------------------------------------------------- universities


@router.get(
    "",
    response_model=list[UniversityDTO],
    summary="大学一覧（配下ツリー込み）",
    description="全大学を ID 昇順で返します。学部〜科目まで全階層を含みます。",
    responses=_ERRORS,
)
async def list_universities(
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    return [map_university(u) for u in await svc.find_all(deadline=deadline)]


@router.get(
    "/search",
    response_model=UniversitySearchResponseDTO,
    summary="大学検索",
    description=(
        "大学名・学部名・学科名の部分一致（大文字小文字を区別、NFC 正規化）で検索します。\n"
        "- 空文字は 400（検索クエリは必須です）\n"
        "- 100 文字超は 400\n"
        "- `;` `%` を含む場合は 400"
    ),
    responses=_ERRORS,
)
async def search_universities(
    q: str | None = Query(default=None, description="検索クエリ"),
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    found = await svc.search(q, deadline=deadline)
    return UniversitySearchResponseDTO(
        data=[map_university(u) for u in found],
        meta=SearchMetaDTO(
            query=validate_search_query(q),
            count=len(found),
            timestamp=to_rfc3339(utcnow()),
        ),
    )


@router.get(
    "/{university_id}",
    response_model=UniversityDTO,
    summary="大学詳細（配下ツリー込み）",
    responses=_ERRORS,
)
async def get_university(
    university_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    found = await svc.find_by_id(parse_id(university_id, name="university_id"), deadline=deadline)
    return map_university(found)


@router.post(
    "",
    response_model=UniversityDTO,
    summary="大学の作成（配下ツリーを一括登録）",
    description="ID は全階層で採番されます。配点比率はサーバ側で再計算します。",
    responses=_ERRORS,
)
async def create_university(
    body: UniversityCreateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    created = await svc.create(university_from_request(body), deadline=deadline)
    return map_university(created)


@router.put(
    "/{university_id}",
    response_model=UniversityDTO,
    summary="大学の更新（楽観ロック）",
    description="version が保存値と異なる場合は 400（details.rule=stale_version）。",
    responses=_ERRORS,
)
async def update_university(
    university_id: str,
    body: UniversityUpdateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    entity = University(
        id=parse_id(university_id, name="university_id"), name=body.name, version=body.version
    )
    return map_university(await svc.update(entity, deadline=deadline))


@router.delete(
    "/{university_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="大学の論理削除（配下も連鎖）",
    responses=_ERRORS,
)
async def delete_university(
    university_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    await svc.delete(parse_id(university_id, name="university_id"), deadline=deadline)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------- departments


@router.get(
    "/{university_id}/departments/{department_id}",
    response_model=DepartmentDTO,
    response_model_exclude_none=True,
    summary="学部の取得（配下なし）",
    responses=_ERRORS,
)
async def get_department(
    university_id: str,
    department_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    found = await svc.find_department(
        parse_id(university_id, name="university_id"),
        parse_id(department_id, name="department_id"),
        deadline=deadline,
    )
    return map_department(found, with_children=False)


@router.post(
    "/{university_id}/departments",
    response_model=DepartmentDTO,
    summary="学部の作成",
    responses=_ERRORS,
)
async def create_department(
    university_id: str,
    body: DepartmentCreateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    created = await svc.create_department(
        parse_id(university_id, name="university_id"),
        department_from_request(body),
        deadline=deadline,
    )
    return map_department(created)


@router.put(
    "/{university_id}/departments/{department_id}",
    response_model=DepartmentDTO,
    response_model_exclude_none=True,
    summary="学部の更新（楽観ロック）",
    responses=_ERRORS,
)
async def update_department(
    university_id: str,
    department_id: str,
    body: DepartmentUpdateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    entity = Department(
        id=parse_id(department_id, name="department_id"), name=body.name, version=body.version
    )
    updated = await svc.update_department(
        parse_id(university_id, name="university_id"), entity, deadline=deadline
    )
    return map_department(updated, with_children=False)


@router.delete(
    "/{university_id}/departments/{department_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="学部の論理削除（配下も連鎖）",
    responses=_ERRORS,
)
async def delete_department(
    university_id: str,
    department_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    await svc.delete_department(
        parse_id(university_id, name="university_id"),
        parse_id(department_id, name="department_id"),
        deadline=deadline,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------- majors


@router.get(
    "/{university_id}/departments/{department_id}/majors/{major_id}",
    response_model=MajorDTO,
    response_model_exclude_none=True,
    summary="学科の取得（配下なし）",
    responses=_ERRORS,
)
async def get_major(
    university_id: str,
    department_id: str,
    major_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    u_id = parse_id(university_id, name="university_id")
    d_id = parse_id(department_id, name="department_id")
    await svc.find_department(u_id, d_id, deadline=deadline)
    found = await svc.find_major(d_id, parse_id(major_id, name="major_id"), deadline=deadline)
    return map_major(found, with_children=False)


@router.post(
    "/{university_id}/departments/{department_id}/majors",
    response_model=MajorDTO,
    summary="学科の作成",
    responses=_ERRORS,
)
async def create_major(
    university_id: str,
    department_id: str,
    body: MajorCreateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    created = await svc.create_major(
        parse_id(department_id, name="department_id"),
        major_from_request(body),
        university_id=parse_id(university_id, name="university_id"),
        deadline=deadline,
    )
    return map_major(created)


@router.put(
    "/{university_id}/departments/{department_id}/majors/{major_id}",
    response_model=MajorDTO,
    response_model_exclude_none=True,
    summary="学科の更新（楽観ロック）",
    responses=_ERRORS,
)
async def update_major(
    university_id: str,
    department_id: str,
    major_id: str,
    body: MajorUpdateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    entity = Major(id=parse_id(major_id, name="major_id"), name=body.name, version=body.version)
    updated = await svc.update_major(
        parse_id(department_id, name="department_id"),
        entity,
        university_id=parse_id(university_id, name="university_id"),
        deadline=deadline,
    )
    return map_major(updated, with_children=False)


@router.delete(
    "/{university_id}/departments/{department_id}/majors/{major_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="学科の論理削除（配下も連鎖）",
    responses=_ERRORS,
)
async def delete_major(
    university_id: str,
    department_id: str,
    major_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    await svc.delete_major(
        parse_id(department_id, name="department_id"),
        parse_id(major_id, name="major_id"),
        university_id=parse_id(university_id, name="university_id"),
        deadline=deadline,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ------------------------------------------------- admission schedules / infos

_SCHEDULE_PATH = "/{university_id}/departments/{department_id}/majors/{major_id}/admission-schedules"


async def _scope_major(
    svc: UniversityService, university_id: str, department_id: str, major_id: str, deadline
) -> int:
    u_id = parse_id(university_id, name="university_id")
    d_id = parse_id(department_id, name="department_id")
    m_id = parse_id(major_id, name="major_id")
    await svc.find_department(u_id, d_id, deadline=deadline)
    await svc.find_major(d_id, m_id, deadline=deadline)
    return m_id


@router.put(
    _SCHEDULE_PATH + "/{schedule_id}",
    response_model=AdmissionScheduleDTO,
    response_model_exclude_none=True,
    summary="入試日程の更新（楽観ロック）",
    description="日程名（前期/中期/後期）と表示順（1〜3）は学科内で一意です。",
    responses=_ERRORS,
)
async def update_admission_schedule(
    university_id: str,
    department_id: str,
    major_id: str,
    schedule_id: str,
    body: AdmissionScheduleUpdateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    m_id = await _scope_major(svc, university_id, department_id, major_id, deadline)
    entity = AdmissionSchedule(
        id=parse_id(schedule_id, name="schedule_id"),
        name=body.name,
        display_order=body.display_order,
        version=body.version,
    )
    updated = await svc.update_admission_schedule(m_id, entity, deadline=deadline)
    return map_schedule(updated, with_children=False)


@router.get(
    _SCHEDULE_PATH + "/{schedule_id}/admission-infos/{info_id}",
    response_model=AdmissionInfoDTO,
    summary="入試情報の取得",
    responses=_ERRORS,
)
async def get_admission_info(
    university_id: str,
    department_id: str,
    major_id: str,
    schedule_id: str,
    info_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    m_id = await _scope_major(svc, university_id, department_id, major_id, deadline)
    s_id = parse_id(schedule_id, name="schedule_id")
    await svc.find_admission_schedule(m_id, s_id, deadline=deadline)
    found = await svc.find_admission_info(
        s_id, parse_id(info_id, name="info_id"), deadline=deadline
    )
    return map_admission_info(found)


@router.post(
    _SCHEDULE_PATH + "/{schedule_id}/admission-infos",
    response_model=AdmissionInfoDTO,
    summary="入試情報の作成",
    description=(
        "academic_year は 2000〜2100（範囲外は INVALID_YEAR）。\n"
        "有効期間は 364〜366 日（範囲外は VALIDATION_ERROR）。"
    ),
    responses=_ERRORS,
)
async def create_admission_info(
    university_id: str,
    department_id: str,
    major_id: str,
    schedule_id: str,
    body: AdmissionInfoCreateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    m_id = await _scope_major(svc, university_id, department_id, major_id, deadline)
    created = await svc.create_admission_info(
        parse_id(schedule_id, name="schedule_id"),
        admission_info_from_request(body),
        major_id=m_id,
        deadline=deadline,
    )
    return map_admission_info(created)


@router.put(
    _SCHEDULE_PATH + "/{schedule_id}/admission-infos/{info_id}",
    response_model=AdmissionInfoDTO,
    summary="入試情報の更新（楽観ロック・ステータス遷移チェック）",
    description="draft→published→archived、published→draft のみ許可。archived は終端です。",
    responses=_ERRORS,
)
async def update_admission_info(
    university_id: str,
    department_id: str,
    major_id: str,
    schedule_id: str,
    info_id: str,
    body: AdmissionInfoUpdateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    m_id = await _scope_major(svc, university_id, department_id, major_id, deadline)
    entity = admission_info_from_request(
        body, id=parse_id(info_id, name="info_id"), version=body.version
    )
    updated = await svc.update_admission_info(
        parse_id(schedule_id, name="schedule_id"), entity, major_id=m_id, deadline=deadline
    )
    return map_admission_info(updated)


@router.delete(
    _SCHEDULE_PATH + "/{schedule_id}/admission-infos/{info_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="入試情報の論理削除",
    responses=_ERRORS,
)
async def delete_admission_info(
    university_id: str,
    department_id: str,
    major_id: str,
    schedule_id: str,
    info_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    m_id = await _scope_major(svc, university_id, department_id, major_id, deadline)
    await svc.delete_admission_info(
        parse_id(schedule_id, name="schedule_id"),
        parse_id(info_id, name="info_id"),
        major_id=m_id,
        deadline=deadline,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------------------------------------------------------------------- subjects

_SUBJECT_PATH = "/{university_id}/departments/{department_id}/subjects"


async def _scope_department(
    svc: UniversityService, university_id: str, department_id: str, deadline
) -> int:
    u_id = parse_id(university_id, name="university_id")
    d_id = parse_id(department_id, name="department_id")
    await svc.find_department(u_id, d_id, deadline=deadline)
    return d_id


# /batch は /{subject_id} より先に登録する
@router.put(
    _SUBJECT_PATH + "/batch",
    response_model=SubjectBatchResponseDTO,
    summary="科目の一括置換",
    description=(
        "試験種別（test_type_id）配下の科目集合をリクエスト内容で置き換えます。\n"
        "- id 指定（省略時は科目名）で既存科目と照合して更新\n"
        "- 含まれない既存科目は論理削除、新規は追加\n"
        "- 配点比率は新しい集合で再計算"
    ),
    responses=_ERRORS,
)
async def update_subjects_batch(
    university_id: str,
    department_id: str,
    body: list[SubjectBatchItem],
    test_type_id: str = Query(description="対象の試験種別ID"),
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    d_id = await _scope_department(svc, university_id, department_id, deadline)
    subjects = [subject_from_request(item, id=item.id) for item in body]
    result = await svc.update_subjects_batch(
        parse_id(test_type_id, name="test_type_id"),
        subjects,
        department_id=d_id,
        deadline=deadline,
    )
    return SubjectBatchResponseDTO(
        data=[map_subject(s) for s in result],
        meta=BatchMetaDTO(count=len(result), timestamp=to_rfc3339(utcnow())),
    )


@router.get(
    _SUBJECT_PATH + "/{subject_id}",
    response_model=SubjectResponseDTO,
    summary="科目の取得",
    responses=_ERRORS,
)
async def get_subject(
    university_id: str,
    department_id: str,
    subject_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    d_id = await _scope_department(svc, university_id, department_id, deadline)
    found = await svc.find_subject(d_id, parse_id(subject_id, name="subject_id"), deadline=deadline)
    return SubjectResponseDTO(data=map_subject(found))


@router.post(
    _SUBJECT_PATH,
    response_model=SubjectResponseDTO,
    summary="科目の作成",
    description="作成後、同じ試験種別内の配点比率を再計算します。",
    responses=_ERRORS,
)
async def create_subject(
    university_id: str,
    department_id: str,
    body: SubjectCreateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    d_id = await _scope_department(svc, university_id, department_id, deadline)
    created = await svc.create_subject(
        d_id, body.test_type_id, subject_from_request(body), deadline=deadline
    )
    return SubjectResponseDTO(data=map_subject(created))


@router.put(
    _SUBJECT_PATH + "/{subject_id}",
    response_model=SubjectResponseDTO,
    summary="科目の更新（楽観ロック）",
    responses=_ERRORS,
)
async def update_subject(
    university_id: str,
    department_id: str,
    subject_id: str,
    body: SubjectUpdateRequest,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    d_id = await _scope_department(svc, university_id, department_id, deadline)
    entity = subject_from_request(
        body, id=parse_id(subject_id, name="subject_id"), version=body.version
    )
    updated = await svc.update_subject(d_id, entity, deadline=deadline)
    return SubjectResponseDTO(data=map_subject(updated))


@router.delete(
    _SUBJECT_PATH + "/{subject_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="科目の論理削除",
    responses=_ERRORS,
)
async def delete_subject(
    university_id: str,
    department_id: str,
    subject_id: str,
    svc: UniversityService = Depends(get_university_service),
    deadline: Deadline = Depends(request_deadline),
):
    d_id = await _scope_department(svc, university_id, department_id, deadline)
    await svc.delete_subject(d_id, parse_id(subject_id, name="subject_id"), deadline=deadline)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
