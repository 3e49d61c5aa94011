import pytest

BASE = "/api/universities"

TWO_SUBJECTS = [{"name": "A", "score": 100}, {"name": "B", "score": 100}]


@pytest.fixture
def subjects_url(ids) -> str:
    return f"{BASE}/{ids['university_id']}/departments/{ids['department_id']}/subjects"


async def _live_subjects(app_client, university_id: int) -> list[dict]:
    body = (await app_client.get(f"{BASE}/{university_id}")).json()
    schedule = body["departments"][0]["majors"][0]["admission_schedules"][0]
    return schedule["test_types"][0]["subjects"]


def _assert_closed(subjects: list[dict]) -> None:
    assert sum(s["percentage"] for s in subjects) == pytest.approx(100, abs=1e-4)


@pytest.mark.asyncio
async def test_batch_replace_scenario(app_client, university_payload):
    res = await app_client.post(BASE, json=university_payload(subjects=TWO_SUBJECTS))
    assert res.status_code == 200
    u = res.json()
    department = u["departments"][0]
    test_type = department["majors"][0]["admission_schedules"][0]["test_types"][0]
    assert [s["percentage"] for s in test_type["subjects"]] == [50.0, 50.0]
    b_id = test_type["subjects"][1]["id"]

    url = f"{BASE}/{u['id']}/departments/{department['id']}/subjects/batch"
    res = await app_client.put(
        url,
        params={"test_type_id": test_type["id"]},
        json=[{"name": "A", "score": 300}, {"name": "C", "score": 100}],
    )

    assert res.status_code == 200
    body = res.json()
    assert body["meta"]["count"] == 2
    assert body["meta"]["timestamp"].endswith("Z")
    assert [(s["name"], s["score"], s["percentage"]) for s in body["data"]] == [
        ("A", 300, 75.0),
        ("C", 100, 25.0),
    ]
    assert [(s["name"], s["percentage"]) for s in await _live_subjects(app_client, u["id"])] == [
        ("A", 75.0),
        ("C", 25.0),
    ]
    gone = await app_client.get(f"{BASE}/{u['id']}/departments/{department['id']}/subjects/{b_id}")
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_batch_replace_matches_by_id_and_renames(app_client, subjects_url, ids):
    first_id = ids["subject_ids"][0]
    res = await app_client.put(
        f"{subjects_url}/batch",
        params={"test_type_id": ids["test_type_id"]},
        json=[
            {"id": first_id, "name": "英語", "score": 200, "display_order": 2},
            {"name": "数学", "score": 200},
        ],
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert [(s["name"], s["display_order"]) for s in data] == [("英語", 2), ("数学", 3)]
    assert data[0]["id"] == first_id
    _assert_closed(data)


@pytest.mark.asyncio
async def test_batch_replace_on_foreign_test_type_is_not_found(app_client, subjects_url):
    res = await app_client.put(
        f"{subjects_url}/batch", params={"test_type_id": 999}, json=[{"name": "A", "score": 1}]
    )
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_batch_replace_requires_test_type_id(app_client, subjects_url):
    res = await app_client.put(f"{subjects_url}/batch", json=[{"name": "A", "score": 1}])
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_create_subject_appends_and_rebalances(app_client, subjects_url, ids):
    res = await app_client.post(
        subjects_url, json={"name": "情報", "score": 450, "test_type_id": ids["test_type_id"]}
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["display_order"] == 7
    assert data["percentage"] == pytest.approx(45.0)
    assert data["version"] == 1

    subjects = await _live_subjects(app_client, ids["university_id"])
    assert len(subjects) == 7
    _assert_closed(subjects)


@pytest.mark.asyncio
async def test_get_subject_wraps_in_data(app_client, subjects_url, ids):
    res = await app_client.get(f"{subjects_url}/{ids['subject_ids'][2]}")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["name"] == "数学"
    assert data["test_type_id"] == ids["test_type_id"]


@pytest.mark.asyncio
async def test_update_subject_bumps_version_and_rebalances(app_client, subjects_url, ids):
    sid = ids["subject_ids"][4]
    res = await app_client.put(
        f"{subjects_url}/{sid}", json={"name": "理科", "score": 50, "version": 1}
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["version"] == 2
    assert data["percentage"] == pytest.approx(50 * 100 / 400)
    _assert_closed(await _live_subjects(app_client, ids["university_id"]))

    stale = await app_client.put(
        f"{subjects_url}/{sid}", json={"name": "理科", "score": 60, "version": 1}
    )
    assert stale.status_code == 400
    assert stale.json()["details"]["rule"] == "stale_version"


@pytest.mark.asyncio
async def test_update_subject_with_taken_display_order_is_conflict(app_client, subjects_url, ids):
    sid = ids["subject_ids"][0]
    res = await app_client.put(
        f"{subjects_url}/{sid}",
        json={"name": "英語L", "score": 50, "display_order": 2, "version": 1},
    )
    assert res.status_code == 409
    assert res.json()["code"] == "DUPLICATE_KEY"


@pytest.mark.asyncio
async def test_update_subject_with_bad_score_is_validation_error(app_client, subjects_url, ids):
    res = await app_client.put(
        f"{subjects_url}/{ids['subject_ids'][0]}",
        json={"name": "英語L", "score": 1001, "version": 1},
    )
    assert res.status_code == 400
    assert res.json()["details"]["rule"] == "range"


@pytest.mark.asyncio
async def test_delete_subject_rebalances_remaining(app_client, subjects_url, ids):
    res = await app_client.delete(f"{subjects_url}/{ids['subject_ids'][4]}")
    assert res.status_code == 204
    subjects = await _live_subjects(app_client, ids["university_id"])
    assert len(subjects) == 5
    for s in subjects:
        assert s["percentage"] == pytest.approx(s["score"] * 100 / 350)
    _assert_closed(subjects)


@pytest.mark.asyncio
async def test_subject_under_wrong_department_is_not_found(app_client, university_payload, ids):
    other = (await app_client.post(BASE, json=university_payload("別大学"))).json()
    other_department = other["departments"][0]["id"]
    res = await app_client.get(
        f"{BASE}/{other['id']}/departments/{other_department}/subjects/{ids['subject_ids'][0]}"
    )
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_batch_replace_with_repeated_id_is_conflict(app_client, subjects_url, ids):
    first_id = ids["subject_ids"][0]
    res = await app_client.put(
        f"{subjects_url}/batch",
        params={"test_type_id": ids["test_type_id"]},
        json=[
            {"id": first_id, "name": "英語L", "score": 300},
            {"id": first_id, "name": "別科目", "score": 100},
        ],
    )
    assert res.status_code == 409
    body = res.json()
    assert body["code"] == "DUPLICATE_KEY"
    assert body["details"]["context"]["path"] == "subjects[1].id"
    assert len(await _live_subjects(app_client, ids["university_id"])) == 6
