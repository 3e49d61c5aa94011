import pytest

BASE = "/api/universities"


def _test_type(university: dict) -> dict:
    return university["departments"][0]["majors"][0]["admission_schedules"][0]["test_types"][0]


@pytest.mark.asyncio
async def test_seed_medical_school_percentages(app_client, seeded):
    subjects = _test_type(seeded)["subjects"]
    assert [s["name"] for s in subjects] == ["英語L", "英語R", "数学", "国語", "理科", "地歴公"]
    for s in subjects:
        assert s["percentage"] == pytest.approx(s["score"] * 100 / 550)
    assert sum(s["percentage"] for s in subjects) == pytest.approx(100, abs=1e-4)
    assert [s["display_order"] for s in subjects] == [1, 2, 3, 4, 5, 6]
    assert seeded["version"] == 1
    assert seeded["created_at"].endswith("Z")


@pytest.mark.asyncio
async def test_get_by_id_round_trips_created_tree(app_client, seeded):
    res = await app_client.get(f"{BASE}/{seeded['id']}")
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == "津々大学"
    department = body["departments"][0]
    assert department["name"] == "医学部"
    assert department["majors"][0]["name"] == "医学科"
    schedule = department["majors"][0]["admission_schedules"][0]
    assert (schedule["name"], schedule["display_order"]) == ("前期", 1)
    assert _test_type(body)["name"] == "共通"
    assert [(s["name"], s["score"]) for s in _test_type(body)["subjects"]] == [
        (s["name"], s["score"]) for s in _test_type(seeded)["subjects"]
    ]


@pytest.mark.asyncio
async def test_list_returns_all_live_universities(app_client, university_payload):
    for name in ("A大学", "B大学"):
        res = await app_client.post(BASE, json=university_payload(name))
        assert res.status_code == 200
    res = await app_client.get(BASE)
    assert res.status_code == 200
    assert [u["name"] for u in res.json()] == ["A大学", "B大学"]


@pytest.mark.asyncio
async def test_stale_update_returns_400(app_client, seeded):
    uid = seeded["id"]
    current = (await app_client.get(f"{BASE}/{uid}")).json()
    v = current["version"]

    first = await app_client.put(f"{BASE}/{uid}", json={"name": "第一大学", "version": v})
    second = await app_client.put(f"{BASE}/{uid}", json={"name": "第二大学", "version": v})

    assert first.status_code == 200
    assert first.json()["version"] == v + 1
    assert second.status_code == 400
    body = second.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["rule"] == "stale_version"
    assert body["message"] == "他のユーザーによって更新されています。最新のデータを取得してください"

    latest = (await app_client.get(f"{BASE}/{uid}")).json()
    assert (latest["name"], latest["version"]) == ("第一大学", v + 1)


@pytest.mark.asyncio
async def test_update_keeps_descendants(app_client, seeded):
    res = await app_client.put(f"{BASE}/{seeded['id']}", json={"name": "改名大学", "version": 1})
    assert res.status_code == 200
    assert len(_test_type(res.json())["subjects"]) == 6


@pytest.mark.asyncio
async def test_cascade_delete_hides_every_descendant(app_client, seeded, ids):
    uid, did = ids["university_id"], ids["department_id"]
    res = await app_client.delete(f"{BASE}/{uid}")
    assert res.status_code == 204

    assert (await app_client.get(f"{BASE}/{uid}")).status_code == 404
    assert (await app_client.get(f"{BASE}/{uid}/departments/{did}")).status_code == 404
    for sid in ids["subject_ids"]:
        res = await app_client.get(f"{BASE}/{uid}/departments/{did}/subjects/{sid}")
        assert res.status_code == 404
    assert (await app_client.get(BASE)).json() == []


@pytest.mark.asyncio
async def test_not_found_body_shape(app_client):
    res = await app_client.get(f"{BASE}/999")
    assert res.status_code == 404
    body = res.json()
    assert body["code"] == "NOT_FOUND"
    assert body["message"] == "大学が見つかりません"
    assert body["details"]["table"] == "universities"
    assert body["details"]["context"] == {"id": "999"}


@pytest.mark.parametrize("raw", ["abc", "0", "-1"])
@pytest.mark.asyncio
async def test_invalid_path_id_is_invalid_input(app_client, raw):
    res = await app_client.get(f"{BASE}/{raw}")
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_malformed_body_is_invalid_input(app_client):
    res = await app_client.post(BASE, json={"departments": []})
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "INVALID_INPUT"
    assert body["details"]["errors"][0]["loc"] == ["body", "name"]


@pytest.mark.asyncio
async def test_create_with_blank_name_is_validation_error(app_client, university_payload):
    res = await app_client.post(BASE, json=university_payload("   "))
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["violations"][0]["path"] == "name"


@pytest.mark.asyncio
async def test_create_with_duplicate_subject_orders_is_conflict(app_client, university_payload):
    payload = university_payload(
        subjects=[
            {"name": "英語", "score": 100, "display_order": 1},
            {"name": "数学", "score": 100, "display_order": 1},
        ]
    )
    res = await app_client.post(BASE, json=payload)
    assert res.status_code == 409
    assert res.json()["code"] == "DUPLICATE_KEY"


@pytest.mark.asyncio
async def test_read_after_write_is_not_stale(app_client, seeded):
    uid = seeded["id"]
    assert (await app_client.get(BASE)).json()[0]["name"] == "津々大学"
    assert (await app_client.get(f"{BASE}/{uid}")).json()["name"] == "津々大学"

    await app_client.put(f"{BASE}/{uid}", json={"name": "更新大学", "version": 1})

    assert (await app_client.get(BASE)).json()[0]["name"] == "更新大学"
    assert (await app_client.get(f"{BASE}/{uid}")).json()["name"] == "更新大学"
