import pytest

BASE = "/api/universities"


@pytest.mark.asyncio
async def test_get_department_omits_children(app_client, ids):
    res = await app_client.get(f"{BASE}/{ids['university_id']}/departments/{ids['department_id']}")
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == "医学部"
    assert body["university_id"] == ids["university_id"]
    assert "majors" not in body


@pytest.mark.asyncio
async def test_create_department_with_subtree(app_client, ids):
    payload = {
        "name": "工学部",
        "majors": [
            {
                "name": "情報工学科",
                "admission_schedules": [
                    {
                        "name": "後期",
                        "display_order": 3,
                        "test_types": [
                            {"name": "二次", "subjects": [{"name": "数学", "score": 400}]}
                        ],
                    }
                ],
            }
        ],
    }
    res = await app_client.post(f"{BASE}/{ids['university_id']}/departments", json=payload)
    assert res.status_code == 200
    body = res.json()
    subject = body["majors"][0]["admission_schedules"][0]["test_types"][0]["subjects"][0]
    assert subject["percentage"] == 100.0

    tree = (await app_client.get(f"{BASE}/{ids['university_id']}")).json()
    assert [d["name"] for d in tree["departments"]] == ["医学部", "工学部"]


@pytest.mark.asyncio
async def test_create_department_with_taken_name_is_conflict(app_client, ids):
    res = await app_client.post(
        f"{BASE}/{ids['university_id']}/departments", json={"name": "医学部"}
    )
    assert res.status_code == 409
    assert res.json()["code"] == "DUPLICATE_KEY"


@pytest.mark.asyncio
async def test_update_department_version(app_client, ids):
    url = f"{BASE}/{ids['university_id']}/departments/{ids['department_id']}"
    res = await app_client.put(url, json={"name": "医学系学部", "version": 1})
    assert res.status_code == 200
    assert (res.json()["name"], res.json()["version"]) == ("医学系学部", 2)

    res = await app_client.put(url, json={"name": "別名", "version": 1})
    assert res.status_code == 400
    assert res.json()["details"]["rule"] == "stale_version"


@pytest.mark.asyncio
async def test_department_of_other_university_is_not_found(app_client, university_payload, ids):
    other = (await app_client.post(BASE, json=university_payload("別大学"))).json()
    res = await app_client.get(f"{BASE}/{other['id']}/departments/{ids['department_id']}")
    assert res.status_code == 404
    res = await app_client.delete(f"{BASE}/{other['id']}/departments/{ids['department_id']}")
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_delete_department_cascades(app_client, ids):
    url = f"{BASE}/{ids['university_id']}/departments/{ids['department_id']}"
    assert (await app_client.delete(url)).status_code == 204
    assert (await app_client.get(url)).status_code == 404
    res = await app_client.get(f"{url}/subjects/{ids['subject_ids'][0]}")
    assert res.status_code == 404
    tree = (await app_client.get(f"{BASE}/{ids['university_id']}")).json()
    assert tree["departments"] == []


@pytest.mark.asyncio
async def test_major_crud(app_client, ids):
    url = f"{BASE}/{ids['university_id']}/departments/{ids['department_id']}/majors"
    res = await app_client.post(url, json={"name": "看護学科"})
    assert res.status_code == 200
    major = res.json()
    assert major["department_id"] == ids["department_id"]

    res = await app_client.get(f"{url}/{major['id']}")
    assert res.status_code == 200
    assert "admission_schedules" not in res.json()

    res = await app_client.put(f"{url}/{major['id']}", json={"name": "保健学科", "version": 1})
    assert (res.status_code, res.json()["version"]) == (200, 2)

    res = await app_client.post(url, json={"name": "保健学科"})
    assert res.status_code == 409

    assert (await app_client.delete(f"{url}/{major['id']}")).status_code == 204
    assert (await app_client.get(f"{url}/{major['id']}")).status_code == 404
