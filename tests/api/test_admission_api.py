import pytest

BASE = "/api/universities"

VALID_WINDOW = {"valid_from": "2025-04-01T00:00:00Z", "valid_until": "2026-04-01T00:00:00Z"}


@pytest.fixture
def major_url(ids) -> str:
    return (
        f"{BASE}/{ids['university_id']}/departments/{ids['department_id']}"
        f"/majors/{ids['major_id']}"
    )


@pytest.fixture
def infos_url(major_url, ids) -> str:
    return f"{major_url}/admission-schedules/{ids['schedule_id']}/admission-infos"


@pytest.mark.asyncio
async def test_academic_year_boundary(app_client, infos_url):
    res = await app_client.post(infos_url, json={"academic_year": 1999, **VALID_WINDOW})
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_YEAR"

    res = await app_client.post(
        infos_url, json={"academic_year": 2000, "enrollment": 100, **VALID_WINDOW}
    )
    assert res.status_code == 200
    body = res.json()
    assert body["academic_year"] == 2000
    assert body["status"] == "draft"
    assert body["version"] == 1
    assert body["valid_from"] == "2025-04-01T00:00:00Z"


@pytest.mark.asyncio
async def test_academic_year_above_range(app_client, infos_url):
    res = await app_client.post(infos_url, json={"academic_year": 2101, **VALID_WINDOW})
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_YEAR"


@pytest.mark.parametrize(
    "valid_until", ["2026-03-30T00:00:00Z", "2026-04-03T00:00:00Z", "2024-04-01T00:00:00Z"]
)
@pytest.mark.asyncio
async def test_validity_window_outside_range(app_client, infos_url, valid_until):
    res = await app_client.post(
        infos_url,
        json={
            "academic_year": 2025,
            "valid_from": "2025-04-01T00:00:00Z",
            "valid_until": valid_until,
        },
    )
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["rule"] == "validity_window"


@pytest.mark.asyncio
async def test_offset_timestamps_are_normalised_to_utc(app_client, infos_url):
    res = await app_client.post(
        infos_url,
        json={
            "academic_year": 2025,
            "valid_from": "2025-04-01T09:00:00+09:00",
            "valid_until": "2026-04-01T09:00:00+09:00",
        },
    )
    assert res.status_code == 200
    assert res.json()["valid_from"] == "2025-04-01T00:00:00Z"


@pytest.mark.asyncio
async def test_status_lifecycle(app_client, infos_url):
    created = (
        await app_client.post(infos_url, json={"academic_year": 2025, **VALID_WINDOW})
    ).json()
    url = f"{infos_url}/{created['id']}"
    body = {"academic_year": 2025, "enrollment": 50, **VALID_WINDOW}

    res = await app_client.put(url, json={**body, "status": "archived", "version": 1})
    assert res.status_code == 400
    assert res.json()["details"]["rule"] == "status_transition"

    res = await app_client.put(url, json={**body, "status": "published", "version": 1})
    assert res.status_code == 200
    assert (res.json()["status"], res.json()["version"]) == ("published", 2)

    res = await app_client.put(url, json={**body, "status": "draft", "version": 2})
    assert res.status_code == 200

    res = await app_client.put(url, json={**body, "status": "published", "version": 3})
    res = await app_client.put(url, json={**body, "status": "archived", "version": 4})
    assert res.status_code == 200

    res = await app_client.put(url, json={**body, "status": "published", "version": 5})
    assert res.status_code == 400
    assert res.json()["details"]["rule"] == "status_transition"

    fetched = await app_client.get(url)
    assert fetched.status_code == 200
    assert (fetched.json()["status"], fetched.json()["enrollment"]) == ("archived", 50)


@pytest.mark.asyncio
async def test_delete_admission_info(app_client, infos_url):
    created = (
        await app_client.post(infos_url, json={"academic_year": 2025, **VALID_WINDOW})
    ).json()
    url = f"{infos_url}/{created['id']}"
    assert (await app_client.delete(url)).status_code == 204
    assert (await app_client.get(url)).status_code == 404


@pytest.mark.asyncio
async def test_update_schedule_and_conflicts(app_client, major_url, ids):
    url = f"{major_url}/admission-schedules/{ids['schedule_id']}"
    res = await app_client.put(url, json={"name": "後期", "display_order": 3, "version": 1})
    assert res.status_code == 200
    body = res.json()
    assert (body["name"], body["display_order"], body["version"]) == ("後期", 3, 2)
    assert "test_types" not in body

    res = await app_client.put(url, json={"name": "追試", "display_order": 1, "version": 2})
    assert res.status_code == 400
    assert res.json()["details"]["rule"] == "choice"


@pytest.mark.asyncio
async def test_infos_under_wrong_major_are_not_found(app_client, ids):
    url = (
        f"{BASE}/{ids['university_id']}/departments/{ids['department_id']}"
        f"/majors/999/admission-schedules/{ids['schedule_id']}/admission-infos"
    )
    res = await app_client.post(url, json={"academic_year": 2025, **VALID_WINDOW})
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_archived_info_rejects_any_update(app_client, infos_url):
    created = (
        await app_client.post(
            infos_url, json={"academic_year": 2025, "status": "archived", **VALID_WINDOW}
        )
    ).json()
    url = f"{infos_url}/{created['id']}"

    res = await app_client.put(
        url,
        json={
            "academic_year": 2025,
            "enrollment": 10,
            "status": "archived",
            "version": 1,
            **VALID_WINDOW,
        },
    )
    assert res.status_code == 400
    assert res.json()["details"]["rule"] == "status_transition"
    assert (await app_client.get(url)).json()["enrollment"] == 0
