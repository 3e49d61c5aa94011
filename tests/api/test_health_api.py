import pytest


@pytest.mark.asyncio
async def test_healthz_ok(app_client):
    res = await app_client.get("/healthz")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


@pytest.mark.asyncio
async def test_readyz_reports_cache_stats(app_client, seeded):
    await app_client.get(f"/api/universities/{seeded['id']}")
    await app_client.get(f"/api/universities/{seeded['id']}")
    res = await app_client.get("/readyz")
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["cache"]["hits"] >= 1
    assert body["cache"]["items"] >= 1


@pytest.mark.asyncio
async def test_readyz_returns_503_before_migrations(app_client, monkeypatch):
    monkeypatch.setattr("app.api.routers.readyz.is_migration_completed", lambda: False)
    res = await app_client.get("/readyz")
    assert res.status_code == 503
    assert res.json()["details"]["reason"] == "migrations_pending"


@pytest.mark.asyncio
async def test_health_reports_env(app_client):
    res = await app_client.get("/health")
    assert res.json() == {"status": "ok", "env": "test"}


@pytest.mark.asyncio
async def test_request_id_echoes_back(app_client):
    res = await app_client.get("/healthz", headers={"X-Request-ID": "test-123"})
    assert res.headers.get("X-Request-ID") == "test-123"


@pytest.mark.asyncio
async def test_request_id_generated_when_missing(app_client):
    res = await app_client.get("/api/universities")
    assert res.status_code == 200
    assert res.headers.get("X-Request-ID")
