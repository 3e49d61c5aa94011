# tests/conftest.py
import os
from collections.abc import Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# マイグレーションはスキップし、スキーマは create_all で作る
os.environ["TESTING"] = "1"

from app import db  # noqa: E402
from app.core.config import Settings  # noqa: E402
from app.core.startup import run_database_migrations  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models import Base  # noqa: E402

MEDICAL_SUBJECTS = [
    {"name": "英語L", "score": 50},
    {"name": "英語R", "score": 50},
    {"name": "数学", "score": 100},
    {"name": "国語", "score": 100},
    {"name": "理科", "score": 200},
    {"name": "地歴公", "score": 50},
]


@pytest.fixture
def settings(tmp_path) -> Settings:
    # SQLite ファイル DB（テストごとに作り直す）
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        app_env="test",
        log_format="json",
        cache_sweep_interval_seconds=60.0,
    )


@pytest_asyncio.fixture
async def application(settings):
    app = create_app(settings)
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    run_database_migrations(settings)
    try:
        yield app
    finally:
        app.state.cache.close()
        await db.dispose_engine()


@pytest_asyncio.fixture
async def app_client(application):
    async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def service(application):
    return application.state.university_service


@pytest.fixture
def university_payload() -> Callable[..., dict]:
    """津々大学 / 医学部 / 医学科 / 前期 / 共通 の最小ツリーを組み立てる"""

    def _build(
        name: str = "津々大学",
        *,
        department: str = "医学部",
        major: str = "医学科",
        subjects: list[dict] | None = None,
        admission_infos: list[dict] | None = None,
    ) -> dict:
        return {
            "name": name,
            "departments": [
                {
                    "name": department,
                    "majors": [
                        {
                            "name": major,
                            "admission_schedules": [
                                {
                                    "name": "前期",
                                    "display_order": 1,
                                    "admission_infos": admission_infos or [],
                                    "test_types": [
                                        {
                                            "name": "共通",
                                            "subjects": list(
                                                MEDICAL_SUBJECTS if subjects is None else subjects
                                            ),
                                        }
                                    ],
                                }
                            ],
                        }
                    ],
                }
            ],
        }

    return _build


@pytest_asyncio.fixture
async def seeded(app_client, university_payload) -> dict:
    res = await app_client.post("/api/universities", json=university_payload())
    assert res.status_code == 200, res.text
    return res.json()


def tree_ids(university: dict) -> dict:
    """先頭の学部 / 学科 / 日程 / 試験種別の ID をまとめて取り出す"""
    department = university["departments"][0]
    major = department["majors"][0]
    schedule = major["admission_schedules"][0]
    test_type = schedule["test_types"][0]
    return {
        "university_id": university["id"],
        "department_id": department["id"],
        "major_id": major["id"],
        "schedule_id": schedule["id"],
        "test_type_id": test_type["id"],
        "subject_ids": [s["id"] for s in test_type["subjects"]],
    }


@pytest.fixture
def ids(seeded) -> dict:
    return tree_ids(seeded)
