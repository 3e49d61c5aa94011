import pytest
from pydantic import ValidationError

from app.core.config import Settings


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_builds_asyncpg_url_from_db_variables(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    settings = _settings(db_host="db", db_user="app", db_password="secret", db_name="exam")
    assert settings.sqlalchemy_url == "postgresql+asyncpg://app:secret@db:5432/exam"
    assert settings.port == 8080
    assert settings.db_pool_size + settings.db_max_overflow == 100


def test_database_url_overrides_db_variables():
    settings = _settings(database_url="sqlite+aiosqlite:///x.db")
    assert settings.sqlalchemy_url == "sqlite+aiosqlite:///x.db"


def test_missing_db_variables_fail(monkeypatch):
    for name in ("DATABASE_URL", "DB_HOST", "DB_USER", "DB_NAME"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ValidationError) as ei:
        _settings(db_host="db")
    assert "DB_USER" in str(ei.value) and "DB_NAME" in str(ei.value)


@pytest.mark.parametrize("port", [0, 65536])
def test_port_must_be_in_range(port):
    with pytest.raises(ValidationError) as ei:
        _settings(database_url="sqlite+aiosqlite:///x.db", port=port)
    assert "ポート番号は1から65535の範囲で指定してください" in str(ei.value)


def test_cors_origins_and_sentry_rate():
    settings = _settings(
        database_url="sqlite+aiosqlite:///x.db",
        allow_origins="https://a.example, https://b.example,",
        sentry_traces_rate=0.9,
    )
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.sentry_traces_sample_rate == 0.2
