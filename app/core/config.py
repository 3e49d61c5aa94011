# app/core/config.py
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

_PORT_RANGE_MESSAGE = "ポート番号は1から65535の範囲で指定してください"


class Settings(BaseSettings):
    port: int = 8080
    db_host: str | None = None
    db_port: int = 5432
    db_user: str | None = None
    db_password: str = ""
    db_name: str | None = None
    # DATABASE_URL があれば DB_* より優先（テスト / Alembic 用）
    database_url: str | None = None

    db_pool_size: int = 10
    db_max_overflow: int = 90
    db_pool_recycle_seconds: int = 3600

    request_timeout_seconds: float = Field(default=5.0, gt=0)
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_sweep_interval_seconds: float = Field(default=600.0, gt=0)

    app_env: str = "dev"
    log_level: str = "INFO"
    log_format: str | None = None
    allow_origins: str = ""

    sentry_dsn: str | None = None
    sentry_traces_rate: float = 0.0
    release: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        extra="ignore",
    )

    @field_validator("port", "db_port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError(_PORT_RANGE_MESSAGE)
        return value

    @model_validator(mode="after")
    def _require_database(self) -> "Settings":
        if self.database_url:
            return self
        missing = [
            name
            for name, value in (
                ("DB_HOST", self.db_host),
                ("DB_USER", self.db_user),
                ("DB_NAME", self.db_name),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"必須の環境変数が設定されていません: {', '.join(missing)}")
        return self

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        ).render_as_string(hide_password=False)

    @property
    def sentry_traces_sample_rate(self) -> float:
        # 0.0〜0.2 に丸める
        return max(0.0, min(0.2, self.sentry_traces_rate))

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allow_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
