"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Relational store (TiDB / MySQL-protocol compatible) ────────────────
    db_host: str = "tidb"
    db_port: int = 4000
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "social"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    # Full SQLAlchemy async URL; overrides the component fields when set
    # (e.g. sqlite+aiosqlite:///./social.db for local runs)
    database_url: Optional[str] = None

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Identity boundary ──────────────────────────────────────────────────
    # The gateway verifies the session and forwards the caller id here.
    identity_header: str = "X-User-Id"

    # ── Content rules ──────────────────────────────────────────────────────
    post_max_length: int = 280

    # ── Pagination / query defaults ────────────────────────────────────────
    feed_page_size: int = 10
    feed_max_page_size: int = 100
    suggested_users_limit: int = 5

    # ── Redis (view-invalidation signal; optional) ─────────────────────────
    redis_url: Optional[str] = None
    redis_invalidation_channel: str = "stale-views"

    # ── Observability ──────────────────────────────────────────────────────
    # Blank disables span export (tracing stays in-process)
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "social-api"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
