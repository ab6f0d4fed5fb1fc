from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import Literal

# Repository root (two levels above the package)
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):

    # Application
    app_env: str = "development"
    app_debug: bool = False

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: list[str] = ["*"]
    security_headers_enabled: bool = True

    # Storage backend: "sql" (PostgreSQL / SQLite) or "redis" (document store)
    storage_backend: Literal["sql", "redis"] = "sql"

    # PostgreSQL Configuration
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "contentdesk_db"
    postgres_user: str = "contentdesk_user"
    postgres_password: str = ""

    # SQLite (local development and tests)
    use_sqlite: bool = False
    sqlite_url: str = "sqlite+aiosqlite:///./data/contentdesk.db"

    @computed_field
    @property
    def database_url(self) -> str:
        """Return the appropriate database URL based on configuration."""
        if self.use_sqlite:
            return self.sqlite_url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # Database pooling (PostgreSQL)
    db_pool_size: int = 20
    db_max_overflow: int = 0
    db_pool_timeout: float = 2.0  # Seconds to wait for a free connection
    db_pool_recycle: int = 1800
    db_init_max_retries: int = 5

    # Redis document store
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "contentdesk"

    # Attachments
    uploads_dir: Path = PROJECT_ROOT / "uploads"
    newsletters_subdir: str = "newsletters"
    image_max_bytes: int = 10 * 1024 * 1024
    pdf_max_bytes: int = 50 * 1024 * 1024

    # Newsletter delivery (log-only sink)
    newsletter_send_delay_seconds: float = 1.0

    @field_validator("newsletters_subdir")
    @classmethod
    def validate_subdir(cls, v: str) -> str:
        v = v.strip().strip("/")
        if not v or "/" in v or v == "..":
            raise ValueError("newsletters_subdir must be a single directory name")
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def newsletters_dir(self) -> Path:
        return self.uploads_dir / self.newsletters_subdir

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
