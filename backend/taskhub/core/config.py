"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "tasks_user"
    POSTGRES_PASSWORD: str = "tasks_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "tasks_db"

    # Full async URL, e.g. "sqlite+aiosqlite:///./tasks.sqlite3".
    # Takes precedence over the POSTGRES_* fields when set.
    DATABASE_URL_OVERRIDE: str = ""

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg unless overridden)."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── File Storage ──────────────────────────
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = Field(default=10 * 1024 * 1024, ge=1)

    # ── Logging ───────────────────────────────
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # ── Ingestion ─────────────────────────────
    INGESTION_QUEUE_MAXSIZE: int = Field(default=100, ge=1)
    INGESTION_PERSIST_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    INGESTION_SHUTDOWN_TIMEOUT_SECONDS: float = Field(default=10.0, ge=0)

    # ── Application ───────────────────────────
    APP_ENV: str = "development"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
