"""Settings for the Laudos backend, read from the environment and ``.env``.

Values are grouped the way the deployment splits them: API, Postgres,
bucket, remote functions and e-mail. Unset optional URLs disable the
matching integration instead of failing at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/src/laudos/config.py -> repository root
_REPO_ROOT = Path(__file__).resolve().parents[3]


def _locate_env_file() -> Path | None:
    """First ``.env`` found walking up from the working directory, else the repo root's."""
    for directory in (Path.cwd(), *Path.cwd().parents[:4]):
        candidate = directory / ".env"
        if candidate.exists():
            return candidate
    candidate = _REPO_ROOT / ".env"
    return candidate if candidate.exists() else None


_env_file = _locate_env_file()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_env_file) if _env_file else ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================
    # Environment
    # =========================
    environment: Literal["development", "staging", "production"] = "development"

    # =========================
    # API Settings
    # =========================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    public_base_url: str = "http://localhost:8000"

    # =========================
    # PostgreSQL
    # =========================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "laudos"
    postgres_user: str = "laudos"
    postgres_password: str = Field(default="", repr=False)
    db_pool_size: int = 5
    db_max_overflow: int = 10
    # Statements slower than this are cancelled by the server
    db_statement_timeout_ms: int = 30_000

    @computed_field
    @property
    def database_url(self) -> str:
        """SQLAlchemy database URL for PostgreSQL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # =========================
    # S3/MinIO
    # =========================
    s3_endpoint: str = "http://localhost:9000"
    s3_access_key: str = Field(default="minioadmin", repr=False)
    s3_secret_key: str = Field(default="minioadmin", repr=False)
    s3_bucket: str = "process-documents"
    s3_region: str = "us-east-1"
    signed_url_expiration: int = 3600
    storage_delete_batch_size: int = Field(default=100, ge=1, le=1000)
    upload_max_bytes: int = 20 * 1024 * 1024
    upload_allowed_types: str = (
        "application/pdf,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "application/msword,text/plain,image/jpeg,image/png,image/webp"
    )

    # =========================
    # JWT/Auth
    # =========================
    jwt_secret: str = Field(default="change-me-in-production", repr=False)
    jwt_algorithm: str = "HS256"

    # =========================
    # Logging
    # =========================
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    # =========================
    # Remote report function
    # =========================
    report_function_url: str = ""
    report_function_timeout: float = 30.0

    # =========================
    # Third-party extraction endpoints (optional)
    # =========================
    # An empty URL disables the corresponding call.
    llm_extract_url: str = ""
    llm_proofread_url: str = ""
    llm_audio_transcription_url: str = ""
    llm_audio_activities_url: str = ""
    llm_insalubrity_eval_url: str = ""
    llm_epi_periodicity_url: str = ""
    llm_epi_usage_url: str = ""
    ocr_url: str = ""
    llm_timeout: float = 60.0

    # =========================
    # Schedule e-mail
    # =========================
    resend_api_key: str = Field(default="", repr=False)
    resend_api_url: str = "https://api.resend.com/emails"
    schedule_email_from: str = ""
    # Inspection dates and times are entered in local time
    schedule_timezone: str = "America/Sao_Paulo"

    # =========================
    # Autosave
    # =========================
    autosave_delay_seconds: float = Field(default=1.0, ge=0.8, le=1.2)

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def upload_allowed_types_list(self) -> list[str]:
        """Parse allowed upload MIME types as a list."""
        return [t.strip() for t in self.upload_allowed_types.split(",") if t.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
