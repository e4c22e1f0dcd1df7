"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============== Environment ==============
    environment: Literal["development", "staging", "production"] = "development"

    # ============== Database ==============
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "knowledge"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url: PostgresDsn | None = None

    @property
    def db_url(self) -> str:
        """Construct database URL from components or use explicit URL."""
        if self.database_url:
            return str(self.database_url)
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def db_url_sync(self) -> str:
        """Synchronous database URL for Alembic migrations."""
        return self.db_url.replace("postgresql+asyncpg://", "postgresql://")

    # ============== Hosted platform (auth + storage) ==============
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    storage_bucket: str = "documents"

    @property
    def auth_url(self) -> str:
        """Base URL of the GoTrue auth API."""
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    @property
    def storage_url(self) -> str:
        """Base URL of the storage API."""
        return f"{self.supabase_url.rstrip('/')}/storage/v1"

    # ============== API ==============
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    api_reload: bool = False
    cors_origins_str: str = Field(default="*", alias="cors_origins")
    session_cookie_name: str = "sb-access-token"
    session_cookie_secure: bool = False
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, ge=1)

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # ============== LLM Configuration ==============
    llm_provider: Literal["gateway", "mock"] = "gateway"
    llm_gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    llm_api_key: str | None = None
    llm_model: str = "google/gemini-2.5-flash"
    llm_max_attempts: int = Field(default=1, ge=1, le=10)
    http_timeout_seconds: float = Field(default=120.0, gt=0)

    # ============== Logging ==============
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # ============== Computed Properties ==============
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


# Global settings instance
settings = get_settings()
