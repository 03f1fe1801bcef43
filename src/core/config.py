"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Invitation Service")
    app_env: str = Field(default="development")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/invitations",
        description="PostgreSQL connection URL with asyncpg driver",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="console",
        description="'console' for human-readable output, 'json' for log shippers",
    )

    # Invitations
    invitation_expiry_days: int = Field(
        default=7,
        ge=0,
        description="Default validity window for new invitations (0 disables expiry)",
    )
    link_token_bytes: int = Field(default=24, ge=16)
    reminder_min_age_hours: int = Field(
        default=48,
        ge=1,
        description="Minimum age of an invitation and spacing between reminders",
    )
    reminder_max_count: int = Field(default=3, ge=0)
    bulk_max_emails: int = Field(default=100, ge=1)
    scheduler_token: str = Field(
        default="",
        description="Shared secret the scheduler sends in X-Scheduler-Token (empty disables sweeps)",
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable/disable rate limiting (disable for tests)",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed origins",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses the asyncpg driver scheme.

        Hosting providers usually supply a plain ``postgresql://`` URL.
        SQLAlchemy's async engine requires ``postgresql+asyncpg://``.
        """
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
