"""Application configuration."""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="PromptCollab", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    allowed_hosts: List[str] = Field(
        default=["*"], description="Host headers accepted by TrustedHostMiddleware"
    )
    workers: int = Field(default=1, description="Number of workers")
    reload: bool = Field(default=False, description="Auto-reload on changes")

    # Identity
    secret_key: str = Field(
        default="change-me-in-production", description="Secret key for JWT verification"
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_hours: int = Field(
        default=168, description="Access token expiration in hours"
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./promptcollab.db", description="Database URL"
    )
    database_pool_size: int = Field(default=10, description="Database pool size")
    database_max_overflow: int = Field(
        default=20, description="Database max overflow"
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Collaboration
    participant_liveness_minutes: int = Field(
        default=5, ge=1, description="Minutes after which a silent participant is evicted"
    )
    lock_ttl_minutes: int = Field(
        default=10, ge=1, description="Minutes after which an advisory lock expires"
    )

    # Version history
    version_allocation_retries: int = Field(
        default=3, ge=1, description="Attempts to allocate a version number on conflict"
    )
    diff_strategy: str = Field(
        default="positional", description="Change summary strategy (positional or lcs)"
    )

    # Monitoring
    metrics_enabled: bool = Field(default=True, description="Enable metrics")

    # CORS
    cors_enabled: bool = Field(default=True, description="Enable CORS")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="CORS origins",
    )
    cors_credentials: bool = Field(default=True, description="CORS credentials")
    cors_methods: List[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        description="CORS methods",
    )
    cors_headers: List[str] = Field(default=["*"], description="CORS headers")

    @field_validator("diff_strategy")
    @classmethod
    def validate_diff_strategy(cls, v):
        """Only the known change summary strategies are accepted."""
        value = v.strip().lower()
        if value not in ("positional", "lcs"):
            raise ValueError("diff_strategy must be 'positional' or 'lcs'")
        return value

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment.lower() in ("testing", "test")


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings()


# Global settings instance
settings = get_settings()
