"""Application configuration using pydantic-settings pattern."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Workspace Search"
    app_version: str = "0.1.0"
    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Database (Turso)
    turso_database_url: str | None = Field(default=None)
    turso_auth_token: str | None = Field(default=None)

    # Federated search
    search_default_limit: int = Field(default=20, ge=1)
    search_max_limit: int = Field(default=100, ge=1)
    search_domain_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Per-domain store timeout before the domain is dropped",
    )
    search_domain_max_rows: int = Field(
        default=500,
        ge=1,
        description="Maximum rows fetched from a single domain per search",
    )
    search_strip_invalid_dates: bool = Field(
        default=False,
        description="Drop before:/after: tokens whose date cannot be parsed",
    )

    # Suggestions and history
    suggestion_min_prefix_length: int = Field(default=2, ge=1)
    suggestion_history_limit: int = Field(default=5, ge=0)
    suggestion_channel_limit: int = Field(default=3, ge=0)
    suggestion_user_limit: int = Field(default=3, ge=0)
    history_default_limit: int = Field(default=20, ge=1)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
