"""
Configuration for the expense API.

Values come from environment variables prefixed with ``EXPENSE_API_`` or
from a ``.env`` file in the working directory.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EXPENSE_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    database_url: str = Field(
        default="sqlite:///./expenses.db",
        description="SQLAlchemy database URL",
    )
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for a pooled connection before failing",
    )

    # Tokens and passwords
    jwt_secret: str = Field(default="change-me")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60, ge=1)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5001)
    shutdown_timeout: int = Field(
        default=10,
        ge=1,
        description="Seconds allowed for in-flight requests to finish on shutdown",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings()
