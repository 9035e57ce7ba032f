"""
Engine configuration using Pydantic Settings.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IAMSettings(BaseSettings):
    """Policy engine configuration."""

    model_config = SettingsConfigDict(env_prefix="IAM_")

    urn_mapping_file: Path | None = Field(
        default=None,
        description="JSON file with the per-service URN mapping table (built-in table if unset)",
    )
    filter_backend: str = Field(
        default="document",
        description="Scope filter backend: document, sql, memory",
    )
    reject_unknown_operators: bool = Field(
        default=False,
        description="Reject condition operators without a translator at policy load",
    )


class Settings(BaseSettings):
    """Main settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="iamscope")
    environment: str = Field(default="development")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or text")

    iam: IAMSettings = Field(default_factory=IAMSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in {"json", "text"}:
            raise ValueError("log_format must be 'json' or 'text'")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
