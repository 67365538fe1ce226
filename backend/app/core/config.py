"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Studio Reservations API"
    api_v1_prefix: str = "/api/v1"
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    database_url: str = Field(
        "sqlite+aiosqlite:///./reservations.db", alias="DATABASE_URL"
    )
    db_auto_create: bool = Field(default=True, alias="DB_AUTO_CREATE")

    local_timezone: str = Field("America/New_York", alias="LOCAL_TIMEZONE")
    default_slot_duration_minutes: int = Field(
        60, alias="DEFAULT_SLOT_DURATION_MINUTES"
    )
    default_max_participants_per_slot: int = Field(
        1, alias="DEFAULT_MAX_PARTICIPANTS_PER_SLOT"
    )
    default_max_participants_per_day: int = Field(
        10, alias="DEFAULT_MAX_PARTICIPANTS_PER_DAY"
    )
    cleanup_expired_on_list: bool = Field(
        default=True, alias="CLEANUP_EXPIRED_ON_LIST"
    )

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("default_slot_duration_minutes")
    @classmethod
    def _check_slot_duration(cls, value: int) -> int:
        if value not in (60, 120, 240):
            raise ValueError("DEFAULT_SLOT_DURATION_MINUTES must be 60, 120 or 240")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
