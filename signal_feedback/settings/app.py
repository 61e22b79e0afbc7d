"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    db_path: Path = Field(
        default=Path("state/signal_weights.sqlite"),
        validation_alias="SIGNAL_FEEDBACK_DB_PATH",
    )
    dictionary_path: Path | None = Field(
        default=None, validation_alias="SIGNAL_DICTIONARY_PATH"
    )
    weight_cache_ttl_seconds: float = Field(
        default=300.0, ge=0.0, validation_alias="WEIGHT_CACHE_TTL_SECONDS"
    )
    apply_weight_decay: bool = Field(
        default=False, validation_alias="APPLY_WEIGHT_DECAY"
    )
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
