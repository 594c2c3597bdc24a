"""Application configuration loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./moviecat.db", alias="DATABASE_URL")
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL")
    tmdb_timeout: float = Field(default=10.0, alias="TMDB_TIMEOUT")
    seed_target: int = Field(default=100, alias="MOVIECAT_SEED_TARGET")
    seed_cast_limit: int = Field(default=10, alias="MOVIECAT_SEED_CAST_LIMIT")
    reset_schema: bool = Field(default=False, alias="MOVIECAT_RESET_SCHEMA")
    log_level: str = Field(default="WARNING", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
