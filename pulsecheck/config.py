"""Application configuration loading."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    max_concurrency: int = 5
    probe_timeout_s: float = 10.0
    slow_threshold_ms: int = 800
    schedule_interval_s: float = 60.0
    public_base_url: str = ""
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()
