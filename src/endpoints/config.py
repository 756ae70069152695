from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables with ENDPOINTS_ prefix."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./endpoints.db"
    # App
    debug: bool = False
    api_prefix: str = "/v1"
    log_level: str = "INFO"
    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    # Store
    fanout_limit: int = 8

    model_config = SettingsConfigDict(env_prefix="ENDPOINTS_", env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""
    return Settings()
