"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_PATH: str = "data/main.db"
    DB_ENGINE: str = "sqlite"

    # Per-session view state
    STATE_DIR: str = "data"
    PAGE_SIZE: int = 20

    # Server
    SECRET_KEY: str = "change-this-secret-key-in-production"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    APP_NAME: str = "Table Editor"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
