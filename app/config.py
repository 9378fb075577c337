"""Application settings loaded from environment variables / .env."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    DATA_DIR: Path = Path("./data")
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/eduverse.db"

    # Uploaded unit resources, served under /uploads
    UPLOAD_DIR: Path = Path("./uploads")
    UPLOAD_URL_PREFIX: str = "/uploads"

    # Identity header set by the reverse proxy in front of the app
    AUTH_HEADER: str = "x-authenticated-user-email"

    # Log a summary line for every progress recompute
    DEBUG_PROGRESS: bool = False


settings = Settings()
