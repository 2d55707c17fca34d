"""Runtime settings, read from the environment and an optional ``.env`` file."""

from typing import List
import secrets

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Car Marketplace"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # JWT. A random key means tokens do not survive a restart; set SECRET_KEY
    # in any shared environment.
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # SQLite file plus the knobs of the offer locking protocol
    DATABASE_URL: str = "sqlite:///./carmarket/carmarket.db"
    DB_BUSY_TIMEOUT_SECONDS: float = 5.0
    OFFER_LOCK_MAX_RETRIES: int = 3

    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Admin account created at startup; turn off outside development
    SEED_ADMIN: bool = True
    ADMIN_EMAIL: str = "admin@carmarket.com"
    ADMIN_PASSWORD: str = "Admin1234!"

    LOG_LEVEL: str = "INFO"
    LOG_LEVELS: str = "TRACE,ERROR,WARNING,INFO"
    LOG_FILE_PATH: str = "./carmarket/logs/app.log"
    LOG_TRACE_CALLS: bool = False

    @field_validator("DATABASE_URL")
    @classmethod
    def sqlite_only(cls, value: str) -> str:
        if not value.startswith("sqlite:///"):
            raise ValueError("DATABASE_URL must be a sqlite:/// URL")
        return value

    @field_validator("OFFER_LOCK_MAX_RETRIES", "ACCESS_TOKEN_EXPIRE_MINUTES")
    @classmethod
    def at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


settings = Settings()
