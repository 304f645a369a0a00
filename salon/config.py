# salon/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from .env; unknown keys are ignored
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    DATABASE_URL: str = "sqlite:///./salon.db"
    SQL_ECHO: bool = False
    SEED_SERVICES: bool = True

    # --- Auth ---
    SECRET_KEY: str = "change-me-later"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Business rules ---
    BUSINESS_TIMEZONE: str = "Europe/Belgrade"
    DAILY_CLIENT_APPOINTMENT_LIMIT: int = 3

    # --- Logging ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


settings = Settings()
