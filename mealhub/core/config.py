# mealhub/core/config.py
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from mealhub.domain.status import CancelWindow


class Settings(BaseSettings):
    """
    Centralized settings loaded from environment.

    Required by the API (not by the client package):
      - JWT_SECRET (signing secret shared with the auth service)

    Optional:
      - DATABASE_URL (defaults to a local SQLite file)
      - API_BASE_URL (origin the client package talks to)
      - CUSTOMER_CANCEL_WINDOW: PENDING_ONLY | PENDING_OR_CONFIRMED
    """

    PROJECT_NAME: str = "MealHub Orders API"
    API_PREFIX: str = "/api"

    # Backend
    DATABASE_URL: str = "sqlite:///./mealhub.db"
    JWT_SECRET: str | None = None
    JWT_ALG: str = "HS256"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    ESTIMATED_DELIVERY_MINUTES: int = 45

    # Order lifecycle policy (read by both server and client)
    CUSTOMER_CANCEL_WINDOW: CancelWindow = CancelWindow.PENDING_OR_CONFIRMED

    # Client
    API_BASE_URL: str = "http://localhost:5000/api"
    POLL_INTERVAL_SECONDS: float = 30.0
    SUCCESS_BANNER_SECONDS: float = 5.0
    CANCEL_REDIRECT_SECONDS: float = 3.0
    REQUEST_TIMEOUT_SECONDS: float | None = 15.0

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
