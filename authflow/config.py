from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_file() -> str | None:
    cur = Path(__file__).resolve()
    for parent in [cur.parent, *cur.parents]:
        candidate = parent / ".env"
        if candidate.exists():
            return str(candidate)
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_env_file() or ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # endpoints
    AUTH_BASE_URL: str = "http://localhost:8080"
    API_BASE_URL: str = "http://localhost:8080"
    LOGIN_PATH: str = "/auth"
    REFRESH_PATH: str = "/auth/refresh"
    LOGOUT_PATH: str = "/auth/logout"
    HTTP_TIMEOUT_SEC: float = 8.0

    # session persistence
    REDIS_ENABLED: int = 0
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    SESSION_TTL_SEC: int = 7 * 24 * 3600
    SESSION_KEY: str = "authflow:session"

    # command-line probe
    ACCESS_TOKEN: Optional[str] = None
    REFRESH_TOKEN: Optional[str] = None

    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
