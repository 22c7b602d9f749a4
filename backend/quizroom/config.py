from __future__ import annotations

import string
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8080"
    CORS_ORIGIN_REGEX: Optional[str] = None
    CATALOG_PATH: Optional[str] = None

    CODE_LENGTH: int = 4
    CODE_ALPHABET: str = string.ascii_uppercase.replace("I", "").replace("O", "")
    MAX_PLAYERS: int = 30
    MIN_READY_PLAYERS: int = 2

    # Stage timings (milliseconds)
    ANSWER_BUFFER_MS: int = 1000
    REVIEW_DELAY_MS: int = 7000
    ROUND_START_DELAY_MS: int = 3000
    ROUND_END_DELAY_MS: int = 5000
    EMPTY_SESSION_GRACE_MS: int = 30000

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
