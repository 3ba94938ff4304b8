"""Application configuration powered by Pydantic settings."""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global client and relay settings loaded from environment variables."""

    PROJECT_NAME: str = Field(default="Vibe GIF Relay")
    VERSION: str = Field(default="0.1.0")

    DIRECTORY_BACKEND: str = Field(default="memory")
    DATABASE_URL: str = Field(default="sqlite:///./vibe.db")

    MINIO_ENDPOINT: str = Field(default="minio:9000")
    MINIO_ACCESS_KEY: str = Field(default="minioadmin")
    MINIO_SECRET_KEY: str = Field(default="minioadmin")
    MINIO_BUCKET: str = Field(default="avatars")
    MINIO_PUBLIC_ENDPOINT: str | None = Field(default=None)
    MINIO_SECURE: bool = Field(default=False)

    AVATAR_CONTENT_TYPE: str = Field(default="image/jpeg")
    AVATAR_MAX_BYTES: int = Field(default=5 * 1024 * 1024)

    KLIPY_API_KEY: str = Field(default="")
    KLIPY_BASE_URL: str = Field(default="https://api.klipy.com/api/v1")
    KLIPY_PER_PAGE: int = Field(default=50)
    KLIPY_TIMEOUT: float = Field(default=15.0)

    GIF_TRANSPORT: str = Field(default="relay")
    GIF_RELAY_URL: str = Field(default="http://localhost:8000/functions/klipy")
    RELAY_REQUIRE_SESSION: bool = Field(default=True)

    SESSION_SECRET: str = Field(default="change-me")
    SESSION_MAX_AGE: int = Field(default=30 * 24 * 60 * 60)
    SESSION_CHECK_INTERVAL: float = Field(default=60.0)
    PASSWORD_MIN_LENGTH: int = Field(default=6)

    ROOM_POLL_INTERVAL: float = Field(default=3.0)

    THEME_STORE_PATH: str = Field(default="~/.vibe/preferences.json")
    DEFAULT_THEME: str = Field(default="dark")

    FRONTEND_URL: str = Field(default="http://localhost:8081")

    RATE_LIMIT_GIF_RELAY: str = Field(default="60/minute")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> Settings:
    """Return cached settings instance to avoid repeated parsing."""

    if overrides:
        return Settings(**overrides)
    return Settings()


settings = get_settings()
