"""Codex Registry configuration via environment / .env file."""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Codex Registry"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    # --- Real-time delivery ---
    EVENT_CHANNEL: str = "user-event"

    # --- Auth (verified upstream; we only read the result) ---
    VIEWER_HEADER: str = "X-User-Address"

    # --- HTTP ---
    HOST: str = "127.0.0.1"
    PORT: int = 3001
    INCLUDE_DOCS: bool = True

    # --- CORS ---
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8080"]

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("EVENT_CHANNEL", "VIEWER_HEADER")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


settings = Settings()
