from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from drivetrack.core.clock import validate_timezone

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class AppSettings(BaseSettings):
    """Runtime settings, read from ``DRIVETRACK_*`` variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="DRIVETRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid",
    )

    database_url: str = Field(default="sqlite:///./drivetrack.db")
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)
    log_file: str | None = Field(default=None)
    metrics_token: str = Field(default="drivetrack-metrics", min_length=8)
    metrics_namespace: str = Field(default="drivetrack")
    default_actor_id: str = Field(default="system", min_length=1)
    timezone: str = Field(default="UTC")

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_level(cls, value: object) -> str:
        level = str(value or "").strip().upper()
        if level not in _LEVELS:
            raise ValueError(f"CONFIG_LOG_LEVEL_INVALID: {value!r}")
        return level

    @field_validator("timezone", mode="before")
    @classmethod
    def _validate_timezone(cls, value: object) -> str:
        name = str(value or "").strip()
        validate_timezone(name)
        return name

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


__all__ = ["AppSettings", "get_settings"]
