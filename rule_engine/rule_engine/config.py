"""Rule engine configuration loaded from environment variables."""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with RULECHECK_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="RULECHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False

    # Logging
    log_level: LogLevel = LogLevel.WARNING
    structured_logging: bool = False

    # Execution
    max_workers: int | None = None

    # File search
    include_dotfiles: bool = False
    include_dotdirs: bool = False
    follow_symlinks: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("max_workers")
    @classmethod
    def positive_workers(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    def effective_log_level(self) -> int:
        """Return the numeric logging level, forcing DEBUG when ``debug`` is set."""
        if self.debug:
            return logging.DEBUG
        return logging.getLevelName(self.log_level.value)


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings: log_level=%s, max_workers=%s", settings.log_level.value, settings.max_workers)

    return settings
