"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: str = Field(
        default="t!",
        min_length=1,
        max_length=5,
        validation_alias=AliasChoices("command_prefix", "prefix"),
    )


class AudioSettings(BaseModel):
    """Audio source and limits configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    default_volume: float = Field(default=0.5, ge=0.0, le=2.0)
    max_queue_size: int = Field(default=50, ge=1, le=1000)
    max_track_duration_seconds: int = Field(
        default=900,
        ge=1,
        le=86_400,
        validation_alias=AliasChoices("max_track_duration_seconds", "max_duration"),
    )
    ffmpeg_options: dict[str, str] = Field(
        default_factory=lambda: {
            "before_options": "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5",
            "options": "-vn",
        }
    )
    cookies_file: str | None = Field(
        default=None,
        validation_alias=AliasChoices("cookies_file", "cookiefile", "youtube_cookies"),
    )

    @field_validator("cookies_file")
    @classmethod
    def blank_cookies_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class PlaybackSettings(BaseModel):
    """Retry and pacing configuration for the playback queue."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    max_retries: int = Field(default=2, ge=0, le=10)
    retry_backoff_seconds: float = Field(default=2.5, ge=0.0, le=60.0)
    advance_delay_seconds: float = Field(default=1.0, ge=0.0, le=60.0)
    strategy_delay_seconds: float = Field(default=1.5, ge=0.0, le=60.0)
    resolver_strategy_delay_seconds: float = Field(default=1.0, ge=0.0, le=60.0)
    first_data_timeout_seconds: float = Field(default=15.0, gt=0.0, le=120.0)


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD_TOKEN (shortcut) or DISCORD__TOKEN, DISCORD__COMMAND_PREFIX
    - AUDIO__COOKIES_FILE, AUDIO__MAX_TRACK_DURATION_SECONDS, ...
    - PLAYBACK__MAX_RETRIES, PLAYBACK__RETRY_BACKOFF_SECONDS, ...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    discord_token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("discord_token"),
    )

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper

    @property
    def bot_token(self) -> str:
        """Nested ``DISCORD__TOKEN`` wins over the ``DISCORD_TOKEN`` shortcut."""
        return (
            self.discord.token.get_secret_value() or self.discord_token.get_secret_value()
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
