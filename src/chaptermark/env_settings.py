"""Environment-based settings using pydantic-settings.

This module provides type-safe environment variable loading with validation.

Usage:
    from chaptermark.env_settings import get_env_settings

    env = get_env_settings()
    print(env.frames.text_encoding)  # From CHAPTERMARK_TEXT_ENCODING env var

Environment Variables:
    Frames:
        CHAPTERMARK_TEXT_ENCODING - Title encoding: latin-1, utf-16, utf-16-be, utf-8 (default: utf-8)
        CHAPTERMARK_CHAPTER_ID_PREFIX - Chapter element id prefix (default: "chp")
        CHAPTERMARK_TOC_ID - Table-of-contents element id (default: "toc")

    Markers:
        CHAPTERMARK_DELIMITER - Marker file delimiter: ",", ";" or "\\t" (default: auto-detect)
        CHAPTERMARK_PROBE_DURATION - Probe MP3 length for the final chapter end (default: true)

    Application:
        LOG_LEVEL - Logging level (default: "INFO")
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Text encoding name -> ID3v2.4 encoding byte
TEXT_ENCODINGS: dict[str, int] = {
    "latin-1": 0x00,
    "utf-16": 0x01,
    "utf-16-be": 0x02,
    "utf-8": 0x03,
}


class FrameEnvSettings(BaseSettings):
    """Frame encoding settings from environment variables.

    Reads from CHAPTERMARK_TEXT_ENCODING, CHAPTERMARK_CHAPTER_ID_PREFIX,
    CHAPTERMARK_TOC_ID env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAPTERMARK_",
        extra="ignore",
    )

    text_encoding: str = Field(default="utf-8", description="Title sub-frame text encoding")
    chapter_id_prefix: str = Field(default="chp", description="Chapter element id prefix")
    toc_id: str = Field(default="toc", description="Table-of-contents element id")

    @field_validator("text_encoding")
    @classmethod
    def validate_text_encoding(cls, v: str) -> str:
        """Normalize and validate the text encoding name."""
        normalized = v.strip().lower().replace("_", "-")
        aliases = {"latin1": "latin-1", "iso-8859-1": "latin-1", "utf8": "utf-8", "utf16": "utf-16"}
        normalized = aliases.get(normalized, normalized)
        if normalized not in TEXT_ENCODINGS:
            raise ValueError(
                f"CHAPTERMARK_TEXT_ENCODING must be one of {sorted(TEXT_ENCODINGS)}, got: {v}"
            )
        return normalized

    @field_validator("chapter_id_prefix", "toc_id")
    @classmethod
    def validate_element_id(cls, v: str) -> str:
        """Element ids are written as NUL-terminated ASCII."""
        if "\x00" in v or not v.isascii():
            raise ValueError(f"Element ids must be ASCII without NUL, got: {v!r}")
        return v


class MarkerEnvSettings(BaseSettings):
    """Marker parsing settings from environment variables.

    Reads from CHAPTERMARK_DELIMITER, CHAPTERMARK_PROBE_DURATION env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAPTERMARK_",
        extra="ignore",
    )

    delimiter: str | None = Field(default=None, description="Marker file delimiter")
    probe_duration: bool = Field(
        default=True, description="Probe MP3 length when the final marker has no end"
    )

    @field_validator("delimiter", mode="before")
    @classmethod
    def validate_delimiter(cls, v: str | None) -> str | None:
        """Accept ',', ';' or a tab (also written as the two characters '\\t')."""
        if v is None or v == "":
            return None
        if v == "\\t":
            v = "\t"
        if v not in (",", "\t", ";"):
            raise ValueError(f"CHAPTERMARK_DELIMITER must be ',', ';' or '\\t', got: {v!r}")
        return v


class AppEnvSettings(BaseSettings):
    """Application-level settings from environment variables.

    Reads from LOG_LEVEL env var.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got: {v}")
        return upper


class EnvSettings(BaseSettings):
    """Combined environment settings.

    Use get_env_settings() to get a cached instance.

    Example:
        env = get_env_settings()
        print(env.frames.toc_id)
        print(env.markers.delimiter)
        print(env.app.log_level)
    """

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    frames: FrameEnvSettings = Field(default_factory=FrameEnvSettings)
    markers: MarkerEnvSettings = Field(default_factory=MarkerEnvSettings)
    app: AppEnvSettings = Field(default_factory=AppEnvSettings)

    @property
    def encoding_byte(self) -> int:
        """ID3v2.4 encoding byte for the configured title encoding."""
        return TEXT_ENCODINGS[self.frames.text_encoding]


@lru_cache(maxsize=1)
def get_env_settings() -> EnvSettings:
    """Get cached environment settings.

    The cache is populated on first call; the returned object is never
    mutated by chaptermark itself.
    """
    return EnvSettings()


def clear_env_settings_cache() -> None:
    """Clear the cached environment settings.

    Useful for testing to ensure fresh settings are loaded.
    """
    get_env_settings.cache_clear()


def load_env_settings_from_file(env_file: Path) -> EnvSettings:
    """Load environment settings from a specific .env file.

    Args:
        env_file: Path to .env file to load.

    Returns:
        EnvSettings instance with configuration from the file.
    """
    from dotenv import load_dotenv

    load_dotenv(env_file, override=True)

    clear_env_settings_cache()
    return get_env_settings()
