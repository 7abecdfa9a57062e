"""
Configuration management.

Centralized environment variable management and validation.
"""

from typing import Literal, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.errors import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore"
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # LOG_DIR: Directory for the rotating app.log file. Empty disables file logging.
    log_dir: Optional[str] = "logs"

    # Engine configuration
    # FFMPEG_PATH: Explicit path to the ffmpeg binary. If not set, PATH is searched.
    ffmpeg_path: Optional[str] = None
    # FFMPEG_DOWNLOAD_URL: Static ffmpeg build fetched on first load when no binary is found
    ffmpeg_download_url: Optional[str] = None
    ffmpeg_cache_dir: str = ".cache/ffmpeg"
    # ENGINE_WORK_ROOT: Parent directory for the engine's private staging directory
    # If not set, the system temp directory is used
    engine_work_root: Optional[str] = None
    ffmpeg_timeout: int = 300  # 5 minutes
    engine_download_attempts: int = 3

    # BUSY_POLICY: What happens when a job is requested while another is encoding
    # "reject" raises EngineBusyError, "queue" waits for the running job to finish
    busy_policy: Literal["reject", "queue"] = "reject"

    # Job defaults
    default_duration_per_frame: float = 3.0
    default_frame_rate: int = 5
    default_output_format: Literal["mp4", "webm", "avi"] = "mp4"

    @field_validator("ffmpeg_download_url")
    @classmethod
    def validate_ffmpeg_download_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate ffmpeg download URL format."""
        if v and not v.startswith(("http://", "https://")):
            raise ConfigError("FFMPEG_DOWNLOAD_URL must be a valid HTTP/HTTPS URL")
        return v or None

    @field_validator("ffmpeg_timeout", "engine_download_attempts")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """Validate counters and timeouts are positive."""
        if v <= 0:
            raise ConfigError(f"Value must be positive, got {v}")
        return v

    @field_validator("default_duration_per_frame")
    @classmethod
    def validate_default_duration(cls, v: float) -> float:
        """Validate default duration per frame."""
        if v <= 0:
            raise ConfigError("DEFAULT_DURATION_PER_FRAME must be greater than 0")
        return v

    @field_validator("default_frame_rate")
    @classmethod
    def validate_default_frame_rate(cls, v: int) -> int:
        """Validate default frame rate."""
        if v <= 0:
            raise ConfigError("DEFAULT_FRAME_RATE must be greater than 0")
        return v


# Singleton instance
try:
    settings = Settings()
except Exception as e:
    # Re-raise as ConfigError for consistency
    if isinstance(e, ConfigError):
        raise
    raise ConfigError(f"Failed to load configuration: {str(e)}") from e
