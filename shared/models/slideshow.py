"""
Slideshow composition data models.

Defines Frame, AudioTrack, JobSettings, EngineState and JobResult models.
"""

from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

OutputFormat = Literal["mp4", "webm", "avi"]


def _normalize_extension(value: str) -> str:
    """Strip a leading dot and lowercase a file extension."""
    ext = value.strip().lstrip(".").lower()
    if not ext or not ext.isalnum():
        raise ValueError(f"Invalid file extension: {value!r}")
    return ext


class Frame(BaseModel):
    """One still image in the slideshow."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="0-based ordinal position in the sequence")
    data: bytes = Field(repr=False, description="Opaque image payload")
    extension: str = "png"
    display_duration: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds on screen; defaults to the job's duration_per_frame"
    )

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Normalize extension (".PNG" -> "png")."""
        return _normalize_extension(v)


class AudioTrack(BaseModel):
    """Optional background audio, trimmed as a whole to the video duration."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False, description="Opaque audio payload")
    extension: str = "mp3"

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Normalize extension (".MP3" -> "mp3")."""
        return _normalize_extension(v)


class JobSettings(BaseModel):
    """Per-job encoding settings."""

    model_config = ConfigDict(frozen=True)

    duration_per_frame: float = Field(default=3.0, gt=0, description="Seconds per frame")
    frame_rate: int = Field(default=5, gt=0, description="Output frames per second")
    output_format: OutputFormat = "mp4"

    @property
    def mime_type(self) -> str:
        """MIME type of the encoded output."""
        return f"video/{self.output_format}"


class EngineStatus(str, Enum):
    """Engine lifecycle status."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class EngineState(BaseModel):
    """Engine lifecycle status plus the failure reason, if any."""

    model_config = ConfigDict(frozen=True)

    status: EngineStatus = EngineStatus.UNINITIALIZED
    reason: Optional[str] = None


class JobStage(str, Enum):
    """Composition pipeline stage."""

    IDLE = "idle"
    STAGING = "staging"
    ENCODING = "encoding"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class JobResult(BaseModel):
    """Final encoded slideshow video."""

    data: bytes = Field(repr=False, description="Encoded video payload")
    mime_type: str
    output_format: OutputFormat
    frame_count: int
    video_duration: float = Field(description="Staged video duration in seconds")
    has_audio: bool
    size_mb: float = Field(description="File size in megabytes")
    composition_time: float = Field(description="Composition time in seconds")
