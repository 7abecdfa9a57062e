"""
Data models for the slideshow pipeline.

This module exports all Pydantic models used across pipeline modules.
"""

from .slideshow import (
    Frame,
    AudioTrack,
    JobSettings,
    OutputFormat,
    EngineStatus,
    EngineState,
    JobStage,
    JobResult
)

__all__ = [
    # Input models
    "Frame",
    "AudioTrack",
    "JobSettings",
    "OutputFormat",
    # Engine models
    "EngineStatus",
    "EngineState",
    # Job models
    "JobStage",
    "JobResult",
]
