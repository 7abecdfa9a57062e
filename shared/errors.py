"""
Custom exception classes.

Error taxonomy shared by all modules. Every job failure surfaces as exactly
one of these types.
"""

from typing import Optional
from uuid import UUID


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, job_id: Optional[UUID] = None):
        super().__init__(message)
        self.message = message
        self.job_id = job_id


class ConfigError(PipelineError):
    """Configuration is missing or invalid."""


class ValidationError(PipelineError):
    """Input validation failed (caller error, never retried)."""


class EmptyInputError(ValidationError):
    """No frames were supplied for a job."""


class RetryableError(PipelineError):
    """Transient failure that may succeed on retry (network, timeouts)."""


class CompositionError(PipelineError):
    """Base class for failures while composing a video."""


class EngineInitError(CompositionError):
    """Engine artifacts could not be fetched or the post-load self-check failed."""


class EngineBusyError(CompositionError):
    """A job is already running against the shared engine."""


class StagingError(CompositionError):
    """I/O into or out of the engine's staging namespace failed."""


class StagingWriteError(StagingError):
    """Writing a named buffer into the staging namespace failed."""


class StagingReadError(StagingError):
    """Reading a named buffer back from the staging namespace failed."""


class EncodeError(CompositionError):
    """Engine invocation failed or produced no output."""
