"""
Main entry point for slideshow module.

Orchestrates one slideshow job: stages frames, timing script and audio into
the engine, encodes, reads the output back, and always cleans up.
"""
import asyncio
import time
from typing import Optional, Sequence
from uuid import UUID, uuid4

from shared.config import settings
from shared.errors import (
    CompositionError,
    EmptyInputError,
    EncodeError,
    EngineBusyError,
    PipelineError,
    ValidationError
)
from shared.logging import get_logger, set_job_id
from shared.models.slideshow import (
    AudioTrack,
    Frame,
    JobResult,
    JobSettings,
    JobStage
)

from .config import SCRIPT_NAME
from .lifecycle import EngineLifecycle
from .planner import plan_arguments
from .progress import ProgressCallback, ProgressReporter
from .script_builder import build_script, frame_durations
from .staging import StagingArea, audio_name, frame_name, output_name

logger = get_logger("slideshow.process")


def default_job_settings() -> JobSettings:
    """Job settings built from the configured defaults."""
    return JobSettings(
        duration_per_frame=settings.default_duration_per_frame,
        frame_rate=settings.default_frame_rate,
        output_format=settings.default_output_format
    )


def validate_frames(frames: Sequence[Frame], job_id: Optional[UUID] = None) -> None:
    """
    Check the frame sequence before anything touches the engine.

    Raises:
        EmptyInputError: If no frames were supplied
        ValidationError: If indices are not 0-based and contiguous
    """
    if not frames:
        raise EmptyInputError("At least one frame is required", job_id=job_id)
    for position, frame in enumerate(frames):
        if frame.index != position:
            raise ValidationError(
                f"Frame at position {position} has index {frame.index}; "
                f"indices must be 0-based and contiguous",
                job_id=job_id
            )


class CompositionPipeline:
    """
    Runs slideshow jobs against one engine lifecycle.

    Stages: IDLE -> STAGING -> ENCODING -> FINALIZING -> DONE, with any
    non-terminal stage able to exit to FAILED. Only one job runs per engine;
    busy_policy decides whether a second request is rejected or queued.
    """

    def __init__(self, lifecycle: EngineLifecycle, busy_policy: Optional[str] = None):
        self.lifecycle = lifecycle
        self.busy_policy = busy_policy or settings.busy_policy
        if self.busy_policy not in ("reject", "queue"):
            raise ValueError(f"Unknown busy policy: {self.busy_policy}")
        self.stage = JobStage.IDLE

    def _set_stage(self, stage: JobStage, job_id: UUID) -> None:
        logger.info(
            f"Stage {self.stage.value} -> {stage.value}",
            extra={"job_id": str(job_id), "stage": stage.value}
        )
        self.stage = stage

    async def run(
        self,
        frames: Sequence[Frame],
        job_settings: Optional[JobSettings] = None,
        audio: Optional[AudioTrack] = None,
        on_progress: Optional[ProgressCallback] = None,
        job_id: Optional[UUID] = None
    ) -> JobResult:
        """
        Compose a video from frames and an optional audio track.

        Args:
            frames: Frames in display order (never re-sorted)
            job_settings: Encoding settings (default: configured defaults)
            audio: Optional audio track, trimmed to the video duration
            on_progress: Called with 0-100 integer progress (sync or async)
            job_id: Job ID for logging (generated if not given)

        Returns:
            JobResult with the encoded video

        Raises:
            EmptyInputError: If no frames were supplied (before any staging)
            ValidationError: If frame indices are not contiguous
            EngineBusyError: If another job is running and busy_policy is "reject"
            EngineInitError: If the engine could not be initialized
            StagingWriteError: If staging an input failed
            EncodeError: If ffmpeg failed or produced no output
            StagingReadError: If the output could not be read back
        """
        job_id = job_id or uuid4()
        frames = list(frames)
        validate_frames(frames, job_id=job_id)
        job_settings = job_settings or default_job_settings()

        if self.busy_policy == "reject" and self.lifecycle.busy:
            raise EngineBusyError("Another job is already running on the engine", job_id=job_id)

        async with self.lifecycle.job_lock:
            set_job_id(job_id)
            try:
                return await self._run_job(frames, job_settings, audio, on_progress, job_id)
            finally:
                set_job_id(None)

    async def _run_job(
        self,
        frames: Sequence[Frame],
        job_settings: JobSettings,
        audio: Optional[AudioTrack],
        on_progress: Optional[ProgressCallback],
        job_id: UUID
    ) -> JobResult:
        start_time = time.time()
        self._set_stage(JobStage.STAGING, job_id)

        try:
            engine = await self.lifecycle.ensure_ready()
        except PipelineError as e:
            self._set_stage(JobStage.FAILED, job_id)
            e.job_id = e.job_id or job_id
            raise

        staging = StagingArea(engine)
        out_name = output_name(job_settings.output_format)
        durations = frame_durations(frames, job_settings.duration_per_frame)
        total_duration = sum(durations)

        try:
            # Step 1: Stage frames, timing script and audio
            names = []
            for position, frame in enumerate(frames):
                name = frame_name(position, frame.extension, len(frames))
                await staging.put(name, frame.data)
                names.append(name)

            script = build_script(names, durations)
            await staging.put(SCRIPT_NAME, script.encode("utf-8"))

            staged_audio = None
            if audio is not None:
                staged_audio = audio_name(audio.extension)
                await staging.put(staged_audio, audio.data)

            logger.info(
                f"Staged {len(frames)} frames ({total_duration:.2f}s)",
                extra={
                    "job_id": str(job_id),
                    "frame_count": len(frames),
                    "video_duration": total_duration,
                    "has_audio": audio is not None
                }
            )

            # Step 2: Encode
            self._set_stage(JobStage.ENCODING, job_id)
            if staged_audio is not None:
                args = plan_arguments(job_settings, True, total_duration, audio_name=staged_audio)
            else:
                args = plan_arguments(job_settings, False, total_duration)

            async with ProgressReporter(engine, on_progress):
                try:
                    return_code = await engine.exec(args, expected_duration=total_duration)
                except asyncio.TimeoutError as e:
                    raise EncodeError(f"FFmpeg timed out after {engine.timeout}s") from e
                except Exception as e:
                    raise EncodeError(f"FFmpeg invocation failed: {e}") from e

            if return_code != 0:
                raise EncodeError(f"FFmpeg exited with code {return_code}: {engine.last_log}")
            if not await staging.exists(out_name):
                raise EncodeError(f"FFmpeg produced no output ({out_name})")

            # Step 3: Read back the output
            self._set_stage(JobStage.FINALIZING, job_id)
            data = await staging.take(out_name)
            if not data:
                raise EncodeError(f"FFmpeg produced an empty output ({out_name})")

            result = JobResult(
                data=data,
                mime_type=job_settings.mime_type,
                output_format=job_settings.output_format,
                frame_count=len(frames),
                video_duration=total_duration,
                has_audio=audio is not None,
                size_mb=len(data) / 1024 / 1024,
                composition_time=time.time() - start_time
            )
            self._set_stage(JobStage.DONE, job_id)
            logger.info(
                f"Slideshow composed ({result.size_mb:.2f} MB in {result.composition_time:.2f}s)",
                extra={
                    "job_id": str(job_id),
                    "size_mb": result.size_mb,
                    "composition_time": result.composition_time
                }
            )
            return result

        except PipelineError as e:
            self._set_stage(JobStage.FAILED, job_id)
            e.job_id = e.job_id or job_id
            logger.error(
                f"Slideshow job failed: {e.message}",
                extra={"job_id": str(job_id), "error_type": type(e).__name__, "error": e.message}
            )
            raise
        except asyncio.CancelledError:
            self._set_stage(JobStage.FAILED, job_id)
            logger.warning("Slideshow job cancelled", extra={"job_id": str(job_id)})
            raise
        except Exception as e:
            self._set_stage(JobStage.FAILED, job_id)
            logger.error(
                f"Unexpected error in slideshow job: {e}",
                extra={"job_id": str(job_id), "error": str(e)},
                exc_info=True
            )
            raise CompositionError(f"Slideshow job failed: {e}", job_id=job_id) from e
        finally:
            # Runs on every exit path, including the output name
            await staging.discard_all(extra_names=[out_name])


async def process(
    frames: Sequence[Frame],
    lifecycle: EngineLifecycle,
    job_settings: Optional[JobSettings] = None,
    audio: Optional[AudioTrack] = None,
    on_progress: Optional[ProgressCallback] = None,
    job_id: Optional[UUID] = None
) -> JobResult:
    """
    Compose one slideshow video.

    Convenience wrapper over CompositionPipeline. Jobs sharing a lifecycle are
    serialized by its job lock regardless of which pipeline runs them.

    Args:
        frames: Frames in display order
        lifecycle: Engine lifecycle owning the ffmpeg engine
        job_settings: Encoding settings (default: configured defaults)
        audio: Optional audio track
        on_progress: Progress callback receiving 0-100
        job_id: Job ID for logging

    Returns:
        JobResult with the encoded video
    """
    pipeline = CompositionPipeline(lifecycle)
    return await pipeline.run(
        frames,
        job_settings=job_settings,
        audio=audio,
        on_progress=on_progress,
        job_id=job_id
    )
