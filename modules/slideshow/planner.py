"""
FFmpeg argument planning for the slideshow module.

Turns job settings into the exact ordered argument list for one engine call.
"""
from typing import List

from shared.errors import ValidationError
from shared.models.slideshow import JobSettings
from .config import (
    AUDIO_NAME,
    SCRIPT_NAME,
    OUTPUT_PIXEL_FORMAT,
    FORMAT_CODECS,
    get_scale_pad_filter
)
from .script_builder import format_duration
from .staging import output_name


def plan_arguments(
    settings: JobSettings,
    has_audio: bool,
    total_video_duration: float,
    audio_name: str = AUDIO_NAME
) -> List[str]:
    """
    Build the FFmpeg argument list for one slideshow job.

    Order matters: inputs, filter, codecs, duration guards, rate, pixel
    format, then "-y" immediately before the output name.

    With audio, both "-shortest" and "-t <total>" are applied so the result is
    never longer than the image sequence regardless of the audio's length.

    Args:
        settings: Job settings
        has_audio: Whether an audio track is staged
        total_video_duration: Sum of all frame durations in seconds
        audio_name: Staged audio name

    Returns:
        Argument list (without the ffmpeg binary itself)

    Raises:
        ValidationError: If total_video_duration is not positive
    """
    if total_video_duration <= 0:
        raise ValidationError(
            f"Total video duration must be positive, got {total_video_duration}"
        )

    args = [
        "-f", "concat",
        "-safe", "0",
        "-i", SCRIPT_NAME,
    ]

    if has_audio:
        video_codec, audio_codec = FORMAT_CODECS[settings.output_format]
        args += [
            "-i", audio_name,
            "-vf", get_scale_pad_filter(),
            "-c:v", video_codec,
            "-c:a", audio_codec,
            "-shortest",  # Stop at the shorter input
            "-t", format_duration(round(total_video_duration, 6)),  # Hard cap at video length
        ]
    else:
        args += ["-vf", get_scale_pad_filter()]

    args += [
        "-r", str(settings.frame_rate),
        "-pix_fmt", OUTPUT_PIXEL_FORMAT,
        "-y",
        output_name(settings.output_format),
    ]
    return args
